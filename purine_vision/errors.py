"""
Exception types raised while validating uploads and talking to the model.

Every error carries the ``ErrorCode`` and the user-facing message the API
returns; the exception's own string keeps the technical detail for the logs.
"""

from typing import Optional

from .config import MAX_FILE_SIZE
from .schemas import ErrorCode


class ErrorMessages:
    """Centralized user-facing error messages."""

    MISSING_IMAGE = "Please upload an image file."
    INVALID_IMAGE_FORMAT = (
        "Unsupported image format. Please upload a JPG, PNG or WEBP image."
    )
    IMAGE_TOO_LARGE = (
        f"Image too large. Maximum size is {MAX_FILE_SIZE / (1024*1024):.0f}MB."
    )
    INVALID_IMAGE = "Invalid image file. Please upload a valid image."
    NO_FOOD_DETECTED = "No food detected. Please upload a photo that contains food."
    NETWORK_ERROR = (
        "Network request failed. Please check the connection or whether the "
        "model service is available."
    )
    INVALID_API_KEY = "The API key is invalid. Please check the environment configuration."
    ACCESS_DENIED = "Access to the model API was denied. Please check the API key permissions."
    RATE_LIMITED = "Too many requests to the model API. Please try again later."
    MALFORMED_RESPONSE = "The model returned malformed data. Please try again."
    MODEL_NOT_CONFIGURED = "The model API key is not configured on the server."
    RECOGNITION_FAILED = "Recognition failed. Please try again later."
    INVALID_COORDINATES = "The supplied analysis result could not be read."
    PROCESSING_ERROR = "An error occurred while processing your request."
    SUCCESS = "Recognition succeeded."

    @staticmethod
    def too_large(size: int) -> str:
        return (
            f"{ErrorMessages.IMAGE_TOO_LARGE[:-1]}, "
            f"current file size: {size / 1024 / 1024:.2f}MB."
        )

    @staticmethod
    def timeout(seconds: float) -> str:
        return (
            f"Model request timed out ({seconds:g}s). "
            "Try a smaller or compressed image, or check the network connection."
        )


class AnalysisError(Exception):
    """Base class for every failure the analysis endpoints report."""

    code: ErrorCode = ErrorCode.MODEL_ERROR
    status_code: int = 500

    def __init__(self, detail: str, user_message: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        self.user_message = user_message or ErrorMessages.RECOGNITION_FAILED


class ImageValidationError(AnalysisError):
    """Upload rejected before it reaches the model."""

    status_code = 400

    def __init__(self, detail: str, code: ErrorCode = ErrorCode.INVALID_IMAGE_FORMAT):
        super().__init__(detail, user_message=detail)
        self.code = code


class InvalidCoordinatesError(AnalysisError):
    code = ErrorCode.INVALID_COORDINATES
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail, user_message=ErrorMessages.INVALID_COORDINATES)


class ModelConfigurationError(AnalysisError):
    def __init__(self, detail: str):
        super().__init__(detail, user_message=ErrorMessages.MODEL_NOT_CONFIGURED)


class ModelNetworkError(AnalysisError):
    code = ErrorCode.NETWORK_ERROR

    def __init__(self, detail: str, user_message: Optional[str] = None):
        super().__init__(detail, user_message or ErrorMessages.NETWORK_ERROR)


class ModelTimeoutError(ModelNetworkError):
    def __init__(self, timeout: float, elapsed: float, image_size: int):
        detail = (
            f"Model request timed out after {elapsed:.2f}s "
            f"(limit {timeout:g}s, image {image_size / 1024 / 1024:.2f}MB)"
        )
        super().__init__(detail, ErrorMessages.timeout(timeout))
        self.timeout = timeout


class ModelHTTPError(AnalysisError):
    """Non-2xx response from the hosted model."""

    def __init__(self, status: int, reason: str = "", body: str = ""):
        self.status = status
        self.body = body[:200]
        detail = f"Model request failed: {status} {reason}".rstrip()
        if self.body:
            detail = f"{detail} - {self.body}"
        super().__init__(detail, self._message_for(status))

    @staticmethod
    def _message_for(status: int) -> str:
        if status == 401:
            return ErrorMessages.INVALID_API_KEY
        if status == 403:
            return ErrorMessages.ACCESS_DENIED
        if status == 429:
            return ErrorMessages.RATE_LIMITED
        return ErrorMessages.RECOGNITION_FAILED


class ResponseFormatError(AnalysisError):
    """Model replied, but not with the JSON shape we asked for."""

    def __init__(self, detail: str):
        super().__init__(detail, user_message=ErrorMessages.MALFORMED_RESPONSE)
