"""
Client for the hosted vision-language model that recognizes foods.
"""

import json
import logging
import time
from typing import Any, Dict, Optional

import httpx

from .config import ARK_API_KEY, ARK_API_URL, ARK_ENDPOINT_ID, IS_VERCEL, REQUEST_TIMEOUT
from .errors import (
    ModelConfigurationError,
    ModelHTTPError,
    ModelNetworkError,
    ModelTimeoutError,
    ResponseFormatError,
)
from .parsing import parse_model_response
from .prompts import PURINE_ANALYSIS_PROMPT
from .schemas import AnalysisResult
from .utils import image_to_data_url

logger = logging.getLogger(__name__)


class PurineAnalysisModel:
    """
    Food purine recognition through the ARK Responses API.

    The photo is sent as a base64 data URL together with an instruction to
    return the detected foods as JSON, split into high, medium and low purine
    tiers with pixel bounding boxes. The reply is normalized into an
    ``AnalysisResult``.
    """

    def __init__(
        self,
        api_key: str = ARK_API_KEY,
        endpoint_id: str = ARK_ENDPOINT_ID,
        api_url: str = ARK_API_URL,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the model client.

        Args:
            api_key: Bearer token for the ARK API
            endpoint_id: Inference endpoint id, sent as the ``model`` field
            api_url: Responses API URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used to stub the API in tests
        """
        self.api_key = api_key
        self.endpoint_id = endpoint_id
        self.api_url = api_url
        self.timeout = timeout
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def build_request_body(
        self, image_bytes: bytes, mime_type: str = "image/jpeg"
    ) -> Dict[str, Any]:
        """Build the Responses API request for one photo."""
        return {
            "model": self.endpoint_id,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "input_image",
                            "image_url": image_to_data_url(image_bytes, mime_type),
                        },
                        {"type": "input_text", "text": PURINE_ANALYSIS_PROMPT},
                    ],
                }
            ],
        }

    async def analyze(
        self, image_bytes: bytes, mime_type: str = "image/jpeg"
    ) -> AnalysisResult:
        """
        Recognize the foods in a photo and classify them by purine content.

        Args:
            image_bytes: Encoded image
            mime_type: MIME type of ``image_bytes``

        Returns:
            Normalized analysis result, possibly with no foods

        Raises:
            ModelConfigurationError: If no API key is configured
            ModelTimeoutError: If the model does not answer in time
            ModelNetworkError: If the model cannot be reached
            ModelHTTPError: If the model answers with an error status
            ResponseFormatError: If the answer cannot be normalized
        """
        if not self.is_configured:
            raise ModelConfigurationError("ARK_API_KEY is not set")

        body = self.build_request_body(image_bytes, mime_type)
        image_url = body["input"][0]["content"][0]["image_url"]

        logger.info(f"Calling model endpoint {self.endpoint_id} at {self.api_url}")
        logger.info(
            f"Image size: {len(image_bytes) / 1024 / 1024:.2f}MB, "
            f"base64 size: {len(image_url) / 1024 / 1024:.2f}MB, "
            f"timeout: {self.timeout:g}s ({'vercel' if IS_VERCEL else 'local'})"
        )

        start = time.monotonic()
        try:
            response = await self._client.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=body,
            )
        except httpx.TimeoutException as e:
            raise ModelTimeoutError(
                self.timeout, time.monotonic() - start, len(image_bytes)
            ) from e
        except httpx.TransportError as e:
            raise ModelNetworkError(f"Model request failed: {e!r}") from e

        logger.info(
            f"Model responded {response.status_code} {response.reason_phrase} "
            f"in {time.monotonic() - start:.2f}s"
        )

        if response.is_error:
            logger.error(f"Model error response: {response.text[:500]}")
            raise ModelHTTPError(
                response.status_code, response.reason_phrase, response.text
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Model response is not JSON: {response.text[:500]}")
            raise ResponseFormatError("Model response body is not valid JSON") from e

        logger.debug(f"Raw model response: {json.dumps(data, ensure_ascii=False)[:2000]}")
        return parse_model_response(data)

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "endpoint_id": self.endpoint_id,
            "api_url": self.api_url,
            "timeout": self.timeout,
            "configured": self.is_configured,
        }

    async def aclose(self) -> None:
        await self._client.aclose()
