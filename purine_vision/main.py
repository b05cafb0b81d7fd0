"""
Main FastAPI application for the Purine Vision API.
"""

import io
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional, Tuple

import uvicorn
from fastapi import (
    Depends,
    FastAPI,
    File,
    Form,
    HTTPException,
    Query,
    Request,
    UploadFile,
    status,
)
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from .annotation import render_annotations
from .config import (
    API_DESCRIPTION,
    API_TITLE,
    API_VERSION,
    ARK_API_KEY,
    ARK_API_URL,
    ARK_ENDPOINT_ID,
    LOG_FORMAT,
    LOG_LEVEL,
)
from .errors import (
    AnalysisError,
    ErrorMessages,
    ImageValidationError,
    InvalidCoordinatesError,
)
from .models import PurineAnalysisModel
from .schemas import (
    AnalysisResult,
    ApiResponse,
    EnvironmentCheck,
    EnvironmentCheckResponse,
    ErrorCode,
    HealthResponse,
    ImageInfo,
)
from .utils import PreparedImage, compress_image, load_image_from_bytes, validate_upload

# Configure logging
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

# Global model client
model: Optional[PurineAnalysisModel] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    global model

    logger.info("Starting Purine Vision API...")
    model = PurineAnalysisModel()
    if not model.is_configured:
        logger.warning("ARK_API_KEY is not set; analysis requests will fail")
    logger.info("Purine Vision API started successfully")

    yield

    logger.info("Shutting down Purine Vision API...")
    await model.aclose()
    model = None
    logger.info("Purine Vision API shutdown complete")


app = FastAPI(
    title=API_TITLE, description=API_DESCRIPTION, version=API_VERSION, lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_model() -> PurineAnalysisModel:
    """Get the global model client."""
    if model is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Model client not initialized",
        )
    return model


async def read_upload(image: Optional[UploadFile]) -> PreparedImage:
    """Validate an uploaded photo and compress it for the model."""
    if image is None:
        raise ImageValidationError(ErrorMessages.MISSING_IMAGE)

    content = await image.read()
    content_type = validate_upload(image.content_type, len(content))
    return await run_in_threadpool(compress_image, content, content_type)


def no_food_response(prepared: PreparedImage) -> ApiResponse:
    # Business outcome, not an HTTP failure
    return ApiResponse(
        success=False,
        error=ErrorMessages.NO_FOOD_DETECTED,
        code=ErrorCode.NO_FOOD_DETECTED,
        image=image_info(prepared),
    )


def image_info(prepared: PreparedImage) -> ImageInfo:
    return ImageInfo(
        width=prepared.width,
        height=prepared.height,
        content_type=prepared.content_type,
        compressed=prepared.compressed,
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Reports whether the model client is up and has credentials.
    """
    return HealthResponse(
        status="healthy",
        model_ready=model is not None,
        model_configured=model is not None and model.is_configured,
    )


@app.get("/api/test", response_model=EnvironmentCheckResponse, tags=["Health"])
async def environment_check() -> EnvironmentCheckResponse:
    """
    Report which model settings are present, without revealing the key.
    """
    environment = EnvironmentCheck(
        has_ark_api_key=bool(ARK_API_KEY),
        has_ark_endpoint_id=bool(ARK_ENDPOINT_ID),
        has_ark_api_url=bool(ARK_API_URL),
        ark_api_key_length=len(ARK_API_KEY),
        ark_endpoint_id=ARK_ENDPOINT_ID or "not set",
        ark_api_url=ARK_API_URL or "not set",
    )
    return EnvironmentCheckResponse(
        success=True,
        message="API test succeeded",
        environment=environment,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.post(
    "/api/analyze",
    response_model=ApiResponse,
    response_model_exclude_none=True,
    tags=["Analysis"],
)
async def analyze_food(
    image: Optional[UploadFile] = File(None, description="Food photo to analyze"),
    model: PurineAnalysisModel = Depends(get_model),
) -> ApiResponse:
    """
    Recognize foods in a photo and classify them by purine content.

    - **image**: JPG, PNG or WEBP photo, at most 10MB

    Returns the foods in high, medium and low purine tiers. Coordinates are
    in pixels of the image described by ``image``, which may be a
    downscaled copy of the upload.
    """
    prepared = await read_upload(image)
    result = await model.analyze(prepared.content, prepared.content_type)

    if result.is_empty:
        return no_food_response(prepared)

    return ApiResponse(
        success=True,
        data=result,
        message=ErrorMessages.SUCCESS,
        image=image_info(prepared),
    )


@app.post(
    "/api/annotate",
    tags=["Analysis"],
    responses={200: {"content": {"image/png": {}}, "description": "Annotated photo"}},
)
async def annotate_food(
    image: Optional[UploadFile] = File(None, description="Food photo to annotate"),
    result: Optional[str] = Form(
        None, description="AnalysisResult JSON from /api/analyze; analyzed if omitted"
    ),
    max_width: Optional[int] = Query(None, ge=1, description="Display width limit"),
    max_height: Optional[int] = Query(None, ge=1, description="Display height limit"),
    model: PurineAnalysisModel = Depends(get_model),
):
    """
    Draw colored bounding boxes for each detected food onto the photo.

    - **image**: The same photo that was sent to /api/analyze
    - **result**: Optional analysis result to draw instead of re-analyzing
    - **max_width** / **max_height**: Optional display container to fit into

    Red marks high purine foods, gold medium and green low.
    """
    prepared = await read_upload(image)

    if result is not None:
        try:
            analysis = AnalysisResult.model_validate_json(result)
        except ValidationError as e:
            raise InvalidCoordinatesError(f"Unreadable analysis result: {e}")
    else:
        analysis = await model.analyze(prepared.content, prepared.content_type)
        if analysis.is_empty:
            return JSONResponse(
                content=no_food_response(prepared).model_dump(
                    mode="json", exclude_none=True
                )
            )

    container: Optional[Tuple[int, int]] = None
    if max_width or max_height:
        container = (max_width or prepared.width, max_height or prepared.height)

    photo = load_image_from_bytes(prepared.content)
    summary = await run_in_threadpool(render_annotations, photo, analysis, container)

    buffer = io.BytesIO()
    summary.image.save(buffer, format="PNG")
    return Response(
        content=buffer.getvalue(),
        media_type="image/png",
        headers={
            "X-Foods-Detected": str(analysis.total_foods),
            "X-Boxes-Drawn": str(summary.drawn),
            "X-Boxes-Skipped": str(summary.skipped),
        },
    )


@app.exception_handler(AnalysisError)
async def analysis_exception_handler(request: Request, exc: AnalysisError):
    """Render analysis failures as an ``ApiResponse``."""
    if exc.status_code >= 500:
        logger.error(f"Analysis failed [{exc.code.value}]: {exc.detail}")
    else:
        logger.info(f"Rejected request [{exc.code.value}]: {exc.detail}")
    body = ApiResponse(success=False, error=exc.user_message, code=exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    """Custom HTTP exception handler."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "status_code": exc.status_code},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    """General exception handler for unhandled errors."""
    logger.exception(f"Unhandled exception: {exc}")
    body = ApiResponse(
        success=False,
        error=ErrorMessages.PROCESSING_ERROR,
        code=ErrorCode.MODEL_ERROR,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(mode="json", exclude_none=True),
    )


if __name__ == "__main__":
    uvicorn.run(
        "purine_vision.main:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
        workers=1,
        log_level="info",
    )
