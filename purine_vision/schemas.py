"""
Pydantic schemas for request/response validation.
"""

from enum import Enum
from typing import Iterator, List, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in ``ApiResponse.code``."""

    INVALID_IMAGE_FORMAT = "INVALID_IMAGE_FORMAT"
    IMAGE_TOO_LARGE = "IMAGE_TOO_LARGE"
    NETWORK_ERROR = "NETWORK_ERROR"
    MODEL_ERROR = "MODEL_ERROR"
    NO_FOOD_DETECTED = "NO_FOOD_DETECTED"
    INVALID_COORDINATES = "INVALID_COORDINATES"


class PurineTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def field_name(self) -> str:
        return f"{self.value}_purine_foods"

    @property
    def threshold(self) -> str:
        return {
            PurineTier.HIGH: ">150mg/100g",
            PurineTier.MEDIUM: "50-150mg/100g",
            PurineTier.LOW: "<50mg/100g",
        }[self]


class Coordinates(BaseModel):
    """Bounding box corners in pixels of the image sent to the model."""

    x1: float
    y1: float
    x2: float
    y2: float

    def is_plausible(self) -> bool:
        """Whether the box has a non-negative origin and a positive extent."""
        return (
            self.x1 >= 0
            and self.y1 >= 0
            and self.x2 > self.x1
            and self.y2 > self.y1
        )


class FoodItem(BaseModel):
    """A single detected food."""

    food_name: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("food_name", "name"),
        description="Food name",
    )
    purine_value: Union[int, float] = Field(..., description="Purine content in mg/100g")
    coordinates: Optional[Coordinates] = Field(
        None, description="Bounding box, absent when the model gave none"
    )
    description: Optional[str] = Field(None, description="Short description")

    @field_validator("food_name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("coordinates", mode="before")
    @classmethod
    def drop_unreadable_coordinates(cls, value):
        # A bad box should not cost us the food itself
        if value is None:
            return None
        try:
            return Coordinates.model_validate(value)
        except ValueError:
            return None

    @property
    def label(self) -> str:
        value = self.purine_value
        shown = int(value) if float(value).is_integer() else value
        return f"{self.food_name} ({shown}mg/100g)"


class AnalysisResult(BaseModel):
    """Detected foods partitioned by purine tier."""

    high_purine_foods: List[FoodItem] = Field(default_factory=list)
    medium_purine_foods: List[FoodItem] = Field(default_factory=list)
    low_purine_foods: List[FoodItem] = Field(default_factory=list)

    def foods_for(self, tier: PurineTier) -> List[FoodItem]:
        return getattr(self, tier.field_name)

    def iter_tiers(self) -> Iterator[Tuple[PurineTier, List[FoodItem]]]:
        for tier in PurineTier:
            yield tier, self.foods_for(tier)

    @property
    def total_foods(self) -> int:
        return sum(len(items) for _, items in self.iter_tiers())

    @property
    def is_empty(self) -> bool:
        return self.total_foods == 0


class ImageInfo(BaseModel):
    """Describes the image whose pixel space the coordinates refer to."""

    width: int = Field(..., description="Width in pixels")
    height: int = Field(..., description="Height in pixels")
    content_type: str = Field(..., description="MIME type sent to the model")
    compressed: bool = Field(False, description="Whether the upload was recompressed")


class ApiResponse(BaseModel):
    """Envelope returned by the analysis endpoints."""

    success: bool = Field(..., description="Whether recognition succeeded")
    data: Optional[AnalysisResult] = Field(None, description="Detected foods")
    message: Optional[str] = Field(None, description="Success message")
    error: Optional[str] = Field(None, description="User-facing error message")
    code: Optional[ErrorCode] = Field(None, description="Machine-readable error code")
    image: Optional[ImageInfo] = Field(None, description="Analyzed image metadata")


class HealthResponse(BaseModel):
    """Health check response schema."""

    model_config = ConfigDict(protected_namespaces=())

    status: str = Field(..., description="Service status")
    model_ready: bool = Field(..., description="Whether the model client is initialized")
    model_configured: bool = Field(..., description="Whether an API key is configured")


class EnvironmentCheck(BaseModel):
    has_ark_api_key: bool
    has_ark_endpoint_id: bool
    has_ark_api_url: bool
    ark_api_key_length: int
    ark_endpoint_id: str
    ark_api_url: str


class EnvironmentCheckResponse(BaseModel):
    """Environment diagnostics response schema."""

    success: bool = Field(..., description="Whether the check ran")
    message: str = Field(..., description="Status message")
    environment: EnvironmentCheck
    timestamp: str = Field(..., description="ISO-8601 server time")
