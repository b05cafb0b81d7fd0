"""
Drawing purine-tier bounding boxes onto the analyzed photo.

Coordinates come from the model in pixels of the image it was sent. The
photo may be shown scaled down, so every box is scaled, validated and
clamped to the canvas before it is drawn.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, NamedTuple, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from .schemas import AnalysisResult, Coordinates, PurineTier

logger = logging.getLogger(__name__)

LINE_WIDTH = 3
LABEL_HEIGHT = 20
LABEL_PADDING = 4
FONT_SIZE = 14


@dataclass(frozen=True)
class TierStyle:
    color: str
    text_color: str


TIER_STYLES: Dict[PurineTier, TierStyle] = {
    PurineTier.HIGH: TierStyle(color="#FF0000", text_color="#FFFFFF"),
    PurineTier.MEDIUM: TierStyle(color="#FFD700", text_color="#000000"),
    PurineTier.LOW: TierStyle(color="#00FF00", text_color="#000000"),
}


class DisplayFit(NamedTuple):
    width: float
    height: float
    scale_x: float
    scale_y: float


class Box(NamedTuple):
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1


class AnnotationSummary(NamedTuple):
    image: Image.Image
    drawn: int
    skipped: int


def fit_to_container(
    image_width: float,
    image_height: float,
    container_width: float,
    container_height: float,
) -> DisplayFit:
    """
    Size an image to fit a container, keeping its aspect ratio.

    The image is never enlarged past its native size. A wide image is bound
    by the container width, a tall one by the container height.
    """
    if image_width <= 0 or image_height <= 0:
        raise ValueError(f"Image size must be positive, got {image_width}x{image_height}")
    if container_width <= 0 or container_height <= 0:
        raise ValueError(
            f"Container size must be positive, got {container_width}x{container_height}"
        )

    image_aspect = image_width / image_height
    container_aspect = container_width / container_height

    if image_aspect > container_aspect:
        display_width = min(container_width, image_width)
        display_height = display_width / image_aspect
    else:
        display_height = min(container_height, image_height)
        display_width = display_height * image_aspect

    return DisplayFit(
        width=display_width,
        height=display_height,
        scale_x=display_width / image_width,
        scale_y=display_height / image_height,
    )


def scale_box(coords: Coordinates, scale_x: float, scale_y: float) -> Box:
    return Box(
        coords.x1 * scale_x,
        coords.y1 * scale_y,
        coords.x2 * scale_x,
        coords.y2 * scale_y,
    )


def clamp_box(box: Box, width: int, height: int) -> Optional[Box]:
    """
    Make a box safe to draw on a ``width`` x ``height`` canvas.

    Reversed corners are swapped, corners are rounded to whole pixels and
    clipped to the last row and column, so the whole outline stays visible.

    Returns:
        The clamped box, or None if it has non-finite values or less than a
        pixel of width or height left after clipping
    """
    if not all(math.isfinite(v) for v in box):
        return None

    x1, x2 = sorted((round(box.x1), round(box.x2)))
    y1, y2 = sorted((round(box.y1), round(box.y2)))
    right, bottom = width - 1, height - 1

    clamped = Box(
        min(max(x1, 0), right),
        min(max(y1, 0), bottom),
        min(max(x2, 0), right),
        min(max(y2, 0), bottom),
    )
    if clamped.width < 1 or clamped.height < 1:
        return None
    return clamped


def label_position(
    box: Box,
    label_width: float,
    label_height: float,
    canvas_width: float,
    canvas_height: float,
) -> Tuple[float, float]:
    """
    Top-left corner for a box's label.

    Labels sit on top of the box; when that would leave the canvas they move
    just inside the box's top edge. They shift left rather than run off the
    right side.
    """
    x = min(box.x1, canvas_width - label_width)
    y = box.y1 - label_height
    if y < 0:
        y = box.y1
    y = min(y, canvas_height - label_height)
    return max(x, 0.0), max(y, 0.0)


def _load_font(size: int = FONT_SIZE) -> ImageFont.ImageFont:
    try:
        return ImageFont.truetype("DejaVuSans-Bold.ttf", size)
    except OSError:
        return ImageFont.load_default(size=size)


def render_annotations(
    image: Image.Image,
    result: AnalysisResult,
    container: Optional[Tuple[int, int]] = None,
) -> AnnotationSummary:
    """
    Draw every food's box and label on a copy of ``image``.

    Args:
        image: Photo in the pixel space the coordinates refer to
        result: Analysis result whose boxes to draw
        container: Optional ``(width, height)`` to fit the output into

    Returns:
        The annotated RGB image with counts of drawn and skipped boxes
    """
    canvas = image.convert("RGB")
    scale_x = scale_y = 1.0

    if container is not None:
        fit = fit_to_container(canvas.width, canvas.height, *container)
        size = (max(1, round(fit.width)), max(1, round(fit.height)))
        if size != canvas.size:
            canvas = canvas.resize(size, Image.LANCZOS)
        scale_x, scale_y = fit.scale_x, fit.scale_y

    draw = ImageDraw.Draw(canvas)
    font = _load_font()
    drawn = skipped = 0

    for tier, items in result.iter_tiers():
        style = TIER_STYLES[tier]
        for food in items:
            if food.coordinates is None:
                continue

            box = clamp_box(
                scale_box(food.coordinates, scale_x, scale_y),
                canvas.width,
                canvas.height,
            )
            if box is None:
                logger.warning(
                    f"Skipping box for '{food.food_name}': "
                    f"{food.coordinates.model_dump()} is outside the "
                    f"{canvas.width}x{canvas.height} canvas"
                )
                skipped += 1
                continue

            draw.rectangle(list(box), outline=style.color, width=LINE_WIDTH)

            label = food.label
            label_width = draw.textlength(label, font=font) + LABEL_PADDING * 2
            lx, ly = label_position(
                box, label_width, LABEL_HEIGHT, canvas.width, canvas.height
            )
            draw.rectangle(
                [lx, ly, lx + label_width, ly + LABEL_HEIGHT], fill=style.color
            )
            draw.text(
                (lx + LABEL_PADDING, ly + (LABEL_HEIGHT - FONT_SIZE) / 2),
                label,
                fill=style.text_color,
                font=font,
            )
            drawn += 1

    logger.info(f"Annotated image: {drawn} box(es) drawn, {skipped} skipped")
    return AnnotationSummary(canvas, drawn, skipped)
