"""Aspect-fit placement of a signature image inside a bounding box."""

import math

from .errors import PlacementError
from .models import BoundingBox, DrawRect


def fit_to_box(image_width: float, image_height: float, box: BoundingBox) -> DrawRect:
    """Fit an image into ``box`` preserving its aspect ratio.

    A relatively wider image fills the box width and is centered
    vertically. Otherwise (equal aspect ratios included) it fills the box
    height, sits on the box's bottom edge and is centered horizontally.

    Args:
        image_width: Intrinsic image width in pixels.
        image_height: Intrinsic image height in pixels.
        box: Target bounding box in page points.

    Returns:
        The draw rectangle, always inside ``box``.

    Raises:
        PlacementError: If any value is non-finite, or a dimension is zero
            or negative.
    """
    if not all(map(math.isfinite, (box.x, box.y, box.width, box.height))):
        raise PlacementError(
            f"Bounding box values must be finite, got "
            f"({box.x}, {box.y}, {box.width}, {box.height})"
        )
    if not (math.isfinite(image_width) and math.isfinite(image_height)):
        raise PlacementError(
            f"Image dimensions must be finite, got {image_width}x{image_height}"
        )
    if image_width <= 0 or image_height <= 0:
        raise PlacementError(
            f"Image dimensions must be positive, got {image_width}x{image_height}"
        )
    if box.width <= 0 or box.height <= 0:
        raise PlacementError(
            f"Bounding box dimensions must be positive, got {box.width}x{box.height}"
        )

    image_aspect = image_width / image_height
    box_aspect = box.width / box.height

    if image_aspect > box_aspect:
        width = box.width
        height = box.width / image_aspect
        return DrawRect(
            x=box.x,
            y=box.y + (box.height - height) / 2,
            width=width,
            height=height,
        )

    height = box.height
    width = box.height * image_aspect
    return DrawRect(
        x=box.x + (box.width - width) / 2,
        y=box.y,
        width=width,
        height=height,
    )
