"""
Region-of-interest composition.

Nested detection (eyes within a face) runs on a view of the parent
image restricted to the parent rectangle. Results come back in the
view's local frame; this module is the one place they are translated
into full-image coordinates. No region-local rectangle leaves it.

The region is passed explicitly and the parent image is never mutated,
so there is no scope to restore when detection fails.
"""

from typing import Callable, Iterable, List

from cascade_detect.config import CascadeParams
from cascade_detect.detector import BaseDetector
from cascade_detect.errors import InvalidInputError
from cascade_detect.model_loader import ClassifierModel
from cascade_detect.rectangle import Rectangle


def translate(rects: Iterable[Rectangle], origin: Rectangle) -> List[Rectangle]:
    """Map rectangles from `origin`-local coordinates to the parent frame."""
    return [r.offset(origin.x, origin.y) for r in rects]


def with_scope(
    image,
    region: Rectangle,
    fn: Callable[[object], Iterable[Rectangle]],
    view: Callable[[object, Rectangle], object],
    image_size: Callable[[object], tuple],
) -> List[Rectangle]:
    """Run `fn` on the `region` view of `image` and translate its results.

    Args:
        image: The full image.
        region: Sub-rectangle of `image`, in full-image coordinates.
        fn: Called with the region view; returns region-local rectangles.
        view: Builds a non-copying view of a region of an image.
        image_size: Returns (width, height) of the full image.

    Returns:
        The rectangles returned by `fn`, in full-image coordinates.

    Raises:
        InvalidInputError: If `region` has non-positive size or does not
                           lie within the image.
    """
    width, height = image_size(image)
    if not region.within_bounds(width, height):
        raise InvalidInputError(
            f"Region {region} is empty or outside the {width}x{height} image."
        )
    return translate(fn(view(image, region)), region)


def detect_within(
    detector: BaseDetector,
    image,
    model: ClassifierModel,
    params: CascadeParams,
    region: Rectangle,
) -> List[Rectangle]:
    """Detect objects inside `region` of `image`, in full-image coordinates."""
    return with_scope(
        image,
        region,
        lambda sub_image: detector.detect(sub_image, model, params),
        view=detector.region_view,
        image_size=detector.image_size,
    )
