"""
Tests for region-of-interest composition.
"""

import numpy as np
import pytest

from cascade_detect.config import CascadeParams
from cascade_detect.detector import CpuDetector
from cascade_detect.errors import InvalidInputError
from cascade_detect.rectangle import Rectangle
from cascade_detect.roi import detect_within, translate, with_scope

from helpers import FakeCascade, make_model


def _size(image):
    return image.shape[1], image.shape[0]


def _view(image, region):
    return image[region.y:region.bottom, region.x:region.right]


def test_translate_law():
    parent = Rectangle(100, 50, 80, 60)
    local = [Rectangle(3, 4, 10, 12), Rectangle(0, 0, 80, 60)]

    translated = translate(local, parent)

    assert translated == [Rectangle(103, 54, 10, 12), Rectangle(100, 50, 80, 60)]
    assert all(parent.contains(r) for r in translated)


def test_with_scope_passes_region_view():
    image = np.arange(100 * 120, dtype=np.uint32).reshape(100, 120)
    region = Rectangle(20, 30, 40, 25)
    seen = []

    def fn(sub_image):
        seen.append(sub_image)
        return [Rectangle(1, 2, 3, 4)]

    result = with_scope(image, region, fn, view=_view, image_size=_size)

    assert result == [Rectangle(21, 32, 3, 4)]
    assert seen[0].shape == (25, 40)
    assert seen[0][0, 0] == image[30, 20]


def test_with_scope_leaves_image_untouched_on_failure():
    image = np.zeros((50, 50), dtype=np.uint8)

    def fn(sub_image):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        with_scope(image, Rectangle(0, 0, 10, 10), fn, view=_view, image_size=_size)

    # A later whole-image call sees the full image
    result = with_scope(image, Rectangle(0, 0, 50, 50), lambda s: [Rectangle(0, 0, 50, 50)],
                        view=_view, image_size=_size)
    assert result == [Rectangle(0, 0, 50, 50)]


@pytest.mark.parametrize("region", [
    Rectangle(0, 0, 0, 10),
    Rectangle(-5, 0, 10, 10),
    Rectangle(45, 45, 10, 10),
])
def test_with_scope_rejects_bad_region(region):
    image = np.zeros((50, 50), dtype=np.uint8)
    with pytest.raises(InvalidInputError, match="outside"):
        with_scope(image, region, lambda s: [], view=_view, image_size=_size)


def test_detect_within_translates_to_full_image():
    face = Rectangle(40, 20, 60, 60)
    eyes = FakeCascade(responses={(60, 60): [(35, 15, 12, 8), (8, 15, 12, 8)]})
    image = np.zeros((120, 160), dtype=np.uint8)

    result = detect_within(CpuDetector(), image, make_model(eyes), CascadeParams(), face)

    assert result == [Rectangle(48, 35, 12, 8), Rectangle(75, 35, 12, 8)]
    assert all(face.contains(r) for r in result)
    assert eyes.calls[0]["shape"] == (60, 60)
