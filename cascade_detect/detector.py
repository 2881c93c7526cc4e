"""
Multi-scale cascade detectors.

Public contract:
    BaseDetector.detect(image, model, params) -> list[Rectangle]

Two variants share the contract and differ only in execution substrate:
    - CpuDetector runs cv2.CascadeClassifier on a numpy intensity image.
    - GpuDetector runs cv2.cuda_CascadeClassifier on a cv2.cuda_GpuMat.

Returned rectangles are relative to the image passed in (which may be a
region view, see cascade_detect.roi), have positive size, lie inside
that image, and are sorted by (y, x, width, height) so that output is
reproducible run-to-run regardless of how OpenCV scheduled its workers.

Constraints:
    - A detector only accepts models loaded for its own backend.
    - Detection never modifies the input image.

Non-goals:
    - No preprocessing (see cascade_detect.preprocessor).
    - No coordinate translation between frames (see cascade_detect.roi).
"""

import abc
import logging
import threading
from typing import Iterable, List, Tuple

import numpy as np
import cv2

from cascade_detect.backend import Backend
from cascade_detect.config import CascadeParams
from cascade_detect.errors import InvalidInputError
from cascade_detect.model_loader import ClassifierModel
from cascade_detect.rectangle import Rectangle

logger = logging.getLogger(__name__)


def _validate_params(params: CascadeParams) -> None:
    if params.scale_factor <= 1.0:
        raise InvalidInputError(
            f"scale_factor must be greater than 1.0, got {params.scale_factor}."
        )
    if params.min_neighbors < 0:
        raise InvalidInputError(
            f"min_neighbors must be non-negative, got {params.min_neighbors}."
        )


def _finalize(found: Iterable, width: int, height: int) -> List[Rectangle]:
    """Convert raw (x, y, w, h) rows to sorted in-bounds Rectangles."""
    rects = [Rectangle.from_xywh(row) for row in found]
    kept = [r for r in rects if r.within_bounds(width, height)]
    if len(kept) != len(rects):
        logger.debug("Dropped %d out-of-bounds detection(s).", len(rects) - len(kept))
    kept.sort(key=lambda r: (r.y, r.x, r.width, r.height))
    return kept


class BaseDetector(abc.ABC):
    """Common contract for CPU and GPU cascade detectors."""

    backend: Backend

    def detect(self, image, model: ClassifierModel, params: CascadeParams) -> List[Rectangle]:
        """Run multi-scale cascade detection.

        Args:
            image: Preprocessed intensity image for this detector's backend.
            model: Classifier loaded for this detector's backend.
            params: Scale factor, minimum neighbors and minimum size.

        Returns:
            Detected rectangles in the coordinate frame of `image`.
            Empty if nothing was found.

        Raises:
            InvalidInputError: On a model/backend mismatch, a released
                               model, invalid parameters, or a
                               zero-area image.
        """
        if model.backend is not self.backend:
            raise InvalidInputError(
                f"Classifier '{model.name}' was loaded for the "
                f"{model.backend.label} backend and cannot be used by the "
                f"{self.backend.label} detector."
            )
        _validate_params(params)

        width, height = self.image_size(image)
        if width <= 0 or height <= 0:
            raise InvalidInputError(
                f"Cannot run detection on a zero-area image ({width}x{height})."
            )

        found = self._detect_raw(image, model, params)
        return _finalize(found, width, height)

    @abc.abstractmethod
    def image_size(self, image) -> Tuple[int, int]:
        """Return (width, height) of an image on this backend."""

    @abc.abstractmethod
    def region_view(self, image, region: Rectangle):
        """Return a non-copying view of `region` within `image`."""

    @abc.abstractmethod
    def _detect_raw(self, image, model: ClassifierModel, params: CascadeParams) -> Iterable:
        """Run the classifier and return raw (x, y, w, h) rows."""


class CpuDetector(BaseDetector):
    """Cascade detection on the CPU via cv2.CascadeClassifier."""

    backend = Backend.CPU

    def image_size(self, image: np.ndarray) -> Tuple[int, int]:
        if not isinstance(image, np.ndarray):
            raise InvalidInputError(
                f"Expected a numpy ndarray, got {type(image).__name__}."
            )
        if image.ndim != 2:
            raise InvalidInputError(
                f"Expected a single-channel (H, W) image, got shape {image.shape}."
            )
        return image.shape[1], image.shape[0]

    def region_view(self, image: np.ndarray, region: Rectangle) -> np.ndarray:
        return image[region.y:region.bottom, region.x:region.right]

    def _detect_raw(self, image, model, params):
        with model.acquire() as classifier:
            found = classifier.detectMultiScale(
                image,
                scaleFactor=params.scale_factor,
                minNeighbors=params.min_neighbors,
                flags=cv2.CASCADE_DO_CANNY_PRUNING,
                minSize=tuple(params.min_size),
            )
        return found if found is not None else []


class GpuDetector(BaseDetector):
    """Cascade detection on a CUDA device via cv2.cuda_CascadeClassifier."""

    backend = Backend.GPU

    def __init__(self) -> None:
        # CUDA classifier parameters are set on the classifier object
        # itself, so set-then-detect must not interleave across threads.
        self._lock = threading.Lock()

    def image_size(self, image) -> Tuple[int, int]:
        if not isinstance(image, cv2.cuda_GpuMat):
            raise InvalidInputError(
                f"Expected a cv2.cuda_GpuMat, got {type(image).__name__}."
            )
        if image.empty():
            return 0, 0
        width, height = image.size()
        return width, height

    def region_view(self, image, region: Rectangle):
        return cv2.cuda_GpuMat(image, (region.x, region.y, region.width, region.height))

    def _detect_raw(self, image, model, params):
        with self._lock, model.acquire() as classifier:
            classifier.setScaleFactor(params.scale_factor)
            classifier.setMinNeighbors(params.min_neighbors)
            classifier.setMinObjectSize(tuple(params.min_size))
            gpu_objects = classifier.detectMultiScale(image)
            found = classifier.convert(gpu_objects)
        return found if found is not None else []


def create_detector(backend: Backend) -> BaseDetector:
    """Return the detector implementation for a backend."""
    if backend is Backend.GPU:
        return GpuDetector()
    return CpuDetector()
