"""
Preprocessing for the cascade detection pipeline.

Responsibility:
    Turn a raw BGR (or BGRA, or already single-channel) image into the
    intensity image the cascade classifiers expect, optionally
    histogram-equalized. The GPU variant uploads the image to device
    memory and does the same conversion there.

Non-goals:
    - No image acquisition or I/O.
    - No detection or coordinate mapping.

The input image is never modified; a new array is always returned.
"""

import numpy as np
import cv2

from cascade_detect.errors import InvalidInputError

_COLOR_CONVERSIONS = {
    3: cv2.COLOR_BGR2GRAY,
    4: cv2.COLOR_BGRA2GRAY,
}


def _conversion_code(image: np.ndarray):
    """Return the cvtColor code for the image, or None if already intensity."""
    if image.ndim == 2:
        return None
    if image.ndim == 3 and image.shape[2] == 1:
        return None
    if image.ndim == 3 and image.shape[2] in _COLOR_CONVERSIONS:
        return _COLOR_CONVERSIONS[image.shape[2]]
    raise InvalidInputError(
        f"Unsupported image layout with shape {image.shape}. "
        f"Expected (H, W), (H, W, 1), (H, W, 3) BGR or (H, W, 4) BGRA."
    )


def _check_image(image: np.ndarray) -> None:
    if image is None or not isinstance(image, np.ndarray):
        raise InvalidInputError(
            f"Expected image to be a numpy ndarray, got {type(image).__name__}."
        )
    if image.size == 0:
        raise InvalidInputError("Cannot preprocess an empty (zero-area) image.")
    if image.dtype != np.uint8:
        raise InvalidInputError(
            f"Expected an 8-bit image (uint8), got dtype {image.dtype}."
        )


def to_intensity(image: np.ndarray) -> np.ndarray:
    """Convert an image to a new single-channel uint8 array of shape (H, W)."""
    _check_image(image)
    code = _conversion_code(image)
    if code is None:
        return image.reshape(image.shape[:2]).copy()
    return cv2.cvtColor(image, code)


def preprocess(image: np.ndarray, equalize_hist: bool = True) -> np.ndarray:
    """Produce the CPU detection input for an image.

    Args:
        image: Input image as a numpy array (BGR, BGRA or intensity).
        equalize_hist: Normalize contrast with histogram equalization.

    Returns:
        A new (H, W) uint8 intensity array.

    Raises:
        InvalidInputError: If the image is empty, not uint8, or has an
                           unsupported channel layout.
    """
    gray = to_intensity(image)
    if equalize_hist:
        # gray is a private copy, so equalize in place
        cv2.equalizeHist(gray, dst=gray)
    return gray


def preprocess_gpu(image: np.ndarray, equalize_hist: bool = True):
    """Upload an image to the GPU and produce the GPU detection input.

    Returns:
        A cv2.cuda_GpuMat holding the (optionally equalized) intensity image.
    """
    _check_image(image)
    code = _conversion_code(image)

    gpu_image = cv2.cuda_GpuMat()
    gpu_image.upload(image)
    if code is None:
        gpu_gray = gpu_image
    else:
        gpu_gray = cv2.cuda.cvtColor(gpu_image, code)

    if equalize_hist:
        gpu_gray = cv2.cuda.equalizeHist(gpu_gray)
    return gpu_gray
