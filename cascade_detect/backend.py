"""
Backend capability probe.

Responsibility:
    Decide once whether the CUDA execution path is usable in this
    process. This is the single branch point between the GPU and CPU
    detectors; nothing else in the package inspects CUDA availability.

Failure behavior:
    - Never raises. If CUDA support cannot be confirmed (OpenCV built
      without the cuda module, no device, driver error) the probe
      resolves to CPU.
"""

import enum
import functools
import logging

import cv2

logger = logging.getLogger(__name__)


class Backend(enum.Enum):
    """Execution substrate for detection."""

    CPU = "cpu"
    GPU = "cuda"

    @property
    def label(self) -> str:
        return self.name


@functools.lru_cache(maxsize=None)
def probe() -> Backend:
    """Return Backend.GPU if a CUDA device is usable, else Backend.CPU.

    The result is memoized for the lifetime of the process; call
    probe.cache_clear() to force a fresh query.
    """
    cuda = getattr(cv2, "cuda", None)
    if cuda is None or not hasattr(cuda, "getCudaEnabledDeviceCount"):
        logger.info("OpenCV built without CUDA support; using CPU backend.")
        return Backend.CPU

    try:
        count = cuda.getCudaEnabledDeviceCount()
    except cv2.error as e:
        logger.info("CUDA device query failed (%s); using CPU backend.", e)
        return Backend.CPU

    if count > 0:
        logger.info("Found %d CUDA-enabled device(s); using GPU backend.", count)
        return Backend.GPU

    logger.info("No CUDA-enabled devices found; using CPU backend.")
    return Backend.CPU


def select_backend(preference: str = "auto") -> Backend:
    """Resolve a configured backend preference to a concrete Backend.

    Args:
        preference: 'auto' to follow the probe, 'cpu' to force the CPU
                    path, or 'cuda' to request the GPU path.

    Returns:
        The backend to use for the whole run. A 'cuda' request on a
        machine without CUDA resolves to CPU with a warning.

    Raises:
        ValueError: If the preference is not recognized.
    """
    preference = preference.lower()
    if preference == "cpu":
        return Backend.CPU
    if preference not in ("auto", "cuda"):
        raise ValueError(
            f"Unknown backend preference: '{preference}'. "
            f"Expected one of 'auto', 'cpu', 'cuda'."
        )

    backend = probe()
    if preference == "cuda" and backend is Backend.CPU:
        logger.warning("CUDA backend requested but unavailable; falling back to CPU.")
    return backend
