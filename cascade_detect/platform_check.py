"""
Platform compatibility pre-flight.

Checks that the interpreter and the native numeric layer OpenCV is built
against agree on pointer width. A mismatch means the native extension
cannot have been loaded correctly, so the CLI aborts before building the
pipeline.
"""

import logging
import struct

import numpy as np

logger = logging.getLogger(__name__)


def interpreter_bitness() -> int:
    """Pointer width of the running interpreter, in bits."""
    return struct.calcsize("P") * 8


def native_bitness() -> int:
    """Pointer width of the native array layer, in bits."""
    return np.dtype(np.intp).itemsize * 8


def is_platform_compatible() -> bool:
    """Return True if interpreter and native layer share a pointer width.

    Logs a diagnostic and returns False on mismatch; never raises.
    """
    python_bits = interpreter_bitness()
    native_bits = native_bitness()
    if python_bits != native_bits:
        logger.error(
            "Platform mismatched: Python is %d bit, native code is %d bit. "
            "Install OpenCV and numpy builds matching the interpreter's platform.",
            python_bits, native_bits,
        )
        return False
    return True
