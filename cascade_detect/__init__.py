"""
Cascade Detect — hierarchical face and eye detection with OpenCV cascades.

Public API:
    - FaceEyePipeline: The single entry point for face and eye detection.
    - PipelineResult, FaceDetection, Rectangle: Result types.
    - Backend, probe: Execution backend and capability probe.
    - LoadError, InvalidInputError, NotFoundError, DecodeError: Errors.

Usage:
    from cascade_detect import FaceEyePipeline

    pipeline = FaceEyePipeline()
    result = pipeline.run(image)
    for detection in result.faces:
        print(detection.face, detection.eyes)
"""

from cascade_detect.backend import Backend, probe
from cascade_detect.errors import (
    CascadeDetectError,
    DecodeError,
    InvalidInputError,
    LoadError,
    NotFoundError,
)
from cascade_detect.pipeline import FaceEyePipeline
from cascade_detect.rectangle import FaceDetection, PipelineResult, Rectangle

__all__ = [
    "Backend",
    "CascadeDetectError",
    "DecodeError",
    "FaceDetection",
    "FaceEyePipeline",
    "InvalidInputError",
    "LoadError",
    "NotFoundError",
    "PipelineResult",
    "Rectangle",
    "probe",
]
