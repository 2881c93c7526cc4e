"""
Visualization for the cascade detection pipeline.

Responsibility:
    Draw face and eye rectangles onto an image and show it in a window
    titled with the run summary. draw_result() produces an annotated
    copy and performs no I/O.

Non-goals:
    - No file writing.
    - No detection or model logic.
"""

import cv2
import numpy as np

from cascade_detect.config import VisualizationConfig
from cascade_detect.rectangle import PipelineResult, Rectangle


def _draw_rect(image: np.ndarray, rect: Rectangle, color, thickness: int) -> None:
    cv2.rectangle(
        image,
        (rect.x, rect.y),
        (rect.right, rect.bottom),
        color=color,
        thickness=thickness,
    )


def draw_result(
    image: np.ndarray,
    result: PipelineResult,
    config: VisualizationConfig,
) -> np.ndarray:
    """Draw faces and their eyes onto a copy of the image.

    Args:
        image: Input BGR image (not modified — a copy is returned).
        result: Pipeline output with full-image rectangles.
        config: Colors and line thickness.

    Returns:
        A new BGR numpy array with detections drawn.
    """
    annotated = image.copy()
    if annotated.ndim == 2:
        annotated = cv2.cvtColor(annotated, cv2.COLOR_GRAY2BGR)

    for detection in result.faces:
        _draw_rect(annotated, detection.face, config.face_color, config.thickness)
        for eye in detection.eyes:
            _draw_rect(annotated, eye, config.eye_color, config.thickness)

    return annotated


def show_result(
    image: np.ndarray,
    result: PipelineResult,
    config: VisualizationConfig,
) -> int:
    """Show the annotated image in a window titled with the run summary.

    Blocks until a key is pressed and returns its key code.
    """
    annotated = draw_result(image, result, config)
    title = result.summary()
    cv2.imshow(title, annotated)
    key = cv2.waitKey(0) & 0xFF
    cv2.destroyWindow(title)
    return key
