"""
Output handling for the cascade detection pipeline.

Responsibility:
    Route pipeline results to configured output sinks: display window,
    saved annotated images, JSON, or CSV. Supports multiple orthogonal
    outputs simultaneously.

Non-goals:
    - No detection logic.
    - No input acquisition.
"""

import logging
from pathlib import Path
from typing import Dict, Set

import cv2
import numpy as np

from cascade_detect.config import AppConfig, get_project_root
from cascade_detect.rectangle import PipelineResult
from cascade_detect.serializer import save_csv, save_json
from cascade_detect.visualizer import draw_result, show_result

logger = logging.getLogger(__name__)


class OutputHandler:
    """Routes pipeline results to configured output sinks.

    Supports orthogonal outputs - multiple modes can be active simultaneously:
        - 'display': Show the annotated image in a window titled with
                     the run summary.
        - 'save_image': Write the annotated image to a file.
        - 'save_json': Accumulate results, write JSON on finalize.
        - 'save_csv': Accumulate results, write CSV on finalize.

    Usage:
        handler = OutputHandler(config)
        handler.process_result(name, image, result)
        ...
        handler.finalize()  # Flush any buffered output
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config

        # Parse output modes (comma-separated for multiple outputs)
        self._modes: Set[str] = set(m.strip() for m in config.output.mode.split(','))

        # Buffer for serialization modes
        self._results_buffer: Dict[str, PipelineResult] = {}

        # Resolve output path
        save_path = Path(config.output.save_path)
        if not save_path.is_absolute():
            save_path = get_project_root() / save_path
        self._save_path = save_path

        # Create output directory if saving files
        if self._modes & {'save_image', 'save_json', 'save_csv'}:
            self._save_path.mkdir(parents=True, exist_ok=True)

        logger.info("OutputHandler initialized: modes=%s, save_path=%s",
                    self._modes, self._save_path)

    @property
    def save_path(self) -> Path:
        return self._save_path

    def process_result(
        self,
        name: str,
        image: np.ndarray,
        result: PipelineResult,
    ) -> bool:
        """Send one image's result through the output sinks.

        Args:
            name: Image identifier (file name) used for saved artifacts.
            image: Original BGR image.
            result: Pipeline output for the image.

        Returns:
            True to continue processing, False to signal the caller
            should stop (user pressed 'q' or ESC in display mode).
        """
        should_continue = True
        logger.info("%s: %s", name, result.summary())

        if 'display' in self._modes:
            key = show_result(image, result, self._config.visualization)
            if key == ord("q") or key == 27:  # 'q' or ESC
                logger.info("Quit signal received (key press).")
                should_continue = False

        if 'save_image' in self._modes:
            annotated = draw_result(image, result, self._config.visualization)
            output_file = self._save_path / f"{Path(name).stem}_detected.jpg"
            cv2.imwrite(str(output_file), annotated)
            logger.debug("Saved annotated image to %s", output_file)

        if 'save_json' in self._modes or 'save_csv' in self._modes:
            self._results_buffer[name] = result

        return should_continue

    def finalize(self) -> None:
        """Flush buffered output and release windows.

        Must be called after all images have been processed.
        """
        if 'save_json' in self._modes and self._results_buffer:
            save_json(self._results_buffer, str(self._save_path / "detections.json"))

        if 'save_csv' in self._modes and self._results_buffer:
            save_csv(self._results_buffer, str(self._save_path / "detections.csv"))

        if 'display' in self._modes:
            cv2.destroyAllWindows()

        self._results_buffer.clear()
        logger.info("OutputHandler finalized.")
