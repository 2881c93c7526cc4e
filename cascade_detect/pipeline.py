"""
Pipeline orchestrator — the single public API for face and eye detection.

Public contract:
    FaceEyePipeline(config).run(image: np.ndarray) -> PipelineResult

Stages (linear, no back-edges):
    INIT → BACKEND_SELECTED → MODELS_LOADED → PREPROCESSED
         → FACES_DETECTED → EYES_DETECTED → AGGREGATED → DONE

The backend is selected once per run and used uniformly: models,
preprocessing and detection all run on the same substrate. There is no
mid-run fallback from GPU to CPU.

Failure behavior:
    - LoadError aborts the run before any detection.
    - InvalidInputError on the whole image aborts the run.
    - InvalidInputError while detecting eyes in one face is logged and
      that face is reported without eyes; the remaining faces are still
      processed.
    - Every propagated CascadeDetectError has `stage` set to the stage
      it was raised in.
    - No retries.
"""

import enum
import logging
import time
from typing import List, Optional

import numpy as np

from cascade_detect.backend import Backend, select_backend
from cascade_detect.config import AppConfig, load_config
from cascade_detect.detector import BaseDetector, create_detector
from cascade_detect.errors import CascadeDetectError, InvalidInputError
from cascade_detect.model_loader import ClassifierModel, loaded_models
from cascade_detect.preprocessor import preprocess, preprocess_gpu
from cascade_detect.rectangle import FaceDetection, PipelineResult, Rectangle
from cascade_detect.roi import detect_within

logger = logging.getLogger(__name__)


class PipelineStage(enum.Enum):
    INIT = "init"
    BACKEND_SELECTED = "backend_selected"
    MODELS_LOADED = "models_loaded"
    PREPROCESSED = "preprocessed"
    FACES_DETECTED = "faces_detected"
    EYES_DETECTED = "eyes_detected"
    AGGREGATED = "aggregated"
    DONE = "done"


class FaceEyePipeline:
    """Hierarchical face → eye cascade detection.

    Usage:
        pipeline = FaceEyePipeline()                 # Uses safe defaults
        pipeline = FaceEyePipeline(config=my_config)
        result = pipeline.run(image)                 # BGR numpy array
        print(result.summary())

    Models are loaded at the start of each run and released when the
    run completes; nothing is cached between runs.
    """

    def __init__(self, config: Optional[AppConfig] = None) -> None:
        if config is None:
            config = load_config()
        self._config = config
        self._stage = PipelineStage.INIT

    @property
    def config(self) -> AppConfig:
        """Return the active configuration (read-only)."""
        return self._config

    @property
    def stage(self) -> PipelineStage:
        """The stage the most recent run reached."""
        return self._stage

    def _advance(self, stage: PipelineStage) -> None:
        logger.debug("Pipeline stage: %s → %s", self._stage.value, stage.value)
        self._stage = stage

    def run(self, image: np.ndarray) -> PipelineResult:
        """Detect faces, then eyes within each face, in a single image.

        Args:
            image: A BGR, BGRA or intensity image as a uint8 numpy array.

        Returns:
            A PipelineResult with one FaceDetection per face (eyes in
            full-image coordinates), the backend used and the elapsed
            detection time.

        Raises:
            LoadError: If a classifier cannot be loaded.
            InvalidInputError: If the image is empty or malformed.
        """
        self._stage = PipelineStage.INIT
        try:
            return self._run(image)
        except CascadeDetectError as e:
            if e.stage is None:
                e.stage = self._stage.value
            logger.error("Pipeline aborted during stage '%s': %s", self._stage.value, e)
            raise

    def _run(self, image: np.ndarray) -> PipelineResult:
        backend = select_backend(self._config.model.backend)
        self._advance(PipelineStage.BACKEND_SELECTED)

        detector = create_detector(backend)
        with loaded_models(
            self._config.model.face_cascade,
            self._config.model.eye_cascade,
            backend,
        ) as (face_model, eye_model):
            self._advance(PipelineStage.MODELS_LOADED)

            start = time.perf_counter()
            faces = self._detect(image, backend, detector, face_model, eye_model)
            elapsed_ms = (time.perf_counter() - start) * 1000.0

        self._advance(PipelineStage.DONE)
        result = PipelineResult(faces=faces, backend=backend, elapsed_ms=elapsed_ms)
        logger.info(
            "Detected %d face(s) and %d eye(s) on %s in %.1f ms.",
            len(result.faces), result.eye_count, backend.label, elapsed_ms,
        )
        return result

    def _detect(
        self,
        image: np.ndarray,
        backend: Backend,
        detector: BaseDetector,
        face_model: ClassifierModel,
        eye_model: ClassifierModel,
    ) -> List[FaceDetection]:
        equalize = self._config.preprocess.equalize_hist
        if backend is Backend.GPU:
            gray = preprocess_gpu(image, equalize_hist=equalize)
        else:
            gray = preprocess(image, equalize_hist=equalize)
        self._advance(PipelineStage.PREPROCESSED)

        face_rects = detector.detect(gray, face_model, self._config.detection.face)
        self._advance(PipelineStage.FACES_DETECTED)

        eyes_by_face = [
            self._detect_eyes(detector, gray, eye_model, face)
            for face in face_rects
        ]
        self._advance(PipelineStage.EYES_DETECTED)

        faces = [
            FaceDetection(face=face, eyes=tuple(eyes))
            for face, eyes in zip(face_rects, eyes_by_face)
        ]
        self._advance(PipelineStage.AGGREGATED)
        return faces

    def _detect_eyes(
        self,
        detector: BaseDetector,
        gray,
        eye_model: ClassifierModel,
        face: Rectangle,
    ) -> List[Rectangle]:
        try:
            return detect_within(detector, gray, eye_model, self._config.detection.eye, face)
        except InvalidInputError as e:
            logger.warning("Skipping eye detection for face %s: %s", face, e)
            return []
