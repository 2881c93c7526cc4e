"""
Classifier model loading for the cascade detection pipeline.

Responsibility:
    Resolve a cascade resource name to a file, load it for the selected
    backend, and hand out read-only ClassifierModel handles.

Non-goals:
    - No preprocessing, detection, or image-level logic.
    - No automatic model downloading.
    - No fallback from a GPU load failure to a CPU model.

Failure behavior:
    - A resource that cannot be found raises LoadError naming the
      resource and every location searched.
    - A file OpenCV cannot parse, or one the CUDA classifier rejects,
      raises LoadError chained to the underlying cause.

Resource lifetime:
    Models are loaded once per pipeline run inside loaded_models(),
    which releases them together on exit. A model keeps a count of
    detection calls in flight and refuses to be released while any
    are running.
"""

import logging
import threading
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Iterator, List, Tuple

import cv2

from cascade_detect.backend import Backend
from cascade_detect.config import get_project_root
from cascade_detect.errors import InvalidInputError, LoadError, NotFoundError

logger = logging.getLogger(__name__)


def _search_dirs() -> List[Path]:
    """Directories searched for relative resource names, in order."""
    dirs = [get_project_root(), get_project_root() / "models"]
    data = getattr(cv2, "data", None)
    if data is not None and getattr(data, "haarcascades", None):
        dirs.append(Path(data.haarcascades))
    return dirs


def resolve_resource(name: str) -> Path:
    """Resolve a cascade resource name to an existing file.

    Absolute paths are used as-is. Relative names are looked up in the
    project root, its models/ directory, then the cascades bundled with
    OpenCV.

    Raises:
        NotFoundError: If no candidate file exists.
    """
    path = Path(name)
    if path.is_absolute():
        candidates = [path]
    else:
        candidates = [d / path for d in _search_dirs()]

    for candidate in candidates:
        if candidate.is_file():
            return candidate

    searched = "\n".join(f"  - {c}" for c in candidates)
    raise NotFoundError(
        f"Cascade resource '{name}' not found. Searched:\n{searched}"
    )


class ClassifierModel:
    """A loaded cascade classifier bound to one backend.

    Instances are read-only after loading and may be shared across
    detection calls and images. Detectors must wrap each use of the
    underlying classifier in acquire().
    """

    def __init__(self, name: str, path: Path, backend: Backend, classifier) -> None:
        self.name = name
        self.path = path
        self.backend = backend
        self._classifier = classifier
        self._in_flight = 0
        self._lock = threading.Lock()

    @property
    def released(self) -> bool:
        return self._classifier is None

    @contextmanager
    def acquire(self) -> Iterator[object]:
        """Yield the underlying OpenCV classifier for one detection call.

        Raises:
            InvalidInputError: If the model has been released.
        """
        with self._lock:
            if self._classifier is None:
                raise InvalidInputError(
                    f"Classifier '{self.name}' has been released."
                )
            self._in_flight += 1
            classifier = self._classifier
        try:
            yield classifier
        finally:
            with self._lock:
                self._in_flight -= 1

    def release(self) -> None:
        """Drop the underlying classifier. Safe to call more than once.

        Raises:
            RuntimeError: If a detection call is still using the model.
        """
        with self._lock:
            if self._in_flight:
                raise RuntimeError(
                    f"Cannot release classifier '{self.name}': "
                    f"{self._in_flight} detection call(s) in flight."
                )
            if self._classifier is not None:
                self._classifier = None
                logger.debug("Released classifier '%s' (%s).", self.name, self.backend.label)

    def __repr__(self) -> str:
        state = "released" if self.released else "loaded"
        return f"ClassifierModel(name={self.name!r}, backend={self.backend.label}, {state})"


def _create_cpu_classifier(path: Path):
    # Loading through the constructor surfaces parse failures as
    # SystemError; load() raises a plain cv2.error.
    classifier = cv2.CascadeClassifier()
    try:
        loaded = classifier.load(str(path))
    except cv2.error as e:
        raise LoadError(
            f"Cascade file could not be parsed: {path}.\n"
            f"  OpenCV error: {e}"
        ) from e
    if not loaded or classifier.empty():
        raise LoadError(
            f"Cascade file could not be parsed: {path}. "
            f"Ensure it is a valid OpenCV cascade XML."
        )
    return classifier


def _create_gpu_classifier(path: Path):
    # The CUDA classifier only accepts the old-style Haar format
    # (OpenCV's haarcascades_cuda/ files).
    try:
        return cv2.cuda_CascadeClassifier.create(str(path))
    except (cv2.error, AttributeError) as e:
        raise LoadError(
            f"Cascade file could not be loaded for the GPU backend: {path}.\n"
            f"  OpenCV error: {e}"
        ) from e


def load_classifier(name: str, backend: Backend) -> ClassifierModel:
    """Load a cascade classifier for the given backend.

    Args:
        name: Resource name or path (see resolve_resource).
        backend: Backend the model will be used with.

    Returns:
        A ClassifierModel ready for detection.

    Raises:
        LoadError: If the resource is missing, malformed, or incompatible
                   with the backend.
    """
    try:
        path = resolve_resource(name)
    except NotFoundError as e:
        raise LoadError(str(e)) from e

    logger.info("Loading %s cascade: %s", backend.label, path)
    if backend is Backend.GPU:
        classifier = _create_gpu_classifier(path)
    else:
        classifier = _create_cpu_classifier(path)

    return ClassifierModel(name=name, path=path, backend=backend, classifier=classifier)


@contextmanager
def loaded_models(
    face_name: str,
    eye_name: str,
    backend: Backend,
) -> Iterator[Tuple[ClassifierModel, ClassifierModel]]:
    """Load the face and eye models and release both on exit.

    If the eye model fails to load, the already-loaded face model is
    released before LoadError propagates.
    """
    with ExitStack() as stack:
        face = load_classifier(face_name, backend)
        stack.callback(face.release)
        eye = load_classifier(eye_name, backend)
        stack.callback(eye.release)
        logger.info("Models loaded (backend=%s).", backend.label)
        yield face, eye
