"""
Image input for the cascade detection pipeline.

Responsibility:
    Load still images from a single file or from a directory of image
    files. Provides load_image() for one file and an InputHandler
    iterator yielding (path, image) tuples.

Non-goals:
    - No video or camera streams.
    - No detection, drawing, or output writing.

Robustness:
    - Validates the source at initialization time.
    - load_image() raises on a missing or undecodable file.
    - InputHandler logs and skips undecodable files in a directory.
"""

import logging
from pathlib import Path
from typing import Iterator, List, Tuple

import cv2
import numpy as np

from cascade_detect.errors import DecodeError, NotFoundError

logger = logging.getLogger(__name__)

# Image extensions recognized by this handler
_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp"}


def load_image(path: str) -> np.ndarray:
    """Read an image file as an 8-bit BGR array.

    Raises:
        NotFoundError: If the file does not exist.
        DecodeError: If OpenCV cannot decode the file.
    """
    if not Path(path).is_file():
        raise NotFoundError(f"Image not found: '{path}'.")

    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        raise DecodeError(f"Could not decode image: '{path}'.")
    return image


class InputHandler:
    """Iterator over the images of a file or directory source.

    The source type is auto-detected at initialization:
        - File with image extension → single image
        - Directory path → all images in directory (sorted)

    Usage:
        handler = InputHandler(source="path/to/images/")
        for path, image in handler:
            # process image
    """

    def __init__(self, source: str) -> None:
        """Initialize the input handler and validate the source.

        Raises:
            NotFoundError: If the source does not exist.
            ValueError: If the source is not a recognized image file or
                        is a directory with no images.
        """
        source_path = Path(str(source).strip())

        if source_path.is_file():
            ext = source_path.suffix.lower()
            if ext not in _IMAGE_EXTENSIONS:
                raise ValueError(
                    f"Unrecognized file extension: '{ext}' for source '{source_path}'. "
                    f"Supported images: {_IMAGE_EXTENSIONS}."
                )
            self._mode = "image"
            self._image_paths: List[Path] = [source_path]
        elif source_path.is_dir():
            self._mode = "directory"
            self._image_paths = sorted(
                p for p in source_path.iterdir()
                if p.suffix.lower() in _IMAGE_EXTENSIONS
            )
            if not self._image_paths:
                raise ValueError(
                    f"No image files found in directory: '{source_path}'. "
                    f"Supported extensions: {_IMAGE_EXTENSIONS}."
                )
            logger.info("Found %d images in directory: %s", len(self._image_paths), source_path)
        else:
            raise NotFoundError(
                f"Input source not found: '{source_path}'. "
                f"Provide a valid image file or directory."
            )

        logger.info("InputHandler initialized: mode=%s, source=%s", self._mode, source_path)

    def __len__(self) -> int:
        return len(self._image_paths)

    def __iter__(self) -> Iterator[Tuple[Path, np.ndarray]]:
        """Yield (path, image) tuples. A single-image source raises on a
        bad file; a directory source logs and skips it."""
        for path in self._image_paths:
            try:
                image = load_image(str(path))
            except DecodeError:
                if self._mode == "image":
                    raise
                logger.warning("Skipping unreadable image: %s", path)
                continue
            yield path, image
