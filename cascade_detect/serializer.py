"""
Serialization for the cascade detection pipeline.

Responsibility:
    Export detection results to structured file formats (JSON, CSV)
    for downstream consumption or offline analysis.

Non-goals:
    - No rendering, display, or detection logic.
    - No streaming output — writes complete files on finalize.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Dict

from cascade_detect.rectangle import PipelineResult

logger = logging.getLogger(__name__)


def save_json(
    results_by_image: Dict[str, PipelineResult],
    output_path: str,
) -> None:
    """Export all results to a JSON file.

    Output schema:
        {
            "images": [
                {
                    "image": "photo.jpg",
                    "backend": "CPU",
                    "elapsed_ms": 12.3,
                    "faces": [
                        {"face": {"x": ..., "y": ..., "width": ..., "height": ...},
                         "eyes": [{...}, ...]}
                    ]
                }
            ],
            "total_images": N,
            "total_faces": M,
            "total_eyes": K
        }

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    images = []
    total_faces = 0
    total_eyes = 0

    for name in sorted(results_by_image.keys()):
        result = results_by_image[name]
        total_faces += len(result.faces)
        total_eyes += result.eye_count
        images.append({"image": name, **result.to_dict()})

    payload = {
        "images": images,
        "total_images": len(images),
        "total_faces": total_faces,
        "total_eyes": total_eyes,
    }

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    logger.info(
        "JSON output saved: %s (%d images, %d faces, %d eyes)",
        output_path, len(images), total_faces, total_eyes,
    )


def save_csv(
    results_by_image: Dict[str, PipelineResult],
    output_path: str,
) -> None:
    """Export all results to a CSV file, one row per rectangle.

    Columns: image, face_index, kind, x, y, width, height

    `kind` is 'face' or 'eye'; eye rows share the face_index of the
    face they were found in.

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    fieldnames = ["image", "face_index", "kind", "x", "y", "width", "height"]

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()

        total = 0
        for name in sorted(results_by_image.keys()):
            for index, detection in enumerate(results_by_image[name].faces):
                writer.writerow({
                    "image": name,
                    "face_index": index,
                    "kind": "face",
                    **detection.face.to_dict(),
                })
                total += 1
                for eye in detection.eyes:
                    writer.writerow({
                        "image": name,
                        "face_index": index,
                        "kind": "eye",
                        **eye.to_dict(),
                    })
                    total += 1

    logger.info("CSV output saved: %s (%d rows)", output_path, total)


def _ensure_parent_dir(path: str) -> None:
    """Create parent directories if they don't exist."""
    parent = Path(path).parent
    parent.mkdir(parents=True, exist_ok=True)
