"""
Rectangle and result data transfer objects.

This module defines the value types returned by the detection pipeline:
    - Rectangle: an axis-aligned integer region.
    - FaceDetection: one face with the eyes found inside it.
    - PipelineResult: the aggregated output of a pipeline run.

A Rectangle carries no notion of which coordinate frame it lives in.
Callers track the frame explicitly (full-image vs. region-local); the
only place a region-local rectangle becomes a full-image one is
cascade_detect.roi.

Non-goals:
    - No rendering logic.
    - No file I/O.
"""

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from cascade_detect.backend import Backend


@dataclass(frozen=True, slots=True)
class Rectangle:
    """An axis-aligned integer rectangle.

    Attributes:
        x: Left edge (pixels).
        y: Top edge (pixels).
        width: Width in pixels.
        height: Height in pixels.
    """

    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_xywh(cls, values: Sequence[int]) -> "Rectangle":
        """Build a Rectangle from an OpenCV-style (x, y, w, h) sequence."""
        x, y, w, h = (int(v) for v in values)
        return cls(x=x, y=y, width=w, height=h)

    @property
    def right(self) -> int:
        """Exclusive right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """Exclusive bottom edge."""
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def offset(self, dx: int, dy: int) -> "Rectangle":
        """Return a copy shifted by (dx, dy); size is unchanged."""
        return Rectangle(self.x + dx, self.y + dy, self.width, self.height)

    def contains(self, other: "Rectangle") -> bool:
        """True if `other` lies entirely inside this rectangle."""
        return (
            other.x >= self.x
            and other.y >= self.y
            and other.right <= self.right
            and other.bottom <= self.bottom
        )

    def within_bounds(self, width: int, height: int) -> bool:
        """True if the rectangle has positive size and fits a width x height image."""
        return (
            self.width > 0
            and self.height > 0
            and self.x >= 0
            and self.y >= 0
            and self.right <= width
            and self.bottom <= height
        )

    def iou(self, other: "Rectangle") -> float:
        """Intersection-over-union with another rectangle."""
        ix = max(0, min(self.right, other.right) - max(self.x, other.x))
        iy = max(0, min(self.bottom, other.bottom) - max(self.y, other.y))
        inter = ix * iy
        union = self.area + other.area - inter
        if union <= 0:
            return 0.0
        return inter / union

    def to_dict(self) -> dict:
        """Return a plain dict suitable for JSON serialization."""
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }


@dataclass(frozen=True, slots=True)
class FaceDetection:
    """A detected face and the eyes detected inside it.

    All rectangles are in full-image coordinates.
    """

    face: Rectangle
    eyes: Tuple[Rectangle, ...] = ()

    def to_dict(self) -> dict:
        return {
            "face": self.face.to_dict(),
            "eyes": [e.to_dict() for e in self.eyes],
        }


@dataclass(frozen=True)
class PipelineResult:
    """Output of one pipeline run.

    Attributes:
        faces: Faces in detection order, each with its eyes.
        backend: The backend the run executed on.
        elapsed_ms: Wall time of the detection-only portion of the run
                    (model and image loading excluded).
    """

    faces: List[FaceDetection] = field(default_factory=list)
    backend: Backend = Backend.CPU
    elapsed_ms: float = 0.0

    @property
    def eye_count(self) -> int:
        return sum(len(f.eyes) for f in self.faces)

    def summary(self) -> str:
        """Human-readable one-line summary of the run."""
        return (
            f"Completed face and eye detection using {self.backend.label} "
            f"in {int(round(self.elapsed_ms))} milliseconds"
        )

    def to_dict(self) -> dict:
        return {
            "backend": self.backend.label,
            "elapsed_ms": round(self.elapsed_ms, 3),
            "faces": [f.to_dict() for f in self.faces],
        }
