"""
Fake OpenCV classifiers and model factories shared by the tests.
"""

from pathlib import Path

import numpy as np

from cascade_detect.backend import Backend
from cascade_detect.model_loader import ClassifierModel


class FakeCascade:
    """Stand-in for cv2.CascadeClassifier returning canned rectangles.

    `responses` maps an image shape (H, W) to the (x, y, w, h) rows to
    return for it; `default` is used for any other shape.
    """

    def __init__(self, default=(), responses=None):
        self.default = list(default)
        self.responses = responses or {}
        self.calls = []

    def detectMultiScale(self, image, scaleFactor, minNeighbors, flags, minSize):
        self.calls.append({
            "shape": image.shape,
            "scaleFactor": scaleFactor,
            "minNeighbors": minNeighbors,
            "flags": flags,
            "minSize": minSize,
        })
        rows = self.responses.get(image.shape[:2], self.default)
        if not rows:
            return ()
        return np.array(rows, dtype=np.int32)


class FakeCudaCascade:
    """Stand-in for cv2.cuda_CascadeClassifier.

    Parameters are set through setters and detection returns an opaque
    device buffer that convert() turns into rows, as on the CUDA path.
    """

    def __init__(self, default=(), responses=None):
        self.default = list(default)
        self.responses = responses or {}
        self.calls = []
        self._params = {}

    def setScaleFactor(self, value):
        self._params["scaleFactor"] = value

    def setMinNeighbors(self, value):
        self._params["minNeighbors"] = value

    def setMinObjectSize(self, value):
        self._params["minObjectSize"] = value

    def detectMultiScale(self, image):
        self.calls.append({"shape": image.shape, **self._params})
        return ("device-objects", image.shape[:2])

    def convert(self, gpu_objects):
        tag, shape = gpu_objects
        assert tag == "device-objects"
        rows = self.responses.get(shape, self.default)
        return [tuple(r) for r in rows]


def make_model(classifier, name="fake.xml", backend=Backend.CPU) -> ClassifierModel:
    return ClassifierModel(name=name, path=Path(name), backend=backend, classifier=classifier)
