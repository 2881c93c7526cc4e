"""
Tests for the pipeline orchestrator.
"""

import numpy as np
import pytest

from cascade_detect import backend as backend_module
from cascade_detect import model_loader
from cascade_detect.backend import Backend
from cascade_detect.config import AppConfig, ModelConfig
from cascade_detect.errors import InvalidInputError, LoadError
from cascade_detect.pipeline import FaceEyePipeline, PipelineStage
from cascade_detect.rectangle import FaceDetection, Rectangle

from helpers import FakeCascade, FakeCudaCascade, make_model

_FACE = Rectangle(100, 80, 120, 120)


@pytest.fixture
def fakes(monkeypatch):
    """Replace classifier loading with canned face and eye cascades."""
    face = FakeCascade(responses={(300, 400): [(100, 80, 120, 120)]})
    eye = FakeCascade(responses={(120, 120): [(70, 35, 25, 15), (20, 35, 25, 15)]})
    by_name = {"face.xml": face, "eye.xml": eye}
    loads = []

    def _fake_load(name, backend):
        loads.append((name, backend))
        if name not in by_name:
            raise LoadError(f"Cascade resource '{name}' not found.")
        return make_model(by_name[name], name=name, backend=backend)

    monkeypatch.setattr(model_loader, "load_classifier", _fake_load)
    return {"face": face, "eye": eye, "loads": loads}


def _config(backend="cpu", face="face.xml", eye="eye.xml") -> AppConfig:
    return AppConfig(model=ModelConfig(face_cascade=face, eye_cascade=eye, backend=backend))


def _image():
    return np.zeros((300, 400, 3), dtype=np.uint8)


def test_one_face_two_eyes(fakes):
    result = FaceEyePipeline(_config()).run(_image())

    assert result.backend is Backend.CPU
    assert result.faces == [
        FaceDetection(
            face=_FACE,
            eyes=(Rectangle(120, 115, 25, 15), Rectangle(170, 115, 25, 15)),
        )
    ]
    assert all(_FACE.contains(eye) for eye in result.faces[0].eyes)
    assert result.elapsed_ms >= 0.0


def test_pipeline_reaches_done(fakes):
    pipeline = FaceEyePipeline(_config())
    pipeline.run(_image())
    assert pipeline.stage is PipelineStage.DONE


def test_zero_faces(fakes):
    image = np.full((200, 200, 3), 90, dtype=np.uint8)

    result = FaceEyePipeline(_config()).run(image)

    assert result.faces == []
    assert fakes["eye"].calls == []


def test_models_released_after_run(fakes, monkeypatch):
    models = []
    original = model_loader.load_classifier

    def _tracking_load(name, backend):
        model = original(name, backend)
        models.append(model)
        return model

    monkeypatch.setattr(model_loader, "load_classifier", _tracking_load)
    FaceEyePipeline(_config()).run(_image())

    assert len(models) == 2
    assert all(m.released for m in models)


def test_gpu_requested_without_gpu_uses_cpu(fakes, monkeypatch):
    monkeypatch.setattr(backend_module, "probe", lambda: Backend.CPU)

    result = FaceEyePipeline(_config(backend="cuda")).run(_image())

    assert result.backend is Backend.CPU
    assert [backend for _, backend in fakes["loads"]] == [Backend.CPU, Backend.CPU]
    assert "using CPU" in result.summary()


def test_missing_resource_aborts_before_detection(fakes):
    pipeline = FaceEyePipeline(_config(face="missing.xml"))

    with pytest.raises(LoadError, match="missing.xml") as excinfo:
        pipeline.run(_image())

    assert excinfo.value.stage == PipelineStage.BACKEND_SELECTED.value
    assert fakes["face"].calls == []
    assert fakes["eye"].calls == []


def test_missing_eye_resource_aborts(fakes):
    with pytest.raises(LoadError, match="missing_eye.xml"):
        FaceEyePipeline(_config(eye="missing_eye.xml")).run(_image())
    assert fakes["face"].calls == []


def test_empty_image_is_fatal(fakes):
    pipeline = FaceEyePipeline(_config())

    with pytest.raises(InvalidInputError) as excinfo:
        pipeline.run(np.zeros((0, 0, 3), dtype=np.uint8))

    assert excinfo.value.stage == PipelineStage.MODELS_LOADED.value


def test_out_of_bounds_face_is_dropped(fakes):
    # Second face extends past the right edge of the 400px image
    fakes["face"].responses[(300, 400)] = [(100, 80, 120, 120), (350, 10, 100, 100)]

    result = FaceEyePipeline(_config()).run(_image())

    # Out-of-bounds face rectangles are dropped by the detector itself
    assert [f.face for f in result.faces] == [_FACE]


def test_eye_failure_for_one_face_is_skipped(fakes, monkeypatch):
    from cascade_detect import pipeline as pipeline_module

    second = Rectangle(250, 100, 120, 120)
    fakes["face"].responses[(300, 400)] = [(100, 80, 120, 120), (250, 100, 120, 120)]
    real_detect_within = pipeline_module.detect_within

    def _flaky_detect_within(detector, image, model, params, region):
        if region == second:
            raise InvalidInputError("bad region")
        return real_detect_within(detector, image, model, params, region)

    monkeypatch.setattr(pipeline_module, "detect_within", _flaky_detect_within)

    result = FaceEyePipeline(_config()).run(_image())

    assert [f.face for f in result.faces] == [_FACE, second]
    assert len(result.faces[0].eyes) == 2
    assert result.faces[1].eyes == ()


def test_uniform_image_with_bundled_cascades():
    """End to end with the real OpenCV cascades on the CPU path."""
    config = AppConfig(model=ModelConfig(backend="cpu"))

    result = FaceEyePipeline(config).run(np.full((240, 320, 3), 200, dtype=np.uint8))

    assert result.faces == []
    assert result.backend is Backend.CPU


def test_gpu_backend_runs_whole_pipeline_on_gpu(monkeypatch):
    from cascade_detect import pipeline as pipeline_module
    from cascade_detect.detector import CpuDetector, GpuDetector
    from cascade_detect.preprocessor import preprocess

    face = FakeCudaCascade(responses={(300, 400): [(100, 80, 120, 120)]})
    eye = FakeCudaCascade(responses={(120, 120): [(70, 35, 25, 15), (20, 35, 25, 15)]})
    by_name = {"face.xml": face, "eye.xml": eye}
    loads = []
    uploads = []

    def _fake_load(name, backend):
        loads.append(backend)
        return make_model(by_name[name], name=name, backend=backend)

    def _fake_preprocess_gpu(image, equalize_hist=True):
        uploads.append(equalize_hist)
        return preprocess(image, equalize_hist=equalize_hist)

    monkeypatch.setattr(backend_module, "probe", lambda: Backend.GPU)
    monkeypatch.setattr(model_loader, "load_classifier", _fake_load)
    monkeypatch.setattr(pipeline_module, "preprocess_gpu", _fake_preprocess_gpu)
    monkeypatch.setattr(GpuDetector, "image_size", CpuDetector.image_size)
    monkeypatch.setattr(GpuDetector, "region_view", CpuDetector.region_view)

    result = FaceEyePipeline(_config(backend="auto")).run(_image())

    assert result.backend is Backend.GPU
    assert loads == [Backend.GPU, Backend.GPU]
    assert uploads == [True]
    assert result.faces == [
        FaceDetection(
            face=_FACE,
            eyes=(Rectangle(120, 115, 25, 15), Rectangle(170, 115, 25, 15)),
        )
    ]
    assert "using GPU" in result.summary()
