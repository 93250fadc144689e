import sys, types
import numpy as np
import pytest

import facetrust.detector as det
from facetrust.config import Settings
from facetrust.errors import ModelLoadFailure, TransientDetectionError


def _face(x=10, y=12, w=40, h=50, conf=0.97, age=27, gender="Woman"):
    return {
        "region": {"x": x, "y": y, "w": w, "h": h, "left_eye": (20, 25), "right_eye": (35, 26)},
        "face_confidence": conf,
        "age": age,
        "dominant_gender": gender,
        "gender": {"Woman": 91.5, "Man": 8.5},
        "emotion": {"happy": 80.0, "neutral": 15.0, "sad": 5.0},
        "dominant_emotion": "happy",
    }


class DummyDeepFace:
    built = []
    results = [_face()]

    @staticmethod
    def build_model(model_name, task="facial_recognition"):
        DummyDeepFace.built.append((model_name, task))
        return object()

    @staticmethod
    def analyze(img_path, actions, enforce_detection, detector_backend, silent):
        return DummyDeepFace.results


@pytest.fixture
def fake_deepface(monkeypatch):
    DummyDeepFace.built = []
    DummyDeepFace.results = [_face()]
    monkeypatch.setitem(sys.modules, "deepface", types.SimpleNamespace(DeepFace=DummyDeepFace))
    return DummyDeepFace


def test_parse_analysis_normalizes_deepface_output():
    d = det.parse_analysis(_face())
    assert (d.box.x, d.box.y, d.box.width, d.box.height) == (10, 12, 40, 50)
    assert [(p.x, p.y) for p in d.landmarks] == [(20, 25), (35, 26)]
    assert d.gender == "female"
    assert abs(d.gender_confidence - 0.915) < 1e-9
    assert abs(d.emotions["happy"] - 0.8) < 1e-9
    assert d.age == 27.0
    assert d.dominant_emotion()[0] == "happy"


def test_parse_analysis_without_dominant_gender():
    r = _face()
    r.pop("dominant_gender")
    r["gender"] = {"Woman": 30.0, "Man": 70.0}
    d = det.parse_analysis(r)
    assert d.gender == "male"
    assert abs(d.gender_confidence - 0.7) < 1e-9


def test_load_models_and_detect(fake_deepface):
    d = det.DeepFaceDetector(Settings())
    assert d.load_models() is True
    assert ("opencv", "face_detector") in fake_deepface.built
    assert ("Emotion", "facial_attribute") in fake_deepface.built
    out = d.detect(np.zeros((100, 100, 3), dtype=np.uint8))
    assert len(out) == 1 and out[0].gender == "female"


def test_detect_filters_placeholder_and_tiny_faces(fake_deepface):
    fake_deepface.results = [
        _face(),
        _face(x=0, y=0, w=100, h=100, conf=0),  # enforce_detection=False "no face" result
        _face(w=5, h=5),
    ]
    d = det.DeepFaceDetector(Settings(MIN_FACE_SIZE=24))
    d.load_models()
    assert len(d.detect(np.zeros((100, 100, 3), dtype=np.uint8))) == 1


def test_detect_accepts_single_dict(fake_deepface):
    fake_deepface.results = _face()
    d = det.DeepFaceDetector(Settings())
    d.load_models()
    assert len(d.detect(np.zeros((100, 100, 3), dtype=np.uint8))) == 1


def test_model_load_failure_degrades_to_no_detections(monkeypatch):
    calls = {"analyze": 0}

    class BrokenDF:
        @staticmethod
        def build_model(model_name, task="facial_recognition"):
            raise OSError("weights download failed")
        @staticmethod
        def analyze(*a, **k):
            calls["analyze"] += 1
            return [_face()]

    monkeypatch.setitem(sys.modules, "deepface", types.SimpleNamespace(DeepFace=BrokenDF))
    d = det.DeepFaceDetector(Settings())
    assert d.load_models() is False
    assert d.ready is False
    frame = np.zeros((10, 10, 3), dtype=np.uint8)
    assert d.detect(frame) == []
    assert d.detect(frame) == []
    assert calls["analyze"] == 0


def test_load_model_wraps_errors_and_sets_home(monkeypatch, tmp_path):
    class BrokenDF:
        @staticmethod
        def build_model(model_name, task="facial_recognition"):
            raise ValueError("unknown model")

    monkeypatch.setitem(sys.modules, "deepface", types.SimpleNamespace(DeepFace=BrokenDF))
    monkeypatch.delenv("DEEPFACE_HOME", raising=False)
    with pytest.raises(ModelLoadFailure) as ei:
        det.load_model("Age", str(tmp_path))
    assert ei.value.kind == "Age"
    import os
    assert os.environ["DEEPFACE_HOME"] == str(tmp_path)


def test_detect_raises_transient_error(fake_deepface, monkeypatch):
    d = det.DeepFaceDetector(Settings())
    d.load_models()

    def boom(*a, **k):
        raise RuntimeError("inference blew up")

    monkeypatch.setattr(fake_deepface, "analyze", staticmethod(boom))
    with pytest.raises(TransientDetectionError):
        d.detect(np.zeros((10, 10, 3), dtype=np.uint8))
