"""
Face detection + age/gender/emotion estimation with DeepFace.

DeepFace is imported lazily so tests can inject a fake via
sys.modules['deepface'] and so TensorFlow is not loaded at import time.
"""
from __future__ import annotations
import logging
import os
from typing import Dict, List, Optional, Sequence

import numpy as np

from facetrust.config import Settings
from facetrust.errors import ModelLoadFailure, TransientDetectionError
from facetrust.models import BoundingBox, Detection, Point

logger = logging.getLogger(__name__)

ATTRIBUTE_MODELS = ("Age", "Gender", "Emotion")
ANALYZE_ACTIONS = ["age", "gender", "emotion"]
LANDMARK_KEYS = ("left_eye", "right_eye", "nose", "mouth_left", "mouth_right")
GENDER_LABELS = {"man": "male", "woman": "female"}


class FrameDetector:
    """
    Anything that turns a frame into detections.

    detect() may raise TransientDetectionError; callers decide whether to skip the tick.
    """
    ready: bool = True

    def load_models(self) -> bool:
        return True

    def detect(self, frame: np.ndarray) -> List[Detection]:
        raise NotImplementedError


def load_model(kind: str, source: Optional[str] = None, task: str = "facial_attribute"):
    """
    Build one DeepFace model, fetching its weights into `source` if given.

    Raises:
        ModelLoadFailure: import, download or build failed.
    """
    if source:
        # DeepFace resolves its weights folder from DEEPFACE_HOME on every build
        os.environ["DEEPFACE_HOME"] = str(source)
    try:
        from deepface import DeepFace
        model = DeepFace.build_model(model_name=kind, task=task)
    except Exception as e:
        raise ModelLoadFailure(kind, str(e)) from e
    logger.debug(f"[detector] model loaded kind={kind} task={task} source={source}")
    return model


def _to_point(value) -> Optional[Point]:
    if value is None:
        return None
    try:
        x, y = value[0], value[1]
        return Point(x=float(x), y=float(y))
    except (TypeError, IndexError, ValueError):
        return None


def _normalize_scores(scores) -> Dict[str, float]:
    """DeepFace reports percentages (0..100); bring them to 0..1."""
    if not isinstance(scores, dict):
        return {}
    return {str(k): max(0.0, min(1.0, float(v) / 100.0)) for k, v in scores.items()}


def parse_analysis(result: Dict) -> Detection:
    """Map one DeepFace.analyze() entry to a Detection."""
    reg = result.get("region") or {}
    box = BoundingBox(
        x=float(reg.get("x", 0)),
        y=float(reg.get("y", 0)),
        width=float(reg.get("w", 0)),
        height=float(reg.get("h", 0)),
    )
    landmarks = [p for p in (_to_point(reg.get(k)) for k in LANDMARK_KEYS) if p is not None]

    gender_scores = _normalize_scores(result.get("gender"))
    raw_gender = result.get("dominant_gender")
    if not raw_gender and gender_scores:
        raw_gender = max(gender_scores, key=gender_scores.get)
    raw_gender = str(raw_gender or "")
    gender = GENDER_LABELS.get(raw_gender.lower(), raw_gender.lower())

    try:
        age = max(0.0, float(result.get("age") or 0.0))
    except (TypeError, ValueError):
        age = 0.0

    return Detection(
        box=box,
        landmarks=landmarks,
        emotions=_normalize_scores(result.get("emotion")),
        age=age,
        gender=gender,
        gender_confidence=gender_scores.get(raw_gender, 0.0),
    )


class DeepFaceDetector(FrameDetector):
    """
    Runs DeepFace.analyze(age, gender, emotion) on whole frames.

    Until load_models() succeeds, detect() returns [] without touching DeepFace.
    """
    def __init__(self, settings: Settings, models: Sequence[str] = ATTRIBUTE_MODELS):
        self.s = settings
        self.models = tuple(models)
        self.ready = False
        self._warned_not_ready = False

    def load_models(self) -> bool:
        try:
            load_model(self.s.DETECTOR_BACKEND, self.s.MODELS_DIR, task="face_detector")
            for kind in self.models:
                load_model(kind, self.s.MODELS_DIR)
        except ModelLoadFailure:
            logger.exception("[detector] model loading failed; detections disabled")
            self.ready = False
            return False
        self.ready = True
        logger.info(f"[detector] models ready backend={self.s.DETECTOR_BACKEND} models={list(self.models)}")
        return True

    def _valid(self, result: Dict) -> bool:
        result = result or {}
        reg = result.get("region") or {}
        w = int(reg.get("w", 0) or 0); h = int(reg.get("h", 0) or 0)
        ok_size = (w >= self.s.MIN_FACE_SIZE and h >= self.s.MIN_FACE_SIZE)
        # with enforce_detection=False an empty frame comes back as one
        # whole-image "face" with confidence 0
        conf = result.get("face_confidence")
        try:
            conf = 1.0 if conf is None else float(conf)
        except (TypeError, ValueError):
            conf = 1.0
        return ok_size and conf > self.s.MIN_FACE_CONFIDENCE

    def detect(self, frame: np.ndarray) -> List[Detection]:
        if not self.ready:
            if not self._warned_not_ready:
                logger.warning("[detector] models not loaded; returning no detections")
                self._warned_not_ready = True
            return []

        try:
            from deepface import DeepFace
            res = DeepFace.analyze(
                frame,
                actions=ANALYZE_ACTIONS,
                enforce_detection=False,
                detector_backend=self.s.DETECTOR_BACKEND,
                silent=True,
            )
        except Exception as e:
            raise TransientDetectionError(f"DeepFace.analyze failed: {e}") from e

        # DeepFace returns list[dict] or dict depending on version; normalize to list
        res = res if isinstance(res, list) else ([res] if isinstance(res, dict) else [])
        detections = [parse_analysis(r) for r in res if self._valid(r)]
        logger.debug(f"[detector] raw={len(res)} kept={len(detections)}")
        return detections
