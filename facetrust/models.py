"""
Pydantic data models for detections and per-tick metrics.
"""
from __future__ import annotations
import time
import types
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from typing import Dict, List, Mapping, Optional

class BoundingBox(BaseModel):
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

class Point(BaseModel):
    x: float
    y: float

class Detection(BaseModel):
    """One face found in one tick."""
    box: BoundingBox
    landmarks: List[Point] = Field(default_factory=list)
    emotions: Dict[str, float] = Field(default_factory=dict)
    age: float = Field(0.0, ge=0.0)
    gender: str = ""
    gender_confidence: float = Field(0.0, ge=0.0, le=1.0)

    def dominant_emotion(self) -> tuple[Optional[str], float]:
        if not self.emotions:
            return None, 0.0
        label = max(self.emotions, key=self.emotions.get)
        return label, float(self.emotions[label])

class MetricsSnapshot(BaseModel):
    """
    Aggregated summary of a single tick.

    `emotions` holds per-label sums over the tick's detections; use
    `emotion_percentages()` for the per-face share shown to the operator.
    """
    model_config = ConfigDict(frozen=True)

    face_count: int = Field(0, ge=0)
    average_age: float = 0.0
    predominant_gender: str = ""
    emotions: Mapping[str, float] = Field(default_factory=dict, validate_default=True)
    ts: float = Field(default_factory=time.time)

    @field_validator("emotions")
    @classmethod
    def read_only_emotions(cls, v: Mapping[str, float]) -> Mapping[str, float]:
        return types.MappingProxyType(dict(v))

    @field_serializer("emotions")
    def dump_emotions(self, v: Mapping[str, float]) -> Dict[str, float]:
        return dict(v)

    @property
    def average_age_display(self) -> float:
        return round(self.average_age, 1)

    def emotion_percentages(self) -> Dict[str, float]:
        if self.face_count == 0:
            return {}
        return {k: v / self.face_count for k, v in self.emotions.items()}

class StreamConstraints(BaseModel):
    """What the loop asks the camera for."""
    device_index: int = 0
    width: Optional[int] = None
    height: Optional[int] = None
    fps: Optional[float] = None
