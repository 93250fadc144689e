import pytest
import numpy as np

from facetrust.config import Settings
from facetrust.models import BoundingBox, Detection


class DummyCap:
    """Stands in for cv2.VideoCapture."""
    def __init__(self, frames=None, opened=True, h=48, w=64):
        self.opened = opened
        self.frames = frames  # None -> endless black frames
        self.frame = np.zeros((h, w, 3), dtype=np.uint8)
        self.i = 0
        self.released = False
        self.props = {}
    def isOpened(self): return self.opened and not self.released
    def read(self):
        if self.released:
            return False, None
        self.i += 1
        if self.frames is not None and self.i > self.frames:
            return False, None
        return True, self.frame.copy()
    def set(self, prop, value):
        self.props[prop] = value
        return True
    def release(self):
        self.released = True


def make_detection(age=30.0, gender="male", emotions=None, x=10, y=10, w=20, h=20, conf=0.9):
    return Detection(
        box=BoundingBox(x=x, y=y, width=w, height=h),
        emotions=emotions if emotions is not None else {"happy": 0.5},
        age=age,
        gender=gender,
        gender_confidence=conf,
    )


@pytest.fixture
def settings():
    return Settings(TICK_INTERVAL=0.01, DETECT_TIMEOUT=1.0, CAMERA_WARMUP_FRAMES=3,
                    DISPLAY_WIDTH=64, DISPLAY_HEIGHT=48)
