"""
Webcam acquisition with OpenCV.

A CameraStream owns its VideoTracks; whoever requested the stream must call
stop() so the devices are released.
"""
from __future__ import annotations
import logging
from typing import List, Optional, Tuple

import cv2
import numpy as np

from facetrust.config import Settings
from facetrust.errors import CameraUnavailable
from facetrust.models import StreamConstraints

logger = logging.getLogger(__name__)


class VideoTrack:
    """One capture device."""
    def __init__(self, cap, label: str):
        self._cap = cap
        self.label = label
        self.ready_state = "live"

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        if self.ready_state != "live":
            return False, None
        return self._cap.read()

    def stop(self) -> None:
        if self.ready_state == "ended":
            return
        self.ready_state = "ended"
        self._cap.release()
        logger.debug(f"[camera] track stopped label={self.label}")


class CameraStream:
    def __init__(self, tracks: List[VideoTrack]):
        self.tracks = list(tracks)

    @property
    def active(self) -> bool:
        return any(t.ready_state == "live" for t in self.tracks)

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        if not self.tracks:
            return False, None
        return self.tracks[0].read()

    def wait_until_ready(self, max_frames: int = 30) -> np.ndarray:
        """
        Block until the stream delivers a frame.

        Raises:
            CameraUnavailable: no frame within `max_frames` reads.
        """
        for _ in range(max(1, int(max_frames))):
            ok, frame = self.read()
            if ok and frame is not None:
                return frame
        raise CameraUnavailable("camera opened but delivered no frames (is access allowed?)")

    def stop(self) -> None:
        for t in self.tracks:
            t.stop()


class CameraSource:
    """Opens webcams through cv2.VideoCapture."""
    def __init__(self, settings: Settings):
        self.s = settings

    def default_constraints(self) -> StreamConstraints:
        return StreamConstraints(
            device_index=self.s.CAMERA_INDEX,
            width=self.s.CAMERA_WIDTH,
            height=self.s.CAMERA_HEIGHT,
        )

    def request_stream(self, constraints: Optional[StreamConstraints] = None) -> CameraStream:
        """
        Open the requested camera.

        Raises:
            CameraUnavailable: permission denied, missing device or unsupported backend.
        """
        c = constraints or self.default_constraints()
        logger.debug(f"[camera] request_stream constraints={c.model_dump()}")
        try:
            cap = cv2.VideoCapture(c.device_index)
        except cv2.error as e:
            raise CameraUnavailable(f"Could not open camera index {c.device_index}: {e}") from e
        if not cap.isOpened():
            cap.release()
            raise CameraUnavailable(f"Could not open camera index {c.device_index}")

        if c.width:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, c.width)
        if c.height:
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, c.height)
        if c.fps:
            cap.set(cv2.CAP_PROP_FPS, c.fps)

        logger.info(f"[camera] opened camera index={c.device_index}")
        return CameraStream([VideoTrack(cap, label=f"camera:{c.device_index}")])
