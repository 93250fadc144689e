# facetrust/loop.py
"""
Live render loop.

Drives the tick cadence: read a camera frame, run the detector, aggregate the
detections into a MetricsSnapshot, then hand frame + scaled detections +
snapshot to the renderer.

States: IDLE -> MODELS_LOADING -> CAMERA_REQUESTING -> STREAMING
        -> (DETECTING <-> STREAMING) -> STOPPED

Ticks are sequential on a single thread (the caller's for run(), a daemon
thread for start()). Detection runs on a one-worker executor so it can be
timed out; a new detection is never started while the previous one is running.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from typing import Callable, List, Optional

import cv2
import numpy as np

from facetrust.camera import CameraSource, CameraStream
from facetrust.config import Settings
from facetrust.detector import FrameDetector
from facetrust.errors import CameraUnavailable, TransientDetectionError
from facetrust.metrics import aggregate
from facetrust.models import Detection, MetricsSnapshot, StreamConstraints
from facetrust.overlay import Renderer, scale_detections

logger = logging.getLogger(__name__)


class LoopState(str, enum.Enum):
    IDLE = "idle"
    MODELS_LOADING = "models_loading"
    CAMERA_REQUESTING = "camera_requesting"
    STREAMING = "streaming"
    DETECTING = "detecting"
    STOPPED = "stopped"


# -----------------------------------------------------------------------------
# Tick sources: when does the next tick run
# -----------------------------------------------------------------------------
class TickSource:
    """Blocks until the next tick is due. cancel() wakes any waiter for good."""
    def __init__(self):
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def wait(self) -> bool:
        """True when a tick is due, False once cancelled."""
        raise NotImplementedError

    def cancel(self) -> None:
        self._cancelled.set()


class IntervalTicks(TickSource):
    """Fixed cadence, like a repeating timer. Overrunning ticks are not queued up."""
    def __init__(self, interval: float):
        super().__init__()
        self.interval = max(0.0, float(interval))
        self._next_t: Optional[float] = None

    def wait(self) -> bool:
        if self._cancelled.is_set():
            return False
        now = time.monotonic()
        if self._next_t is None:
            self._next_t = now
        delay = self._next_t - now
        if delay > 0 and self._cancelled.wait(delay):
            return False
        self._next_t = max(self._next_t + self.interval, time.monotonic())
        return not self._cancelled.is_set()


class FrameTicks(TickSource):
    """Frame-aligned: tick again as soon as the last one finished; the camera read paces it."""
    def wait(self) -> bool:
        return not self._cancelled.is_set()


def make_tick_source(settings: Settings) -> TickSource:
    if settings.TICK_MODE == "frame":
        return FrameTicks()
    return IntervalTicks(settings.TICK_INTERVAL)


# -----------------------------------------------------------------------------
# RenderLoop
# -----------------------------------------------------------------------------
class RenderLoop:
    """Owns the camera stream and the tick source for its whole lifetime."""
    def __init__(self,
                 settings: Settings,
                 detector: FrameDetector,
                 renderer: Renderer,
                 camera: Optional[CameraSource] = None,
                 tick_source: Optional[TickSource] = None,
                 on_snapshot: Optional[Callable[[MetricsSnapshot], None]] = None,
                 constraints: Optional[StreamConstraints] = None):
        self.s = settings
        self.detector = detector
        self.renderer = renderer
        self.camera = camera or CameraSource(settings)
        self.ticks = tick_source or make_tick_source(settings)
        self.on_snapshot = on_snapshot
        self.constraints = constraints

        self.state = LoopState.IDLE
        self.error: Optional[str] = None
        self.tick_count = 0

        self._snapshot = MetricsSnapshot()
        self._stream: Optional[CameraStream] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Optional[Future] = None
        self._thread: Optional[threading.Thread] = None
        self._read_failures = 0
        self._released = False
        self._lock = threading.Lock()
        self._stopped = threading.Event()

    @property
    def snapshot(self) -> MetricsSnapshot:
        return self._snapshot

    @property
    def stream(self) -> Optional[CameraStream]:
        return self._stream

    # ---- lifecycle ----
    def prepare(self) -> bool:
        """
        Load models, then acquire the camera and wait for its first frame.

        A model failure only disables detection. A camera failure sets
        `self.error`, returns the loop to IDLE and returns False.
        """
        if self.state is not LoopState.IDLE or self._stopped.is_set():
            return self.state in (LoopState.STREAMING, LoopState.DETECTING)

        self.state = LoopState.MODELS_LOADING
        logger.debug("[loop] loading models")
        if not self.detector.load_models():
            logger.error("[loop] models failed to load; continuing without detections")

        self.state = LoopState.CAMERA_REQUESTING
        stream = None
        try:
            stream = self.camera.request_stream(self.constraints)
            stream.wait_until_ready(self.s.CAMERA_WARMUP_FRAMES)
        except CameraUnavailable as e:
            if stream is not None:
                stream.stop()
            self.error = f"Error accessing the camera: {e}"
            logger.error(f"[loop] {self.error}")
            self.state = LoopState.IDLE
            return False

        with self._lock:
            if self._stopped.is_set():
                stream.stop()
                return False
            self._stream = stream
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="facetrust-detect")
            self.state = LoopState.STREAMING
        logger.info(f"[loop] streaming tick_mode={self.s.TICK_MODE} interval={self.s.TICK_INTERVAL}s")
        return True

    def start(self) -> bool:
        """Prepare, then tick on a background thread. False if the camera could not be acquired."""
        if not self.prepare():
            return False
        self._thread = threading.Thread(target=self._loop, name="facetrust-render", daemon=True)
        self._thread.start()
        return True

    def run(self) -> bool:
        """Prepare, then tick on the calling thread until stopped (needed for GUI windows)."""
        if not self.prepare():
            return False
        self._loop()
        return True

    def stop(self) -> None:
        """
        Cancel the tick source and stop every camera track.

        Safe to call more than once and from inside a tick (e.g. a renderer's quit key).
        If the render thread is still busy after the join timeout, the camera is
        left to that thread, which releases it from its own stop() on exit.
        """
        with self._lock:
            self._stopped.set()
            self.ticks.cancel()

        t = self._thread
        if t is not None and t is not threading.current_thread():
            # the loop thread may be inside a camera read; let it finish before releasing
            t.join(timeout=max(1.0, self.s.DETECT_TIMEOUT + 1.0))
            if t.is_alive():
                pending = self._pending
                if pending is not None:
                    pending.cancel()
                logger.warning("[loop] render thread still busy; it releases the camera when it exits")
                self.state = LoopState.STOPPED
                return

        with self._lock:
            stream, self._stream = self._stream, None
            executor, self._executor = self._executor, None
            first = not self._released
            self._released = True
        if stream is not None:
            stream.stop()
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)

        self.state = LoopState.STOPPED
        if first:
            self.renderer.close()
            logger.info(f"[loop] stopped after {self.tick_count} ticks")

    # ---- ticks ----
    def _loop(self) -> None:
        try:
            while not self._stopped.is_set() and self.ticks.wait():
                if self._stopped.is_set():
                    break
                self.tick()
        finally:
            self.stop()

    def _detect(self, frame: np.ndarray) -> List[Detection]:
        executor = self._executor
        if executor is None:
            raise TransientDetectionError("detector is not running")
        if self._pending is not None and not self._pending.done():
            raise TransientDetectionError("previous detection still running")

        timeout = self.s.DETECT_TIMEOUT if self.s.DETECT_TIMEOUT > 0 else None
        try:
            self._pending = executor.submit(self.detector.detect, frame)
            return self._pending.result(timeout=timeout)
        except FuturesTimeout as e:
            raise TransientDetectionError(f"detection timed out after {timeout}s") from e
        except TransientDetectionError:
            raise
        except Exception as e:
            raise TransientDetectionError(str(e)) from e

    def tick(self) -> MetricsSnapshot:
        """
        One iteration: frame -> detections -> snapshot -> draw.

        Detection failures produce an empty snapshot for this tick; they never
        end the loop. Too many consecutive frame-read failures do.
        """
        stream = self._stream
        if stream is None or self._stopped.is_set():
            return self._snapshot

        ok, frame = stream.read()
        if not ok or frame is None:
            self._read_failures += 1
            logger.debug(f"[loop] frame read failed ({self._read_failures} in a row)")
            if self._read_failures > self.s.CAMERA_WARMUP_FRAMES:
                self.error = "Camera stopped delivering frames"
                logger.error(f"[loop] {self.error}")
                self.stop()
            return self._snapshot
        self._read_failures = 0

        self.state = LoopState.DETECTING
        try:
            detections = self._detect(frame)
        except TransientDetectionError as e:
            logger.warning(f"[loop] detection failed, continuing: {e}")
            detections = []

        snapshot = aggregate(detections)
        self._snapshot = snapshot
        self.tick_count += 1
        if self.on_snapshot is not None:
            try:
                self.on_snapshot(snapshot)
            except Exception:
                logger.exception("[loop] on_snapshot failed; continuing")

        h, w = frame.shape[:2]
        size = (self.s.DISPLAY_WIDTH, self.s.DISPLAY_HEIGHT)
        surface = frame if (w, h) == size else cv2.resize(frame, size, interpolation=cv2.INTER_AREA)
        try:
            self.renderer.draw(surface, scale_detections(detections, (w, h), size), snapshot)
        except Exception:
            logger.exception("[loop] renderer failed; frame dropped")

        if not self._stopped.is_set():
            self.state = LoopState.STREAMING
        return snapshot
