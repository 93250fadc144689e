"""Overlay drawing & renderers.

- scale_detections: map detections from frame coordinates onto the display surface
- draw_overlays: rectangles, landmark dots, emotion label and "age, gender (pct%)" text per face
- draw_metrics_panel: the operator panel (face count, average age, gender, emotions)
- WindowRenderer / LogRenderer: what the render loop draws through
"""
from __future__ import annotations
import logging
import cv2
import numpy as np
from typing import Callable, List, Optional, Sequence, Tuple

from facetrust.metrics import format_metrics_panel
from facetrust.models import BoundingBox, Detection, MetricsSnapshot, Point

logger = logging.getLogger(__name__)

BOX_COLOR = (0, 255, 0)
LANDMARK_COLOR = (0, 200, 255)
TEXT_COLOR = (255, 255, 255)
PANEL_BG = (32, 32, 32)


def scale_detections(detections: Sequence[Detection],
                     src_size: Tuple[int, int],
                     dst_size: Tuple[int, int]) -> List[Detection]:
    """Rescale boxes & landmarks from a (w, h) frame to a (w, h) surface."""
    sw, sh = src_size
    dw, dh = dst_size
    if sw <= 0 or sh <= 0:
        return list(detections)
    fx, fy = dw / float(sw), dh / float(sh)
    out = []
    for d in detections:
        box = BoundingBox(x=d.box.x * fx, y=d.box.y * fy,
                          width=d.box.width * fx, height=d.box.height * fy)
        marks = [Point(x=p.x * fx, y=p.y * fy) for p in d.landmarks]
        out.append(d.model_copy(update={"box": box, "landmarks": marks}))
    return out


def _text_field(out: np.ndarray, text: str, org: Tuple[int, int], scale: float = 0.5) -> None:
    """Text on a filled background so it reads over any video."""
    (tw, th), base = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, scale, 1)
    x, y = org
    cv2.rectangle(out, (x, y - th - base), (x + tw + 4, y + base), PANEL_BG, -1)
    cv2.putText(out, text, (x + 2, y), cv2.FONT_HERSHEY_SIMPLEX, scale, TEXT_COLOR, 1, cv2.LINE_AA)


def describe_face(d: Detection) -> str:
    return f"{int(round(d.age))} years, {d.gender or '?'} ({int(round(d.gender_confidence * 100))}%)"


def draw_overlays(frame: np.ndarray,
                  detections: Sequence[Detection] | None = None,
                  color: Tuple[int, int, int] = BOX_COLOR) -> np.ndarray:
    """Draw bounding boxes, landmarks and labels on a copy of `frame`.

    Args:
        frame: BGR image, already at display size
        detections: detections in the frame's coordinates
        color: BGR color for rectangles

    Returns:
        Annotated copy of the frame
    """
    out = frame.copy()
    h, w = out.shape[:2]

    for d in detections or []:
        x, y = int(d.box.x), int(d.box.y)
        fw, fh = int(d.box.width), int(d.box.height)
        # clamp to image bounds
        x = max(0, min(x, w-1)); y = max(0, min(y, h-1))
        fw = max(0, min(fw, w-x)); fh = max(0, min(fh, h-y))
        cv2.rectangle(out, (x, y), (x+fw, y+fh), color, 2)

        for p in d.landmarks:
            cv2.circle(out, (int(p.x), int(p.y)), 2, LANDMARK_COLOR, -1)

        label, prob = d.dominant_emotion()
        if label:
            cv2.putText(out, f"{label} ({prob:.2f})", (x, max(12, y-8)),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 1, cv2.LINE_AA)

        # age/gender under the box, anchored at its bottom-right corner
        text = describe_face(d)
        (tw, th), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 0.5, 1)
        tx = max(0, min(x + fw - tw, w - tw - 4))
        ty = min(h - 4, y + fh + th + 6)
        _text_field(out, text, (tx, ty))

    return out


def draw_metrics_panel(frame: np.ndarray, snapshot: MetricsSnapshot) -> np.ndarray:
    """Draw the metrics panel in the top-left corner of `frame` (in place)."""
    lines = format_metrics_panel(snapshot)
    line_h = 18
    width = 10 + max(cv2.getTextSize(s, cv2.FONT_HERSHEY_SIMPLEX, 0.5, 1)[0][0] for s in lines)
    height = 8 + line_h * len(lines)
    h, w = frame.shape[:2]
    cv2.rectangle(frame, (0, 0), (min(width, w-1), min(height, h-1)), PANEL_BG, -1)
    for i, s in enumerate(lines):
        cv2.putText(frame, s, (5, 18 + i * line_h), cv2.FONT_HERSHEY_SIMPLEX, 0.5,
                    TEXT_COLOR, 1, cv2.LINE_AA)
    return frame


class Renderer:
    def draw(self, frame: np.ndarray, detections: Sequence[Detection], snapshot: MetricsSnapshot) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class WindowRenderer(Renderer):
    """OpenCV window; press 'q' to quit."""
    def __init__(self, window_name: str = "SoFutu FaceTrust AI (q to quit)",
                 on_quit: Optional[Callable[[], None]] = None):
        self.window_name = window_name
        self.on_quit = on_quit

    def draw(self, frame, detections, snapshot) -> None:
        annotated = draw_metrics_panel(draw_overlays(frame, detections), snapshot)
        cv2.imshow(self.window_name, annotated)
        if (cv2.waitKey(1) & 0xFF) == ord("q") and self.on_quit is not None:
            self.on_quit()

    def close(self) -> None:
        cv2.destroyAllWindows()


class LogRenderer(Renderer):
    """Headless: log the panel when it changes."""
    def __init__(self):
        self._last: Optional[List[str]] = None

    def draw(self, frame, detections, snapshot) -> None:
        lines = format_metrics_panel(snapshot)
        if lines != self._last:
            logger.info("[overlay] " + " | ".join(s.strip() for s in lines))
            self._last = lines
