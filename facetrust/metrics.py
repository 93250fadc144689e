"""
Per-tick aggregation of face detections into displayable metrics.
"""
from __future__ import annotations
from collections import Counter
from typing import Dict, List, Sequence

from facetrust.models import Detection, MetricsSnapshot


def predominant_label(labels: Sequence[str]) -> str:
    """
    Mode of `labels`, or "" when there are none.

    Ties go to the label seen first: Counter keeps insertion order and
    most_common() orders equal counts by first occurrence.
    """
    items = [x for x in labels if x]
    return Counter(items).most_common(1)[0][0] if items else ""


def aggregate(detections: Sequence[Detection]) -> MetricsSnapshot:
    """
    Summarize one tick of detections.

    Emotion scores are summed across every detection (not just the first face);
    divide by face_count, or call MetricsSnapshot.emotion_percentages(), for the
    per-face share. Total over all inputs: an empty tick gives zeros and "".
    """
    face_count = len(detections)
    if face_count == 0:
        return MetricsSnapshot()

    total_age = sum(float(d.age) for d in detections)
    emotions: Dict[str, float] = {}
    for d in detections:
        for label, score in d.emotions.items():
            emotions[label] = emotions.get(label, 0.0) + float(score)

    return MetricsSnapshot(
        face_count=face_count,
        average_age=total_age / face_count,
        predominant_gender=predominant_label([d.gender for d in detections]),
        emotions=emotions,
    )


def format_metrics_panel(snapshot: MetricsSnapshot) -> List[str]:
    """Lines of the operator panel, emotions sorted by descending share."""
    lines = [
        f"Detected Faces: {snapshot.face_count}",
        f"Average Age: {snapshot.average_age_display} years",
        f"Predominant Gender: {snapshot.predominant_gender or '-'}",
        "Emotions:",
    ]
    shares = snapshot.emotion_percentages()
    for label, share in sorted(shares.items(), key=lambda kv: kv[1], reverse=True):
        lines.append(f"  {label}: {share * 100:.1f}%")
    return lines
