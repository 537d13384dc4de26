"""Interval Matcher - temporal overlap between time ranges.

Used to align independently produced segment lists (transcript utterances
and diarization turns) that share a timeline but not boundaries.
"""

from typing import Optional, Protocol, Sequence, TypeVar


class Interval(Protocol):
    """Anything with a start and end time in seconds."""

    start: float
    end: float


I = TypeVar("I", bound=Interval)


def overlap(a: Interval, b: Interval) -> float:
    """Intersection-over-union of two 1-D time intervals.

    Returns 0.0 when the intervals do not intersect, and also when the
    union is zero (two zero-length intervals at the same instant).
    Symmetric in its arguments; always within [0, 1].
    """
    intersection = max(0.0, min(a.end, b.end) - max(a.start, b.start))
    union = max(a.end, b.end) - min(a.start, b.start)
    if union <= 0:
        return 0.0
    return intersection / union


def best_overlap(target: Interval, candidates: Sequence[I]) -> tuple[Optional[I], float]:
    """Find the candidate with the highest IoU against ``target``.

    Candidates are scanned in order and a candidate replaces the current
    best only with a strictly greater IoU, so the first one seen wins on
    ties. Candidates with zero overlap are never selected.

    Returns:
        (best candidate or None, its IoU)
    """
    best: Optional[I] = None
    best_iou = 0.0

    for candidate in candidates:
        iou = overlap(target, candidate)
        if iou > best_iou:
            best_iou = iou
            best = candidate

    return best, best_iou
