"""Utility functions for podcast speaker enrichment."""

from podcast_speakers.utils.time_utils import format_clock, format_score

__all__ = [
    "format_clock",
    "format_score",
]
