"""Formatting helpers for CLI tables."""

from typing import Optional


def format_clock(seconds: float) -> str:
    """Format seconds as M:SS, or H:MM:SS from one hour up.

    Args:
        seconds: Duration in seconds (fractions are truncated)

    Returns:
        Formatted string like "1:35" or "1:02:05"
    """
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_score(value: Optional[float]) -> str:
    """Two-decimal confidence or threshold, "-" when absent."""
    if value is None:
        return "-"
    return f"{value:.2f}"
