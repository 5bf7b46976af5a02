"""
cadence.utils - Shared formatting helpers for CLI output.
"""

from __future__ import annotations


def format_duration(seconds: float) -> str:
    """Format seconds as HH:MM:SS or MM:SS.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string (HH:MM:SS if >= 1 hour, otherwise MM:SS)
    """
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def score_style(score: float) -> str:
    """Rich style for a 0-100 score: green (high), yellow, or red (low)."""
    if score >= 75:
        return "green"
    elif score >= 50:
        return "yellow"
    return "red"


def quality_style(quality: str) -> str:
    """Rich style for a quality label."""
    if quality in ("optimal", "excellent", "good"):
        return "green"
    if quality in ("poor", "too-quiet", "too-loud", "very-fast", "monotone", "undetermined"):
        return "red"
    return "yellow"
