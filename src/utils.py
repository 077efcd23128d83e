"""Shared utility functions for the BCP Risk Engine.

Contains the canonical implementations of common formatting functions
used across the codebase. All callsites should import from here
rather than maintaining local copies.
"""


def round_level(level: float) -> float:
    """Round a risk level to the one-decimal precision used in results."""
    return round(float(level), 1)


def level_to_rating(level: float) -> str:
    """Convert a 0-10 risk level to its ordinal rating band.

    Args:
        level: Risk level on the engine's 0-10 scale.

    Returns:
        One of "very_high", "high", "medium", "low".
    """
    if level >= 8:
        return "very_high"
    elif level >= 6:
        return "high"
    elif level >= 4:
        return "medium"
    else:
        return "low"


def format_level(level: float) -> str:
    """Format a risk level for display, e.g. ``"7.5/10"``."""
    return f"{round_level(level):.1f}/10"
