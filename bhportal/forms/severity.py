"""
Severity ratings used by the ASAM dimensions
"""

from typing import List, Tuple

SEVERITY_MIN = 0
SEVERITY_MAX = 4

SEVERITY_LABELS = (
    "None",
    "Mild",
    "Moderate",
    "Severe",
    "Very Severe",
)


def severity_label(rating: int) -> str:
    """
    Return the label of a severity rating

    Args:
        rating: integer between 0 and 4

    Raises:
        ValueError: for anything else, booleans included
    """
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValueError(f"Severity rating must be an integer, got {rating!r}")
    if not SEVERITY_MIN <= rating <= SEVERITY_MAX:
        raise ValueError(f"Severity rating must be between {SEVERITY_MIN} and {SEVERITY_MAX}, got {rating}")
    return SEVERITY_LABELS[rating]


def severity_choices() -> List[Tuple[int, str]]:
    """Select options as shown on the dimension steps, e.g. ``(1, "1 - Mild")``"""
    return [(rating, f"{rating} - {severity_label(rating)}") for rating in range(SEVERITY_MIN, SEVERITY_MAX + 1)]
