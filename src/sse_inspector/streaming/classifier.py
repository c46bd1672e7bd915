"""Event categories and payload classification."""

from enum import Enum


class EventCategory(str, Enum):
    """Semantic category of a stream event."""
    CONNECTION = "connection"
    DATA = "data"
    ERROR = "error"
    INFO = "info"


# Checked in order; the first rule with a matching substring wins
CLASSIFICATION_RULES = (
    (("Connected to", "Status:"), EventCategory.CONNECTION),
    (("error", "Error", "aborted"), EventCategory.ERROR),
    (("Stream closed",), EventCategory.INFO),
)


def classify_event(raw: str) -> EventCategory:
    """Classify a raw payload by case-sensitive substring matching."""
    for needles, category in CLASSIFICATION_RULES:
        if any(needle in raw for needle in needles):
            return category
    return EventCategory.DATA
