"""Rule-based device classification."""

from .engine import ClassificationEngine, FallbackClassifier
from .rules import (
    DEFAULT_RULES,
    Classification,
    ClassificationContext,
    ClassificationRule,
    clean_service_type,
    guess_icon,
)

__all__ = [
    "DEFAULT_RULES",
    "Classification",
    "ClassificationContext",
    "ClassificationEngine",
    "ClassificationRule",
    "FallbackClassifier",
    "clean_service_type",
    "guess_icon",
]
