"""Unit conversion result types."""

from dataclasses import dataclass
from enum import StrEnum


class Confidence(StrEnum):
    """How trustworthy a gram estimate is."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class ConversionResult:
    """Gram weight for an ingredient amount."""

    grams: float
    confidence: Confidence
