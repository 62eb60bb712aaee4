from dataclasses import dataclass


@dataclass(frozen=True)
class NormalizedPayload:
    """Canonical reading value extracted from an inbound payload, plus the original text"""
    value: float
    raw: str
