"""
Scoring of data that trails an image terminator.
"""
from dataclasses import dataclass, field
from typing import List

import numpy as np

from stegscan import config
from stegscan.detection.entropy import shannon_entropy
from stegscan.detection.signatures import DEFAULT_INDEX, ByteSignatureIndex
from stegscan.models import RiskTier


@dataclass
class AppendedValidation:
    confidence: float
    risk_tier: RiskTier = RiskTier.LOW
    details: List[str] = field(default_factory=list)


def validate_appended(window: bytes, index: ByteSignatureIndex = DEFAULT_INDEX) -> AppendedValidation:
    """
    Score the bytes following a terminator.

    Mostly-null trailers are usually padding and score low; high entropy or a
    known payload signature near the start raise the score, and a signature
    forces HIGH risk.

    Args:
        window: Bytes immediately after the terminator
        index: Signature index used for the payload probe

    Returns:
        AppendedValidation with confidence in [0, 1]
    """
    if not window:
        return AppendedValidation(confidence=0.0, details=["No appended data"])

    validation = AppendedValidation(confidence=0.0)
    values = np.frombuffer(bytes(window), dtype=np.uint8)
    null_ratio = float(np.count_nonzero(values == 0)) / values.size

    if null_ratio > 0.9:
        validation.details.append("Mostly null bytes - likely padding")
        score = 0.1
    elif null_ratio > 0.7:
        validation.details.append("High null byte ratio - possibly padding")
        score = 0.3
    else:
        validation.details.append("Non-null data detected")
        score = 0.6

    entropy = shannon_entropy(window[:config.SCAN_LIMITS["entropy_window"]])
    if entropy > 0.5:
        validation.details.append("High entropy - structured data likely")
        score += 0.3

    if index.contains_probe_signature(window):
        validation.details.append("Contains known file signatures")
        score += 0.4
        validation.risk_tier = RiskTier.HIGH

    validation.confidence = min(1.0, score)
    return validation
