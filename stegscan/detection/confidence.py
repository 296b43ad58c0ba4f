"""
Multi-factor confidence model for signature matches.

A magic-byte match alone says little inside compressed pixel data. The scorer
combines five weighted factors into one confidence value:

    base match   0.20  awarded for the pattern match itself
    context      0.30  where the match sits (after a terminator, header, pixel data)
    structure    0.25  format-aware header confirmation
    size         0.15  enough bytes remain for a plausible file
    entropy      0.10  local entropy at the match
"""
import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from stegscan import config
from stegscan.detection.entropy import local_entropy
from stegscan.detection.structure import validate_structure
from stegscan.models import DetectionSettings, RiskTier, SignatureRecord

logger = logging.getLogger("stegscan.detection.confidence")

WEIGHTS = {
    "base": 0.20,
    "context": 0.30,
    "structure": 0.25,
    "size": 0.15,
    "entropy": 0.10,
}

AFTER_TERMINATOR_SCORE = 1.0
HEADER_REGION_SCORE = 0.8
PATTERN_SAMPLE_RADIUS = 50
PATTERN_REPETITION_FLOOR = 0.3
PROMOTION_CONFIDENCE = 0.9


@dataclass
class ScoreResult:
    confidence: float
    risk_tier: RiskTier
    accepted: bool
    details: List[str] = field(default_factory=list)


def pixel_pattern_score(data: bytes, offset: int) -> float:
    """
    Estimate how much the bytes around an offset look like raw pixel data.

    Counts how often adjacent 3-byte (RGB) or 4-byte (RGBA) windows repeat in
    a 100-byte sample centered on the offset. Solid-color regions of a
    legitimate image also score high, so treat this as weak evidence.

    Args:
        data: Full source bytes
        offset: Offset of the signature match

    Returns:
        Repetition rate in [0, 1]; 0 when the sample would leave the data
    """
    if offset < 2 * PATTERN_SAMPLE_RADIUS or offset + 2 * PATTERN_SAMPLE_RADIUS > len(data):
        return 0.0

    sample = data[offset - PATTERN_SAMPLE_RADIUS:offset + PATTERN_SAMPLE_RADIUS]
    score = 0.0
    for stride in (3, 4):
        repetitions = 0
        for i in range(0, len(sample) - stride * 3, stride):
            if sample[i:i + stride] == sample[i + stride:i + stride * 2]:
                repetitions += 1
        rate = repetitions / (len(sample) / stride)
        if rate > PATTERN_REPETITION_FLOOR:
            score = max(score, rate)
    return min(1.0, score)


def context_score(data: bytes, offset: int, terminators: Sequence[int]) -> float:
    if any(offset >= t for t in terminators):
        return AFTER_TERMINATOR_SCORE
    if offset < config.SCAN_LIMITS["header_region_bytes"]:
        return HEADER_REGION_SCORE
    return 1.0 - pixel_pattern_score(data, offset)


def minimum_size(record: SignatureRecord, settings: DetectionSettings) -> int:
    return max(record.min_size, settings.min_file_size)


class ConfidenceScorer:
    """Scores a signature match at an offset under the active settings."""

    def score(
        self,
        data: bytes,
        offset: int,
        record: SignatureRecord,
        terminators: Sequence[int],
        settings: DetectionSettings
    ) -> ScoreResult:
        """
        Compute the confidence that a match is a genuine embedded file.

        Args:
            data: Full source bytes
            offset: Offset of the signature match
            record: Matched SignatureRecord
            terminators: Terminator offsets found in the source
            settings: Active detection settings

        Returns:
            ScoreResult with confidence in [0, 1], risk tier and ordered details
        """
        if offset < 0 or offset >= len(data):
            return ScoreResult(confidence=0.0, risk_tier=record.risk_tier, accepted=False,
                               details=["Offset outside source"])

        details = []
        total = WEIGHTS["base"]
        details.append("Signature pattern matched")

        if settings.context_validation:
            context = context_score(data, offset, terminators)
            total += context * WEIGHTS["context"]
            if context > 0.5:
                details.append("Found in valid context (not pixel data)")
            else:
                details.append("Warning: Found in suspected pixel data region")
        else:
            total += WEIGHTS["context"]
            details.append("Context validation skipped")

        if settings.structure_validation:
            structure = validate_structure(data, offset, record)
            total += structure * WEIGHTS["structure"]
            if structure > 0.7:
                details.append("File structure validation passed")
            else:
                details.append("File structure validation failed")
        else:
            total += WEIGHTS["structure"]
            details.append("Structure validation skipped")

        remaining = len(data) - offset
        min_size = minimum_size(record, settings)
        if remaining >= min_size:
            total += WEIGHTS["size"]
            details.append(f"Sufficient data available ({remaining} bytes)")
        else:
            details.append(f"Insufficient data ({remaining} < {min_size} bytes)")

        entropy = local_entropy(data, offset, min(config.SCAN_LIMITS["entropy_window"], remaining))
        total += entropy * WEIGHTS["entropy"]
        if entropy > 0.5:
            details.append("Local entropy suggests structured data")

        confidence = min(1.0, max(0.0, total))

        risk_tier = record.risk_tier
        if (risk_tier == RiskTier.LOW and confidence >= PROMOTION_CONFIDENCE
                and any(offset >= t for t in terminators)):
            risk_tier = RiskTier.MEDIUM
            details.append("Risk promoted: high-confidence file after image terminator")

        accepted = confidence >= settings.confidence_threshold
        logger.debug(f"{record.name} at {offset}: confidence {confidence:.3f} (accepted={accepted})")

        return ScoreResult(confidence=confidence, risk_tier=risk_tier, accepted=accepted, details=details)
