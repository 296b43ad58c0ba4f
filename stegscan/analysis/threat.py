"""
Aggregation of findings and LSB flags into one threat level.
"""
from typing import Iterable, List, Optional

from stegscan.detection.scanner import APPENDED_DATA_NAME
from stegscan.detection.signatures import EXECUTABLE_EXTENSIONS
from stegscan.models import Finding, LSBReport, RegionKind, RiskTier, ThreatLevel

SEVERE_CONFIDENCE = 0.7
MULTIPLE_CONFIDENCE = 0.8
NOTABLE_CONFIDENCE = 0.6
MANY_SIGNATURES = 3


def aggregate_threat(
    findings: Iterable[Finding],
    chi_square_flag: bool = False,
    sample_pairs_flag: bool = False
) -> ThreatLevel:
    """
    Derive the overall threat level of a file.

    The result depends only on the set of findings and the two flags, never
    on their order.

    Args:
        findings: Accepted findings
        chi_square_flag: Chi-Square test flagged the image
        sample_pairs_flag: Sample Pairs test flagged the image

    Returns:
        ThreatLevel
    """
    findings = list(findings)

    if any(f.risk_tier == RiskTier.CRITICAL and f.confidence > SEVERE_CONFIDENCE for f in findings):
        level = ThreatLevel.CRITICAL
    elif any(f.risk_tier == RiskTier.HIGH and f.confidence > SEVERE_CONFIDENCE for f in findings):
        level = ThreatLevel.HIGH
    elif sum(1 for f in findings if f.confidence > MULTIPLE_CONFIDENCE) > 1:
        level = ThreatLevel.MEDIUM
    elif any(f.confidence > NOTABLE_CONFIDENCE for f in findings):
        level = ThreatLevel.LOW
    else:
        level = ThreatLevel.SAFE

    # Statistical evidence alone never outranks a signature verdict
    if level == ThreatLevel.SAFE and (chi_square_flag or sample_pairs_flag):
        level = ThreatLevel.MEDIUM

    return level


def risk_factors(findings: Iterable[Finding], lsb_report: Optional[LSBReport] = None) -> List[str]:
    """List the human-readable reasons behind a threat level."""
    findings = list(findings)
    factors = []

    if any(f.extensions & EXECUTABLE_EXTENSIONS for f in findings):
        factors.append("Executable files detected in image")
    if lsb_report is not None and lsb_report.chi_square.suspicious:
        factors.append("LSB modifications detected via statistical analysis")
    if lsb_report is not None and lsb_report.sample_pairs.suspicious:
        factors.append("Unusual LSB pair distribution")
    if any(f.signature == APPENDED_DATA_NAME or f.region == RegionKind.APPENDED for f in findings):
        factors.append("Data appended after image termination")
    if len(findings) > MANY_SIGNATURES:
        factors.append("Multiple embedded file signatures")

    return factors
