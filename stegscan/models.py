"""
Data model shared by the detection engine, the LSB tests and the analyzer.
"""
import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

import numpy as np

from stegscan import config


def make_json_serializable(data: Any) -> Any:
    """
    Recursively convert data to JSON serializable format.

    Args:
        data: Any data structure to convert

    Returns:
        JSON serializable version of the data
    """
    if data is None:
        return None

    # Handle numpy types first
    if isinstance(data, np.ndarray):
        return [make_json_serializable(x) for x in data.tolist()]
    if isinstance(data, np.bool_):
        return bool(data)
    if isinstance(data, np.integer):
        return int(data)
    if isinstance(data, np.floating):
        return float(data)

    if isinstance(data, Enum):
        return data.value
    if isinstance(data, dict):
        return {str(k): make_json_serializable(v) for k, v in data.items()}
    elif isinstance(data, (list, tuple)):
        return [make_json_serializable(item) for item in data]
    elif isinstance(data, (set, frozenset)):
        return [make_json_serializable(item) for item in sorted(data)]
    elif isinstance(data, (bytes, bytearray)):
        return {
            "type": "binary",
            "encoding": "base64",
            "data": base64.b64encode(data).decode('ascii')
        }
    elif isinstance(data, (bool, int, float, str)):
        return data
    elif hasattr(data, 'to_dict'):
        return make_json_serializable(data.to_dict())
    else:
        return str(data)


class RiskTier(str, Enum):
    """Coarse severity of a detected file type."""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ThreatLevel(str, Enum):
    """Overall verdict for one analyzed file, ordered by rank."""
    SAFE = "safe"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _THREAT_ORDER.index(self)


_THREAT_ORDER = [ThreatLevel.SAFE, ThreatLevel.LOW, ThreatLevel.MEDIUM, ThreatLevel.HIGH, ThreatLevel.CRITICAL]


class DetectionMode(str, Enum):
    """Detection modes. The parameters of each mode live in config.DETECTION_MODES."""
    CONSERVATIVE = "conservative"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"


class RegionKind(str, Enum):
    APPENDED = "appended"
    FULL = "full"
    LIMITED = "limited"


@dataclass(frozen=True)
class SignatureRecord:
    """A known file signature and the static facts attached to it."""
    pattern: bytes
    name: str
    extensions: FrozenSet[str]
    risk_tier: RiskTier
    min_size: int
    category: str
    description: str = ""
    primary_extension: str = ""

    @property
    def pattern_hex(self) -> str:
        return self.pattern.hex().upper()


@dataclass(frozen=True)
class DetectionSettings:
    """
    Explicit configuration for one scan run.

    Instances are immutable; build a new one between runs instead of
    changing the active one.
    """
    mode: DetectionMode
    confidence_threshold: float
    context_validation: bool
    structure_validation: bool
    min_file_size: int
    min_appended_size: int

    @classmethod
    def for_mode(
        cls,
        mode: Any = config.DEFAULT_MODE,
        confidence_threshold: Optional[float] = None,
        context_validation: Optional[bool] = None
    ) -> "DetectionSettings":
        """
        Build settings for a mode, with optional user overrides.

        Args:
            mode: DetectionMode or its string value
            confidence_threshold: Optional override, clamped to [0, 1]
            context_validation: Optional override of the mode's context validation

        Returns:
            DetectionSettings instance

        Raises:
            ValueError: If the mode is unknown
        """
        mode = DetectionMode(mode)
        params = config.DETECTION_MODES[mode.value]

        threshold = params["confidence_threshold"] if confidence_threshold is None else float(confidence_threshold)
        threshold = min(1.0, max(0.0, threshold))

        return cls(
            mode=mode,
            confidence_threshold=threshold,
            context_validation=params["context_validation"] if context_validation is None else bool(context_validation),
            structure_validation=params["structure_validation"],
            min_file_size=params["min_file_size"],
            min_appended_size=params["min_appended_size"],
        )


@dataclass(frozen=True)
class ScanRegion:
    """A byte range selected for signature search."""
    start: int
    end: int
    kind: RegionKind

    @property
    def length(self) -> int:
        return max(0, self.end - self.start)


@dataclass
class Finding:
    """A detected signature or appended payload that passed scoring."""
    signature: str
    offset: int
    risk_tier: RiskTier
    confidence: float
    details: List[str] = field(default_factory=list)
    extensions: FrozenSet[str] = frozenset()
    pattern_hex: str = ""
    region: Optional[RegionKind] = None

    @property
    def key(self):
        return (self.signature, self.offset)

    def to_dict(self) -> Dict[str, Any]:
        return make_json_serializable({
            "signature": self.signature,
            "offset": self.offset,
            "hex_offset": f"0x{self.offset:08x}",
            "risk_tier": self.risk_tier,
            "confidence": round(float(self.confidence), 6),
            "details": list(self.details),
            "extensions": self.extensions,
            "pattern": self.pattern_hex,
            "region": self.region,
        })


@dataclass
class ChiSquareResult:
    statistic: float
    p_value: float
    suspicious: bool
    sample_size: int
    interpretation: str = ""


@dataclass
class SamplePairsResult:
    ratio: float
    pairs: int
    regular_pairs: int
    suspicious: bool
    interpretation: str = ""


@dataclass
class LSBReport:
    """Outcome of the Chi-Square and Sample-Pairs tests."""
    chi_square: ChiSquareResult
    sample_pairs: SamplePairsResult
    assessment: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return make_json_serializable({
            "chi_square": vars(self.chi_square),
            "sample_pairs": vars(self.sample_pairs),
            "assessment": self.assessment,
        })


@dataclass
class StatisticalReport:
    """Per-channel histograms and entropy of the decoded pixels."""
    histograms: Dict[str, List[int]]
    entropy: Dict[str, float]
    average_entropy: float
    total_pixels: int
    width: int
    height: int

    def to_dict(self) -> Dict[str, Any]:
        return make_json_serializable({
            "histograms": self.histograms,
            "entropy": self.entropy,
            "average_entropy": round(self.average_entropy, 4),
            "total_pixels": self.total_pixels,
            "dimensions": {"width": self.width, "height": self.height},
        })


@dataclass
class AnalysisResult:
    """
    Everything known about one analyzed file.

    A result is produced whole by the analyzer and replaced whole on the
    next submission; nothing patches it afterwards.
    """
    findings: List[Finding] = field(default_factory=list)
    threat_level: ThreatLevel = ThreatLevel.SAFE
    lsb_report: Optional[LSBReport] = None
    statistical_report: Optional[StatisticalReport] = None
    errors: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    risk_factors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert result to a flat, JSON-safe dictionary.

        Returns:
            Dictionary representation of the result
        """
        return make_json_serializable({
            "threat_level": self.threat_level,
            "findings": [f.to_dict() for f in self.findings],
            "lsb_report": self.lsb_report.to_dict() if self.lsb_report else None,
            "statistical_report": self.statistical_report.to_dict() if self.statistical_report else None,
            "errors": list(self.errors),
            "metadata": self.metadata,
            "risk_factors": list(self.risk_factors),
        })
