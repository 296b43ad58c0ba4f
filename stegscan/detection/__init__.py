"""
Signature detection and confidence scoring.

This package locates known file signatures inside image files, scores each
match with a multi-factor confidence model and validates data appended after
an image's terminator.
"""

from stegscan.detection.signatures import (
    ByteSignatureIndex,
    DEFAULT_INDEX,
    risk_tier_for_extensions
)
from stegscan.detection.entropy import shannon_entropy, local_entropy
from stegscan.detection.terminators import find_terminator, find_terminators, normalize_format
from stegscan.detection.structure import validate_structure
from stegscan.detection.appended import AppendedValidation, validate_appended
from stegscan.detection.confidence import ConfidenceScorer, ScoreResult
from stegscan.detection.scanner import SignatureScanner, ScanOutcome, select_regions

__all__ = [
    'ByteSignatureIndex',
    'DEFAULT_INDEX',
    'risk_tier_for_extensions',
    'shannon_entropy',
    'local_entropy',
    'find_terminator',
    'find_terminators',
    'normalize_format',
    'validate_structure',
    'AppendedValidation',
    'validate_appended',
    'ConfidenceScorer',
    'ScoreResult',
    'SignatureScanner',
    'ScanOutcome',
    'select_regions'
]
