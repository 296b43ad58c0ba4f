"""
Unit tests for the shared data model.
"""

import dataclasses
import json

import numpy as np
import pytest

from stegscan.detection.signatures import DEFAULT_INDEX, risk_tier_for_extensions
from stegscan.models import (
    AnalysisResult,
    DetectionMode,
    DetectionSettings,
    Finding,
    RegionKind,
    RiskTier,
    ThreatLevel,
    make_json_serializable
)


class TestDetectionSettings:
    """Explicit, immutable scan configuration."""

    @pytest.mark.parametrize("mode, threshold, structure, context, min_size", [
        ("conservative", 0.8, True, True, 1024),
        ("balanced", 0.6, True, True, 512),
        ("aggressive", 0.4, False, False, 100),
    ])
    def test_mode_parameters(self, mode, threshold, structure, context, min_size):
        settings = DetectionSettings.for_mode(mode)
        assert settings.mode == DetectionMode(mode)
        assert settings.confidence_threshold == threshold
        assert settings.structure_validation is structure
        assert settings.context_validation is context
        assert settings.min_file_size == min_size

    def test_appended_minimum(self):
        assert DetectionSettings.for_mode("conservative").min_appended_size == 1000
        assert DetectionSettings.for_mode("balanced").min_appended_size == 100

    def test_default_mode_is_conservative(self):
        assert DetectionSettings.for_mode().mode == DetectionMode.CONSERVATIVE

    def test_overrides(self):
        settings = DetectionSettings.for_mode("balanced", confidence_threshold=0.75, context_validation=False)
        assert settings.confidence_threshold == 0.75
        assert settings.context_validation is False

    def test_threshold_is_clamped(self):
        assert DetectionSettings.for_mode("balanced", confidence_threshold=1.5).confidence_threshold == 1.0
        assert DetectionSettings.for_mode("balanced", confidence_threshold=-0.2).confidence_threshold == 0.0

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            DetectionSettings.for_mode("paranoid")

    def test_settings_are_frozen(self):
        settings = DetectionSettings.for_mode("balanced")
        with pytest.raises(dataclasses.FrozenInstanceError):
            settings.confidence_threshold = 0.1


class TestSignatureIndex:
    """Static signature facts."""

    def test_risk_tiers(self):
        assert DEFAULT_INDEX.by_name("DOS MZ Executable").risk_tier == RiskTier.CRITICAL
        assert DEFAULT_INDEX.by_name("ELF Executable").risk_tier == RiskTier.CRITICAL
        assert DEFAULT_INDEX.by_name("RAR Archive v1.5+").risk_tier == RiskTier.HIGH
        assert DEFAULT_INDEX.by_name("PDF Document").risk_tier == RiskTier.MEDIUM
        assert DEFAULT_INDEX.by_name("GIF89a Image").risk_tier == RiskTier.LOW

    def test_risk_tier_prefers_most_severe_class(self):
        assert risk_tier_for_extensions(["docx", "zip"]) == RiskTier.HIGH

    def test_lookup(self):
        assert DEFAULT_INDEX.lookup(b"%PDF").name == "PDF Document"
        assert DEFAULT_INDEX.lookup(b"nope") is None

    def test_every_record_has_a_primary_extension(self):
        assert len(DEFAULT_INDEX) > 0
        for record in DEFAULT_INDEX:
            assert record.primary_extension in record.extensions


class TestSerialization:
    """JSON-safe conversion."""

    def test_make_json_serializable(self):
        data = {
            "int": np.int64(3),
            "float": np.float32(0.5),
            "flag": np.bool_(True),
            "array": np.array([1, 2]),
            "tier": RiskTier.HIGH,
            "exts": frozenset({"b", "a"}),
            "raw": b"\x00\x01",
        }
        converted = make_json_serializable(data)
        assert converted["int"] == 3
        assert converted["flag"] is True
        assert converted["array"] == [1, 2]
        assert converted["tier"] == "HIGH"
        assert converted["exts"] == ["a", "b"]
        assert converted["raw"]["encoding"] == "base64"
        json.dumps(converted)

    def test_finding_to_dict(self):
        finding = Finding(
            signature="ZIP Archive",
            offset=255,
            risk_tier=RiskTier.HIGH,
            confidence=0.88749999999,
            extensions=frozenset({"zip"}),
            pattern_hex="504B0304",
            region=RegionKind.APPENDED,
        )
        data = finding.to_dict()
        assert data["hex_offset"] == "0x000000ff"
        assert data["confidence"] == 0.8875
        assert data["region"] == "appended"
        assert data["risk_tier"] == "HIGH"

    def test_empty_result(self):
        data = AnalysisResult().to_dict()
        assert data["threat_level"] == ThreatLevel.SAFE.value
        assert data["findings"] == []
        assert data["lsb_report"] is None
        json.dumps(data)
