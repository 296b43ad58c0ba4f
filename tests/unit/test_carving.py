"""
Unit tests for payload carving and custom pattern search.
"""

import pytest

from stegscan.detection.carving import (
    SIZE_CAPS,
    carve_at,
    carve_finding,
    extract_appended,
    identify_payload,
    is_likely_text,
    search_pattern
)
from stegscan.models import Finding, RiskTier


class TestIdentifyPayload:
    """Type identification of carved bytes."""

    def test_known_signature(self, zip_payload):
        assert identify_payload(zip_payload) == ("ZIP Archive", "zip")

    def test_longest_pattern_wins(self, png_bytes):
        assert identify_payload(png_bytes) == ("PNG Image", "png")

    def test_text(self):
        assert is_likely_text(b"plain readable text\n" * 10)
        assert identify_payload(b"plain readable text\n" * 10) == ("Text Data", "txt")

    def test_unknown_binary(self):
        assert identify_payload(bytes(range(256))) == ("Unknown Binary", "bin")


class TestCarving:
    """Structure-aware extraction."""

    def test_zip_is_carved_to_end_of_central_directory(self, zip_payload):
        data = b"\x00" * 64 + zip_payload + b"trailing junk" * 10
        payload = carve_at(data, 64)

        assert payload.data == zip_payload
        assert payload.format == "ZIP Archive"
        assert payload.filename == "payload_00000040.zip"

    def test_png_is_carved_to_iend(self, png_bytes):
        data = b"junk" + png_bytes + b"tail"
        payload = carve_at(data, 4)
        assert payload.data == png_bytes
        assert payload.extension == "png"

    def test_unstructured_payload_is_capped(self):
        data = b"MZ" + b"\x90" * (SIZE_CAPS["executables"] + 500)
        assert carve_at(data, 0).size == SIZE_CAPS["executables"]

    def test_out_of_range(self, zip_payload):
        assert carve_at(zip_payload, len(zip_payload)) is None
        assert carve_at(zip_payload, -1) is None

    def test_carve_finding(self, scenario_bytes, png_bytes, zip_payload):
        finding = Finding(signature="ZIP Archive", offset=len(png_bytes), risk_tier=RiskTier.HIGH, confidence=0.9)
        assert carve_finding(scenario_bytes, finding).data == zip_payload

    def test_extract_appended(self, scenario_bytes, png_bytes, zip_payload):
        payload = extract_appended(scenario_bytes, len(png_bytes))
        assert payload.data == zip_payload
        assert payload.format == "ZIP Archive"

    def test_nothing_appended(self, png_bytes):
        assert extract_appended(png_bytes, len(png_bytes)) is None
        assert extract_appended(png_bytes, -1) is None


class TestSearchPattern:
    """Content between custom delimiters."""

    DATA = b"xxSTARTabcENDyySTARTdefENDzz"

    def test_text_patterns(self):
        matches = search_pattern(self.DATA, "START", "END")
        assert [(m.offset, m.content) for m in matches] == [(2, b"STARTabcEND"), (15, b"STARTdefEND")]

    def test_hex_patterns(self):
        matches = search_pattern(self.DATA, "53 54 41 52 54", "454e44", as_hex=True)
        assert [m.content for m in matches] == [b"STARTabcEND", b"STARTdefEND"]

    def test_without_end_takes_span(self):
        matches = search_pattern(self.DATA, "START", span=6)
        assert [m.content for m in matches] == [b"STARTa", b"STARTd"]

    def test_max_matches(self):
        assert len(search_pattern(b"A" * 100, "A", max_matches=5)) == 5

    def test_invalid_hex(self):
        with pytest.raises(ValueError):
            search_pattern(self.DATA, "zz", as_hex=True)

    def test_empty_start_pattern(self):
        assert search_pattern(self.DATA, "") == []
