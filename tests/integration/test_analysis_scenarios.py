"""
Integration tests for complete image analyses, the batch pipeline and the CLI.
"""

import json
import logging
import time

import numpy as np
import pytest

from stegscan.__main__ import main
from stegscan.analysis.analyzer import AnalysisSession, ImageAnalyzer
from stegscan.analysis.decoder import ImageDecoder, PillowDecoder
from stegscan.analysis.pipeline import BatchScanPipeline
from stegscan.lsb.extractor import embed_lsb_text, extract_lsb
from stegscan.models import DetectionSettings, RiskTier, ThreatLevel
from tests.conftest import encode_image


class SlowDecoder(ImageDecoder):
    """Decoder that outlives the analyzer's pixel timeout."""

    def decode(self, data):
        time.sleep(0.5)
        return PillowDecoder().decode(data)


class BrokenDecoder(ImageDecoder):
    def decode(self, data):
        raise ValueError("unsupported image")


@pytest.fixture
def clean_logger():
    """Detach handlers the CLI installs on the package logger."""
    yield
    package_logger = logging.getLogger("stegscan")
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()


class TestAppendedZipScenario:
    """A PNG with a ZIP archive appended after IEND."""

    @pytest.fixture
    def analyzer(self):
        return ImageAnalyzer()

    def test_balanced_mode(self, analyzer, scenario_bytes, png_bytes):
        result = analyzer.analyze(scenario_bytes, "png", DetectionSettings.for_mode("balanced"))

        assert len(result.findings) == 1
        finding = result.findings[0]
        assert finding.signature == "ZIP Archive"
        assert finding.risk_tier == RiskTier.HIGH
        assert finding.offset == len(png_bytes)
        assert result.threat_level == ThreatLevel.HIGH
        assert "Data appended after image termination" in result.risk_factors

    def test_conservative_mode_confidence(self, analyzer, scenario_bytes, png_bytes):
        result = analyzer.analyze(scenario_bytes, "png", DetectionSettings.for_mode("conservative"))

        assert [f.signature for f in result.findings] == ["ZIP Archive"]
        assert result.findings[0].confidence == pytest.approx(0.8875)
        assert result.findings[0].offset == len(png_bytes)

    def test_pixel_steps_complete(self, analyzer, scenario_bytes):
        result = analyzer.analyze(scenario_bytes, "png", DetectionSettings.for_mode("balanced"))

        assert result.errors == []
        assert result.lsb_report is not None
        assert result.statistical_report.width == 60
        assert result.statistical_report.total_pixels == 3600
        assert result.metadata["terminator_offset"] > 0

    def test_analysis_is_deterministic(self, analyzer, scenario_bytes):
        settings = DetectionSettings.for_mode("aggressive")
        first = analyzer.analyze(scenario_bytes, "png", settings).to_dict()
        second = analyzer.analyze(scenario_bytes, "png", settings).to_dict()
        assert first == second

    def test_result_is_json_serializable(self, analyzer, scenario_bytes):
        result = analyzer.analyze(scenario_bytes, "png", DetectionSettings.for_mode("balanced"), "scenario.png")
        data = json.loads(json.dumps(result.to_dict()))
        assert data["findings"][0]["hex_offset"].startswith("0x")
        assert data["metadata"]["file_name"] == "scenario.png"


class TestModes:
    """Mode behavior over whole analyses."""

    def test_conservative_is_empty_without_appended_data(self, png_bytes, jpeg_bytes):
        analyzer = ImageAnalyzer()
        settings = DetectionSettings.for_mode("conservative")
        assert analyzer.analyze(png_bytes, "png", settings).findings == []
        assert analyzer.analyze(jpeg_bytes, "jpeg", settings).findings == []

    def test_conservative_without_terminator_is_safe(self):
        data = np.random.RandomState(11).randint(0xA0, 0xFF, 4096).astype(np.uint8).tobytes()
        data = data[:1000] + b"PK\x03\x04" + data[1000:]
        result = ImageAnalyzer().analyze(data, None, DetectionSettings.for_mode("conservative"))

        assert result.metadata["terminator_offset"] == -1
        assert result.findings == []
        assert result.threat_level == ThreatLevel.SAFE

    def test_aggressive_deduplicates(self, scenario_bytes):
        result = ImageAnalyzer().analyze(scenario_bytes, "png", DetectionSettings.for_mode("aggressive"))
        keys = [f.key for f in result.findings]
        assert len(keys) == len(set(keys))


class TestStepFailures:
    """Failed or slow steps never discard completed work."""

    def test_decoder_timeout(self, scenario_bytes):
        analyzer = ImageAnalyzer(decoder=SlowDecoder(), pixel_timeout=0.05)
        result = analyzer.analyze(scenario_bytes, "png", DetectionSettings.for_mode("balanced"))

        assert any(e.startswith("decode: not completed") for e in result.errors)
        assert result.lsb_report is None
        assert result.statistical_report is None
        assert [f.signature for f in result.findings] == ["ZIP Archive"]
        assert result.threat_level == ThreatLevel.HIGH

    def test_decoder_failure(self, scenario_bytes):
        result = ImageAnalyzer(decoder=BrokenDecoder()).analyze(
            scenario_bytes, "png", DetectionSettings.for_mode("balanced")
        )
        assert result.errors == ["decode: not completed (unsupported image)"]
        assert len(result.findings) == 1

    def test_undecodable_bytes(self):
        result = ImageAnalyzer().analyze(b"\x00" * 64, None, DetectionSettings.for_mode("balanced"))
        assert any(e.startswith("decode: not completed") for e in result.errors)
        assert result.threat_level == ThreatLevel.SAFE

    def test_empty_input(self):
        result = ImageAnalyzer().analyze(b"")
        assert result.findings == []
        assert result.metadata["file_size"] == 0


class TestLSBDetection:
    """Statistical tests over decoded stego images."""

    def test_embedded_message_round_trip(self, noise_pixels):
        stego_png = encode_image(embed_lsb_text(noise_pixels, "meet at the usual place"))
        decoded = PillowDecoder().decode(stego_png)
        assert extract_lsb(decoded.pixels, "standard").text == "meet at the usual place"

    def test_flat_image_raises_statistical_flag(self):
        flat_png = encode_image(np.zeros((40, 40, 3), dtype=np.uint8))
        result = ImageAnalyzer().analyze(flat_png, "png", DetectionSettings.for_mode("conservative"))

        assert result.findings == []
        assert result.lsb_report.chi_square.suspicious
        assert result.threat_level == ThreatLevel.MEDIUM


class TestAnalysisSession:
    """One current result per session."""

    def test_submit_replaces_previous_result(self, scenario_bytes, png_bytes):
        session = AnalysisSession()
        settings = DetectionSettings.for_mode("conservative")

        first = session.submit(scenario_bytes, "png", settings)
        assert session.current is first

        second = session.submit(png_bytes, "png", settings)
        assert session.current is second
        assert second is not first
        assert second.findings == []

    def test_previous_result_is_discarded_before_analysis(self, scenario_bytes):
        observed = []

        class ObservingDecoder(PillowDecoder):
            def decode(self, data):
                observed.append(session.current)
                return super().decode(data)

        session = AnalysisSession(ImageAnalyzer(decoder=ObservingDecoder()))
        session.submit(scenario_bytes, "png")
        session.submit(scenario_bytes, "png")

        assert observed == [None, None]

    def test_reset(self, png_bytes):
        session = AnalysisSession()
        session.submit(png_bytes, "png")
        session.reset()
        assert session.current is None


class TestBatchScanPipeline:
    """Directory scans."""

    def test_run(self, image_dir, tmp_path):
        pipeline = BatchScanPipeline(
            image_dir,
            tmp_path / "out",
            settings=DetectionSettings.for_mode("conservative"),
            extract_payloads=True,
            timestamp="test",
        )
        summary = pipeline.run()
        run_dir = tmp_path / "out" / "run_test"

        assert summary["success"] is True
        assert summary["total_images"] == 2
        assert summary["analyzed_images"] == 2
        assert summary["images_with_findings"] == 1
        assert "suspicious" in summary["flagged_images"]
        assert sum(summary["threat_counts"].values()) == 2
        assert summary["payloads_saved"] == 1

        assert (run_dir / "scan_summary.json").exists()
        result = json.loads((run_dir / "results" / "suspicious_analysis.json").read_text())
        assert result["threat_level"] == "high"
        assert list((run_dir / "extracted" / "suspicious").glob("*.zip"))

    def test_missing_directory(self, tmp_path):
        pipeline = BatchScanPipeline(tmp_path / "missing", tmp_path / "out", timestamp="test")
        assert pipeline.run() == {"success": False, "error": "Input validation failed"}


@pytest.mark.usefixtures("clean_logger")
class TestCommandLine:
    """The python -m stegscan entry point."""

    def test_analyze(self, tmp_path, monkeypatch, capsys, scenario_bytes):
        monkeypatch.chdir(tmp_path)
        image = tmp_path / "scenario.png"
        image.write_bytes(scenario_bytes)

        assert main(["analyze", str(image), "--mode", "balanced"]) == 0
        output = json.loads(capsys.readouterr().out)
        assert output["threat_level"] == "high"
        assert output["findings"][0]["signature"] == "ZIP Archive"

    def test_analyze_missing_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert main(["analyze", str(tmp_path / "missing.png")]) == 1

    def test_extract_lsb(self, tmp_path, monkeypatch, capsys, noise_pixels):
        monkeypatch.chdir(tmp_path)
        image = tmp_path / "stego.png"
        image.write_bytes(encode_image(embed_lsb_text(noise_pixels, "hidden in plain sight")))

        assert main(["extract-lsb", str(image)]) == 0
        output = json.loads(capsys.readouterr().out)
        assert output["text"] == "hidden in plain sight"

    def test_carve(self, tmp_path, monkeypatch, capsys, scenario_bytes, zip_payload):
        monkeypatch.chdir(tmp_path)
        image = tmp_path / "scenario.png"
        image.write_bytes(scenario_bytes)

        assert main(["carve", str(image), "--mode", "balanced", "--output-dir", str(tmp_path / "carved")]) == 0
        output = json.loads(capsys.readouterr().out)
        assert len(output["payloads"]) == 1
        carved = list((tmp_path / "carved").glob("*.zip"))
        assert len(carved) == 1
        assert carved[0].read_bytes() == zip_payload

    def test_search(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        target = tmp_path / "data.bin"
        target.write_bytes(b"\x00\x01BEGIN secret END\x02")

        assert main(["search", str(target), "--start", "BEGIN", "--end", "END"]) == 0
        output = json.loads(capsys.readouterr().out)
        assert output["count"] == 1
        assert output["matches"][0]["text"] == "BEGIN secret END"

    def test_batch(self, tmp_path, monkeypatch, capsys, image_dir):
        monkeypatch.chdir(tmp_path)
        assert main(["batch", str(image_dir), "--mode", "balanced", "--output-dir", str(tmp_path / "out")]) == 0
        output = json.loads(capsys.readouterr().out)
        assert output["analyzed_images"] == 2

    def test_no_command(self, capsys):
        assert main([]) == 1
