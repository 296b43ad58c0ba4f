"""
Orchestration of one image analysis: signature scan, pixel decoding, LSB
tests, channel statistics and threat aggregation.
"""
import concurrent.futures
import logging
import threading
from typing import Any, Callable, List, Optional

from stegscan import config
from stegscan.analysis.decoder import DecodedImage, ImageDecoder, PillowDecoder
from stegscan.analysis.metadata import extract_metadata
from stegscan.analysis.threat import aggregate_threat, risk_factors
from stegscan.detection.scanner import SignatureScanner
from stegscan.lsb.statistics import channel_statistics, run_lsb_tests
from stegscan.models import AnalysisResult, DetectionSettings

logger = logging.getLogger("stegscan.analysis.analyzer")


class ImageAnalyzer:
    """
    Runs every analysis step over one image and assembles an AnalysisResult.

    Steps fail independently: a failed step adds a "<step>: not completed"
    entry to the result's errors and the remaining steps still run. Pixel
    steps run on a worker thread with a wall-clock timeout; a step that times
    out contributes nothing to the result.
    """

    def __init__(
        self,
        decoder: Optional[ImageDecoder] = None,
        scanner: Optional[SignatureScanner] = None,
        pixel_timeout: Optional[float] = None
    ) -> None:
        """
        Initialize the analyzer.

        Args:
            decoder: Image decoder (default: PillowDecoder)
            scanner: Signature scanner (default: SignatureScanner over the built-in index)
            pixel_timeout: Seconds allowed per pixel step (default from config)
        """
        self.decoder = decoder or PillowDecoder()
        self.scanner = scanner or SignatureScanner()
        self.pixel_timeout = (
            pixel_timeout if pixel_timeout is not None
            else config.LSB_ANALYSIS["pixel_step_timeout"]
        )
        self.logger = logger

    def analyze(
        self,
        data: bytes,
        format_hint: Optional[str] = None,
        settings: Optional[DetectionSettings] = None,
        file_name: Optional[str] = None
    ) -> AnalysisResult:
        """
        Analyze one image file.

        Args:
            data: Full file bytes
            format_hint: Declared format (extension, MIME type or name)
            settings: Detection settings (default: the default mode)
            file_name: Optional original file name, reported in metadata

        Returns:
            A complete AnalysisResult; step failures are listed in its errors
        """
        settings = settings or DetectionSettings.for_mode()
        data = bytes(data or b"")
        result = AnalysisResult()

        self.logger.info(
            f"Analyzing {file_name or 'image'} ({len(data)} bytes, {settings.mode.value} mode)"
        )

        try:
            result.metadata = extract_metadata(data, file_name, format_hint)
        except Exception as e:
            self.logger.error(f"Error extracting metadata: {e}")
            result.errors.append(f"metadata: not completed ({e})")

        try:
            outcome = self.scanner.scan(data, format_hint, settings)
            result.findings = outcome.findings
            result.metadata["terminator_offset"] = outcome.terminator
            result.metadata["scanned_regions"] = [
                {"kind": r.kind.value, "start": r.start, "end": r.end} for r in outcome.regions
            ]
        except Exception as e:
            self.logger.error(f"Error scanning signatures: {e}")
            result.errors.append(f"signature_scan: not completed ({e})")

        decoded = self._run_pixel_step("decode", result.errors, self.decoder.decode, data)
        if isinstance(decoded, DecodedImage):
            result.lsb_report = self._run_pixel_step(
                "lsb_analysis", result.errors, run_lsb_tests, decoded.pixels
            )
            result.statistical_report = self._run_pixel_step(
                "statistical_analysis", result.errors, channel_statistics,
                decoded.pixels, decoded.width, decoded.height
            )

        chi_square_flag = bool(result.lsb_report and result.lsb_report.chi_square.suspicious)
        sample_pairs_flag = bool(result.lsb_report and result.lsb_report.sample_pairs.suspicious)
        result.threat_level = aggregate_threat(result.findings, chi_square_flag, sample_pairs_flag)
        result.risk_factors = risk_factors(result.findings, result.lsb_report)

        self.logger.info(
            f"Threat level {result.threat_level.value}: {len(result.findings)} findings, "
            f"{len(result.errors)} incomplete steps"
        )
        return result

    def _run_pixel_step(self, step: str, errors: List[str], func: Callable[..., Any], *args: Any) -> Any:
        """
        Run one pixel step on a worker thread, bounded by the step timeout.

        Args:
            step: Step name used in error entries
            errors: Error list of the result being built
            func: Step function
            *args: Arguments for the step function

        Returns:
            The step's return value, or None if it failed or timed out
        """
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(func, *args)
            return future.result(timeout=self.pixel_timeout)
        except concurrent.futures.TimeoutError:
            self.logger.error(f"{step} timed out after {self.pixel_timeout}s")
            errors.append(f"{step}: not completed (timed out after {self.pixel_timeout}s)")
        except Exception as e:
            self.logger.error(f"Error in {step}: {e}")
            errors.append(f"{step}: not completed ({e})")
        finally:
            # A timed-out worker is abandoned, not awaited
            executor.shutdown(wait=False)
        return None


class AnalysisSession:
    """
    Holds the result of the most recent analysis.

    Submitting a new file discards the previous result before the new
    analysis starts, so a stale result is never visible alongside a new one.
    Submissions are serialized.
    """

    def __init__(self, analyzer: Optional[ImageAnalyzer] = None) -> None:
        self.analyzer = analyzer or ImageAnalyzer()
        self._lock = threading.Lock()
        self._current: Optional[AnalysisResult] = None

    @property
    def current(self) -> Optional[AnalysisResult]:
        return self._current

    def submit(
        self,
        data: bytes,
        format_hint: Optional[str] = None,
        settings: Optional[DetectionSettings] = None,
        file_name: Optional[str] = None
    ) -> AnalysisResult:
        with self._lock:
            self._current = None
            result = self.analyzer.analyze(data, format_hint, settings, file_name)
            self._current = result
            return result

    def reset(self) -> None:
        with self._lock:
            self._current = None
