"""
Batch scanning of every image in a directory.
"""
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from stegscan import config
from stegscan.analysis.analyzer import ImageAnalyzer
from stegscan.core.base_pipeline import BasePipeline
from stegscan.detection.carving import carve_finding
from stegscan.models import AnalysisResult, DetectionSettings, ThreatLevel

logger = logging.getLogger("stegscan.analysis.pipeline")


class BatchScanPipeline(BasePipeline):
    """Pipeline that analyzes every supported image under a directory."""

    def __init__(
        self,
        input_path: Path,
        output_path: Optional[Path] = None,
        settings: Optional[DetectionSettings] = None,
        analyzer: Optional[ImageAnalyzer] = None,
        extract_payloads: bool = False,
        timestamp: Optional[str] = None
    ) -> None:
        """
        Initialize the batch pipeline.

        Args:
            input_path: Directory containing images to analyze
            output_path: Base directory for results. If None, uses config.RESULTS_DIR
            settings: Detection settings applied to every image
            analyzer: ImageAnalyzer to use (default: a new one)
            extract_payloads: Write carved payloads of every finding to disk
            timestamp: Optional timestamp for directory naming (uses current time if None)
        """
        super().__init__(input_path, output_path, timestamp)

        self.settings = settings or DetectionSettings.for_mode()
        self.analyzer = analyzer or ImageAnalyzer()
        self.extract_payloads = extract_payloads
        self.results: Dict[str, AnalysisResult] = {}
        self.logger = logger

    def validate_input(self) -> bool:
        """
        Validate input directory exists and contains images.

        Returns:
            Boolean indicating if input is valid
        """
        if not self.input_path.exists():
            self.logger.error(f"Input path does not exist: {self.input_path}")
            return False

        if not self.input_path.is_dir():
            self.logger.error(f"Input path is not a directory: {self.input_path}")
            return False

        if not self.find_images():
            self.logger.error(f"No image files found in {self.input_path}")
            return False

        return True

    def find_images(self) -> List[Path]:
        """
        Find all supported image files in the input directory.

        Returns:
            Sorted list of paths to image files
        """
        return self.find_files(config.SUPPORTED_FORMATS)

    def _image_id(self, image_path: Path) -> str:
        relative = image_path.relative_to(self.input_path)
        return "_".join(relative.with_suffix("").parts)

    def _save_payloads(self, image_id: str, data: bytes, result: AnalysisResult) -> int:
        saved = 0
        payload_dir = self.output_path / "extracted" / image_id
        for finding in result.findings:
            payload = carve_finding(data, finding)
            if payload is None:
                continue
            payload_dir.mkdir(parents=True, exist_ok=True)
            (payload_dir / payload.filename).write_bytes(payload.data)
            saved += 1
        return saved

    def run(self) -> Dict[str, Any]:
        """
        Run the analysis over every image.

        Returns:
            Dictionary with the run summary
        """
        if not self.validate_input():
            return {"success": False, "error": "Input validation failed"}

        start_time = time.time()
        image_files = self.find_images()
        self.logger.info(f"Found {len(image_files)} images to analyze")

        failed = []
        payloads_saved = 0
        for image_path in tqdm(image_files, desc="Scanning images", unit="image"):
            image_id = self._image_id(image_path)
            try:
                data = image_path.read_bytes()
                result = self.analyzer.analyze(data, image_path.suffix, self.settings, image_path.name)
                self.results[image_id] = result

                self.write_json(f"results/{image_id}_analysis.json", result.to_dict())

                if self.extract_payloads and result.findings:
                    payloads_saved += self._save_payloads(image_id, data, result)
            except Exception as e:
                self.logger.error(f"Error analyzing {image_path.name}: {e}")
                failed.append({"image": str(image_path), "error": str(e)})

        threat_counts = {level.value: 0 for level in ThreatLevel}
        for result in self.results.values():
            threat_counts[result.threat_level.value] += 1

        summary = {
            "total_images": len(image_files),
            "analyzed_images": len(self.results),
            "images_with_findings": sum(1 for r in self.results.values() if r.findings),
            "threat_counts": threat_counts,
            "flagged_images": sorted(
                image_id for image_id, r in self.results.items()
                if r.threat_level.rank >= ThreatLevel.MEDIUM.rank
            ),
            "failed_images": failed,
            "payloads_saved": payloads_saved,
            "mode": self.settings.mode.value,
            "timestamp": self.timestamp,
            "elapsed_time": time.time() - start_time,
            "run_dir": str(self.output_path),
        }

        self.write_json("scan_summary.json", summary)

        self.logger.info(
            f"Scan complete: {summary['analyzed_images']}/{summary['total_images']} images analyzed, "
            f"{len(summary['flagged_images'])} flagged"
        )
        return {"success": True, **summary}
