"""
Global configuration settings for the stegscan detection engine.
"""
import os
from pathlib import Path


# Output paths, relative to the working directory unless overridden
RESULTS_DIR = Path(os.environ.get("STEGSCAN_RESULTS_DIR", "results"))
LOG_DIR = RESULTS_DIR / "logs"

# Byte caps applied to every scan, whatever the detection mode
SCAN_LIMITS = {
    "limited_region_bytes": 64 * 1024,
    "full_region_bytes": 256 * 1024,
    "appended_region_bytes": 256 * 1024,
    "entropy_window": 1024,
    "header_region_bytes": 1024,  # signatures here may be legitimate metadata
    "appended_probe_bytes": 100,
}

# Detection modes, keyed by DetectionMode value
DETECTION_MODES = {
    "conservative": {
        "confidence_threshold": 0.8,
        "structure_validation": True,
        "context_validation": True,
        "min_file_size": 1024,
        "min_appended_size": 1000,
        "description": "High precision, minimal false positives",
    },
    "balanced": {
        "confidence_threshold": 0.6,
        "structure_validation": True,
        "context_validation": True,
        "min_file_size": 512,
        "min_appended_size": 100,
        "description": "Good balance of accuracy and sensitivity",
    },
    "aggressive": {
        "confidence_threshold": 0.4,
        "structure_validation": False,
        "context_validation": False,
        "min_file_size": 100,
        "min_appended_size": 100,
        "description": "Maximum sensitivity, may have false positives",
    },
}

DEFAULT_MODE = "conservative"

# Pixel-based analysis
LSB_ANALYSIS = {
    "max_sample_pixels": 1_000_000,
    "pixel_step_timeout": 10.0,  # seconds
    "max_text_bytes": 64 * 1024,
    "text_cap": 1000,
    "min_text_length": 10,
    "sample_pairs_threshold": 1,
    "significance_level": 0.05,
}

SUPPORTED_FORMATS = [".png", ".jpg", ".jpeg", ".gif", ".bmp"]

# Logging settings
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
CONSOLE_LOG_FORMAT = "%(levelname)s - %(message)s"
LOG_LEVEL = os.environ.get("STEGSCAN_LOG_LEVEL", "INFO")
