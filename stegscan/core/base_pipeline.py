"""
Base class for scan runs that read inputs from disk and write a run directory.
"""
import json
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from stegscan import config
from stegscan.models import make_json_serializable


class BasePipeline(ABC):
    """
    Abstract base class for file-system driven scan runs.

    Every run writes into its own ``run_{timestamp}`` directory under the
    base output directory, so repeated runs never overwrite each other.
    """

    def __init__(
        self,
        input_path: Path,
        output_path: Optional[Path] = None,
        timestamp: Optional[str] = None
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            input_path: Path to input data
            output_path: Base directory for run directories. If None, uses config.RESULTS_DIR
            timestamp: Optional timestamp for directory naming (uses current time if None)
        """
        self.input_path = Path(input_path)
        self.timestamp = timestamp or time.strftime("%Y%m%d_%H%M%S")

        base_output_dir = Path(output_path) if output_path else config.RESULTS_DIR
        self.output_path = base_output_dir / f"run_{self.timestamp}"
        self.output_path.mkdir(parents=True, exist_ok=True)

    def find_files(self, suffixes: Iterable[str]) -> List[Path]:
        """
        Recursively find input files with one of the given suffixes.

        Args:
            suffixes: Lower-case suffixes including the dot, e.g. ".png"

        Returns:
            Sorted list of matching file paths
        """
        suffixes = set(suffixes)
        return sorted(
            f for f in self.input_path.glob("**/*")
            if f.is_file() and f.suffix.lower() in suffixes
        )

    def write_json(self, relative_path: str, data: Any) -> Path:
        """Write JSON-serializable data under the run directory."""
        target = self.output_path / relative_path
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w") as f:
            json.dump(make_json_serializable(data), f, indent=2)
        return target

    @abstractmethod
    def run(self) -> Dict[str, Any]:
        """
        Run the pipeline's main logic.

        Returns:
            Dict containing results and metadata
        """
        pass

    @abstractmethod
    def validate_input(self) -> bool:
        """
        Validate input data before processing.

        Returns:
            bool indicating if input is valid
        """
        pass
