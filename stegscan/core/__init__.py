"""
Core infrastructure for stegscan.
"""

from stegscan.core.log_manager import setup_logging
from stegscan.core.base_pipeline import BasePipeline

__all__ = ["setup_logging", "BasePipeline"]
