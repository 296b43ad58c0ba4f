"""
Image analysis: orchestration, decoding, threat aggregation and batch runs.
"""

from stegscan.analysis.analyzer import ImageAnalyzer, AnalysisSession
from stegscan.analysis.decoder import DecodedImage, ImageDecoder, PillowDecoder
from stegscan.analysis.metadata import extract_metadata
from stegscan.analysis.pipeline import BatchScanPipeline
from stegscan.analysis.threat import aggregate_threat, risk_factors

__all__ = [
    'ImageAnalyzer',
    'AnalysisSession',
    'DecodedImage',
    'ImageDecoder',
    'PillowDecoder',
    'extract_metadata',
    'BatchScanPipeline',
    'aggregate_threat',
    'risk_factors'
]
