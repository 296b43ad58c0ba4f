"""
Shannon entropy over byte windows.
"""
import numpy as np

from stegscan import config


def byte_entropy_bits(window) -> float:
    """
    Shannon entropy of a byte window in bits per byte (0 to 8).

    Args:
        window: bytes, bytearray, memoryview or uint8 array

    Returns:
        Entropy in bits; 0.0 for an empty window
    """
    values = np.frombuffer(bytes(window), dtype=np.uint8)
    if values.size == 0:
        return 0.0

    histogram = np.bincount(values, minlength=256)
    probabilities = histogram[histogram > 0] / values.size
    entropy = -np.sum(probabilities * np.log2(probabilities))
    # -0.0 for single-symbol windows
    return float(abs(entropy))


def shannon_entropy(window) -> float:
    """
    Normalized Shannon entropy of a byte window.

    Args:
        window: bytes-like data

    Returns:
        Entropy scaled to [0, 1] (bits / 8)
    """
    return min(1.0, byte_entropy_bits(window) / 8.0)


def local_entropy(data: bytes, offset: int, length: int = config.SCAN_LIMITS["entropy_window"]) -> float:
    """Normalized entropy of up to ``length`` bytes starting at ``offset``."""
    if offset < 0 or offset >= len(data) or length <= 0:
        return 0.0
    return shannon_entropy(data[offset:offset + length])
