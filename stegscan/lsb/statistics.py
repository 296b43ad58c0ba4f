"""
Statistical LSB steganalysis: Chi-Square and Sample Pairs tests plus
per-channel histograms and entropy.

All tests run over a bounded sample: the first
config.LSB_ANALYSIS["max_sample_pixels"] pixels of the image.
"""
import logging
import math

import numpy as np

from stegscan import config
from stegscan.lsb.extractor import as_pixel_rows
from stegscan.models import ChiSquareResult, LSBReport, SamplePairsResult, StatisticalReport

logger = logging.getLogger("stegscan.lsb.statistics")

CHI_SQUARE_CELLS = 6
CHI_SQUARE_DOF = 5
PAIR_RATIO_RANGE = (0.4, 0.6)
CHANNELS = ("red", "green", "blue")


def _sample(pixels) -> np.ndarray:
    rows = as_pixel_rows(pixels)
    return rows[:config.LSB_ANALYSIS["max_sample_pixels"], :3]


def chi_square_p_value(statistic: float, dof: int = CHI_SQUARE_DOF) -> float:
    """
    Approximate upper-tail p-value of a chi-square statistic.

    Uses the logistic approximation 1 - 1 / (1 + exp(-sqrt(2x / k))). It is
    coarse (p(0) is 0.5, not 1.0) but keeps results comparable with earlier
    reports produced by the same formula.
    """
    return 1.0 - 1.0 / (1.0 + math.exp(-math.sqrt(2.0 * statistic / dof)))


def chi_square_test(pixels) -> ChiSquareResult:
    """
    Chi-Square test on the LSB distribution of the R, G and B channels.

    Counts zero and one LSBs per channel (six cells) against an expected
    n/2 each. Natural images are close to balanced; a sequential LSB
    payload pulls the counts apart.

    Args:
        pixels: Pixel buffer with at least 3 channels

    Returns:
        ChiSquareResult; suspicious when p < significance level
    """
    sample = _sample(pixels)
    n = int(sample.shape[0])
    if n == 0:
        return ChiSquareResult(statistic=0.0, p_value=1.0, suspicious=False, sample_size=0,
                               interpretation="No pixels to analyze")

    lsb = sample & 1
    ones = lsb.sum(axis=0).astype(np.float64)
    observed = np.column_stack([n - ones, ones]).reshape(-1)
    expected = n / 2.0
    statistic = float(np.sum((observed - expected) ** 2) / expected)

    p_value = chi_square_p_value(statistic)
    suspicious = p_value < config.LSB_ANALYSIS["significance_level"]

    return ChiSquareResult(
        statistic=statistic,
        p_value=p_value,
        suspicious=suspicious,
        sample_size=n,
        interpretation=(
            "LSB modifications detected (p < 0.05)" if suspicious
            else "No significant LSB modifications detected"
        ),
    )


def sample_pairs_test(pixels, threshold: int = config.LSB_ANALYSIS["sample_pairs_threshold"]) -> SamplePairsResult:
    """
    Sample Pairs analysis over adjacent pixels.

    For every channel, adjacent pixels whose values differ by at most
    ``threshold`` form a close pair; the ratio of close pairs sharing the
    same LSB is expected near 0.5 in unmodified images.

    Args:
        pixels: Pixel buffer with at least 3 channels
        threshold: Maximum value difference of a close pair

    Returns:
        SamplePairsResult; suspicious when the ratio falls outside [0.4, 0.6].
        With no close pairs the ratio is 0 and the result is not suspicious.
    """
    sample = _sample(pixels).astype(np.int16)
    if sample.shape[0] < 2:
        return SamplePairsResult(ratio=0.0, pairs=0, regular_pairs=0, suspicious=False,
                                 interpretation="Not enough pixels for pair analysis")

    first, second = sample[:-1], sample[1:]
    close = np.abs(first - second) <= threshold
    same_lsb = (first & 1) == (second & 1)

    pairs = int(np.count_nonzero(close))
    regular_pairs = int(np.count_nonzero(close & same_lsb))
    if pairs == 0:
        return SamplePairsResult(ratio=0.0, pairs=0, regular_pairs=0, suspicious=False,
                                 interpretation="No close pixel pairs found")

    ratio = regular_pairs / pairs
    low, high = PAIR_RATIO_RANGE
    suspicious = ratio < low or ratio > high

    return SamplePairsResult(
        ratio=ratio,
        pairs=pairs,
        regular_pairs=regular_pairs,
        suspicious=suspicious,
        interpretation=(
            "Unusual LSB pair distribution detected" if suspicious
            else "LSB pair distribution appears normal"
        ),
    )


def lsb_assessment(chi_square: ChiSquareResult, sample_pairs: SamplePairsResult) -> str:
    if chi_square.suspicious and sample_pairs.suspicious:
        return "High probability of LSB steganography (both tests positive)"
    if chi_square.suspicious or sample_pairs.suspicious:
        return "Moderate probability of LSB steganography (one test positive)"
    return "Low probability of LSB steganography (both tests negative)"


def run_lsb_tests(pixels) -> LSBReport:
    """Run both LSB tests and summarize them."""
    chi_square = chi_square_test(pixels)
    sample_pairs = sample_pairs_test(pixels)
    assessment = lsb_assessment(chi_square, sample_pairs)
    logger.debug(
        f"Chi-square {chi_square.statistic:.4f} (p={chi_square.p_value:.6f}), "
        f"sample pairs ratio {sample_pairs.ratio:.4f}"
    )
    return LSBReport(chi_square=chi_square, sample_pairs=sample_pairs, assessment=assessment)


def channel_statistics(pixels, width: int, height: int) -> StatisticalReport:
    """
    Histograms and Shannon entropy (bits) of the R, G and B channels.

    Args:
        pixels: Pixel buffer with at least 3 channels
        width: Image width
        height: Image height

    Returns:
        StatisticalReport
    """
    rows = as_pixel_rows(pixels)
    histograms = {}
    entropy = {}
    for i, name in enumerate(CHANNELS):
        histogram = np.bincount(rows[:, i], minlength=256)
        histograms[name] = histogram.tolist()
        total = histogram.sum()
        if total == 0:
            entropy[name] = 0.0
            continue
        probabilities = histogram[histogram > 0] / total
        entropy[name] = float(abs(-np.sum(probabilities * np.log2(probabilities))))

    return StatisticalReport(
        histograms=histograms,
        entropy=entropy,
        average_entropy=sum(entropy.values()) / len(CHANNELS),
        total_pixels=int(rows.shape[0]),
        width=width,
        height=height,
    )
