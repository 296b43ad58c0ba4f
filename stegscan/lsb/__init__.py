"""
LSB extraction and statistical steganalysis.
"""

from stegscan.lsb.extractor import (
    LSBMethod,
    LSBExtraction,
    extract_bits,
    extract_lsb,
    embed_lsb_text,
    pack_bits,
    recover_text
)
from stegscan.lsb.statistics import (
    chi_square_test,
    sample_pairs_test,
    run_lsb_tests,
    channel_statistics
)

__all__ = [
    'LSBMethod',
    'LSBExtraction',
    'extract_bits',
    'extract_lsb',
    'embed_lsb_text',
    'pack_bits',
    'recover_text',
    'chi_square_test',
    'sample_pairs_test',
    'run_lsb_tests',
    'channel_statistics'
]
