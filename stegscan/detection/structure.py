"""
Format-aware header validation for signature matches.

Raw magic-byte matches over pixel data are noisy. Each validator confirms the
header that should follow a signature and returns a score in [0, 1] that
degrades stage by stage instead of rejecting outright.
"""
import re
import struct

from stegscan.models import SignatureRecord

NEUTRAL_SCORE = 0.5

PE_OFFSET_FIELD = 60
VALID_MACHINE_TYPES = {
    0x014c,  # i386
    0x8664,  # AMD64
    0x01c0,  # ARM
    0x01c4,  # ARMNT
    0xaa64,  # ARM64
}

ZIP_LOCAL_HEADER = b'PK\x03\x04'
ZIP_LOCAL_HEADER_SIZE = 30
ZIP_MAX_VERSION_NEEDED = 63
ZIP_VALID_METHODS = {0, 8, 14}  # stored, deflate, LZMA
ZIP_MAX_FILENAME_LENGTH = 1000

PDF_VERSION = re.compile(rb'^\d\.\d$')


def validate_pe_executable(data: bytes, offset: int) -> float:
    """
    Validate a DOS/PE executable header at an offset.

    Args:
        data: Full source bytes
        offset: Offset of the MZ signature

    Returns:
        0.0 (no DOS header), 0.1 (PE offset out of range), 0.3 (no PE
        signature), 0.5 (unknown machine type) or 0.9 (valid PE)
    """
    remaining = len(data) - offset
    if offset < 0 or remaining < 64:
        return 0.0
    if data[offset:offset + 2] != b'MZ':
        return 0.0

    pe_offset = struct.unpack_from('<I', data, offset + PE_OFFSET_FIELD)[0]
    if pe_offset >= remaining - 4:
        return 0.1

    pe_start = offset + pe_offset
    if data[pe_start:pe_start + 4] != b'PE\x00\x00':
        return 0.3

    if pe_start + 6 > len(data):
        return 0.5
    machine_type = struct.unpack_from('<H', data, pe_start + 4)[0]
    if machine_type not in VALID_MACHINE_TYPES:
        return 0.5

    return 0.9


def validate_zip_structure(data: bytes, offset: int) -> float:
    """Validate a ZIP local file header at an offset."""
    if offset < 0 or len(data) - offset < ZIP_LOCAL_HEADER_SIZE:
        return 0.0
    if data[offset:offset + 4] != ZIP_LOCAL_HEADER:
        return 0.0

    version_needed, = struct.unpack_from('<H', data, offset + 4)
    if version_needed > ZIP_MAX_VERSION_NEEDED:
        return 0.2

    compression_method, = struct.unpack_from('<H', data, offset + 8)
    if compression_method not in ZIP_VALID_METHODS:
        return 0.3

    filename_length, = struct.unpack_from('<H', data, offset + 26)
    if filename_length == 0 or filename_length > ZIP_MAX_FILENAME_LENGTH:
        return 0.4

    return 0.8


def validate_pdf_structure(data: bytes, offset: int) -> float:
    """Validate a PDF header (``%PDF-d.d``) at an offset."""
    if offset < 0 or len(data) - offset < 8:
        return 0.0
    header = bytes(data[offset:offset + 8])
    if not header.startswith(b'%PDF-'):
        return 0.0
    if not PDF_VERSION.match(header[5:8]):
        return 0.3
    return 0.7


def validate_structure(data: bytes, offset: int, record: SignatureRecord) -> float:
    """
    Dispatch to the validator matching a signature record.

    Args:
        data: Full source bytes
        offset: Offset of the signature match
        record: The matched SignatureRecord

    Returns:
        Structural confidence in [0, 1]; NEUTRAL_SCORE for types without a validator
    """
    if record.pattern == b'MZ':
        return validate_pe_executable(data, offset)
    if record.pattern.startswith(b'PK'):
        return validate_zip_structure(data, offset)
    if record.pattern == b'%PDF':
        return validate_pdf_structure(data, offset)
    return NEUTRAL_SCORE
