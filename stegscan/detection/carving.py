"""
Extraction of appended and embedded payloads.
"""
import logging
import struct
from dataclasses import dataclass
from typing import List, Optional

from stegscan.detection.signatures import DEFAULT_INDEX, ByteSignatureIndex
from stegscan.detection.terminators import JPEG_EOI, NOT_FOUND, PNG_IEND_CHUNK
from stegscan.models import Finding

logger = logging.getLogger("stegscan.detection.carving")

MIB = 1024 * 1024

# Upper bound on carved size per file class
SIZE_CAPS = {
    "executables": 1 * MIB,
    "archives": 10 * MIB,
    "documents": 5 * MIB,
    "images": 2 * MIB,
}
DEFAULT_SIZE_CAP = 1 * MIB

ZIP_EOCD = b'PK\x05\x06'
ZIP_EOCD_SIZE = 22

TEXT_SAMPLE_BYTES = 1000
TEXT_RATIO = 0.7


@dataclass
class CarvedPayload:
    offset: int
    data: bytes
    format: str
    extension: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def filename(self) -> str:
        return f"payload_{self.offset:08x}.{self.extension}"


@dataclass
class PatternMatch:
    offset: int
    content: bytes


def is_likely_text(data: bytes) -> bool:
    """Check whether most of the leading bytes are printable ASCII or whitespace."""
    sample = data[:TEXT_SAMPLE_BYTES]
    if not sample:
        return False
    text_chars = sum(1 for b in sample if 32 <= b <= 126 or b in (9, 10, 13))
    return text_chars / len(sample) > TEXT_RATIO


def identify_payload(data: bytes, index: ByteSignatureIndex = DEFAULT_INDEX):
    """
    Try to identify the type of a payload.

    Args:
        data: Payload bytes

    Returns:
        Tuple of (format name, file extension)
    """
    record = index.identify(data)
    if record is not None:
        return record.name, record.primary_extension
    if is_likely_text(data):
        return "Text Data", "txt"
    return "Unknown Binary", "bin"


def _structured_length(data: bytes, start: int, name: str) -> Optional[int]:
    """
    Length of an embedded file derived from its own structure, when known.

    Returns:
        Byte length from ``start``, or None to fall back to the size cap
    """
    if name.startswith("ZIP"):
        eocd_pos = data.rfind(ZIP_EOCD, start)
        if eocd_pos != -1 and eocd_pos + ZIP_EOCD_SIZE <= len(data):
            comment_length, = struct.unpack_from('<H', data, eocd_pos + 20)
            return eocd_pos + ZIP_EOCD_SIZE + comment_length - start
    elif name == "PNG Image":
        iend_pos = data.find(PNG_IEND_CHUNK, start)
        if iend_pos != -1:
            return iend_pos + len(PNG_IEND_CHUNK) - start
    elif name == "JPEG Image":
        eoi_pos = data.find(JPEG_EOI, start + 2)
        if eoi_pos != -1:
            return eoi_pos + len(JPEG_EOI) - start
    return None


def carve_at(data: bytes, offset: int, index: ByteSignatureIndex = DEFAULT_INDEX) -> Optional[CarvedPayload]:
    """
    Carve the file starting at an offset.

    Args:
        data: Full source bytes
        offset: Start of the embedded file

    Returns:
        CarvedPayload, or None for an out-of-range offset
    """
    if offset < 0 or offset >= len(data):
        return None

    record = index.identify(data[offset:offset + 16])
    cap = SIZE_CAPS.get(record.category, DEFAULT_SIZE_CAP) if record else DEFAULT_SIZE_CAP
    length = _structured_length(data, offset, record.name) if record else None
    if length is None or length <= 0:
        length = cap
    length = min(length, cap, len(data) - offset)

    payload = data[offset:offset + length]
    fmt, extension = identify_payload(payload, index)
    logger.debug(f"Carved {len(payload)} bytes at {offset} as {fmt}")
    return CarvedPayload(offset=offset, data=payload, format=fmt, extension=extension)


def carve_finding(data: bytes, finding: Finding, index: ByteSignatureIndex = DEFAULT_INDEX) -> Optional[CarvedPayload]:
    return carve_at(data, finding.offset, index)


def extract_appended(data: bytes, terminator: int, index: ByteSignatureIndex = DEFAULT_INDEX) -> Optional[CarvedPayload]:
    """Everything after the image terminator, identified but not truncated."""
    if terminator == NOT_FOUND or terminator >= len(data):
        return None
    payload = data[terminator:]
    fmt, extension = identify_payload(payload, index)
    return CarvedPayload(offset=terminator, data=payload, format=fmt, extension=extension)


def search_pattern(
    data: bytes,
    start: str,
    end: Optional[str] = None,
    as_hex: bool = False,
    max_matches: int = 50,
    span: int = 1000
) -> List[PatternMatch]:
    """
    Extract content delimited by custom start/end patterns.

    Args:
        data: Full source bytes
        start: Start pattern, as text or hex digits
        end: Optional end pattern; without it, ``span`` bytes are taken
        as_hex: Interpret the patterns as hexadecimal
        max_matches: Maximum number of matches to return
        span: Bytes taken when no end pattern follows a match

    Returns:
        List of PatternMatch, in file order

    Raises:
        ValueError: If a hex pattern is not valid hexadecimal
    """
    if as_hex:
        start_bytes = bytes.fromhex("".join(start.split()))
        end_bytes = bytes.fromhex("".join(end.split())) if end else None
    else:
        start_bytes = start.encode("utf-8")
        end_bytes = end.encode("utf-8") if end else None

    if not start_bytes:
        return []

    matches = []
    index = data.find(start_bytes)
    while index != -1 and len(matches) < max_matches:
        stop = -1
        if end_bytes:
            stop = data.find(end_bytes, index + len(start_bytes))
        if stop != -1:
            content = data[index:stop + len(end_bytes)]
        else:
            content = data[index:index + span]
        matches.append(PatternMatch(offset=index, content=content))
        index = data.find(start_bytes, index + 1)

    return matches
