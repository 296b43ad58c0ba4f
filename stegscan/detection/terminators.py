"""
Locate the logical end of an image stream.

Everything after the terminator is outside the declared format and is where
appended payloads live. All locators return -1 when no terminator is found.
"""
from typing import List, Optional

NOT_FOUND = -1

JPEG_EOI = b'\xff\xd9'
PNG_IEND_CHUNK = b'\x00\x00\x00\x00IEND\xae\x42\x60\x82'
GIF_TRAILER = 0x3B

_FORMAT_ALIASES = {
    "jpeg": "jpeg",
    "jpg": "jpeg",
    "jpe": "jpeg",
    "jfif": "jpeg",
    "pjpeg": "jpeg",
    "png": "png",
    "gif": "gif",
    "bmp": "bmp",
    "x-ms-bmp": "bmp",
    "x-bmp": "bmp",
}

_HOST_MAGIC = [
    (b'\xff\xd8\xff', "jpeg"),
    (b'\x89PNG\r\n\x1a\n', "png"),
    (b'GIF87a', "gif"),
    (b'GIF89a', "gif"),
    (b'BM', "bmp"),
]


def normalize_format(hint: Optional[str]) -> Optional[str]:
    """
    Normalize a format hint such as ".JPG", "image/png" or "gif".

    Args:
        hint: Declared format, extension or MIME type

    Returns:
        One of "jpeg", "png", "gif", "bmp", or None if unrecognized
    """
    if not hint:
        return None
    value = hint.strip().lower()
    if "/" in value:
        value = value.rsplit("/", 1)[1]
    value = value.lstrip(".")
    return _FORMAT_ALIASES.get(value)


def sniff_format(data: bytes) -> Optional[str]:
    """Identify the host image format from its leading magic bytes."""
    for magic, fmt in _HOST_MAGIC:
        if data[:len(magic)] == magic:
            return fmt
    return None


def resolve_format(data: bytes, hint: Optional[str]) -> Optional[str]:
    return normalize_format(hint) or sniff_format(data)


def find_jpeg_terminator(data: bytes) -> int:
    # Embedded thumbnails repeat the EOI marker earlier in the stream,
    # so the last one is the canonical end.
    pos = data.rfind(JPEG_EOI)
    return pos + len(JPEG_EOI) if pos != -1 else NOT_FOUND


def find_png_terminator(data: bytes) -> int:
    pos = data.find(PNG_IEND_CHUNK)
    return pos + len(PNG_IEND_CHUNK) if pos != -1 else NOT_FOUND


def find_gif_terminator(data: bytes) -> int:
    pos = data.rfind(bytes([GIF_TRAILER]))
    return pos + 1 if pos != -1 else NOT_FOUND


_LOCATORS = {
    "jpeg": find_jpeg_terminator,
    "png": find_png_terminator,
    "gif": find_gif_terminator,
}


def find_terminator(data: bytes, format_hint: Optional[str] = None) -> int:
    """
    Find the offset just past the format's canonical end marker.

    Args:
        data: Full file contents
        format_hint: Declared format; sniffed from the data when missing

    Returns:
        Offset just past the terminator, or -1 if not found or unsupported (BMP)
    """
    if not data:
        return NOT_FOUND
    locator = _LOCATORS.get(resolve_format(data, format_hint))
    if locator is None:
        return NOT_FOUND
    return locator(data)


def find_terminators(data: bytes, format_hint: Optional[str] = None) -> List[int]:
    """Terminator offsets usable as context evidence by the confidence scorer."""
    offset = find_terminator(data, format_hint)
    return [offset] if offset != NOT_FOUND else []
