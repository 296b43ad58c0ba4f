"""
Basic file metadata, including a shallow EXIF probe for JPEG files.
"""
from pathlib import Path
from typing import Any, Dict, Optional

from stegscan.detection.terminators import normalize_format, sniff_format

EXIF_MARKER = b'\xff\xe1'
EXIF_PROBE_BYTES = 1000


def find_exif_marker(data: bytes) -> Dict[str, Any]:
    """Look for the EXIF APP1 marker (FFE1) near the start of a JPEG."""
    offset = data.find(EXIF_MARKER, 0, EXIF_PROBE_BYTES)
    if offset == -1:
        return {"has_exif": False, "note": "No EXIF data found"}
    return {"has_exif": True, "exif_offset": offset, "note": "EXIF APP1 segment present"}


def extract_metadata(data: bytes, file_name: Optional[str] = None, format_hint: Optional[str] = None) -> Dict[str, Any]:
    """
    Collect basic metadata about an image file.

    Args:
        data: Full file bytes
        file_name: Optional original file name
        format_hint: Declared format (extension, MIME type or name)

    Returns:
        Dictionary with size, declared and detected format, and EXIF presence
    """
    declared = normalize_format(format_hint)
    if declared is None and file_name:
        declared = normalize_format(Path(file_name).suffix)
    detected = sniff_format(data)

    metadata = {
        "file_name": file_name,
        "file_size": len(data),
        "declared_format": declared,
        "detected_format": detected,
        "exif": None,
    }
    if declared and detected and declared != detected:
        metadata["format_mismatch"] = True

    if (detected or declared) == "jpeg":
        metadata["exif"] = find_exif_marker(data)

    return metadata
