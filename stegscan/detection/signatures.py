"""
Static index of known file signatures (magic numbers).
"""
from typing import Dict, Iterable, Iterator, List, Optional

from stegscan import config
from stegscan.models import RiskTier, SignatureRecord


EXECUTABLE_EXTENSIONS = frozenset({'exe', 'dll', 'scr', 'com', 'bat', 'cmd', 'elf', 'so'})
ARCHIVE_EXTENSIONS = frozenset({'zip', 'rar', '7z', 'tar', 'jar', 'apk'})
DOCUMENT_EXTENSIONS = frozenset({'pdf', 'doc', 'docx', 'xls', 'xlsx', 'ppt'})

# (pattern, name, extensions, minimum plausible size, description)
FILE_SIGNATURES = {
    "executables": [
        (b'MZ', 'DOS MZ Executable', ('exe', 'dll', 'scr', 'com'), 1024, 'Windows executable file'),
        (b'ZM', 'DOS ZM Executable', ('exe',), 1024, 'Rare DOS executable variant'),
        (b'\x7fELF', 'ELF Executable', ('elf', 'bin', 'o', 'so'), 1024, 'Linux/Unix executable'),
    ],
    "archives": [
        (b'PK\x03\x04', 'ZIP Archive', ('zip', 'jar', 'apk', 'docx', 'xlsx'), 22, 'ZIP compressed archive'),
        (b'PK\x05\x06', 'ZIP Archive (Empty)', ('zip',), 22, 'Empty ZIP archive'),
        (b'Rar!', 'RAR Archive v1.5+', ('rar',), 100, 'RAR compressed archive'),
        (b'7z\xbc\xaf\x27\x1c', '7-Zip Archive', ('7z',), 100, '7-Zip compressed archive'),
    ],
    "images": [
        (b'\xff\xd8\xff\xdb', 'JPEG Image', ('jpg', 'jpeg'), 100, 'JPEG image file'),
        (b'\x89PNG\r\n\x1a\n', 'PNG Image', ('png',), 100, 'PNG image file'),
        (b'GIF87a', 'GIF87a Image', ('gif',), 100, 'GIF image format'),
        (b'GIF89a', 'GIF89a Image', ('gif',), 100, 'GIF image format'),
        (b'BM', 'BMP Image', ('bmp',), 54, 'Windows bitmap image'),
    ],
    "documents": [
        (b'%PDF', 'PDF Document', ('pdf',), 100, 'PDF document'),
        (b'\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1', 'MS Office Document', ('doc', 'xls', 'ppt'), 512, 'Microsoft Office document'),
    ],
    "audio_video": [
        (b'RIFF', 'RIFF Container', ('wav', 'avi'), 12, 'RIFF audio/video container'),
        (b'OggS', 'Ogg Media', ('ogg', 'oga', 'ogv'), 27, 'Ogg media container'),
    ],
}

# Payload signatures probed inside data trailing an image terminator
APPENDED_PROBE_PATTERNS = (
    b'MZ', b'PK\x03\x04', b'Rar!', b'7z\xbc\xaf\x27\x1c',
    b'%PDF', b'\xff\xd8\xff', b'\x89PNG', b'GIF',
)


def risk_tier_for_extensions(extensions: Iterable[str]) -> RiskTier:
    """
    Derive the risk tier of a file type from its extension class.

    Args:
        extensions: Candidate extensions of the file type

    Returns:
        CRITICAL for executables, HIGH for archives, MEDIUM for documents, else LOW
    """
    extensions = set(extensions)
    if extensions & EXECUTABLE_EXTENSIONS:
        return RiskTier.CRITICAL
    if extensions & ARCHIVE_EXTENSIONS:
        return RiskTier.HIGH
    if extensions & DOCUMENT_EXTENSIONS:
        return RiskTier.MEDIUM
    return RiskTier.LOW


class ByteSignatureIndex:
    """Read-only lookup table of SignatureRecords."""

    def __init__(self, records: Iterable[SignatureRecord]) -> None:
        self._records: List[SignatureRecord] = list(records)
        self._by_pattern: Dict[bytes, SignatureRecord] = {r.pattern: r for r in self._records}
        self._by_name: Dict[str, SignatureRecord] = {r.name: r for r in self._records}

    @classmethod
    def from_table(cls, table: Dict[str, list]) -> "ByteSignatureIndex":
        records = []
        for category, entries in table.items():
            for pattern, name, extensions, min_size, description in entries:
                records.append(SignatureRecord(
                    pattern=pattern,
                    name=name,
                    extensions=frozenset(extensions),
                    risk_tier=risk_tier_for_extensions(extensions),
                    min_size=min_size,
                    category=category,
                    description=description,
                    primary_extension=extensions[0],
                ))
        return cls(records)

    @property
    def records(self) -> List[SignatureRecord]:
        return list(self._records)

    def __iter__(self) -> Iterator[SignatureRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def lookup(self, pattern: bytes) -> Optional[SignatureRecord]:
        return self._by_pattern.get(bytes(pattern))

    def by_name(self, name: str) -> Optional[SignatureRecord]:
        return self._by_name.get(name)

    def identify(self, data: bytes) -> Optional[SignatureRecord]:
        """
        Find the record whose pattern starts the given data.

        Longer patterns win, so a PNG header is not reported as something shorter.

        Args:
            data: Bytes to identify

        Returns:
            Matching SignatureRecord, or None
        """
        for record in sorted(self._records, key=lambda r: len(r.pattern), reverse=True):
            if data[:len(record.pattern)] == record.pattern:
                return record
        return None

    def contains_probe_signature(self, window: bytes) -> bool:
        """Check whether a known payload signature appears near the start of a window."""
        head = bytes(window[:config.SCAN_LIMITS["appended_probe_bytes"]])
        return any(pattern in head for pattern in APPENDED_PROBE_PATTERNS)


DEFAULT_INDEX = ByteSignatureIndex.from_table(FILE_SIGNATURES)
