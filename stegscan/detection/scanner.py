"""
Signature scanning over mode-dependent regions of a file.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from stegscan import config
from stegscan.detection.appended import validate_appended
from stegscan.detection.confidence import ConfidenceScorer
from stegscan.detection.signatures import DEFAULT_INDEX, ByteSignatureIndex
from stegscan.detection.terminators import NOT_FOUND, find_terminator
from stegscan.models import (
    DetectionMode,
    DetectionSettings,
    Finding,
    RegionKind,
    ScanRegion,
    SignatureRecord,
)

logger = logging.getLogger("stegscan.detection.scanner")

APPENDED_DATA_NAME = "Appended Data"


@dataclass(frozen=True)
class Candidate:
    """A raw pattern match, before scoring."""
    record: SignatureRecord
    offset: int
    region: RegionKind

    @property
    def key(self) -> Tuple[str, int]:
        return (self.record.name, self.offset)


@dataclass
class ScanOutcome:
    findings: List[Finding] = field(default_factory=list)
    regions: List[ScanRegion] = field(default_factory=list)
    terminator: int = NOT_FOUND
    candidate_count: int = 0


def select_regions(data_length: int, terminator: int, mode: DetectionMode) -> List[ScanRegion]:
    """
    Choose the byte regions to search for a mode.

    conservative scans only appended data; balanced falls back to a bounded
    prefix when nothing is appended; aggressive always scans the capped
    whole file plus any appended region.

    Args:
        data_length: Size of the source in bytes
        terminator: Offset just past the image terminator, or -1
        mode: Active detection mode

    Returns:
        Ordered list of ScanRegions
    """
    regions = []
    appended = None
    if terminator != NOT_FOUND and 0 <= terminator < data_length:
        appended = ScanRegion(
            start=terminator,
            end=min(data_length, terminator + config.SCAN_LIMITS["appended_region_bytes"]),
            kind=RegionKind.APPENDED,
        )

    if mode == DetectionMode.AGGRESSIVE:
        # Appended first, so overlapping matches keep the more specific label
        if appended:
            regions.append(appended)
        regions.append(ScanRegion(
            start=0,
            end=min(data_length, config.SCAN_LIMITS["full_region_bytes"]),
            kind=RegionKind.FULL,
        ))
    elif appended:
        regions.append(appended)
    elif mode == DetectionMode.BALANCED:
        regions.append(ScanRegion(
            start=0,
            end=min(data_length, config.SCAN_LIMITS["limited_region_bytes"]),
            kind=RegionKind.LIMITED,
        ))

    return [r for r in regions if r.length > 0]


class SignatureScanner:
    """Finds, scores and deduplicates embedded file signatures."""

    def __init__(
        self,
        index: ByteSignatureIndex = DEFAULT_INDEX,
        scorer: Optional[ConfidenceScorer] = None
    ) -> None:
        self.index = index
        self.scorer = scorer or ConfidenceScorer()

    def locate_candidates(self, data: bytes, regions: List[ScanRegion]) -> List[Candidate]:
        """
        Search every signature pattern inside every region.

        A match must lie fully inside its region. Matches at offset 0 are the
        host file's own header and are skipped. Candidates are deduplicated
        by (signature, offset), keeping the first region that found them.

        Args:
            data: Full source bytes
            regions: Regions to search

        Returns:
            Candidates ordered by offset, then signature name
        """
        seen: Dict[Tuple[str, int], Candidate] = {}
        for region in regions:
            for record in self.index:
                pos = data.find(record.pattern, region.start, region.end)
                while pos != -1:
                    if pos > 0:
                        candidate = Candidate(record=record, offset=pos, region=region.kind)
                        seen.setdefault(candidate.key, candidate)
                    pos = data.find(record.pattern, pos + 1, region.end)

        return sorted(seen.values(), key=lambda c: (c.offset, c.record.name))

    def scan(self, data: bytes, format_hint: Optional[str], settings: DetectionSettings) -> ScanOutcome:
        """
        Scan a file for embedded signatures and appended data.

        Args:
            data: Full source bytes
            format_hint: Declared image format (extension, MIME type or name)
            settings: Detection settings for this run

        Returns:
            ScanOutcome with deduplicated findings sorted by confidence
        """
        data = bytes(data)
        terminator = find_terminator(data, format_hint)
        terminators = [terminator] if terminator != NOT_FOUND else []
        regions = select_regions(len(data), terminator, settings.mode)
        candidates = self.locate_candidates(data, regions)

        logger.debug(
            f"Scanning {len(data)} bytes in {settings.mode.value} mode: "
            f"terminator={terminator}, regions={[r.kind.value for r in regions]}, "
            f"candidates={len(candidates)}"
        )

        findings: Dict[Tuple[str, int], Finding] = {}
        for candidate in candidates:
            record = candidate.record
            if candidate.offset + record.min_size > len(data):
                continue
            result = self.scorer.score(data, candidate.offset, record, terminators, settings)
            if not result.accepted:
                continue
            finding = Finding(
                signature=record.name,
                offset=candidate.offset,
                risk_tier=result.risk_tier,
                confidence=result.confidence,
                details=result.details,
                extensions=record.extensions,
                pattern_hex=record.pattern_hex,
                region=candidate.region,
            )
            findings.setdefault(finding.key, finding)

        # Only an accepted signature explains the start of appended data
        explained = {f.offset for f in findings.values()}
        for region in regions:
            if region.kind != RegionKind.APPENDED or region.start in explained:
                continue
            finding = self._score_appended(data, region, settings)
            if finding is not None:
                findings.setdefault(finding.key, finding)

        ordered = sorted(findings.values(), key=lambda f: (-f.confidence, f.offset, f.signature))
        for finding in ordered:
            logger.info(
                f"Detected {finding.signature} at 0x{finding.offset:08x} "
                f"(confidence {finding.confidence:.2f}, {finding.risk_tier.value})"
            )

        return ScanOutcome(
            findings=ordered,
            regions=regions,
            terminator=terminator,
            candidate_count=len(candidates),
        )

    def _score_appended(self, data: bytes, region: ScanRegion, settings: DetectionSettings) -> Optional[Finding]:
        """
        Score trailing bytes that no signature explains.

        Args:
            data: Full source bytes
            region: The appended ScanRegion
            settings: Detection settings for this run

        Returns:
            An "Appended Data" Finding, or None if it does not qualify
        """
        remaining = len(data) - region.start
        if remaining < settings.min_appended_size:
            return None

        validation = validate_appended(data[region.start:region.end], self.index)
        if validation.confidence < settings.confidence_threshold:
            return None

        details = [f"{remaining} bytes found after image terminator"] + validation.details
        return Finding(
            signature=APPENDED_DATA_NAME,
            offset=region.start,
            risk_tier=validation.risk_tier,
            confidence=validation.confidence,
            details=details,
            extensions=frozenset({"unknown"}),
            pattern_hex="",
            region=RegionKind.APPENDED,
        )
