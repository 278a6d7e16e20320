"""
GPX Parser

Extracts track points, track name and description from raw GPX text.

Lenient: a track point whose lat/lon is
missing, non-numeric, non-finite or zero is dropped and the rest of the
track is kept. Only input that is not well-formed XML fails.
"""

import logging
import math
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from gpx_pipeline.shared.geo import round_coordinate

from .errors import ParseError
from .schemas import ParsedTrack, TrackPoint

logger = logging.getLogger(__name__)


def _local_name(tag) -> str:
    """Strip the XML namespace from a tag ('{ns}trkpt' -> 'trkpt')."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _iter_named(element: ET.Element, name: str) -> Iterator[ET.Element]:
    for node in element.iter():
        if _local_name(node.tag) == name:
            yield node


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    """Text of the first direct child with the given local name."""
    for child in element:
        if _local_name(child.tag) == name:
            text = (child.text or "").strip()
            return text or None
    return None


def _parse_axis(value: Optional[str]) -> Optional[float]:
    """Parse a lat/lon attribute; None for missing, invalid or zero."""
    if value is None:
        return None
    try:
        number = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(number) or number == 0:
        return None
    return number


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 <time> value into an aware UTC datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class GPXParser:
    """Parser for GPX 1.0 / 1.1 documents."""

    def parse(self, raw: str | bytes) -> ParsedTrack:
        """
        Parse GPX content.

        Args:
            raw: GPX document as text or bytes (encoding taken from the
                XML declaration for bytes)

        Returns:
            ParsedTrack with points in document order

        Raises:
            ParseError: If the content is not well-formed XML
        """
        root = self._load(raw)

        points = self.extract_track_points(root)
        name = self.extract_track_name(root)
        description = self.extract_description(root)

        logger.debug(f"Parsed GPX: {len(points)} points, name={name!r}")
        return ParsedTrack(points=points, name=name, description=description)

    def _load(self, raw: str | bytes) -> ET.Element:
        if isinstance(raw, str):
            raw = raw.lstrip("\ufeff")  # strip BOM if present
        try:
            return ET.fromstring(raw)
        except ET.ParseError as e:
            logger.warning(f"Failed to parse GPX: {e}")
            raise ParseError(f"Invalid GPX file: {e}") from e

    def extract_track_points(self, root: ET.Element) -> List[TrackPoint]:
        """Collect every <trkpt> as a rounded (lon, lat) TrackPoint."""
        points: List[TrackPoint] = []
        skipped = 0

        for node in _iter_named(root, "trkpt"):
            lat = _parse_axis(node.get("lat"))
            lon = _parse_axis(node.get("lon"))
            if lat is None or lon is None:
                skipped += 1
                continue
            points.append(TrackPoint(
                lon=round_coordinate(lon),
                lat=round_coordinate(lat),
                time=_parse_time(_child_text(node, "time")),
            ))

        if skipped:
            logger.info(f"Skipped {skipped} track points with invalid coordinates")
        return points

    def extract_track_name(self, root: ET.Element) -> Optional[str]:
        """Name of the first track that has one."""
        for track in _iter_named(root, "trk"):
            name = _child_text(track, "name")
            if name:
                return name
        return None

    def extract_description(self, root: ET.Element) -> Optional[str]:
        """Track <desc>, falling back to the document metadata <desc>."""
        for track in _iter_named(root, "trk"):
            desc = _child_text(track, "desc")
            if desc:
                return desc
        for metadata in _iter_named(root, "metadata"):
            desc = _child_text(metadata, "desc")
            if desc:
                return desc
        return None
