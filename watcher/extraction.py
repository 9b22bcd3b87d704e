"""
Region extraction between two textual markers.

Only the text between the start marker and the end marker is fingerprinted,
so volatile page furniture (timestamps, banners, ads) outside of it does not
register as a change.

Boundary policy:
- start marker missing: the region starts at the beginning of the document
- end marker missing: the region runs to the end of the document
- end marker found before the start marker: the region is empty
"""

from watcher.models import DEFAULT_END_MARKER, DEFAULT_START_MARKER
from utilities.logger import get_logger

logger = get_logger(__name__)


def resolve_boundary(content: str, marker: str, *, fallback: int) -> int:
    """
    Map the first occurrence of a marker to a slice index.

    Args:
        content: Document text
        marker: Text to look for
        fallback: Index to use when the marker does not occur

    Returns:
        Index of the first match, or ``fallback``
    """
    position = content.find(marker)
    if position == -1:
        return fallback
    return position


def extract_region(content: str, start_marker: str, end_marker: str) -> str:
    """
    Return the text from the start of ``start_marker`` up to the start of
    ``end_marker``.
    """
    start = resolve_boundary(content, start_marker, fallback=0)
    end = resolve_boundary(content, end_marker, fallback=len(content))
    if end < start:
        return ""
    return content[start:end]


class RegionExtractor:
    """Extractor bound to one marker pair."""

    def __init__(
        self,
        start_marker: str = DEFAULT_START_MARKER,
        end_marker: str = DEFAULT_END_MARKER
    ):
        self.start_marker = start_marker
        self.end_marker = end_marker
        self.logger = logger.bind(component="extractor")

    def extract(self, content: str) -> str:
        """Extract the watched region of a fetched document."""
        start_found = self.start_marker in content
        end_found = self.end_marker in content

        if not (start_found and end_found):
            self.logger.warning(
                "Marker missing, using document boundary",
                start_marker_found=start_found,
                end_marker_found=end_found
            )

        region = extract_region(content, self.start_marker, self.end_marker)
        self.logger.debug(
            "Extracted region",
            content_length=len(content),
            region_length=len(region)
        )
        return region

    def describe(self) -> dict:
        """Marker pair as a loggable dict."""
        return {"start_marker": self.start_marker, "end_marker": self.end_marker}
