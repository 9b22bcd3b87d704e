"""
Content fingerprinting for change detection.

A fingerprint is the hex SHA-256 digest of the UTF-8 encoded extracted
region. Fingerprints are compared by equality only.
"""

import hashlib

from utilities.logger import get_logger

logger = get_logger(__name__)

FINGERPRINT_LENGTH = 64


def generate_fingerprint(content: str) -> str:
    """
    Generate the SHA-256 fingerprint of a piece of text.

    Args:
        content: Extracted region to fingerprint

    Returns:
        64 character lowercase hex digest
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class ContentFingerprinter:
    """Fingerprinting component used by the watch cycle."""

    def __init__(self):
        self.logger = logger.bind(component="fingerprinter")

    def generate_content_hash(self, content: str) -> str:
        """Generate the fingerprint of an extracted region."""
        content_hash = generate_fingerprint(content)
        self.logger.debug(
            "Generated content fingerprint",
            content_length=len(content),
            fingerprint=content_hash
        )
        return content_hash

    @staticmethod
    def fingerprints_match(first: str, second: str) -> bool:
        """Compare two fingerprints."""
        return first == second
