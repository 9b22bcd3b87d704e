"""
Test cases for content fingerprinting.
"""

import pytest

from watcher.fingerprinting import (
    FINGERPRINT_LENGTH, ContentFingerprinter, generate_fingerprint
)


class TestGenerateFingerprint:
    """Test cases for the fingerprint function."""
    
    def test_fingerprint_consistency(self):
        """Identical text always yields the same fingerprint."""
        content = "<!-- Header / End -->Office closed on Friday<!-- Footer -->"
        
        assert generate_fingerprint(content) == generate_fingerprint(content)
    
    def test_fingerprint_is_fixed_length_hex(self):
        """Fingerprints are 64 lowercase hex characters."""
        for content in ["", "a", "x" * 100_000]:
            fingerprint = generate_fingerprint(content)
            assert len(fingerprint) == FINGERPRINT_LENGTH
            assert all(c in "0123456789abcdef" for c in fingerprint)
    
    def test_known_digest(self):
        """Empty text hashes to the well-known SHA-256 digest."""
        assert generate_fingerprint("") == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )
    
    def test_fingerprint_sensitivity(self):
        """Distinct realistic contents yield distinct fingerprints."""
        contents = [
            "<p>Opening hours: 9-17</p>",
            "<p>Opening hours: 9-18</p>",
            "<p>Opening hours: 9-17 </p>",
            "<p>opening hours: 9-17</p>",
            "",
        ]
        fingerprints = {generate_fingerprint(c) for c in contents}
        
        assert len(fingerprints) == len(contents)
    
    def test_fingerprint_with_special_characters(self):
        """Unicode text is fingerprinted via its UTF-8 encoding."""
        first = generate_fingerprint("café, naïve, résumé, 中文, العربية")
        second = generate_fingerprint("cafe, naive, resume, 中文, العربية")
        
        assert first != second
        assert first == generate_fingerprint("café, naïve, résumé, 中文, العربية")


class TestContentFingerprinter:
    """Test cases for ContentFingerprinter."""
    
    @pytest.fixture
    def fingerprinter(self):
        """Create fingerprinter for testing."""
        return ContentFingerprinter()
    
    def test_generate_content_hash_matches_function(self, fingerprinter):
        """The component delegates to the module function."""
        assert fingerprinter.generate_content_hash("region") == generate_fingerprint("region")
    
    def test_fingerprints_match(self, fingerprinter):
        """Comparison is plain equality."""
        first = fingerprinter.generate_content_hash("A")
        
        assert fingerprinter.fingerprints_match(first, generate_fingerprint("A"))
        assert not fingerprinter.fingerprints_match(first, generate_fingerprint("B"))
