"""Content fingerprinting for deduplication."""

import hashlib

from mushee.domain.value_objects import ContentFingerprint


class ContentHasher:
    """Computes the deduplication key of an upload.

    MD5 is deliberate: this is a content-addressing key, not a security
    boundary, and existing catalog rows and blob keys are MD5 hex digests.
    The WHOLE buffer is hashed - hashing a prefix would merge different scores.
    """

    def hash(self, data: bytes) -> ContentFingerprint:
        """Fingerprint the full byte content."""
        digest = hashlib.md5(data, usedforsecurity=False)  # nosec B324
        return ContentFingerprint(digest.hexdigest())
