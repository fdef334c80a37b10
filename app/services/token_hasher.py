"""One-way hashing of refresh tokens for storage at rest."""

import hashlib
import hmac


class TokenHasher:
    """SHA-256 digests of raw tokens, compared in constant time."""

    @staticmethod
    def hash(raw_token: str) -> str:
        return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()

    @staticmethod
    def verify(raw_token: str, digest: str) -> bool:
        """Return True iff raw_token hashes to digest. Never raises on bad input."""
        if not isinstance(raw_token, str) or not isinstance(digest, str):
            return False
        try:
            expected = TokenHasher.hash(raw_token).encode("ascii")
            supplied = digest.encode("ascii")
        except UnicodeError:
            return False
        # compare_digest handles length mismatch by returning False
        return hmac.compare_digest(expected, supplied)
