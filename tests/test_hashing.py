"""Unit tests for auth/hashing.py -- bcrypt hashing, verification and rehash policy.

Covers:
- hash_secret() output is salted (two hashes of one secret differ) and tagged
- verify_secret() accepts the right secret, rejects wrong ones
- verify_secret() returns False (never raises) on malformed blobs
- needs_rehash() flags other costs, legacy tags and garbage
"""

import bcrypt

from auth.hashing import equalize_timing, hash_secret, needs_rehash, verify_secret


class TestHashAndVerify:
    def test_hash_is_salted_and_tagged(self) -> None:
        """Hashes carry the $2b$ tag and differ per call."""
        first = hash_secret("pw123456")
        second = hash_secret("pw123456")
        assert first != second
        assert first.startswith("$2b$04$")
        assert "pw123456" not in first

    def test_verify_matches_original(self) -> None:
        """verify_secret() accepts the original plaintext."""
        hashed = hash_secret("correct horse")
        assert verify_secret("correct horse", hashed) is True

    def test_verify_rejects_wrong_secret(self) -> None:
        """verify_secret() rejects a different plaintext."""
        hashed = hash_secret("correct horse")
        assert verify_secret("battery staple", hashed) is False

    def test_verify_malformed_hash_returns_false(self) -> None:
        """A malformed blob reads as a mismatch, not an exception."""
        assert verify_secret("anything", "not-a-bcrypt-hash") is False
        assert verify_secret("anything", "") is False

    def test_otp_codes_hash_like_passwords(self) -> None:
        """OTP codes go through the same hasher as passwords."""
        hashed = hash_secret("000123")
        assert verify_secret("000123", hashed)
        assert not verify_secret("123", hashed)

    def test_equalize_timing_has_no_side_effects(self) -> None:
        """equalize_timing() returns None and raises nothing."""
        assert equalize_timing("whatever") is None


class TestNeedsRehash:
    def test_current_policy_needs_no_rehash(self) -> None:
        """A hash at the current cost needs no rehash."""
        assert needs_rehash(hash_secret("pw123456")) is False

    def test_other_cost_needs_rehash(self) -> None:
        """A hash at another cost needs a rehash."""
        old = bcrypt.hashpw(b"pw123456", bcrypt.gensalt(rounds=5)).decode()
        assert needs_rehash(old) is True

    def test_legacy_tag_needs_rehash(self) -> None:
        """A $2a$ blob needs a rehash."""
        legacy = hash_secret("pw123456").replace("$2b$", "$2a$", 1)
        assert needs_rehash(legacy) is True

    def test_garbage_needs_rehash(self) -> None:
        """An unparseable blob needs a rehash."""
        assert needs_rehash("plaintext-password") is True
