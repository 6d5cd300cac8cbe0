"""Tests for password hashing and token generation."""

import string

from songstock.infrastructure.security import PasswordHasher, generate_token


class TestPasswordHasher:
    """PBKDF2 hasher behaviour."""

    def test_hash_and_verify(self):
        """The right password verifies, a wrong one does not."""
        hasher = PasswordHasher(iterations=1000)
        encoded = hasher.hash("correct horse")
        assert hasher.verify("correct horse", encoded)
        assert not hasher.verify("wrong horse", encoded)

    def test_hash_is_salted(self):
        """The same password hashes differently every time."""
        hasher = PasswordHasher(iterations=1000)
        assert hasher.hash("pw") != hasher.hash("pw")

    def test_encoded_format(self):
        """Algorithm and iteration count are stored with the hash."""
        algorithm, iterations, _salt, _digest = PasswordHasher(1000).hash("pw").split("$")
        assert algorithm == "pbkdf2_sha256"
        assert iterations == "1000"

    def test_verify_reads_iterations_from_hash(self):
        """Raising the iteration count keeps old hashes valid."""
        old = PasswordHasher(iterations=1000).hash("pw")
        assert PasswordHasher(iterations=5000).verify("pw", old)

    def test_malformed_hash_never_verifies(self):
        """Garbage or foreign formats are a plain mismatch."""
        hasher = PasswordHasher(iterations=1000)
        assert not hasher.verify("pw", "")
        assert not hasher.verify("pw", "md5$1$salt$digest")
        assert not hasher.verify("pw", "pbkdf2_sha256$notanumber$salt$digest")


def test_generate_token_is_unique_and_url_safe():
    """Tokens are long, URL-safe and never repeat."""
    tokens = {generate_token() for _ in range(50)}
    assert len(tokens) == 50
    assert all(len(t) >= 40 for t in tokens)
    alphabet = set(string.ascii_letters + string.digits + "-_")
    assert all(set(t) <= alphabet for t in tokens)
