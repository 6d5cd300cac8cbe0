"""Password hashing and opaque token generation."""

import base64
import hashlib
import hmac
import secrets

ALGORITHM = "pbkdf2_sha256"
SALT_BYTES = 16


# Hey future me, the stored format is "pbkdf2_sha256$<iterations>$<salt>$<hash>" so a
# later bump of the iteration count doesn't invalidate existing hashes: verify() reads
# the count back from the stored string.
class PasswordHasher:
    """PBKDF2-HMAC-SHA256 password hasher."""

    def __init__(self, iterations: int = 260_000) -> None:
        self.iterations = iterations

    def hash(self, password: str) -> str:
        salt = base64.b64encode(secrets.token_bytes(SALT_BYTES)).decode("ascii")
        digest = self._derive(password, salt, self.iterations)
        return f"{ALGORITHM}${self.iterations}${salt}${digest}"

    def verify(self, password: str, encoded: str) -> bool:
        """Constant-time check of password against an encoded hash."""
        try:
            algorithm, iterations, salt, expected = encoded.split("$", 3)
            rounds = int(iterations)
        except ValueError:
            return False
        if algorithm != ALGORITHM:
            return False
        candidate = self._derive(password, salt, rounds)
        return hmac.compare_digest(candidate, expected)

    @staticmethod
    def _derive(password: str, salt: str, iterations: int) -> str:
        raw = hashlib.pbkdf2_hmac(
            "sha256", password.encode("utf-8"), salt.encode("ascii"), iterations
        )
        return base64.b64encode(raw).decode("ascii")


def generate_token(nbytes: int = 32) -> str:
    """URL-safe random token for sessions, invitations and password resets."""
    return secrets.token_urlsafe(nbytes)
