"""Security primitives: password hashing and token generation."""

from songstock.infrastructure.security.passwords import PasswordHasher, generate_token

__all__ = ["PasswordHasher", "generate_token"]
