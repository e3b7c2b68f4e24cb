"""Password hashing and session tokens."""

from reelcritic.security.passwords import PasswordHasher
from reelcritic.security.tokens import TokenService, token_from_request

__all__ = ["PasswordHasher", "TokenService", "token_from_request"]
