"""
Identity Core - authentication, sessions and the current-actor cache.
"""

from minjok.kernel.identity.password import PasswordHasher, verify_password, hash_password
from minjok.kernel.identity.jwt import JWTManager, TokenPair, TokenPayload, TokenType
from minjok.kernel.identity.actor import Actor
from minjok.kernel.identity.profile_cache import ProfileCache
from minjok.kernel.identity.identity_service import IdentityService

__all__ = [
    "PasswordHasher",
    "verify_password",
    "hash_password",
    "JWTManager",
    "TokenPair",
    "TokenPayload",
    "TokenType",
    "Actor",
    "ProfileCache",
    "IdentityService",
]
