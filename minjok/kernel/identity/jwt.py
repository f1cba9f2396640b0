"""
JWT token management.

Four single-purpose token kinds share one signing key and are told apart
by their ``type`` claim: access, refresh, confirm (email confirmation) and
reset (password reset).
"""

import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from minjok.config import get_settings


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    CONFIRM = "confirm"
    RESET = "reset"


class TokenPayload(BaseModel):
    """Decoded, verified token claims."""

    sub: str  # Profile ID
    type: TokenType
    exp: datetime
    iat: datetime
    jti: str
    email: Optional[str] = None
    role: Optional[str] = None

    @property
    def profile_id(self) -> uuid.UUID:
        return uuid.UUID(self.sub)


class TokenPair(BaseModel):
    """Access and refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # Seconds until access token expires


class JWTManager:
    """JWT creation and verification for every token kind."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_token_expire_minutes: Optional[int] = None,
        refresh_token_expire_days: Optional[int] = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm
        self.access_lifetime = timedelta(
            minutes=access_token_expire_minutes or settings.access_token_expire_minutes
        )
        self.refresh_lifetime = timedelta(
            days=refresh_token_expire_days or settings.refresh_token_expire_days
        )
        self.confirm_lifetime = timedelta(hours=settings.confirm_token_expire_hours)
        self.reset_lifetime = timedelta(minutes=settings.reset_token_expire_minutes)

    def _encode(
        self,
        profile_id: uuid.UUID,
        token_type: TokenType,
        lifetime: timedelta,
        extra: Optional[Dict[str, Any]] = None,
    ) -> tuple[str, datetime]:
        now = datetime.now(timezone.utc)
        expire = now + lifetime
        payload = {
            "sub": str(profile_id),
            "type": token_type.value,
            "exp": expire,
            "iat": now,
            "jti": str(uuid.uuid4()),
        }
        if extra:
            payload.update(extra)
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm), expire

    def create_access_token(self, profile_id: uuid.UUID, email: str, role: str) -> tuple[str, datetime]:
        return self._encode(profile_id, TokenType.ACCESS, self.access_lifetime, {"email": email, "role": role})

    def create_refresh_token(self, profile_id: uuid.UUID) -> tuple[str, datetime]:
        return self._encode(profile_id, TokenType.REFRESH, self.refresh_lifetime)

    def create_confirm_token(self, profile_id: uuid.UUID, email: str) -> str:
        token, _ = self._encode(profile_id, TokenType.CONFIRM, self.confirm_lifetime, {"email": email})
        return token

    def create_reset_token(self, profile_id: uuid.UUID, password_hash: str) -> str:
        # Fingerprint of the current hash; any password change invalidates the token
        token, _ = self._encode(
            profile_id,
            TokenType.RESET,
            self.reset_lifetime,
            {"pwd": self.fingerprint(password_hash)},
        )
        return token

    def create_token_pair(self, profile_id: uuid.UUID, email: str, role: str) -> tuple[TokenPair, datetime]:
        """
        Create both access and refresh tokens.

        Returns:
            Tuple of (TokenPair, refresh_token_expiry)
        """
        access_token, access_exp = self.create_access_token(profile_id, email, role)
        refresh_token, refresh_exp = self.create_refresh_token(profile_id)
        expires_in = int((access_exp - datetime.now(timezone.utc)).total_seconds())
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
        ), refresh_exp

    def decode(self, token: str, expected_type: TokenType) -> Optional[Dict[str, Any]]:
        """Verify signature, expiry and type; return raw claims or None."""
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None
        if claims.get("type") != expected_type.value:
            return None
        return claims

    def verify(self, token: str, expected_type: TokenType) -> Optional[TokenPayload]:
        claims = self.decode(token, expected_type)
        if claims is None:
            return None
        return TokenPayload(
            sub=claims["sub"],
            type=TokenType(claims["type"]),
            exp=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
            jti=claims["jti"],
            email=claims.get("email"),
            role=claims.get("role"),
        )

    def verify_access_token(self, token: str) -> Optional[TokenPayload]:
        return self.verify(token, TokenType.ACCESS)

    @staticmethod
    def hash_token(token: str) -> str:
        """SHA-256 of a token, used to store refresh tokens."""
        return hashlib.sha256(token.encode()).hexdigest()

    @staticmethod
    def fingerprint(password_hash: str) -> str:
        return hashlib.sha256(password_hash.encode()).hexdigest()[:16]
