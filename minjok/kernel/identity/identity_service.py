"""
Identity service: sign up, sign in, sessions, email confirmation and
password reset.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, and_, update
from sqlalchemy.ext.asyncio import AsyncSession

from minjok.kernel.errors import UnauthenticatedError, ValidationError
from minjok.kernel.events.event_store import EventStore
from minjok.kernel.identity.jwt import JWTManager, TokenPair, TokenType
from minjok.kernel.identity.password import PasswordHasher
from minjok.kernel.models.base import enum_value
from minjok.kernel.models.event_log import EventType
from minjok.kernel.models.profile import AdminType, Profile, ProfileRole, RefreshToken
from minjok.logging_config import get_logger

logger = get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.lower().strip()


class IdentityService:
    """
    Service for profile identity operations.

    Every new profile starts as a mentee with admin_type "user"; only an
    admin can change either field afterwards.
    """

    def __init__(
        self,
        session: AsyncSession,
        jwt_manager: Optional[JWTManager] = None,
        hasher: Optional[PasswordHasher] = None,
    ):
        self.session = session
        self.jwt_manager = jwt_manager or JWTManager()
        self.hasher = hasher or PasswordHasher()
        self.event_store = EventStore(session)

    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: str,
        ip_address: Optional[str] = None,
    ) -> Profile:
        """
        Create a profile.

        Raises:
            ValidationError: If the email is already registered
        """
        if await self.get_profile_by_email(email):
            raise ValidationError("Email already registered")

        profile = Profile(
            email=normalize_email(email),
            password_hash=self.hasher.hash(password),
            full_name=full_name.strip(),
            role=ProfileRole.MENTEE,
            admin_type=AdminType.USER,
        )
        self.session.add(profile)
        await self.session.flush()

        await self.event_store.log(
            event_type=EventType.PROFILE_SIGNED_UP,
            entity_type="profile",
            entity_id=profile.id,
            profile_id=profile.id,
            payload={"email": profile.email},
            ip_address=ip_address,
        )
        logger.info("Profile signed up", extra={"profile_id": str(profile.id)})
        return profile

    async def sign_in(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> tuple[Profile, TokenPair]:
        """
        Verify credentials and open a session.

        Raises:
            UnauthenticatedError: On unknown email, wrong password or a
                disabled profile. The message never says which.
        """
        profile = await self.get_profile_by_email(email)
        if (
            profile is None
            or not self.hasher.verify(password, profile.password_hash)
            or not profile.is_active
        ):
            raise UnauthenticatedError("Invalid email or password")

        token_pair = await self._issue_tokens(profile)

        await self.event_store.log(
            event_type=EventType.PROFILE_SIGNED_IN,
            entity_type="profile",
            entity_id=profile.id,
            profile_id=profile.id,
            payload={"method": "password"},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return profile, token_pair

    async def refresh_tokens(self, refresh_token: str) -> tuple[Profile, TokenPair]:
        """Rotate a refresh token: the old one is revoked, a new pair issued."""
        payload = self.jwt_manager.verify(refresh_token, TokenType.REFRESH)
        if payload is None:
            raise UnauthenticatedError("Invalid or expired refresh token")

        query = select(RefreshToken).where(
            and_(
                RefreshToken.token_hash == JWTManager.hash_token(refresh_token),
                RefreshToken.revoked.is_(False),
            )
        )
        record = (await self.session.execute(query)).scalar_one_or_none()
        if record is None:
            raise UnauthenticatedError("Invalid or expired refresh token")

        profile = await self.get_profile_by_id(payload.profile_id)
        if profile is None or not profile.is_active:
            raise UnauthenticatedError("Invalid or expired refresh token")

        record.revoked = True
        return profile, await self._issue_tokens(profile)

    async def sign_out(
        self,
        profile_id: uuid.UUID,
        refresh_token: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> None:
        """Revoke one refresh token, or all of them when none is given."""
        conditions = [RefreshToken.profile_id == profile_id, RefreshToken.revoked.is_(False)]
        if refresh_token:
            conditions.append(RefreshToken.token_hash == JWTManager.hash_token(refresh_token))
        await self.session.execute(
            update(RefreshToken).where(and_(*conditions)).values(revoked=True)
        )

        await self.event_store.log(
            event_type=EventType.PROFILE_SIGNED_OUT,
            entity_type="profile",
            entity_id=profile_id,
            profile_id=profile_id,
            payload={"revoke_all": refresh_token is None},
            ip_address=ip_address,
        )

    def issue_confirmation_token(self, profile: Profile) -> str:
        token = self.jwt_manager.create_confirm_token(profile.id, profile.email)
        logger.debug("Confirmation token issued", extra={"profile_id": str(profile.id)})
        return token

    async def verify_token(self, token: str) -> Profile:
        """Confirm a profile's email from a confirmation token."""
        payload = self.jwt_manager.verify(token, TokenType.CONFIRM)
        profile = await self.get_profile_by_id(payload.profile_id) if payload else None
        if profile is None or payload.email != profile.email:
            raise ValidationError("Invalid or expired confirmation link")

        if profile.confirmed_at is None:
            profile.confirmed_at = datetime.now(timezone.utc)
            await self.event_store.log(
                event_type=EventType.PROFILE_CONFIRMED,
                entity_type="profile",
                entity_id=profile.id,
                profile_id=profile.id,
            )
        return profile

    async def request_password_reset(self, email: str) -> Optional[str]:
        """
        Issue a reset token for an email address.

        Returns None for unknown addresses; callers must answer identically
        in both cases so the endpoint does not reveal registered emails.
        """
        profile = await self.get_profile_by_email(email)
        if profile is None or not profile.is_active:
            return None
        token = self.jwt_manager.create_reset_token(profile.id, profile.password_hash)
        logger.debug("Password reset token issued", extra={"profile_id": str(profile.id)})
        return token

    async def reset_password(
        self,
        token: str,
        new_password: str,
        ip_address: Optional[str] = None,
    ) -> Profile:
        claims = self.jwt_manager.decode(token, TokenType.RESET)
        profile = await self.get_profile_by_id(uuid.UUID(claims["sub"])) if claims else None
        if profile is None or claims.get("pwd") != JWTManager.fingerprint(profile.password_hash):
            raise ValidationError("Invalid or expired reset link")

        profile.password_hash = self.hasher.hash(new_password)
        await self.sign_out(profile.id, ip_address=ip_address)

        await self.event_store.log(
            event_type=EventType.PROFILE_PASSWORD_RESET,
            entity_type="profile",
            entity_id=profile.id,
            profile_id=profile.id,
            ip_address=ip_address,
        )
        return profile

    async def get_profile_by_id(self, profile_id: uuid.UUID) -> Optional[Profile]:
        query = select(Profile).where(Profile.id == profile_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_profile_by_email(self, email: str) -> Optional[Profile]:
        query = select(Profile).where(Profile.email == normalize_email(email))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def _issue_tokens(self, profile: Profile) -> TokenPair:
        token_pair, refresh_exp = self.jwt_manager.create_token_pair(
            profile_id=profile.id,
            email=profile.email,
            role=enum_value(profile.role),
        )
        self.session.add(
            RefreshToken(
                profile_id=profile.id,
                token_hash=JWTManager.hash_token(token_pair.refresh_token),
                expires_at=refresh_exp,
            )
        )
        await self.session.flush()
        return token_pair
