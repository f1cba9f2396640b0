"""
Authentication endpoints.
"""

from fastapi import APIRouter, Request, status

from minjok.api.deps import (
    ActorCache,
    CurrentActor,
    DbSession,
    get_client_ip,
    get_user_agent,
)
from minjok.config import get_settings
from minjok.kernel.identity.identity_service import IdentityService
from minjok.kernel.identity.jwt import TokenPair
from minjok.kernel.models.profile import Profile
from minjok.schemas.auth import (
    EmailRequest,
    EmailTokenResponse,
    ProfileResponse,
    RefreshTokenRequest,
    ResetPasswordRequest,
    SignInRequest,
    SignOutRequest,
    SignUpRequest,
    SignUpResponse,
    TokenRequest,
    TokenResponse,
)
from minjok.schemas.common import SuccessResponse

router = APIRouter()

RESET_REQUESTED_MESSAGE = "If that email is registered, a reset link has been sent."


def _token_response(profile: Profile, token_pair: TokenPair) -> TokenResponse:
    return TokenResponse(
        access_token=token_pair.access_token,
        refresh_token=token_pair.refresh_token,
        token_type=token_pair.token_type,
        expires_in=token_pair.expires_in,
        profile=ProfileResponse.model_validate(profile),
    )


@router.post("/signup", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    request: Request,
    data: SignUpRequest,
    db: DbSession,
):
    """
    Create a mentee profile.

    The confirmation token is returned in the body only in debug mode.
    """
    identity_service = IdentityService(db)
    profile = await identity_service.sign_up(
        email=data.email,
        password=data.password,
        full_name=data.full_name,
        ip_address=get_client_ip(request),
    )
    token = identity_service.issue_confirmation_token(profile)

    return SignUpResponse(
        profile=ProfileResponse.model_validate(profile),
        confirmation_token=token if get_settings().debug else None,
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    request: Request,
    data: SignInRequest,
    db: DbSession,
):
    """Authenticate and return an access/refresh token pair."""
    profile, token_pair = await IdentityService(db).sign_in(
        email=data.email,
        password=data.password,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    return _token_response(profile, token_pair)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    data: RefreshTokenRequest,
    db: DbSession,
):
    """
    Refresh the access token.

    Implements refresh token rotation - the old refresh token is revoked.
    """
    profile, token_pair = await IdentityService(db).refresh_tokens(data.refresh_token)
    return _token_response(profile, token_pair)


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    request: Request,
    data: SignOutRequest,
    actor: CurrentActor,
    db: DbSession,
    cache: ActorCache,
):
    await IdentityService(db).sign_out(
        actor.id,
        refresh_token=data.refresh_token,
        ip_address=get_client_ip(request),
    )
    cache.invalidate_profile(actor.id)
    return SuccessResponse(message="Signed out")


@router.get("/me", response_model=ProfileResponse)
async def get_me(actor: CurrentActor, db: DbSession):
    profile = await IdentityService(db).get_profile_by_id(actor.id)
    return ProfileResponse.model_validate(profile)


@router.post("/confirm", response_model=ProfileResponse)
async def confirm_email(data: TokenRequest, db: DbSession):
    """Confirm an email address from the emailed token."""
    profile = await IdentityService(db).verify_token(data.token)
    return ProfileResponse.model_validate(profile)


@router.post("/confirm/resend", response_model=EmailTokenResponse)
async def resend_confirmation(data: EmailRequest, db: DbSession):
    identity_service = IdentityService(db)
    profile = await identity_service.get_profile_by_email(data.email)
    token = None
    if profile is not None and profile.confirmed_at is None:
        token = identity_service.issue_confirmation_token(profile)
    return EmailTokenResponse(
        message="If that email needs confirming, a new link has been sent.",
        token=token if get_settings().debug else None,
    )


@router.post("/forgot-password", response_model=EmailTokenResponse)
async def forgot_password(data: EmailRequest, db: DbSession):
    """Answers identically whether or not the email is registered."""
    token = await IdentityService(db).request_password_reset(data.email)
    return EmailTokenResponse(
        message=RESET_REQUESTED_MESSAGE,
        token=token if get_settings().debug else None,
    )


@router.post("/reset-password", response_model=SuccessResponse)
async def reset_password(
    request: Request,
    data: ResetPasswordRequest,
    db: DbSession,
    cache: ActorCache,
):
    profile = await IdentityService(db).reset_password(
        data.token,
        data.new_password,
        ip_address=get_client_ip(request),
    )
    cache.invalidate_profile(profile.id)
    return SuccessResponse(message="Password updated. Please sign in again.")
