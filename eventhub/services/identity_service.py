"""
Account resolution for OAuth identities.

Sign-in providers (Facebook, Google):

- Member is already signed in.
  - Another account already owns this provider id: refuse, accounts are
    never merged.
  - Otherwise link the provider to the signed-in member.
- Member is anonymous.
  - Returning member (provider id known): sign in.
  - The provider's email already belongs to an account: refuse, the member
    has to sign in and link manually.
  - Otherwise create a new account from the provider profile.

Authorization-only providers (Foursquare) just attach an access token to
the signed-in member.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import AccountLinkError
from ..models import OAuthToken, User
from .oauth_service import OAuthProfile

logger = logging.getLogger(__name__)

SIGN_IN_PROVIDERS = {"facebook": "Facebook", "google": "Google"}
LINKABLE_PROVIDERS = {**SIGN_IN_PROVIDERS, "foursquare": "Foursquare"}


@dataclass
class LinkOutcome:
    user: User
    action: str  # linked|signed_in|created|authorized
    message: Optional[str] = None


def _provider_column(provider: str):
    if provider not in SIGN_IN_PROVIDERS:
        raise AccountLinkError(f"Unknown provider: {provider}")
    return getattr(User, provider)


async def find_by_provider_id(db: AsyncSession, provider: str, provider_id: str) -> Optional[User]:
    result = await db.execute(select(User).where(_provider_column(provider) == provider_id))
    return result.scalar_one_or_none()


def store_token(user: User, kind: str, access_token: str) -> None:
    """Keep a single token per provider, replacing any previous one."""
    existing = user.token_for(kind)
    if existing is not None:
        existing.access_token = access_token
    else:
        user.tokens.append(OAuthToken(kind=kind, access_token=access_token))


def _fill_blank_profile(user: User, profile: OAuthProfile) -> None:
    user.name = user.name or profile.name
    user.picture = user.picture or profile.picture
    if profile.gender and not user.gender:
        user.gender = profile.gender


async def link_or_sign_in(
    db: AsyncSession,
    profile: OAuthProfile,
    access_token: str,
    current_user: Optional[User] = None,
) -> LinkOutcome:
    """Resolve a provider identity to a member account.

    Raises ``AccountLinkError`` with a member-facing message when the
    identity cannot be used.
    """
    label = SIGN_IN_PROVIDERS.get(profile.provider)
    if label is None:
        raise AccountLinkError(f"{profile.provider} cannot be used to sign in.")
    existing = await find_by_provider_id(db, profile.provider, profile.provider_id)

    if current_user is not None:
        if existing is not None:
            logger.info({
                "event": "oauth_link_refused",
                "provider": profile.provider,
                "user_id": current_user.id,
                "owner_id": existing.id,
            })
            raise AccountLinkError(
                f"There is already a {label} account that belongs to you. "
                f"Sign in with that account or delete it, then link it with your current account."
            )
        setattr(current_user, profile.provider, profile.provider_id)
        store_token(current_user, profile.provider, access_token)
        _fill_blank_profile(current_user, profile)
        await db.commit()
        logger.info({"event": "oauth_linked", "provider": profile.provider, "user_id": current_user.id})
        return LinkOutcome(current_user, "linked", f"{label} account has been linked.")

    if existing is not None:
        store_token(existing, profile.provider, access_token)
        await db.commit()
        return LinkOutcome(existing, "signed_in")

    if profile.email:
        email_owner = await db.scalar(
            select(User).where(func.lower(User.email) == profile.email.lower())
        )
        if email_owner is not None:
            logger.info({"event": "oauth_email_conflict", "provider": profile.provider,
                         "owner_id": email_owner.id})
            raise AccountLinkError(
                f"There is already an account using this email address. "
                f"Sign in to that account and link it with {label} manually from Account Settings."
            )

    user = User(
        email=profile.email.lower() if profile.email else None,
        name=profile.name,
        picture=profile.picture,
        tokens=[],
        photos=[],
    )
    setattr(user, profile.provider, profile.provider_id)
    if profile.gender:
        user.gender = profile.gender
    if profile.location:
        user.location = profile.location
    store_token(user, profile.provider, access_token)
    db.add(user)
    await db.commit()
    logger.info({"event": "oauth_account_created", "provider": profile.provider, "user_id": user.id})
    return LinkOutcome(user, "created")


async def authorize_provider(db: AsyncSession, user: User, kind: str, access_token: str) -> LinkOutcome:
    """Attach an API access token without touching the member's identity."""
    store_token(user, kind, access_token)
    await db.commit()
    logger.info({"event": "oauth_authorized", "provider": kind, "user_id": user.id})
    return LinkOutcome(user, "authorized", f"{LINKABLE_PROVIDERS.get(kind, kind)} has been authorized.")


def sign_in_methods(user: User) -> int:
    methods = 1 if user.password else 0
    return methods + sum(1 for provider in SIGN_IN_PROVIDERS if getattr(user, provider))


async def unlink_provider(db: AsyncSession, user: User, provider: str) -> str:
    if provider not in LINKABLE_PROVIDERS:
        raise AccountLinkError(f"Unknown provider: {provider}")
    label = LINKABLE_PROVIDERS[provider]

    if provider in SIGN_IN_PROVIDERS:
        if not getattr(user, provider):
            raise AccountLinkError(f"{label} account is not linked.")
        if sign_in_methods(user) <= 1:
            raise AccountLinkError(
                f"Set a password or link another provider before unlinking {label}."
            )
        setattr(user, provider, None)

    token = user.token_for(provider)
    if token is not None:
        user.tokens.remove(token)
    await db.commit()
    logger.info({"event": "oauth_unlinked", "provider": provider, "user_id": user.id})
    return f"{label} account has been unlinked."
