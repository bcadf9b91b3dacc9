"""Authenticated identity and session entities."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping


@dataclass(frozen=True)
class Identity:
    """The signed-in user as reported by the auth service.

    Attributes:
        id: Auth user id; also the id of the matching player row.
        email: Email on the account, if shared by the provider.
        full_name: Display name from the OAuth provider.
        avatar_url: Avatar from the OAuth provider.
        provider: Name of the OAuth provider used to sign in.
    """

    id: str
    email: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None
    provider: str | None = None

    @classmethod
    def from_user(cls, user: Mapping[str, Any]) -> "Identity":
        """Build from an auth ``/user`` payload.

        Provider details come from the first linked identity.
        """
        identities = user.get("identities") or []
        first = identities[0] if identities else {}
        identity_data = first.get("identity_data") or {}
        metadata = user.get("user_metadata") or {}
        return cls(
            id=user["id"],
            email=user.get("email"),
            full_name=identity_data.get("full_name") or metadata.get("full_name"),
            avatar_url=identity_data.get("avatar_url") or metadata.get("avatar_url"),
            provider=first.get("provider") or (user.get("app_metadata") or {}).get("provider"),
        )

    def to_user(self) -> dict[str, Any]:
        """Inverse of ``from_user`` for session persistence."""
        return {
            "id": self.id,
            "email": self.email,
            "identities": [
                {
                    "provider": self.provider,
                    "identity_data": {
                        "full_name": self.full_name,
                        "avatar_url": self.avatar_url,
                    },
                }
            ],
        }


@dataclass(frozen=True)
class Session:
    """An auth session: bearer tokens plus the identity they belong to."""

    access_token: str
    refresh_token: str | None
    expires_at: datetime
    user: Identity
    token_type: str = "bearer"
    provider_token: str | None = field(default=None, repr=False)

    @classmethod
    def from_token_response(
        cls,
        payload: Mapping[str, Any],
        user: Identity,
        now: datetime | None = None,
    ) -> "Session":
        now = now or datetime.now(timezone.utc)
        expires_in = int(payload.get("expires_in") or 3600)
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_at=now + timedelta(seconds=expires_in),
            user=user,
            token_type=payload.get("token_type") or "bearer",
            provider_token=payload.get("provider_token"),
        )

    def is_expired(self, now: datetime | None = None, leeway: int = 30) -> bool:
        now = now or datetime.now(timezone.utc)
        return now + timedelta(seconds=leeway) >= self.expires_at
