"""Member aggregate: a community member and the push tokens of their devices.

Members have been written by three generations of the mobile app, each
storing push tokens differently:

    fcm_tokens   JSON list   current app
    fcm_token    string      first release, one device only
    tokens       JSON list   intermediate release

`normalize_device_tokens` is the only place that knows about the three
shapes. Everything else works on its output.
"""

import json
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, String, Text

from feed.domain import feed
from feed.member.events import (
    DeviceTokenRegistered,
    DeviceTokensPruned,
    MemberRegistered,
    TokenRefreshRequested,
)


def _load_list(raw) -> list:
    if not raw:
        return []
    value = json.loads(raw)
    return value if isinstance(value, list) else []


def normalize_device_tokens(fcm_tokens=None, fcm_token=None, tokens=None) -> list[str]:
    """Merge the legacy token shapes into one ordered, duplicate-free list.

    Order is `fcm_tokens`, then `fcm_token`, then `tokens`; empty values are dropped.
    """
    merged = []
    merged.extend(fcm_tokens or [])
    if fcm_token:
        merged.append(fcm_token)
    merged.extend(tokens or [])
    return list(dict.fromkeys(t for t in merged if t))


@feed.aggregate
class Member:
    """A member of the community, addressable through their device tokens."""

    display_name: String(max_length=200)

    # Device tokens (legacy shapes, see module docstring)
    fcm_tokens: Text()
    fcm_token: String(max_length=4096)
    tokens: Text()

    # Set when the push provider reports a broken identity link
    needs_token_refresh: Boolean(default=False)
    needs_token_refresh_at: DateTime()

    registered_at: DateTime()
    updated_at: DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, display_name=None, fcm_tokens=None, fcm_token=None, tokens=None, member_id=None):
        """Create a member, keeping whatever token shapes the client sent."""
        now = datetime.now(UTC)

        attributes = dict(
            display_name=display_name,
            fcm_tokens=json.dumps(list(fcm_tokens)) if fcm_tokens is not None else None,
            fcm_token=fcm_token,
            tokens=json.dumps(list(tokens)) if tokens is not None else None,
            needs_token_refresh=False,
            registered_at=now,
            updated_at=now,
        )
        if member_id:
            attributes["id"] = member_id

        member = cls(**attributes)

        member.raise_(
            MemberRegistered(
                member_id=str(member.id),
                display_name=display_name,
                token_count=len(member.device_tokens),
                registered_at=now,
            )
        )

        return member

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def device_tokens(self) -> list[str]:
        return normalize_device_tokens(
            fcm_tokens=_load_list(self.fcm_tokens),
            fcm_token=self.fcm_token,
            tokens=_load_list(self.tokens),
        )

    # -------------------------------------------------------------------
    # Token management
    # -------------------------------------------------------------------
    def add_device_token(self, token):
        """Register a device token and clear any pending refresh request."""
        if not token:
            raise ValidationError({"token": ["Device token is required"]})

        now = datetime.now(UTC)
        if token not in self.device_tokens:
            current = _load_list(self.fcm_tokens)
            current.append(token)
            self.fcm_tokens = json.dumps(current)

        self.needs_token_refresh = False
        self.needs_token_refresh_at = None
        self.updated_at = now

        self.raise_(
            DeviceTokenRegistered(
                member_id=str(self.id),
                token=token,
                registered_at=now,
            )
        )

    def remove_device_tokens(self, tokens) -> list[str]:
        """Remove specific token values from every token field.

        Only the listed values are touched; other tokens keep their order.
        Returns the tokens that were actually removed.
        """
        doomed = set(tokens)
        removed = [t for t in self.device_tokens if t in doomed]
        if not removed:
            return []

        now = datetime.now(UTC)
        if self.fcm_tokens:
            self.fcm_tokens = json.dumps([t for t in _load_list(self.fcm_tokens) if t not in doomed])
        if self.tokens:
            self.tokens = json.dumps([t for t in _load_list(self.tokens) if t not in doomed])
        if self.fcm_token in doomed:
            self.fcm_token = None
        self.updated_at = now

        self.raise_(
            DeviceTokensPruned(
                member_id=str(self.id),
                tokens=json.dumps(removed),
                pruned_at=now,
            )
        )

        return removed

    def request_token_refresh(self, requested_at=None):
        """Flag the member so the app re-authenticates and sends a new token."""
        now = requested_at or datetime.now(UTC)
        self.needs_token_refresh = True
        self.needs_token_refresh_at = now
        self.updated_at = now

        self.raise_(
            TokenRefreshRequested(
                member_id=str(self.id),
                requested_at=now,
            )
        )
