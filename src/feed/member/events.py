"""Domain events for the Member aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from feed.domain import feed


@feed.event(part_of="Member")
class MemberRegistered:
    """A member joined and can be reached by push."""

    __version__ = 1

    member_id: Identifier(required=True)
    display_name: String()
    token_count: Integer(required=True)
    registered_at: DateTime(required=True)


@feed.event(part_of="Member")
class DeviceTokenRegistered:
    """A member's app installation reported a (new) push token."""

    __version__ = 1

    member_id: Identifier(required=True)
    token: String(required=True)
    registered_at: DateTime(required=True)


@feed.event(part_of="Member")
class DeviceTokensPruned:
    """Tokens the push provider declared invalid were removed from a member."""

    __version__ = 1

    member_id: Identifier(required=True)
    tokens: Text(required=True)  # JSON list of removed tokens
    pruned_at: DateTime(required=True)


@feed.event(part_of="Member")
class TokenRefreshRequested:
    """The push provider reported a broken identity link for one of the member's tokens."""

    __version__ = 1

    member_id: Identifier(required=True)
    requested_at: DateTime(required=True)
