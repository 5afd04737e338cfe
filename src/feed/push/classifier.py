"""Classification of per-token push failures."""

from enum import Enum

_PROVIDER_PREFIX = "messaging/"

UNKNOWN_FAILURE = "unknown"


class FailureKind(Enum):
    IGNORABLE = "Ignorable"
    INVALID_TOKEN = "InvalidToken"
    IDENTITY_BROKEN = "IdentityBroken"


_KIND_BY_CODE = {
    "registration-token-not-registered": FailureKind.INVALID_TOKEN,
    "invalid-registration-token": FailureKind.INVALID_TOKEN,
    "third-party-auth-error": FailureKind.IDENTITY_BROKEN,
}


def classify_failure(code: str | None) -> FailureKind:
    """Map a provider error code to the action it calls for.

    Codes are accepted with or without the `messaging/` prefix.
    """
    if not code:
        return FailureKind.IGNORABLE
    bare = code.removeprefix(_PROVIDER_PREFIX)
    return _KIND_BY_CODE.get(bare, FailureKind.IGNORABLE)
