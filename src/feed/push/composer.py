"""Push message composition for feed items.

Pure functions: the same feed item and event id always produce the same
message. Field resolution rules, first non-empty value wins:

    title    title | personal default | "<author> completó una actividad"
    body     subtitle | body | message | derived text (see `_derived_body`)
    image    user_avatar_url | omitted
    author   related_user_name | "Un jugador"
    xp       activity_data.xp_earned | xp_earned      (zero counts as known)
    type     activity_data.activity_type | feed_type | omitted
"""

import math
from dataclasses import dataclass, field

PERSONAL_TITLE = "Tu actividad se completó"
AUTHOR_PLACEHOLDER = "Un jugador"


@dataclass(frozen=True)
class PushMessage:
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)
    image: str | None = None


def _first_non_empty(*values):
    for value in values:
        if value:
            return value
    return None


def _as_payload_value(value) -> str:
    """Payload values must be strings; missing values become empty strings."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def author_name(item) -> str:
    return item.related_user_name or AUTHOR_PLACEHOLDER


def experience_points(item):
    activity = item.activity_data
    if activity is not None and activity.xp_earned is not None:
        return activity.xp_earned
    return item.xp_earned


def activity_type(item) -> str:
    activity = item.activity_data
    return _first_non_empty(activity.activity_type if activity is not None else None, item.feed_type) or ""


def distance_text(item) -> str:
    """Distance in kilometres with one decimal, or "" when unknown."""
    activity = item.activity_data
    meters = activity.distance_meters if activity is not None else None
    if not isinstance(meters, (int, float)) or isinstance(meters, bool) or not math.isfinite(meters):
        return ""
    return f"{meters / 1000:.1f} km"


def _derived_body(item, name) -> str:
    xp = experience_points(item)

    if item.is_personal:
        return f"Ganaste {xp} XP" if xp is not None else ""

    distance = distance_text(item)
    if distance:
        kind = activity_type(item)
        suffix = f" ({kind})" if kind else ""
        return f"{name} completó {distance}{suffix}"
    if xp is not None:
        return f"{name} ganó {xp} XP"
    return f"{name} completó una actividad"


def compose_push_message(item, event_id) -> PushMessage:
    """Build title, body, image and data payload for a feed item."""
    name = author_name(item)

    if item.is_personal:
        title = item.title or PERSONAL_TITLE
    else:
        title = item.title or f"{name} completó una actividad"

    body = _first_non_empty(item.subtitle, item.body, item.message) or _derived_body(item, name)

    data = {
        "feedId": _as_payload_value(item.id),
        "userId": _as_payload_value(item.author_id),
        "activityId": _as_payload_value(item.activity_id),
        "type": _as_payload_value(item.feed_type),
        "date": _as_payload_value(item.date),
        "isPersonal": _as_payload_value(item.is_personal),
        "relatedUserName": name,
        "eventId": _as_payload_value(event_id),
    }

    return PushMessage(title=title, body=body, data=data, image=item.user_avatar_url or None)
