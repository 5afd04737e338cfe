"""Pydantic request/response models for the Feed API.

API schemas are separate from Protean commands (anti-corruption pattern).
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------
class ActivityDataSchema(BaseModel):
    activity_type: str | None = Field(default=None, max_length=50, examples=["run"])
    xp_earned: int | None = None
    distance_meters: float | None = Field(default=None, ge=0, examples=[5200])


class PostFeedItemRequest(BaseModel):
    feed_item_id: str | None = None
    author_id: str | None = None
    related_user_name: str | None = Field(default=None, max_length=200)
    user_avatar_url: str | None = Field(default=None, max_length=2048)
    feed_type: str | None = Field(default=None, max_length=100, examples=["activityCompleted"])
    activity_id: str | None = None
    date: str | None = Field(default=None, examples=["2024-06-20T14:32:10Z"])
    title: str | None = Field(default=None, max_length=500)
    subtitle: str | None = None
    body: str | None = None
    message: str | None = None
    is_personal: bool = False
    activity_data: ActivityDataSchema | None = None
    xp_earned: int | None = None
    tokens: list[str] | None = None
    token: str | None = None


class RegisterMemberRequest(BaseModel):
    member_id: str | None = None
    display_name: str | None = Field(default=None, max_length=200)
    fcm_tokens: list[str] | None = None
    fcm_token: str | None = None
    tokens: list[str] | None = None


class RegisterDeviceTokenRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=4096)


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class FeedItemIdResponse(BaseModel):
    feed_item_id: str


class MemberIdResponse(BaseModel):
    member_id: str


class PushOutcomeResponse(BaseModel):
    feed_item_id: str
    push_status: str | None = None
    push_sent_at: str | None = None
    push_event_id: str | None = None
    push_success_count: int | None = None
    push_failure_count: int | None = None
    push_audience_tokens: int | None = None
    push_failure_reasons: dict[str, int] = {}
    push_error: str | None = None


class PushDeliveryLogEntry(BaseModel):
    feed_item_id: str
    author_id: str | None = None
    status: str
    audience_tokens: int = 0
    success_count: int = 0
    failure_count: int = 0
    error: str | None = None


class PushDeliveryLogResponse(BaseModel):
    entries: list[PushDeliveryLogEntry]
    total: int
