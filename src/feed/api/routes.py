"""FastAPI routes for the Feed domain.

Thin adapters that translate HTTP requests into domain commands.
No business logic, only schema to command to response translation.
"""

import json

from fastapi import APIRouter, HTTPException
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from feed.api.schemas import (
    FeedItemIdResponse,
    MemberIdResponse,
    PostFeedItemRequest,
    PushDeliveryLogEntry,
    PushDeliveryLogResponse,
    PushOutcomeResponse,
    RegisterDeviceTokenRequest,
    RegisterMemberRequest,
    StatusResponse,
)
from feed.item.feed_item import FeedItem
from feed.item.posting import PostFeedItem
from feed.member.registration import RegisterDeviceToken, RegisterMember
from feed.projections.push_delivery_log import PushDeliveryLog

feed_router = APIRouter(prefix="/feed", tags=["feed"])
member_router = APIRouter(prefix="/members", tags=["members"])


def _dump_list(values):
    return json.dumps(values) if values is not None else None


# ---------------------------------------------------------------------------
# Feed items
# ---------------------------------------------------------------------------
@feed_router.post("", status_code=201, response_model=FeedItemIdResponse)
async def post_feed_item(body: PostFeedItemRequest) -> FeedItemIdResponse:
    activity = body.activity_data
    command = PostFeedItem(
        feed_item_id=body.feed_item_id,
        author_id=body.author_id,
        related_user_name=body.related_user_name,
        user_avatar_url=body.user_avatar_url,
        feed_type=body.feed_type,
        activity_id=body.activity_id,
        date=body.date,
        title=body.title,
        subtitle=body.subtitle,
        body=body.body,
        message=body.message,
        is_personal=body.is_personal,
        activity_type=activity.activity_type if activity else None,
        activity_xp_earned=activity.xp_earned if activity else None,
        distance_meters=activity.distance_meters if activity else None,
        xp_earned=body.xp_earned,
        tokens=_dump_list(body.tokens),
        token=body.token,
    )
    result = current_domain.process(command, asynchronous=False)
    return FeedItemIdResponse(feed_item_id=result)


@feed_router.get("/push-log", response_model=PushDeliveryLogResponse)
async def list_push_log(status: str | None = None, limit: int = 50) -> PushDeliveryLogResponse:
    """List push outcomes, optionally filtered by status."""
    query = current_domain.repository_for(PushDeliveryLog)._dao.query
    if status:
        query = query.filter(status=status)
    results = query.limit(limit).all()
    entries = [
        PushDeliveryLogEntry(
            feed_item_id=str(log.feed_item_id),
            author_id=str(log.author_id) if log.author_id else None,
            status=log.status,
            audience_tokens=log.audience_tokens or 0,
            success_count=log.success_count or 0,
            failure_count=log.failure_count or 0,
            error=log.error,
        )
        for log in results.items
    ]
    return PushDeliveryLogResponse(entries=entries, total=results.total)


@feed_router.get("/{feed_item_id}/push", response_model=PushOutcomeResponse)
async def get_push_outcome(feed_item_id: str) -> PushOutcomeResponse:
    """Return the push outcome persisted on a feed item."""
    try:
        item = current_domain.repository_for(FeedItem).get(feed_item_id)
    except ObjectNotFoundError:
        raise HTTPException(status_code=404, detail=f"Feed item {feed_item_id} not found") from None

    return PushOutcomeResponse(
        feed_item_id=str(item.id),
        push_status=item.push_status,
        push_sent_at=item.push_sent_at.isoformat() if item.push_sent_at else None,
        push_event_id=item.push_event_id,
        push_success_count=item.push_success_count,
        push_failure_count=item.push_failure_count,
        push_audience_tokens=item.push_audience_tokens,
        push_failure_reasons=item.failure_reasons,
        push_error=item.push_error,
    )


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------
@member_router.post("", status_code=201, response_model=MemberIdResponse)
async def register_member(body: RegisterMemberRequest) -> MemberIdResponse:
    command = RegisterMember(
        member_id=body.member_id,
        display_name=body.display_name,
        fcm_tokens=_dump_list(body.fcm_tokens),
        fcm_token=body.fcm_token,
        tokens=_dump_list(body.tokens),
    )
    result = current_domain.process(command, asynchronous=False)
    return MemberIdResponse(member_id=result)


@member_router.post("/{member_id}/devices", response_model=StatusResponse)
async def register_device_token(member_id: str, body: RegisterDeviceTokenRequest) -> StatusResponse:
    """Attach a device token to a member and clear any refresh request."""
    command = RegisterDeviceToken(member_id=member_id, token=body.token)
    try:
        current_domain.process(command, asynchronous=False)
    except ObjectNotFoundError:
        raise HTTPException(status_code=404, detail=f"Member {member_id} not found") from None
    return StatusResponse()
