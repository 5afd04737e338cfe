"""Shared BDD fixtures and step definitions for the Feed domain."""

import pytest
from feed.channel import get_push_gateway
from feed.item.feed_item import FeedItem
from feed.member.member import Member
from protean import current_domain
from pytest_bdd import given, parsers, then


@pytest.fixture()
def gateway():
    return get_push_gateway()


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a member "{member_id}" with device token "{token}"'))
def member_with_token(member_id, token):
    member = Member.register(member_id=member_id, fcm_tokens=[token])
    current_domain.repository_for(Member).add(member)


@given(parsers.cfparse('the push provider reports "{token}" as "{code}"'))
def provider_reports(gateway, token, code):
    gateway.token_errors[token] = code


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("{count:d} delivery call is made"))
@then(parsers.cfparse("{count:d} delivery calls are made"))
def delivery_calls(gateway, count):
    assert gateway.calls == count


@then(parsers.cfparse('the push title is "{title}"'))
def push_title(gateway, title):
    assert gateway.sent_batches[0]["title"] == title


@then(parsers.cfparse('the push body is "{body}"'))
def push_body(gateway, body):
    assert gateway.sent_batches[0]["body"] == body


@then(parsers.cfparse('the push status is "{status}"'))
def push_status(feed_item_id, status):
    assert current_domain.repository_for(FeedItem).get(feed_item_id).push_status == status


@then(parsers.cfparse('the push error is "{error}"'))
def push_error(feed_item_id, error):
    assert current_domain.repository_for(FeedItem).get(feed_item_id).push_error == error


@then(parsers.cfparse("the push counts are {succeeded:d} succeeded and {failed:d} failed"))
def push_counts(feed_item_id, succeeded, failed):
    item = current_domain.repository_for(FeedItem).get(feed_item_id)
    assert item.push_success_count == succeeded
    assert item.push_failure_count == failed


@then(parsers.cfparse('member "{member_id}" has no device tokens'))
def member_has_no_tokens(member_id):
    assert current_domain.repository_for(Member).get(member_id).device_tokens == []


@then(parsers.cfparse('member "{member_id}" still has device token "{token}"'))
def member_keeps_token(member_id, token):
    assert token in current_domain.repository_for(Member).get(member_id).device_tokens


@then(parsers.cfparse('member "{member_id}" is flagged for token refresh'))
def member_flagged(member_id):
    assert current_domain.repository_for(Member).get(member_id).needs_token_refresh is True
