"""Member registration: commands and handler."""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from feed.domain import feed
from feed.member.member import Member


@feed.command(part_of="Member")
class RegisterMember:
    """Create a member, optionally with the tokens their app already holds."""

    member_id: Identifier()
    display_name: String(max_length=200)
    fcm_tokens: Text()  # JSON list
    fcm_token: String(max_length=4096)
    tokens: Text()  # JSON list


@feed.command(part_of="Member")
class RegisterDeviceToken:
    """Attach a push token reported by one of the member's devices."""

    member_id: Identifier(required=True)
    token: String(required=True, max_length=4096)


@feed.command_handler(part_of=Member)
class MemberRegistrationHandler:
    @handle(RegisterMember)
    def register_member(self, command):
        member = Member.register(
            member_id=command.member_id,
            display_name=command.display_name,
            fcm_tokens=json.loads(command.fcm_tokens) if command.fcm_tokens else None,
            fcm_token=command.fcm_token,
            tokens=json.loads(command.tokens) if command.tokens else None,
        )
        current_domain.repository_for(Member).add(member)
        return str(member.id)

    @handle(RegisterDeviceToken)
    def register_device_token(self, command):
        repo = current_domain.repository_for(Member)
        member = repo.get(command.member_id)
        member.add_device_token(command.token)
        repo.add(member)
