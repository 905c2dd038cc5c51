"""Typed payloads of the realtime events collaborators ask to fan out.

Field names are snake_case in Python and camelCase on the wire.
Timestamps are Unix seconds.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class EventPayload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class SenderInfo(EventPayload):
    id: str
    name: str
    avatar: str


class PartnerInfo(EventPayload):
    id: str
    name: str
    avatar: str
    status: str


class ConnectedPayload(EventPayload):
    user_id: str
    message: str
    time: int


class NewMessagePayload(EventPayload):
    id: str
    chat_id: str
    sender_id: str
    sender: SenderInfo
    content: str
    type: str
    is_read: bool
    created_at: int


class ChatCreatedPayload(EventPayload):
    id: str
    last_message_at: int
    partner: PartnerInfo


class MessageReadPayload(EventPayload):
    chat_id: str
    user_id: str
    message_ids: list[str]
    timestamp: int


class TypingPayload(EventPayload):
    chat_id: str
    user_id: str
    timestamp: int


class SubscribedPayload(EventPayload):
    channel: str
    user_id: str
    time: int


class ChatSubscribedPayload(EventPayload):
    chat_id: str
    user_id: str


class PongPayload(EventPayload):
    time: int
