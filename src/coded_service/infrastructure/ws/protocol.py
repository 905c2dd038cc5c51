"""WebSocket message envelope models.

Every frame is ``{"type": <kind>, ...}``. Server frames carry a kind-specific
``payload``; client frames are decoded discriminant-first and unknown kinds are
ignored so new kinds can be added without breaking older peers.
"""
from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from coded_service.application.dto.events import (
    ChatCreatedPayload,
    ChatSubscribedPayload,
    ConnectedPayload,
    MessageReadPayload,
    NewMessagePayload,
    PongPayload,
    SubscribedPayload,
    TypingPayload,
)


class ProtocolError(ValueError):
    """Inbound frame could not be decoded."""


# Server → Client


class Envelope(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str

    def encode(self) -> str:
        return self.model_dump_json(by_alias=True)


class Connected(Envelope):
    type: Literal["connected"] = "connected"
    payload: ConnectedPayload


class NewMessage(Envelope):
    type: Literal["new_message"] = "new_message"
    payload: NewMessagePayload


class ChatCreated(Envelope):
    type: Literal["chat_created"] = "chat_created"
    payload: ChatCreatedPayload


class MessageRead(Envelope):
    type: Literal["message_read"] = "message_read"
    payload: MessageReadPayload


class TypingStart(Envelope):
    type: Literal["typing_start"] = "typing_start"
    payload: TypingPayload


class TypingEnd(Envelope):
    type: Literal["typing_end"] = "typing_end"
    payload: TypingPayload


class Subscribed(Envelope):
    type: Literal["subscribed"] = "subscribed"
    payload: SubscribedPayload


class ChatSubscribed(Envelope):
    type: Literal["chat_subscribed"] = "chat_subscribed"
    payload: ChatSubscribedPayload


class Pong(Envelope):
    type: Literal["pong"] = "pong"
    payload: PongPayload


OutboundEnvelope = Annotated[
    Union[
        Connected,
        NewMessage,
        ChatCreated,
        MessageRead,
        TypingStart,
        TypingEnd,
        Subscribed,
        ChatSubscribed,
        Pong,
    ],
    Field(discriminator="type"),
]


# Client → Server


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatRef(_Body):
    chat_id: str


class ReadReceipt(_Body):
    chat_id: str
    message_ids: list[str] = []


class SubscribeRequest(BaseModel):
    type: Literal["subscribe"]
    channel: str


class SubscribeChatRequest(BaseModel):
    type: Literal["subscribe_chat"]
    payload: ChatRef


class TypingStartRequest(BaseModel):
    type: Literal["typing_start"]
    payload: ChatRef


class TypingEndRequest(BaseModel):
    type: Literal["typing_end"]
    payload: ChatRef


class MessageReadRequest(BaseModel):
    type: Literal["message_read"]
    payload: ReadReceipt


class PingRequest(BaseModel):
    type: Literal["ping"]


InboundEnvelope = Union[
    SubscribeRequest,
    SubscribeChatRequest,
    TypingStartRequest,
    TypingEndRequest,
    MessageReadRequest,
    PingRequest,
]

_INBOUND: dict[str, type[BaseModel]] = {
    "subscribe": SubscribeRequest,
    "subscribe_chat": SubscribeChatRequest,
    "typing_start": TypingStartRequest,
    "typing_end": TypingEndRequest,
    "message_read": MessageReadRequest,
    "ping": PingRequest,
}


class _Discriminant(BaseModel):
    type: str


def decode_inbound(raw: str | bytes) -> InboundEnvelope | None:
    """Decode a client frame.

    Returns None for a well-formed frame of an unknown kind and raises
    ``ProtocolError`` when the frame is not valid for its kind.
    """
    try:
        kind = _Discriminant.model_validate_json(raw).type
    except ValidationError as exc:
        raise ProtocolError("frame is not a tagged envelope") from exc

    model = _INBOUND.get(kind)
    if model is None:
        return None
    try:
        return model.model_validate_json(raw)  # type: ignore[return-value]
    except ValidationError as exc:
        raise ProtocolError(f"malformed {kind!r} frame") from exc
