from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, SmallInteger, String, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coded_service.infrastructure.db.base import Base


class ChatModel(Base):
    __tablename__ = "chats"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    last_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_message_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )

    participants = relationship(
        "ChatParticipantModel",
        back_populates="chat",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ChatParticipantModel.position",
    )

    __table_args__ = (
        Index("ix_chats_last_message_at", last_message_at.desc()),
    )


class ChatParticipantModel(Base):
    __tablename__ = "chat_participants"

    chat_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("chats.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # creator is 0; keeps "first other participant" stable
    position: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)

    chat = relationship("ChatModel", back_populates="participants")

    __table_args__ = (
        Index("ix_chat_participants_user", "user_id", "chat_id"),
    )
