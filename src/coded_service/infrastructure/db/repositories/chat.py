from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from coded_service.domain.entities.chat import Chat
from coded_service.infrastructure.db.mappers import chat as mapper
from coded_service.infrastructure.db.models.chat import ChatModel, ChatParticipantModel


class ChatReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, chat_id: UUID) -> Chat | None:
        result = await self._session.get(ChatModel, chat_id)
        return mapper.model_to_entity(result) if result else None

    async def is_participant(self, chat_id: UUID, user_id: str) -> bool:
        stmt = (
            select(ChatParticipantModel.chat_id)
            .where(
                ChatParticipantModel.chat_id == chat_id,
                ChatParticipantModel.user_id == user_id,
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def find_by_participants(self, participants: list[str]) -> Chat | None:
        if not participants:
            return None
        size = len(participants)
        candidates = select(ChatParticipantModel.chat_id).where(
            ChatParticipantModel.user_id == participants[0]
        )
        members = func.sum(case((ChatParticipantModel.user_id.in_(participants), 1), else_=0))
        stmt = (
            select(ChatParticipantModel.chat_id)
            .where(ChatParticipantModel.chat_id.in_(candidates))
            .group_by(ChatParticipantModel.chat_id)
            .having(func.count() == size, members == size)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        chat_id = result.scalar_one_or_none()
        return await self.get_by_id(chat_id) if chat_id else None

    async def list_for_user(self, user_id: str, *, limit: int = 50) -> list[Chat]:
        stmt = (
            select(ChatModel)
            .join(ChatParticipantModel, ChatParticipantModel.chat_id == ChatModel.id)
            .where(ChatParticipantModel.user_id == user_id)
            .order_by(ChatModel.last_message_at.desc(), ChatModel.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class ChatWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, chat: Chat) -> Chat:
        model = mapper.entity_to_model(chat)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def touch_last_message(self, chat_id: UUID, content: str, ts: datetime) -> None:
        stmt = (
            update(ChatModel)
            .where(ChatModel.id == chat_id)
            .values(last_message=content, last_message_at=ts)
        )
        await self._session.execute(stmt)
