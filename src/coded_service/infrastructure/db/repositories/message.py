from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from coded_service.domain.entities.message import Message
from coded_service.infrastructure.db.mappers import message as mapper
from coded_service.infrastructure.db.models.message import MessageModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_chat(self, chat_id: UUID, *, limit: int = 200) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.chat_id == chat_id)
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        newest_first = result.scalars().all()
        return [mapper.model_to_entity(m) for m in reversed(newest_first)]


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, message: Message) -> Message:
        model = mapper.entity_to_model(message)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def mark_read(
        self,
        chat_id: UUID,
        reader_id: str,
        message_ids: list[UUID] | None = None,
    ) -> list[UUID]:
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.chat_id == chat_id,
                MessageModel.sender_id != reader_id,
                MessageModel.is_read.is_(False),
            )
            .values(is_read=True)
            .returning(MessageModel.id)
            .execution_options(synchronize_session=False)
        )
        if message_ids:
            stmt = stmt.where(MessageModel.id.in_(message_ids))
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
