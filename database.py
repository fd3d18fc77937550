from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, String, Text
import json
import logging
from typing import Any, Optional
from config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

# Named durable slots
SERVERS_SLOT = "servers"              # legacy flat server list
USER_SLOT = "user"                    # current-user session
USERS_REGISTRY_SLOT = "users_registry"
INTEGRATIONS_SLOT = "integrations"

class StorageSlot(Base):
    __tablename__ = "storage_slots"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)

class Database:
    def __init__(self, database_url: Optional[str] = None):
        self.engine = create_async_engine(
            database_url or settings.database_url,
            echo=False,
            future=True
        )
        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

    async def init_db(self):
        """Initialize database tables"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self):
        await self.engine.dispose()

    async def get_raw(self, key: str) -> Optional[str]:
        """Get the raw text stored in a slot"""
        async with self.async_session() as session:
            slot = await session.get(StorageSlot, key)
            return slot.value if slot else None

    async def set_raw(self, key: str, value: str) -> None:
        """Store raw text in a slot, replacing any previous value"""
        async with self.async_session() as session:
            slot = await session.get(StorageSlot, key)
            if slot:
                slot.value = value
            else:
                session.add(StorageSlot(key=key, value=value))
            await session.commit()

    async def get_json(self, key: str) -> Any:
        """Get the decoded value of a slot.

        Returns None when the slot is missing or holds malformed JSON.
        """
        raw = await self.get_raw(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning(f"Ignoring malformed JSON in slot '{key}': {e}")
            return None

    async def set_json(self, key: str, value: Any) -> None:
        await self.set_raw(key, json.dumps(value))

    async def delete(self, key: str) -> bool:
        """Remove a slot"""
        async with self.async_session() as session:
            slot = await session.get(StorageSlot, key)
            if slot:
                await session.delete(slot)
                await session.commit()
                return True
            return False

# Global database instance
db = Database()
