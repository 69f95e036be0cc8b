from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from contextlib import asynccontextmanager
import logging
import os
from dotenv import load_dotenv

load_dotenv()

from bzr_portal.core.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.get_database_url()

# Mask password in log
masked_url = DATABASE_URL.split('@')[-1] if '@' in DATABASE_URL else DATABASE_URL
logger.info(f"Database connection URL: ...@{masked_url}")

engine = create_async_engine(
    DATABASE_URL,
    echo=True if os.getenv("DEBUG") == "True" else False,
    pool_size=10,
    max_overflow=10,
    pool_pre_ping=True,  # Supabase pooler drops idle connections
    pool_recycle=3600,
    connect_args={
        "server_settings": {
            "application_name": "bzr_portal",
        }
    },
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()


@asynccontextmanager
async def get_async_session():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
