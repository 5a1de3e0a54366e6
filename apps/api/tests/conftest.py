"""
Fixtures compartilhadas.
Banco SQLite em memória (aiosqlite + StaticPool) criado do zero a cada teste.
As variáveis de ambiente são definidas antes de importar core.config.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DATABASE_SYNC_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789abcdef")
os.environ.setdefault("APP_PASSWORD", "test-password")
os.environ.setdefault("APP_ENV", "test")

import uuid  # noqa: E402
from datetime import datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from models import Account, Transaction  # noqa: E402
from models.base import Base  # noqa: E402


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed(session_factory):
    """
    Insere lançamentos diretamente no ledger.
    Uso: await seed(OWNER, ("INCOME", "COMPLETED", "100.00"), ...)
    """

    async def _seed(owner_id: str, *rows: tuple, created_at: datetime | None = None) -> list[Transaction]:
        async with session_factory() as session:
            if await session.get(Account, owner_id) is None:
                session.add(Account(id=owner_id))
                await session.flush()
            txs = []
            for tx_type, status, value, *rest in rows:
                tx = Transaction(
                    id=uuid.uuid4(),
                    owner_id=owner_id,
                    type=tx_type,
                    status=status,
                    value=Decimal(value),
                    description=f"{tx_type} de teste",
                    external_payment_id=rest[0] if rest else None,
                    created_at=created_at or datetime.now(timezone.utc),
                )
                session.add(tx)
                txs.append(tx)
            await session.commit()
            return txs

    return _seed
