"""Tests for the database engine wrapper."""

from sqlalchemy import text

from authcore.db import Database


async def test_construction_does_not_connect(tmp_path) -> None:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'auth.db'}")

    assert await database.health_check() is False
    await database.close()


async def test_session_after_create_tables(settings) -> None:
    database = Database(settings.database_url)
    await database.create_tables()

    async with database.session() as session:
        result = await session.execute(text("SELECT COUNT(*) FROM users"))

    assert result.scalar_one() == 0
    assert await database.health_check() is True
    await database.close()
