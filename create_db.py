# create_db.py
"""
Создаёт базу данных ridepool, если её ещё нет.
Схему применяет сам сервис при старте (migrations/init.sql).
"""

import asyncio

import asyncpg

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info
from src.config import settings


async def create_db() -> None:
    db_name = settings.database.DB_NAME
    try:
        sys_conn = await asyncpg.connect(
            user=settings.database.DB_USER,
            password=settings.database.DB_PASSWORD,
            host=settings.database.DB_HOST,
            port=settings.database.DB_PORT,
            database="postgres",
        )
    except (OSError, asyncpg.PostgresError) as e:
        await log_error(f"Не удалось подключиться к PostgreSQL: {e}")
        raise

    try:
        exists = await sys_conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", db_name)
        if exists:
            await log_info(f"База {db_name} уже существует", type_msg=TypeMsg.INFO)
            return

        # Имя базы нельзя передать параметром
        await sys_conn.execute(f'CREATE DATABASE "{db_name}"')
        await log_info(f"База {db_name} создана", type_msg=TypeMsg.INFO)
    finally:
        await sys_conn.close()


if __name__ == "__main__":
    asyncio.run(create_db())
