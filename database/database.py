"""
Модуль для работы с базой данных SQLite (key/value хранилище)
"""
import sqlite3
import os
from contextlib import contextmanager
from typing import Generator
from config import settings


def get_connection() -> sqlite3.Connection:
    """Получение подключения к БД"""
    conn = sqlite3.Connection(settings.DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Контекстный менеджер для работы с БД"""
    conn = get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db():
    """Инициализация базы данных"""
    # Создание директории для БД, если не существует
    db_dir = os.path.dirname(settings.DB_PATH)
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir)

    with get_db() as conn:
        cursor = conn.cursor()

        # Записи хранятся целиком в JSON: units, logs, users, session
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        conn.commit()
