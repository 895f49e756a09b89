"""
Репозиторий для работы с данными
"""
import json
import logging
import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional

from database.database import get_db
from database.models import Unit, SessionLogEntry, User, OperatorSession

logger = logging.getLogger(__name__)

UNITS_KEY = 'units'
LOGS_KEY = 'logs'
USERS_KEY = 'users'
SESSION_KEY = 'session'


class StateRepository:
    """
    Репозиторий состояния в key/value хранилище.

    Каждая запись (консоли, журнал, пользователи, сессии) хранится
    целиком. Отсутствующая или повреждённая запись возвращается как None,
    чтобы вызывающий код подставил значения по умолчанию.
    """

    @staticmethod
    def get(key: str) -> Optional[Any]:
        """Чтение записи по ключу"""
        try:
            with get_db() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
                row = cursor.fetchone()
        except sqlite3.Error as e:
            logger.warning(f"Не удалось прочитать запись '{key}': {e}")
            return None

        if row is None:
            return None

        try:
            return json.loads(row['value'])
        except ValueError as e:
            logger.warning(f"Запись '{key}' повреждена: {e}")
            return None

    @staticmethod
    def put(key: str, value: Any):
        """Сохранение записи по ключу"""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
            """, (key, json.dumps(value, ensure_ascii=False), datetime.now()))

    @staticmethod
    def load_units() -> Optional[List[Unit]]:
        """Загрузка консолей"""
        raw = StateRepository.get(UNITS_KEY)
        if raw is None:
            return None
        try:
            return [Unit.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Не удалось разобрать консоли: {e}")
            return None

    @staticmethod
    def save_units(units: List[Unit]):
        StateRepository.put(UNITS_KEY, [unit.to_dict() for unit in units])

    @staticmethod
    def load_logs() -> Optional[List[SessionLogEntry]]:
        """Загрузка журнала (новые записи первыми)"""
        raw = StateRepository.get(LOGS_KEY)
        if raw is None:
            return None
        try:
            return [SessionLogEntry.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Не удалось разобрать журнал: {e}")
            return None

    @staticmethod
    def save_logs(entries: List[SessionLogEntry]):
        StateRepository.put(LOGS_KEY, [entry.to_dict() for entry in entries])

    @staticmethod
    def load_users() -> Optional[List[User]]:
        """Загрузка пользователей"""
        raw = StateRepository.get(USERS_KEY)
        if raw is None:
            return None
        try:
            return [User.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Не удалось разобрать пользователей: {e}")
            return None

    @staticmethod
    def save_users(users: List[User]):
        StateRepository.put(USERS_KEY, [user.to_dict() for user in users])

    @staticmethod
    def load_sessions() -> Optional[Dict[int, OperatorSession]]:
        """Загрузка сессий операторов (ключ — Telegram ID)"""
        raw = StateRepository.get(SESSION_KEY)
        if raw is None:
            return None
        try:
            return {
                int(telegram_id): OperatorSession.from_dict(item)
                for telegram_id, item in raw.items()
            }
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Не удалось разобрать сессии: {e}")
            return None

    @staticmethod
    def save_sessions(sessions: Dict[int, OperatorSession]):
        StateRepository.put(
            SESSION_KEY,
            {str(telegram_id): session.to_dict() for telegram_id, session in sessions.items()}
        )
