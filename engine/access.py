"""
Пользователи, вход и роли
"""
import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

import bcrypt

from config import settings
from database.models import User, OperatorSession, ROLES, ROLE_ADMIN, ROLE_OPERATOR
from engine.errors import (
    InvalidCredentials, MissingFields, DuplicateUsername, InvalidRole, UserNotFound
)

logger = logging.getLogger(__name__)


def encode_password(password: str) -> str:
    """bcrypt-хэш пароля"""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def check_password(password: str, encoded: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), encoded.encode('utf-8'))
    except ValueError:
        # Не bcrypt-хэш (например, данные старого формата)
        return False


def default_users() -> List[User]:
    """Администратор по умолчанию при пустом хранилище"""
    return [User(
        id=1,
        username=settings.DEFAULT_ADMIN_USERNAME,
        password_encoded=encode_password(settings.DEFAULT_ADMIN_PASSWORD),
        role=ROLE_ADMIN,
    )]


class AccessControl:
    """
    Учётные записи и сессии операторов.

    Сессии привязаны к Telegram ID: одним ботом пользуется несколько
    сотрудников.
    """

    def __init__(self, users: Optional[Iterable[User]] = None,
                 sessions: Optional[Dict[int, OperatorSession]] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self._users: List[User] = list(users) if users else default_users()
        self._sessions: Dict[int, OperatorSession] = dict(sessions or {})
        self._clock = clock

    @property
    def users(self) -> List[User]:
        return list(self._users)

    @property
    def sessions(self) -> Dict[int, OperatorSession]:
        return dict(self._sessions)

    def find_user(self, username: str) -> Optional[User]:
        for user in self._users:
            if user.username == username:
                return user
        return None

    def get_user(self, user_id: int) -> User:
        for user in self._users:
            if user.id == user_id:
                return user
        raise UserNotFound(user_id)

    def login(self, telegram_id: int, username: str, password: str) -> OperatorSession:
        """Вход оператора; ошибка не раскрывает, существует ли логин"""
        user = self.find_user(username or '')
        if user is None or not check_password(password or '', user.password_encoded):
            logger.warning(f"Неудачная попытка входа от {telegram_id}")
            raise InvalidCredentials()

        session = OperatorSession(
            username=user.username,
            role=user.role,
            logged_at=self._clock(),
        )
        self._sessions[telegram_id] = session
        logger.info(f"{user.username} вошёл ({telegram_id})")
        return session

    def logout(self, telegram_id: int) -> bool:
        return self._sessions.pop(telegram_id, None) is not None

    def session_for(self, telegram_id: int) -> Optional[OperatorSession]:
        return self._sessions.get(telegram_id)

    def is_admin(self, telegram_id: int) -> bool:
        session = self._sessions.get(telegram_id)
        return session is not None and session.is_admin

    def create_user(self, username: str, password: str, role: str = ROLE_OPERATOR) -> User:
        """Создание пользователя; при ошибке список не меняется"""
        username = (username or '').strip()
        if not username or not password:
            raise MissingFields()
        if role not in ROLES:
            raise InvalidRole(role)
        if self.find_user(username) is not None:
            raise DuplicateUsername(username)

        user = User(
            id=max((u.id for u in self._users), default=0) + 1,
            username=username,
            password_encoded=encode_password(password),
            role=role,
        )
        self._users.append(user)
        logger.info(f"Создан пользователь {username} ({role})")
        return user

    def edit_user(self, user_id: int, password: Optional[str] = None,
                  role: Optional[str] = None) -> User:
        """Смена пароля и/или роли; пустой пароль оставляет прежний"""
        user = self.get_user(user_id)
        if role and role not in ROLES:
            raise InvalidRole(role)
        if password:
            user.password_encoded = encode_password(password)
        if role:
            user.role = role
            for session in self._sessions.values():
                if session.username == user.username:
                    session.role = role
        return user

    def delete_user(self, user_id: int) -> User:
        user = self.get_user(user_id)
        self._users.remove(user)
        self._sessions = {
            telegram_id: session for telegram_id, session in self._sessions.items()
            if session.username != user.username
        }
        logger.info(f"Удалён пользователь {user.username}")
        return user
