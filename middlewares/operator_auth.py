"""
Middleware проверки входа оператора.

Пропускает к обработчику только пользователей с активной сессией и
кладёт сессию в data["operator"]. С admin_only=True пропускает только
администраторов.
"""
from typing import Callable, Dict, Any, Awaitable

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Message, CallbackQuery

LOGIN_HINT = "🔒 Сначала войдите: /login <логин> <пароль>"
NO_ACCESS = "⚠️ У вас нет доступа"


class OperatorAuthMiddleware(BaseMiddleware):
    """Доступ к операциям только после входа"""

    def __init__(self, admin_only: bool = False):
        self.admin_only = admin_only

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        engine = data["engine"]
        user = data.get("event_from_user")
        session = engine.session_for(user.id) if user else None

        if session is None:
            await self._reject(event, LOGIN_HINT)
            return None

        if self.admin_only and not session.is_admin:
            await self._reject(event, NO_ACCESS)
            return None

        data["operator"] = session
        return await handler(event, data)

    @staticmethod
    async def _reject(event: TelegramObject, text: str):
        if isinstance(event, CallbackQuery):
            await event.answer(text, show_alert=True)
        elif isinstance(event, Message):
            await event.answer(text)
