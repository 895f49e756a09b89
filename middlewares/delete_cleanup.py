"""
Middleware для удаления консолей с истёкшим окном отмены
"""
from typing import Callable, Dict, Any, Awaitable
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject


class PendingDeleteCleanupMiddleware(BaseMiddleware):
    """Удаляет просроченные консоли перед обработкой, чтобы оператор не видел их"""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        engine = data.get("engine")
        if engine is not None:
            engine.purge_expired()

        # Продолжение обработки
        return await handler(event, data)
