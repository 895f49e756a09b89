"""
Доставка уведомлений движка в Telegram.

Уведомление рассылается всем вошедшим операторам и удаляется из чатов,
когда диспетчер его скрывает. Звуковые сигналы с повторами (предупреждение,
конец времени) отправляются отдельным сообщением со звуком.
"""
import asyncio
import logging
from typing import Dict, List, Set, Tuple

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError

from engine.notifications import Notice, NOTICE_SHOWN, SignalKind
from keyboards.keyboards import get_notice_keyboard
from utils.colors import AMBER, RED

logger = logging.getLogger(__name__)

COLOR_ICONS = {
    RED: "❗️",
    AMBER: "⚠️",
}


class TelegramNotifier:
    """Слушатель уведомлений и приёмник сигналов для бота"""

    def __init__(self, bot: Bot, engine):
        self._bot = bot
        self._engine = engine
        self._sent: Dict[str, List[Tuple[int, int]]] = {}
        self._dismissed: Set[str] = set()
        self._tasks: Set[asyncio.Task] = set()

    def attach(self):
        self._engine.notifications.subscribe(self.on_notice)
        self._engine.notifications.add_sink(self)

    def _recipients(self) -> List[int]:
        return list(self._engine.access.sessions)

    def _spawn(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def on_notice(self, event: str, notice: Notice):
        if event == NOTICE_SHOWN:
            self._spawn(self._send(notice))
        else:
            self._dismissed.add(notice.id)
            self._spawn(self._delete(notice.id))

    def signal(self, kind: SignalKind, volume: float, repeat: int):
        if repeat <= 1 or volume <= 0:
            logger.debug(f"Сигнал {kind.value} без звука")
            return
        self._spawn(self._ring(kind, repeat))

    async def _send(self, notice: Notice):
        icon = COLOR_ICONS.get(notice.color, "ℹ️")
        markup = get_notice_keyboard(notice) if notice.has_action else None
        sent = []
        for chat_id in self._recipients():
            try:
                message = await self._bot.send_message(
                    chat_id,
                    f"{icon} {notice.text}",
                    reply_markup=markup,
                    disable_notification=True
                )
            except TelegramAPIError as e:
                logger.error(f"Не удалось отправить уведомление в {chat_id}: {e}")
                continue
            sent.append((chat_id, message.message_id))
        self._sent[notice.id] = sent

        # Уведомление скрыли, пока шла рассылка
        if notice.id in self._dismissed:
            await self._delete(notice.id)

    async def _delete(self, notice_id: str):
        sent = self._sent.pop(notice_id, None)
        if sent is None:
            # Рассылка ещё идёт, удалит _send
            return
        self._dismissed.discard(notice_id)
        for chat_id, message_id in sent:
            try:
                await self._bot.delete_message(chat_id, message_id)
            except TelegramAPIError as e:
                logger.warning(f"Не удалось удалить уведомление в {chat_id}: {e}")

    async def _ring(self, kind: SignalKind, repeat: int):
        text = "🔔" * repeat
        if kind is SignalKind.FINISHED:
            text = "⏰ " + text
        for chat_id in self._recipients():
            try:
                await self._bot.send_message(chat_id, text)
            except TelegramAPIError as e:
                logger.error(f"Не удалось отправить сигнал в {chat_id}: {e}")
