"""
Экран клиента: только просмотр оставшегося времени, без управления
"""
import logging

from aiogram import Router, F
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject
from aiogram.types import Message, CallbackQuery

from database.models import UnitState
from engine.errors import UnitNotFound
from engine.rental import CustomerView, RentalEngine
from keyboards.keyboards import get_customer_view_keyboard

logger = logging.getLogger(__name__)
router = Router()

PROGRESS_WIDTH = 10


def format_progress(progress: float) -> str:
    filled = int(round(progress * PROGRESS_WIDTH))
    return "▓" * filled + "░" * (PROGRESS_WIDTH - filled)


def format_customer_view(view: CustomerView) -> str:
    text = (
        f"🎮 {view.name}\n\n"
        f"⏱ {view.remaining}\n"
        f"{view.state_label}"
    )
    if view.state in (UnitState.RUNNING, UnitState.WARNING):
        text += f"\n\n{format_progress(view.progress)}"
    return text


async def show_customer_view(message: Message, engine: RentalEngine, unit_id: int):
    """Отправка экрана клиента"""
    try:
        view = engine.customer_view(unit_id)
    except UnitNotFound:
        await message.answer("⚠️ Консоль не найдена")
        return

    await message.answer(
        format_customer_view(view),
        reply_markup=get_customer_view_keyboard(unit_id)
    )


@router.message(Command("view"))
async def cmd_view(message: Message, command: CommandObject, engine: RentalEngine):
    """Команда /view <id> - экран клиента"""
    try:
        unit_id = int((command.args or '').strip())
    except ValueError:
        await message.answer(
            "⚠️ Использование: /view <id>\n\n"
            "Пример: /view 1"
        )
        return

    await show_customer_view(message, engine, unit_id)


@router.callback_query(F.data.startswith("view_refresh:"))
async def refresh_view(callback: CallbackQuery, engine: RentalEngine):
    """Обновление экрана клиента"""
    unit_id = int(callback.data.split(":")[1])

    try:
        view = engine.customer_view(unit_id)
    except UnitNotFound:
        await callback.message.edit_text("⚠️ Консоль не найдена")
        await callback.answer()
        return

    try:
        await callback.message.edit_text(
            format_customer_view(view),
            reply_markup=get_customer_view_keyboard(unit_id)
        )
    except TelegramBadRequest as e:
        # Текст не изменился с прошлого обновления
        logger.debug(f"Экран клиента не обновлён: {e}")
    await callback.answer()
