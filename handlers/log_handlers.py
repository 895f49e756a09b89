"""
Обработчики журнала сессий: просмотр, выгрузка CSV, очистка
"""
import logging

from aiogram import Router, F
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, CallbackQuery, BufferedInputFile

from engine.rental import RentalEngine
from keyboards.keyboards import MENU_LOGS, get_logs_keyboard, get_clear_logs_keyboard, get_cancel_keyboard
from middlewares.operator_auth import OperatorAuthMiddleware
from states.operator_states import ExportStates
from utils.time_utils import format_datetime, format_money, parse_date_bound

logger = logging.getLogger(__name__)
router = Router()
router.message.middleware(OperatorAuthMiddleware())
router.callback_query.middleware(OperatorAuthMiddleware())

RECENT_LIMIT = 15
DATE_HINT = "Формат: 2024-05-01, 01.05.2024 или 01.05.2024 18:00.\n'-' — без ограничения"


@router.message(Command("logs"))
@router.message(F.text == MENU_LOGS)
async def show_logs(message: Message, state: FSMContext, engine: RentalEngine):
    """Последние записи журнала и общая выручка"""
    await state.clear()

    entries = engine.log.recent(RECENT_LIMIT)
    if not entries:
        await message.answer("📋 Журнал пуст", reply_markup=get_logs_keyboard())
        return

    text = f"📋 Последние сессии ({len(entries)} из {len(engine.log)}):\n\n"
    for entry in entries:
        text += (
            f"🔹 {entry.unit}\n"
            f"   🕐 {format_datetime(entry.timestamp)}\n"
            f"   ⏱ {entry.duration_minutes} мин · 💰 {format_money(entry.cost)}\n"
        )
        if entry.notes:
            text += f"   📝 {entry.notes}\n"
        text += "\n"

    # Итог по всему журналу, независимо от показанных записей
    text += f"💰 Итого: {format_money(engine.total_revenue())}"

    await message.answer(text, reply_markup=get_logs_keyboard())


@router.callback_query(F.data == "logs_export")
async def callback_export(callback: CallbackQuery, state: FSMContext):
    await state.set_state(ExportStates.entering_from)
    await callback.message.answer(
        f"📤 Начало периода:\n\n{DATE_HINT}",
        reply_markup=get_cancel_keyboard()
    )
    await callback.answer()


@router.message(ExportStates.entering_from)
async def process_export_from(message: Message, state: FSMContext):
    try:
        date_from = parse_date_bound(message.text)
    except ValueError:
        await message.answer(f"⚠️ Неверная дата.\n\n{DATE_HINT}", reply_markup=get_cancel_keyboard())
        return

    await state.update_data(date_from=date_from)
    await state.set_state(ExportStates.entering_to)
    await message.answer(f"📤 Конец периода:\n\n{DATE_HINT}", reply_markup=get_cancel_keyboard())


@router.message(ExportStates.entering_to)
async def process_export_to(message: Message, state: FSMContext, engine: RentalEngine):
    """Выгрузка журнала за период"""
    try:
        date_to = parse_date_bound(message.text, end_of_day=True)
    except ValueError:
        await message.answer(f"⚠️ Неверная дата.\n\n{DATE_HINT}", reply_markup=get_cancel_keyboard())
        return

    data = await state.get_data()
    await state.clear()

    result = engine.export_logs(data.get('date_from'), date_to)
    if result is None:
        await message.answer("📭 Файл не создан: нет записей за период")
        return

    filename, content = result
    await message.answer_document(
        BufferedInputFile(content, filename=filename),
        caption=f"📤 {filename}"
    )
    logger.info(f"Журнал выгружен пользователем {message.from_user.id}: {filename}")


@router.callback_query(F.data == "logs_clear")
async def callback_clear(callback: CallbackQuery):
    await callback.message.answer(
        "⚠️ Очистить весь журнал? Это действие нельзя отменить.",
        reply_markup=get_clear_logs_keyboard()
    )
    await callback.answer()


@router.callback_query(F.data == "logs_clear_confirm")
async def callback_clear_confirm(callback: CallbackQuery, engine: RentalEngine):
    count = engine.clear_logs()
    await callback.message.edit_text(f"🧹 Журнал очищен, удалено записей: {count}")
    await callback.answer()
