"""
Обработчики управления консолями
"""
import logging

from aiogram import Bot, Router, F
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, CallbackQuery

from database.models import Unit, UnitState
from engine.errors import RentalError, RestartConfirmationRequired
from engine.rental import RentalEngine
from keyboards.keyboards import (
    MENU_UNITS, MENU_ADD_UNIT, get_units_keyboard, get_unit_actions_keyboard,
    get_duration_keyboard, get_restart_keyboard, get_volume_keyboard,
    get_cancel_keyboard, duration_text
)
from middlewares.operator_auth import OperatorAuthMiddleware
from states.operator_states import UnitStates, NewUnitStates
from utils.time_utils import format_hms, format_money, parse_duration

logger = logging.getLogger(__name__)
router = Router()
router.message.middleware(OperatorAuthMiddleware())
router.callback_query.middleware(OperatorAuthMiddleware())

STATE_TITLES = {
    UnitState.IDLE: "⚪️ Свободна",
    UnitState.RUNNING: "🟢 Идёт игра",
    UnitState.WARNING: "🟠 Скоро конец",
    UnitState.FINISHED: "🔴 Время вышло",
}


def _unit_id(callback: CallbackQuery) -> int:
    return int(callback.data.split(":")[1])


def format_unit_card(unit: Unit) -> str:
    """Текст карточки консоли"""
    text = (
        f"🎮 {unit.name} (#{unit.id})\n\n"
        f"{STATE_TITLES[unit.state]}\n"
        f"⏱ Осталось: {format_hms(unit.remaining_sec)}\n"
        f"💰 Цена: {format_money(unit.price_per_hour)} / час\n"
    )

    if unit.active:
        text += f"🕐 Заказано: {format_hms(unit.initial_sec)}\n"

    volume = "без звука" if unit.muted else f"{int(round(unit.volume * 100))}%"
    text += f"🔊 Громкость: {volume}\n"

    if unit.notes:
        text += f"📝 {unit.notes}\n"

    if unit.is_pending_delete:
        text += f"\n🗑 Будет удалена в {unit.pending_delete:%H:%M:%S}"

    return text


async def show_units(message: Message, engine: RentalEngine, edit: bool = False):
    text = "🎮 Консоли клуба:"
    markup = get_units_keyboard(engine.units)
    if edit:
        await message.edit_text(text, reply_markup=markup)
    else:
        await message.answer(text, reply_markup=markup)


async def show_unit(callback: CallbackQuery, unit: Unit):
    await callback.message.edit_text(
        format_unit_card(unit),
        reply_markup=get_unit_actions_keyboard(unit)
    )


@router.message(Command("units"))
@router.message(F.text == MENU_UNITS)
async def units_list(message: Message, state: FSMContext, engine: RentalEngine):
    """Список консолей"""
    await state.clear()
    await show_units(message, engine)


@router.callback_query(F.data == "units")
async def callback_units(callback: CallbackQuery, state: FSMContext, engine: RentalEngine):
    await state.clear()
    await show_units(callback.message, engine, edit=True)
    await callback.answer()


@router.callback_query(F.data.startswith("unit:"))
async def callback_unit(callback: CallbackQuery, state: FSMContext, engine: RentalEngine):
    """Карточка консоли"""
    await state.clear()
    try:
        unit = engine.get_unit(_unit_id(callback))
    except RentalError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    await show_unit(callback, unit)
    await callback.answer()


# ---- Старт и стоп

@router.callback_query(F.data.startswith("start:"))
async def callback_start(callback: CallbackQuery, engine: RentalEngine):
    """Выбор длительности перед стартом"""
    try:
        unit = engine.get_unit(_unit_id(callback))
    except RentalError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    text = f"⏱ {unit.name}: выберите длительность"
    last = unit.inputs
    if last.get('hours') or last.get('mins'):
        text += f"\n\nПрошлый ввод: {duration_text(last['hours'], last['mins'])}"

    await callback.message.edit_text(text, reply_markup=get_duration_keyboard(unit.id))
    await callback.answer()


async def _start_unit(callback: CallbackQuery, engine: RentalEngine, unit_id: int,
                      hours=None, mins=None, confirm_restart: bool = False):
    try:
        engine.start(unit_id, hours, mins, confirm_restart=confirm_restart)
    except RestartConfirmationRequired as e:
        await callback.message.edit_text(
            f"⚠️ {e}",
            reply_markup=get_restart_keyboard(unit_id)
        )
        await callback.answer()
        return
    except RentalError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    unit = engine.get_unit(unit_id)
    await show_unit(callback, unit)
    await callback.answer(f"▶️ {unit.name}: {format_hms(unit.initial_sec)}")


@router.callback_query(F.data.startswith("duration:"))
async def callback_duration(callback: CallbackQuery, engine: RentalEngine):
    """Старт с предустановленной длительностью"""
    _, unit_id, hours, mins = callback.data.split(":")
    await _start_unit(callback, engine, int(unit_id), int(hours), int(mins))


@router.callback_query(F.data.startswith("duration_custom:"))
async def callback_duration_custom(callback: CallbackQuery, state: FSMContext):
    await state.set_state(UnitStates.entering_duration)
    await state.update_data(unit_id=_unit_id(callback))
    await callback.message.edit_text(
        "✍️ Введите длительность:\n\n"
        "Например: 90 (минуты), 1:30 или 1ч30",
        reply_markup=get_cancel_keyboard()
    )
    await callback.answer()


@router.message(UnitStates.entering_duration)
async def process_duration(message: Message, state: FSMContext, engine: RentalEngine):
    """Обработка введённой длительности"""
    parsed = parse_duration(message.text)
    if parsed is None:
        await message.answer(
            "⚠️ Не удалось разобрать длительность.\n"
            "Например: 90, 1:30 или 1ч30",
            reply_markup=get_cancel_keyboard()
        )
        return

    data = await state.get_data()
    unit_id = data['unit_id']
    hours, mins = parsed

    try:
        engine.start(unit_id, hours, mins)
    except RestartConfirmationRequired as e:
        await state.clear()
        await message.answer(f"⚠️ {e}", reply_markup=get_restart_keyboard(unit_id))
        return
    except RentalError as e:
        await message.answer(f"⚠️ {e}", reply_markup=get_cancel_keyboard())
        return

    await state.clear()
    unit = engine.get_unit(unit_id)
    await message.answer(format_unit_card(unit), reply_markup=get_unit_actions_keyboard(unit))


@router.callback_query(F.data.startswith("restart_confirm:"))
async def callback_restart_confirm(callback: CallbackQuery, engine: RentalEngine):
    """Перезапуск с последней введённой длительностью"""
    await _start_unit(callback, engine, _unit_id(callback), confirm_restart=True)


@router.callback_query(F.data.startswith("stop:"))
async def callback_stop(callback: CallbackQuery, engine: RentalEngine):
    try:
        event = engine.stop(_unit_id(callback))
    except RentalError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    unit = engine.get_unit(event.unit_id)
    await show_unit(callback, unit)
    if event.entry is not None:
        await callback.answer(
            f"⏹ {event.minutes} мин, {format_money(event.entry.cost)}"
        )
    else:
        await callback.answer("⏹ Остановлено")


# ---- Редактирование

@router.callback_query(F.data.startswith("rename:"))
async def callback_rename(callback: CallbackQuery, state: FSMContext):
    await state.set_state(UnitStates.entering_name)
    await state.update_data(unit_id=_unit_id(callback))
    await callback.message.edit_text("✏️ Введите новое название:", reply_markup=get_cancel_keyboard())
    await callback.answer()


@router.message(UnitStates.entering_name)
async def process_name(message: Message, state: FSMContext, engine: RentalEngine):
    data = await state.get_data()
    try:
        unit = engine.rename_unit(data['unit_id'], message.text or '')
    except RentalError as e:
        await state.clear()
        await message.answer(f"⚠️ {e}")
        return

    if unit is None:
        await message.answer("⚠️ Название не может быть пустым", reply_markup=get_cancel_keyboard())
        return

    await state.clear()
    await message.answer(format_unit_card(unit), reply_markup=get_unit_actions_keyboard(unit))


@router.callback_query(F.data.startswith("price:"))
async def callback_price(callback: CallbackQuery, state: FSMContext):
    await state.set_state(UnitStates.entering_price)
    await state.update_data(unit_id=_unit_id(callback))
    await callback.message.edit_text("💰 Введите цену за час:", reply_markup=get_cancel_keyboard())
    await callback.answer()


@router.message(UnitStates.entering_price)
async def process_price(message: Message, state: FSMContext, engine: RentalEngine):
    data = await state.get_data()
    price = (message.text or '').replace(' ', '')
    try:
        unit = engine.set_price(data['unit_id'], price)
    except RentalError as e:
        await message.answer(f"⚠️ {e}", reply_markup=get_cancel_keyboard())
        return

    await state.clear()
    await message.answer(format_unit_card(unit), reply_markup=get_unit_actions_keyboard(unit))


@router.callback_query(F.data.startswith("notes:"))
async def callback_notes(callback: CallbackQuery, state: FSMContext):
    await state.set_state(UnitStates.entering_notes)
    await state.update_data(unit_id=_unit_id(callback))
    await callback.message.edit_text(
        "📝 Введите заметку (или '-' чтобы очистить):",
        reply_markup=get_cancel_keyboard()
    )
    await callback.answer()


@router.message(UnitStates.entering_notes)
async def process_notes(message: Message, state: FSMContext, engine: RentalEngine):
    data = await state.get_data()
    notes = (message.text or '').strip()
    if notes == '-':
        notes = ''

    await state.clear()
    try:
        unit = engine.set_notes(data['unit_id'], notes)
    except RentalError as e:
        await message.answer(f"⚠️ {e}")
        return

    await message.answer(format_unit_card(unit), reply_markup=get_unit_actions_keyboard(unit))


@router.callback_query(F.data.startswith("volume:"))
async def callback_volume(callback: CallbackQuery):
    await callback.message.edit_text(
        "🔊 Громкость сигналов:",
        reply_markup=get_volume_keyboard(_unit_id(callback))
    )
    await callback.answer()


@router.callback_query(F.data.startswith("volume_set:"))
async def callback_volume_set(callback: CallbackQuery, engine: RentalEngine):
    _, unit_id, percent = callback.data.split(":")
    try:
        unit = engine.set_volume(int(unit_id), int(percent) / 100)
    except RentalError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    await show_unit(callback, unit)
    await callback.answer(f"🔊 {percent}%")


@router.callback_query(F.data.startswith("mute:"))
async def callback_mute(callback: CallbackQuery, engine: RentalEngine):
    try:
        unit = engine.toggle_mute(_unit_id(callback))
    except RentalError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    await show_unit(callback, unit)
    await callback.answer("🔇 Звук выключен" if unit.muted else "🔈 Звук включён")


# ---- Удаление

@router.callback_query(F.data.startswith("delete:"))
async def callback_delete(callback: CallbackQuery, engine: RentalEngine):
    """Удаление с возможностью отмены"""
    unit_id = _unit_id(callback)
    try:
        engine.request_delete(unit_id)
    except RentalError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    await show_unit(callback, engine.get_unit(unit_id))
    await callback.answer()


@router.callback_query(F.data.startswith("undo_delete:"))
async def callback_undo_delete(callback: CallbackQuery, engine: RentalEngine):
    unit_id = _unit_id(callback)
    if not engine.undo_delete(unit_id):
        await callback.answer("⚠️ Отменить уже нельзя", show_alert=True)
        return

    await show_unit(callback, engine.get_unit(unit_id))
    await callback.answer("↩️ Удаление отменено")


@router.callback_query(F.data.startswith("notice:"))
async def callback_notice(callback: CallbackQuery, engine: RentalEngine):
    """Кнопка действия в уведомлении"""
    notice_id = callback.data.split(":", 1)[1]
    if not engine.notifications.trigger(notice_id):
        await callback.answer("Уже неактуально", show_alert=True)
        return
    await callback.answer()


# ---- Добавление консоли

@router.message(Command("add"))
@router.message(F.text == MENU_ADD_UNIT)
async def add_unit(message: Message, state: FSMContext):
    await state.clear()
    await state.set_state(NewUnitStates.entering_name)
    await message.answer(
        "➕ Название новой консоли (или '-' для названия по умолчанию):",
        reply_markup=get_cancel_keyboard()
    )


@router.message(NewUnitStates.entering_name)
async def process_new_name(message: Message, state: FSMContext):
    name = (message.text or '').strip()
    await state.update_data(name=None if name == '-' else name)
    await state.set_state(NewUnitStates.entering_price)
    await message.answer(
        "💰 Цена за час (или '-' для цены по умолчанию):",
        reply_markup=get_cancel_keyboard()
    )


@router.message(NewUnitStates.entering_price)
async def process_new_price(message: Message, state: FSMContext, engine: RentalEngine):
    text = (message.text or '').replace(' ', '')
    price = None if text == '-' else text
    data = await state.get_data()

    try:
        unit = engine.add_unit(data.get('name'), price)
    except RentalError as e:
        await message.answer(f"⚠️ {e}", reply_markup=get_cancel_keyboard())
        return

    await state.clear()
    logger.info(f"Консоль {unit.name} добавлена пользователем {message.from_user.id}")
    await message.answer(
        f"✅ Консоль добавлена\n\n" + format_unit_card(unit),
        reply_markup=get_unit_actions_keyboard(unit)
    )


# ---- Экран клиента

@router.callback_query(F.data.startswith("view:"))
async def callback_view_link(callback: CallbackQuery, bot: Bot, engine: RentalEngine):
    """Ссылка на экран клиента для отдельного устройства"""
    unit_id = _unit_id(callback)
    try:
        unit = engine.get_unit(unit_id)
    except RentalError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    me = await bot.me()
    await callback.message.answer(
        f"👁 Экран клиента для {unit.name}:\n"
        f"https://t.me/{me.username}?start=view_{unit_id}\n\n"
        f"Или командой: /view {unit_id}"
    )
    await callback.answer()
