"""
Вход, выход и общие команды
"""
import logging

from aiogram import Router, F
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, CallbackQuery, ReplyKeyboardRemove

from engine.errors import RentalError
from engine.rental import RentalEngine
from handlers.view_handlers import show_customer_view
from keyboards.keyboards import get_main_menu_keyboard, MENU_LOGOUT

logger = logging.getLogger(__name__)
router = Router()

VIEW_DEEP_LINK_PREFIX = "view_"


@router.message(CommandStart())
async def cmd_start(message: Message, command: CommandObject, state: FSMContext, engine: RentalEngine):
    """Обработка команды /start (в том числе ссылки на экран клиента)"""
    await state.clear()

    args = command.args or ''
    if args.startswith(VIEW_DEEP_LINK_PREFIX):
        try:
            unit_id = int(args[len(VIEW_DEEP_LINK_PREFIX):])
        except ValueError:
            await message.answer("⚠️ Неверная ссылка")
            return
        await show_customer_view(message, engine, unit_id)
        return

    session = engine.session_for(message.from_user.id)
    if session is None:
        await message.answer(
            "👋 PlayBox — учёт аренды консолей.\n\n"
            "Для работы войдите:\n"
            "/login <логин> <пароль>",
            reply_markup=ReplyKeyboardRemove()
        )
        return

    await message.answer(
        f"👋 {session.username} ({session.role})\n\nВыберите действие:",
        reply_markup=get_main_menu_keyboard(session.is_admin)
    )


@router.message(Command("login"))
async def cmd_login(message: Message, command: CommandObject, engine: RentalEngine):
    """Команда /login <логин> <пароль>"""
    parts = (command.args or '').split()
    if len(parts) != 2:
        await message.answer(
            "⚠️ Использование: /login <логин> <пароль>\n\n"
            "Пример: /login admin 1234"
        )
        return

    username, password = parts

    # Сообщение с паролем не должно оставаться в чате
    try:
        await message.delete()
    except TelegramAPIError as e:
        logger.warning(f"Не удалось удалить сообщение с паролем: {e}")

    try:
        session = engine.login(message.from_user.id, username, password)
    except RentalError as e:
        await message.answer(f"⚠️ {e}")
        return

    await message.answer(
        f"✅ Вы вошли как {session.username} ({session.role})",
        reply_markup=get_main_menu_keyboard(session.is_admin)
    )


@router.message(Command("logout"))
@router.message(F.text == MENU_LOGOUT)
async def cmd_logout(message: Message, state: FSMContext, engine: RentalEngine):
    """Выход оператора"""
    await state.clear()
    engine.logout(message.from_user.id)
    await message.answer(
        "👋 Вы вышли. Для входа: /login <логин> <пароль>",
        reply_markup=ReplyKeyboardRemove()
    )


@router.callback_query(F.data == "cancel")
async def callback_cancel(callback: CallbackQuery, state: FSMContext):
    """Отмена текущего действия"""
    await state.clear()
    await callback.message.edit_text("❌ Действие отменено")
    await callback.answer()
