"""
Обработчики администратора: управление пользователями
"""
import logging

from aiogram import Router, F
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, CallbackQuery

from database.models import ROLE_ADMIN, ROLE_OPERATOR, OperatorSession
from engine.errors import RentalError
from engine.rental import RentalEngine
from keyboards.keyboards import (
    MENU_USERS, get_users_keyboard, get_user_actions_keyboard,
    get_user_delete_keyboard, get_role_keyboard, get_cancel_keyboard
)
from middlewares.operator_auth import OperatorAuthMiddleware
from states.operator_states import UserStates

logger = logging.getLogger(__name__)
router = Router()
router.message.middleware(OperatorAuthMiddleware(admin_only=True))
router.callback_query.middleware(OperatorAuthMiddleware(admin_only=True))


def _user_id(callback: CallbackQuery) -> int:
    return int(callback.data.split(":")[1])


async def _delete_secret(message: Message):
    """Сообщение с паролем не должно оставаться в чате"""
    try:
        await message.delete()
    except TelegramAPIError as e:
        logger.warning(f"Не удалось удалить сообщение с паролем: {e}")


@router.message(Command("users"))
@router.message(F.text == MENU_USERS)
async def users_list(message: Message, state: FSMContext, engine: RentalEngine):
    """Список пользователей"""
    await state.clear()
    await message.answer(
        "👥 Пользователи:",
        reply_markup=get_users_keyboard(engine.access.users)
    )


@router.callback_query(F.data == "users")
async def callback_users(callback: CallbackQuery, state: FSMContext, engine: RentalEngine):
    await state.clear()
    await callback.message.edit_text(
        "👥 Пользователи:",
        reply_markup=get_users_keyboard(engine.access.users)
    )
    await callback.answer()


@router.callback_query(F.data.startswith("user:"))
async def callback_user(callback: CallbackQuery, state: FSMContext, engine: RentalEngine):
    """Карточка пользователя"""
    await state.clear()
    try:
        user = engine.access.get_user(_user_id(callback))
    except RentalError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    await callback.message.edit_text(
        f"👤 {user.username}\n"
        f"🔑 Роль: {user.role}",
        reply_markup=get_user_actions_keyboard(user)
    )
    await callback.answer()


# ---- Новый пользователь

@router.callback_query(F.data == "user_new")
async def callback_user_new(callback: CallbackQuery, state: FSMContext):
    await state.set_state(UserStates.entering_username)
    await callback.message.edit_text("👤 Введите логин:", reply_markup=get_cancel_keyboard())
    await callback.answer()


@router.message(UserStates.entering_username)
async def process_username(message: Message, state: FSMContext, engine: RentalEngine):
    username = (message.text or '').strip()
    if not username or ' ' in username:
        await message.answer("⚠️ Логин не может быть пустым или содержать пробелы", reply_markup=get_cancel_keyboard())
        return

    if engine.access.find_user(username) is not None:
        await message.answer(f"⚠️ Пользователь {username} уже существует", reply_markup=get_cancel_keyboard())
        return

    await state.update_data(username=username)
    await state.set_state(UserStates.entering_password)
    await message.answer("🔑 Введите пароль:", reply_markup=get_cancel_keyboard())


@router.message(UserStates.entering_password)
async def process_password(message: Message, state: FSMContext):
    password = (message.text or '').strip()
    await _delete_secret(message)
    if not password:
        await message.answer("⚠️ Пароль не может быть пустым", reply_markup=get_cancel_keyboard())
        return

    await state.update_data(password=password)
    await state.set_state(UserStates.choosing_role)
    await message.answer("⚙️ Выберите роль:", reply_markup=get_role_keyboard())


@router.callback_query(F.data.startswith("role:"), UserStates.choosing_role)
async def process_role(callback: CallbackQuery, state: FSMContext, engine: RentalEngine):
    role = callback.data.split(":")[1]
    data = await state.get_data()
    await state.clear()

    try:
        user = engine.create_user(data.get('username', ''), data.get('password', ''), role)
    except RentalError as e:
        await callback.message.edit_text(f"⚠️ {e}")
        await callback.answer()
        return

    logger.info(f"Пользователь {user.username} ({user.role}) создан администратором {callback.from_user.id}")
    await callback.message.edit_text(
        f"✅ Пользователь {user.username} создан\n🔑 Роль: {user.role}",
        reply_markup=get_users_keyboard(engine.access.users)
    )
    await callback.answer()


# ---- Изменение и удаление

@router.callback_query(F.data.startswith("user_role:"))
async def callback_user_role(callback: CallbackQuery, engine: RentalEngine, operator: OperatorSession):
    """Смена роли admin <-> operator"""
    try:
        user = engine.access.get_user(_user_id(callback))
        if user.username == operator.username:
            await callback.answer("⚠️ Нельзя изменить свою роль", show_alert=True)
            return
        new_role = ROLE_OPERATOR if user.role == ROLE_ADMIN else ROLE_ADMIN
        user = engine.edit_user(user.id, role=new_role)
    except RentalError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    await callback.message.edit_text(
        f"👤 {user.username}\n"
        f"🔑 Роль: {user.role}",
        reply_markup=get_user_actions_keyboard(user)
    )
    await callback.answer("✅ Роль изменена")


@router.callback_query(F.data.startswith("user_password:"))
async def callback_user_password(callback: CallbackQuery, state: FSMContext):
    await state.set_state(UserStates.entering_new_password)
    await state.update_data(user_id=_user_id(callback))
    await callback.message.edit_text("🔑 Введите новый пароль:", reply_markup=get_cancel_keyboard())
    await callback.answer()


@router.message(UserStates.entering_new_password)
async def process_new_password(message: Message, state: FSMContext, engine: RentalEngine):
    password = (message.text or '').strip()
    await _delete_secret(message)
    if not password:
        await message.answer("⚠️ Пароль не может быть пустым", reply_markup=get_cancel_keyboard())
        return

    data = await state.get_data()
    await state.clear()
    try:
        user = engine.edit_user(data['user_id'], password=password)
    except RentalError as e:
        await message.answer(f"⚠️ {e}")
        return

    await message.answer(f"✅ Пароль пользователя {user.username} изменён")


@router.callback_query(F.data.startswith("user_delete:"))
async def callback_user_delete(callback: CallbackQuery, engine: RentalEngine, operator: OperatorSession):
    try:
        user = engine.access.get_user(_user_id(callback))
    except RentalError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    if user.username == operator.username:
        await callback.answer("⚠️ Нельзя удалить себя", show_alert=True)
        return

    await callback.message.edit_text(
        f"⚠️ Удалить пользователя {user.username}?",
        reply_markup=get_user_delete_keyboard(user.id)
    )
    await callback.answer()


@router.callback_query(F.data.startswith("user_delete_confirm:"))
async def callback_user_delete_confirm(callback: CallbackQuery, engine: RentalEngine):
    try:
        user = engine.delete_user(_user_id(callback))
    except RentalError as e:
        await callback.answer(f"⚠️ {e}", show_alert=True)
        return

    logger.info(f"Пользователь {user.username} удалён администратором {callback.from_user.id}")
    await callback.message.edit_text(
        f"🗑 Пользователь {user.username} удалён",
        reply_markup=get_users_keyboard(engine.access.users)
    )
    await callback.answer()
