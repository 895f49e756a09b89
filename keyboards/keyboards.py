"""
Клавиатуры для Telegram бота
"""
from typing import List

from aiogram.types import InlineKeyboardMarkup, ReplyKeyboardMarkup, KeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder

from database.models import Unit, UnitState, User, ROLE_ADMIN, ROLE_OPERATOR
from engine.notifications import Notice
from utils.time_utils import format_hms

MENU_UNITS = "🎮 Консоли"
MENU_LOGS = "📋 Журнал"
MENU_ADD_UNIT = "➕ Добавить консоль"
MENU_USERS = "👥 Пользователи"
MENU_LOGOUT = "🚪 Выйти"

STATE_ICONS = {
    UnitState.IDLE: "⚪️",
    UnitState.RUNNING: "🟢",
    UnitState.WARNING: "🟠",
    UnitState.FINISHED: "🔴",
}

# (часы, минуты)
DURATION_PRESETS = [(0, 30), (1, 0), (1, 30), (2, 0), (3, 0), (4, 0)]
VOLUME_STEPS = [0, 25, 50, 75, 100]


def get_main_menu_keyboard(is_admin: bool = False) -> ReplyKeyboardMarkup:
    """Главное меню оператора"""
    buttons = [
        [KeyboardButton(text=MENU_UNITS), KeyboardButton(text=MENU_LOGS)],
        [KeyboardButton(text=MENU_ADD_UNIT)],
    ]

    if is_admin:
        buttons.append([KeyboardButton(text=MENU_USERS)])

    buttons.append([KeyboardButton(text=MENU_LOGOUT)])
    return ReplyKeyboardMarkup(keyboard=buttons, resize_keyboard=True)


def unit_button_text(unit: Unit) -> str:
    text = f"{STATE_ICONS[unit.state]} {unit.name}"
    if unit.active:
        text += f" · {format_hms(unit.remaining_sec)}"
    if unit.is_pending_delete:
        text += " · 🗑"
    return text


def get_units_keyboard(units: List[Unit]) -> InlineKeyboardMarkup:
    """Список консолей"""
    builder = InlineKeyboardBuilder()

    for unit in units:
        builder.button(text=unit_button_text(unit), callback_data=f"unit:{unit.id}")

    builder.button(text="🔄 Обновить", callback_data="units")
    builder.adjust(1)

    return builder.as_markup()


def get_unit_actions_keyboard(unit: Unit) -> InlineKeyboardMarkup:
    """Карточка консоли"""
    builder = InlineKeyboardBuilder()

    builder.button(text="▶️ Старт", callback_data=f"start:{unit.id}")
    if unit.active or unit.finished:
        builder.button(text="⏹ Стоп", callback_data=f"stop:{unit.id}")

    builder.button(text="✏️ Название", callback_data=f"rename:{unit.id}")
    builder.button(text="💰 Цена", callback_data=f"price:{unit.id}")
    builder.button(text="📝 Заметка", callback_data=f"notes:{unit.id}")
    builder.button(text="🔊 Громкость", callback_data=f"volume:{unit.id}")
    builder.button(
        text="🔈 Включить звук" if unit.muted else "🔇 Без звука",
        callback_data=f"mute:{unit.id}"
    )
    builder.button(text="👁 Экран клиента", callback_data=f"view:{unit.id}")

    if unit.is_pending_delete:
        builder.button(text="↩️ Отменить удаление", callback_data=f"undo_delete:{unit.id}")
    else:
        builder.button(text="🗑 Удалить", callback_data=f"delete:{unit.id}")

    builder.button(text="🔄 Обновить", callback_data=f"unit:{unit.id}")
    builder.button(text="◀️ Назад", callback_data="units")
    builder.adjust(2, 2, 2, 2, 1, 2)

    return builder.as_markup()


def duration_text(hours: int, mins: int) -> str:
    if hours and mins:
        return f"{hours} ч {mins} мин"
    if hours:
        return f"{hours} ч"
    return f"{mins} мин"


def get_duration_keyboard(unit_id: int) -> InlineKeyboardMarkup:
    """Клавиатура выбора длительности"""
    builder = InlineKeyboardBuilder()

    for hours, mins in DURATION_PRESETS:
        builder.button(
            text=duration_text(hours, mins),
            callback_data=f"duration:{unit_id}:{hours}:{mins}"
        )

    builder.button(text="✍️ Своё время", callback_data=f"duration_custom:{unit_id}")
    builder.button(text="◀️ Назад", callback_data=f"unit:{unit_id}")
    builder.adjust(3, 3, 1, 1)

    return builder.as_markup()


def get_restart_keyboard(unit_id: int) -> InlineKeyboardMarkup:
    """Подтверждение перезапуска идущей консоли"""
    builder = InlineKeyboardBuilder()

    builder.button(text="🔁 Перезапустить", callback_data=f"restart_confirm:{unit_id}")
    builder.button(text="❌ Отмена", callback_data=f"unit:{unit_id}")
    builder.adjust(1)

    return builder.as_markup()


def get_volume_keyboard(unit_id: int) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()

    for step in VOLUME_STEPS:
        builder.button(text=f"{step}%", callback_data=f"volume_set:{unit_id}:{step}")

    builder.button(text="◀️ Назад", callback_data=f"unit:{unit_id}")
    builder.adjust(5, 1)

    return builder.as_markup()


def get_notice_keyboard(notice: Notice) -> InlineKeyboardMarkup:
    """Кнопка действия уведомления (например, «Отменить»)"""
    builder = InlineKeyboardBuilder()
    builder.button(text=f"↩️ {notice.action_label}", callback_data=f"notice:{notice.id}")
    return builder.as_markup()


def get_logs_keyboard() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()

    builder.button(text="📤 Экспорт CSV", callback_data="logs_export")
    builder.button(text="🧹 Очистить журнал", callback_data="logs_clear")
    builder.adjust(1)

    return builder.as_markup()


def get_clear_logs_keyboard() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()

    builder.button(text="✅ Да, очистить", callback_data="logs_clear_confirm")
    builder.button(text="❌ Отмена", callback_data="cancel")
    builder.adjust(1)

    return builder.as_markup()


def get_users_keyboard(users: List[User]) -> InlineKeyboardMarkup:
    """Список пользователей"""
    builder = InlineKeyboardBuilder()

    for user in users:
        builder.button(text=f"👤 {user.username} ({user.role})", callback_data=f"user:{user.id}")

    builder.button(text="➕ Новый пользователь", callback_data="user_new")
    builder.adjust(1)

    return builder.as_markup()


def get_user_actions_keyboard(user: User) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()

    new_role = ROLE_OPERATOR if user.role == ROLE_ADMIN else ROLE_ADMIN
    builder.button(text=f"🔁 Сделать {new_role}", callback_data=f"user_role:{user.id}")
    builder.button(text="🔑 Новый пароль", callback_data=f"user_password:{user.id}")
    builder.button(text="🗑 Удалить", callback_data=f"user_delete:{user.id}")
    builder.button(text="◀️ Назад", callback_data="users")
    builder.adjust(1)

    return builder.as_markup()


def get_user_delete_keyboard(user_id: int) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()

    builder.button(text="✅ Да, удалить", callback_data=f"user_delete_confirm:{user_id}")
    builder.button(text="❌ Отмена", callback_data=f"user:{user_id}")
    builder.adjust(1)

    return builder.as_markup()


def get_role_keyboard() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()

    builder.button(text="👤 Оператор", callback_data=f"role:{ROLE_OPERATOR}")
    builder.button(text="⚙️ Администратор", callback_data=f"role:{ROLE_ADMIN}")
    builder.button(text="❌ Отмена", callback_data="cancel")
    builder.adjust(2, 1)

    return builder.as_markup()


def get_customer_view_keyboard(unit_id: int) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.button(text="🔄 Обновить", callback_data=f"view_refresh:{unit_id}")
    return builder.as_markup()


def get_cancel_keyboard() -> InlineKeyboardMarkup:
    """Простая клавиатура отмены"""
    builder = InlineKeyboardBuilder()
    builder.button(text="❌ Отмена", callback_data="cancel")
    return builder.as_markup()
