"""
Ошибки предметной области.

Текст ошибки показывается оператору как есть, поэтому сообщения
сформулированы для людей, а не для логов.
"""


class RentalError(Exception):
    """Базовая ошибка: операция отменена, состояние не изменилось"""


class UnitNotFound(RentalError):
    def __init__(self, unit_id: int):
        super().__init__(f"Консоль #{unit_id} не найдена")
        self.unit_id = unit_id


class RestartConfirmationRequired(RentalError):
    """Консоль уже запущена, перезапуск нужно подтвердить"""

    def __init__(self, unit_name: str):
        super().__init__(f"{unit_name} уже запущена. Перезапустить с новой длительностью?")
        self.unit_name = unit_name


class InvalidPrice(RentalError):
    def __init__(self):
        super().__init__("Цена должна быть положительным числом")


class IllegalTransition(RentalError):
    def __init__(self, frm, to):
        super().__init__(f"Недопустимый переход {frm.name} → {to.name}")


class InvalidCredentials(RentalError):
    """Одинаковое сообщение для неизвестного логина и неверного пароля"""

    def __init__(self):
        super().__init__("Неверный логин или пароль")


class MissingFields(RentalError):
    def __init__(self):
        super().__init__("Нужны логин и пароль")


class DuplicateUsername(RentalError):
    def __init__(self, username: str):
        super().__init__(f"Пользователь {username} уже существует")


class InvalidRole(RentalError):
    def __init__(self, role: str):
        super().__init__(f"Неизвестная роль: {role}")


class UserNotFound(RentalError):
    def __init__(self, user_id: int):
        super().__init__(f"Пользователь #{user_id} не найден")

