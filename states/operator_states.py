"""
Состояния для FSM (Finite State Machine)
"""
from aiogram.fsm.state import State, StatesGroup


class UnitStates(StatesGroup):
    """Ввод значений для консоли"""
    entering_duration = State()
    entering_name = State()
    entering_price = State()
    entering_notes = State()


class NewUnitStates(StatesGroup):
    """Добавление консоли"""
    entering_name = State()
    entering_price = State()


class ExportStates(StatesGroup):
    """Период для выгрузки журнала"""
    entering_from = State()
    entering_to = State()


class UserStates(StatesGroup):
    """Создание пользователя и смена пароля"""
    entering_username = State()
    entering_password = State()
    choosing_role = State()
    entering_new_password = State()
