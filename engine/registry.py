"""
Реестр консолей: создание, правка и мягкое удаление с возможностью отмены
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from config import settings
from database.models import Unit
from engine.errors import UnitNotFound, InvalidPrice

logger = logging.getLogger(__name__)


def default_unit_name(unit_id: int) -> str:
    return f"{settings.UNIT_NAME_PREFIX} {unit_id}"


def create_unit(unit_id: int, name: Optional[str] = None, price: Optional[int] = None) -> Unit:
    """Новая консоль в состоянии простоя"""
    return Unit(
        id=unit_id,
        name=name or default_unit_name(unit_id),
        price_per_hour=price or settings.DEFAULT_PRICE,
    )


def default_units() -> List[Unit]:
    """Консоли по умолчанию при пустом хранилище"""
    return [create_unit(i) for i in range(1, settings.DEFAULT_UNITS_COUNT + 1)]


def _validate_price(price) -> int:
    try:
        value = int(price)
    except (TypeError, ValueError):
        raise InvalidPrice()
    if value <= 0:
        raise InvalidPrice()
    return value


class UnitRegistry:
    """
    Набор консолей клуба.

    Поля таймера здесь не меняются: этим занимается TimerStateMachine.
    Консоль с pending_delete остаётся в реестре и продолжает работать
    до истечения окна отмены.
    """

    def __init__(self, units: Optional[Iterable[Unit]] = None):
        self._units: Dict[int, Unit] = {}
        for unit in units or ():
            self._units[unit.id] = unit

    def __len__(self) -> int:
        return len(self._units)

    def __contains__(self, unit_id: int) -> bool:
        return unit_id in self._units

    def all(self) -> List[Unit]:
        """Все консоли в порядке идентификаторов"""
        return [self._units[key] for key in sorted(self._units)]

    def get(self, unit_id: int) -> Unit:
        unit = self._units.get(unit_id)
        if unit is None:
            raise UnitNotFound(unit_id)
        return unit

    def find(self, unit_id: int) -> Optional[Unit]:
        return self._units.get(unit_id)

    def next_id(self) -> int:
        return max(self._units, default=0) + 1

    def add(self, name: Optional[str] = None, price: Optional[int] = None) -> Unit:
        """Добавление консоли"""
        if price is not None:
            price = _validate_price(price)
        unit = create_unit(self.next_id(), (name or '').strip() or None, price)
        self._units[unit.id] = unit
        logger.info(f"Добавлена консоль #{unit.id} ({unit.name})")
        return unit

    def rename(self, unit_id: int, name: str) -> Optional[Unit]:
        """Переименование; пустое имя игнорируется"""
        unit = self.get(unit_id)
        new_name = (name or '').strip()
        if not new_name:
            return None
        unit.name = new_name
        return unit

    def set_price(self, unit_id: int, price) -> Unit:
        unit = self.get(unit_id)
        unit.price_per_hour = _validate_price(price)
        return unit

    def set_notes(self, unit_id: int, notes: str) -> Unit:
        unit = self.get(unit_id)
        unit.notes = notes or ''
        return unit

    def set_inputs(self, unit_id: int, hours: int, mins: int) -> Unit:
        """Запоминает введённую длительность до старта"""
        unit = self.get(unit_id)
        unit.inputs = {'hours': max(0, int(hours or 0)), 'mins': max(0, int(mins or 0))}
        return unit

    def set_volume(self, unit_id: int, volume: float) -> Unit:
        unit = self.get(unit_id)
        unit.volume = max(0.0, min(1.0, float(volume)))
        if volume == 0:
            unit.muted = True
        return unit

    def toggle_mute(self, unit_id: int) -> Unit:
        unit = self.get(unit_id)
        unit.muted = not unit.muted
        return unit

    def mark_pending_delete(self, unit_id: int, deadline: datetime) -> Unit:
        unit = self.get(unit_id)
        unit.pending_delete = deadline
        return unit

    def undo_delete(self, unit_id: int, now: datetime) -> bool:
        """
        Отмена удаления. После дедлайна ничего не делает и возвращает False
        """
        unit = self._units.get(unit_id)
        if unit is None or unit.pending_delete is None:
            return False
        if unit.pending_delete <= now:
            return False
        unit.pending_delete = None
        return True

    def remove_if_expired(self, unit_id: int, now: datetime) -> Optional[Unit]:
        """Окончательное удаление, если флаг ещё стоит и дедлайн прошёл"""
        unit = self._units.get(unit_id)
        if unit is None or unit.pending_delete is None:
            return None
        if unit.pending_delete > now:
            return None
        del self._units[unit_id]
        logger.info(f"Консоль #{unit_id} ({unit.name}) удалена")
        return unit

    def expired(self, now: datetime) -> List[Unit]:
        return [
            unit for unit in self.all()
            if unit.pending_delete is not None and unit.pending_delete <= now
        ]
