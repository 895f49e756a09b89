"""
Машина состояний таймера консоли.

Любое изменение жизненного цикла консоли проходит через TimerStateMachine.
Переход проверяется по таблице ALLOWED_TRANSITIONS, после чего флаги
active/finished/warned, оба поля времени и цвет записываются за один шаг.

Переходы возвращают UnitEvent в момент срабатывания; движок превращает их
в записи журнала, уведомления и звуковые сигналы.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional

from config import settings
from database.models import Unit, UnitState, SessionLogEntry
from engine import billing
from engine.errors import IllegalTransition, RestartConfirmationRequired
from utils.colors import AMBER, BLUE, NEUTRAL, RED, progress_to_color

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[UnitState, FrozenSet[UnitState]] = {
    UnitState.IDLE: frozenset({UnitState.RUNNING, UnitState.IDLE}),
    UnitState.RUNNING: frozenset({
        UnitState.RUNNING, UnitState.WARNING, UnitState.FINISHED, UnitState.IDLE,
    }),
    UnitState.WARNING: frozenset({
        UnitState.RUNNING, UnitState.WARNING, UnitState.FINISHED, UnitState.IDLE,
    }),
    UnitState.FINISHED: frozenset({UnitState.RUNNING, UnitState.IDLE}),
}


class EventKind(Enum):
    STARTED = 'started'
    WARNING = 'warning'
    FINISHED = 'finished'
    STOPPED = 'stopped'


@dataclass(frozen=True)
class UnitEvent:
    """
    Событие перехода консоли

    volume: громкость консоли с учётом mute для звукового сигнала,
    minutes: оплаченные минуты (стоп/финиш) или длительность старта,
    entry: созданная запись журнала, если есть
    """

    kind: EventKind
    unit_id: int
    unit_name: str
    volume: float
    minutes: int = 0
    entry: Optional[SessionLogEntry] = None


def display_color(unit: Unit) -> str:
    """Производный цвет консоли для отображения"""
    if unit.finished:
        return RED
    if not unit.active:
        return unit.color
    if unit.warned:
        return AMBER
    if unit.initial_sec <= 0:
        return unit.color
    return progress_to_color(unit.progress)


def total_seconds(hours, mins) -> int:
    return max(0, int(round((hours or 0) * 3600 + (mins or 0) * 60)))


class TimerStateMachine:
    """Старт, тик и остановка отдельных консолей"""

    def __init__(
        self,
        clock: Callable[[], datetime] = datetime.now,
        warning_threshold: int = settings.WARNING_THRESHOLD_SECONDS,
    ):
        self._clock = clock
        self.warning_threshold = warning_threshold

    def _transition(
        self,
        unit: Unit,
        to: UnitState,
        *,
        active: bool,
        finished: bool,
        warned: bool,
        remaining_sec: int,
        initial_sec: int,
        color: str,
    ):
        frm = unit.state
        if to not in ALLOWED_TRANSITIONS.get(frm, frozenset()):
            raise IllegalTransition(frm, to)
        unit.active = active
        unit.finished = finished
        unit.warned = warned
        unit.initial_sec = initial_sec
        unit.remaining_sec = max(0, min(remaining_sec, initial_sec))
        unit.color = color

    def _entry(self, unit: Unit, seconds: int) -> SessionLogEntry:
        return SessionLogEntry(
            unit=unit.name,
            duration_minutes=billing.duration_minutes(seconds),
            cost=billing.calculate_cost(seconds, unit.price_per_hour),
            notes=unit.notes or '',
            timestamp=self._clock(),
        )

    def start(self, unit: Unit, confirm_restart: bool = False) -> UnitEvent:
        """
        Старт консоли по введённой длительности.

        Если консоль уже запущена, без confirm_restart бросается
        RestartConfirmationRequired и состояние не меняется. Подтверждённый
        перезапуск сбрасывает текущую аренду без записи в журнал.
        Нулевая длительность запускает консоль без отсчёта: она не
        завершается сама и при стопе не попадает в журнал.
        """
        total = total_seconds(unit.inputs.get('hours'), unit.inputs.get('mins'))
        if unit.active and not confirm_restart:
            raise RestartConfirmationRequired(unit.name)
        if unit.active:
            logger.warning(
                f"Перезапуск {unit.name}: текущая аренда "
                f"({unit.initial_sec - unit.remaining_sec} с) не записана в журнал"
            )

        self._transition(
            unit, UnitState.RUNNING,
            active=True, finished=False, warned=False,
            remaining_sec=total, initial_sec=total, color=BLUE,
        )
        logger.info(f"{unit.name}: старт на {total} с")
        return UnitEvent(
            EventKind.STARTED, unit.id, unit.name, unit.effective_volume,
            minutes=billing.duration_minutes(total),
        )

    def tick(self, unit: Unit) -> List[UnitEvent]:
        """Секунда отсчёта: предупреждение и завершение срабатывают здесь"""
        if not unit.active:
            return []

        events = []
        if unit.remaining_sec > 0:
            unit.remaining_sec = max(0, unit.remaining_sec - 1)

        if (
            not unit.warned
            and unit.initial_sec > self.warning_threshold
            and 0 < unit.remaining_sec <= self.warning_threshold
        ):
            self._transition(
                unit, UnitState.WARNING,
                active=True, finished=False, warned=True,
                remaining_sec=unit.remaining_sec, initial_sec=unit.initial_sec,
                color=AMBER,
            )
            events.append(UnitEvent(
                EventKind.WARNING, unit.id, unit.name, unit.effective_volume,
            ))

        if unit.remaining_sec == 0 and unit.initial_sec > 0:
            events.append(self._finish(unit))
        else:
            unit.color = display_color(unit)

        return events

    def _finish(self, unit: Unit) -> UnitEvent:
        entry = self._entry(unit, unit.initial_sec)
        self._transition(
            unit, UnitState.FINISHED,
            active=False, finished=True, warned=False,
            remaining_sec=0, initial_sec=0, color=RED,
        )
        logger.info(f"{unit.name}: время вышло, {entry.duration_minutes} мин, {entry.cost}")
        return UnitEvent(
            EventKind.FINISHED, unit.id, unit.name, unit.effective_volume,
            minutes=entry.duration_minutes, entry=entry,
        )

    def stop(self, unit: Unit) -> UnitEvent:
        """Ручная остановка; в журнал попадает только ненулевое время"""
        used = billing.used_seconds(unit.initial_sec, unit.remaining_sec)
        entry = self._entry(unit, used) if used > 0 else None

        self._transition(
            unit, UnitState.IDLE,
            active=False, finished=False, warned=False,
            remaining_sec=0, initial_sec=0, color=NEUTRAL,
        )
        minutes = billing.duration_minutes(used)
        logger.info(f"{unit.name}: остановлена, использовано {used} с")
        return UnitEvent(
            EventKind.STOPPED, unit.id, unit.name, unit.effective_volume,
            minutes=minutes, entry=entry,
        )
