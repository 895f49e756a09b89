"""
Движок аренды: владеет консолями, журналом, пользователями и уведомлениями.

Обработчики бота и планировщик работают только через RentalEngine, поля
моделей напрямую не меняют. Всё выполняется в одном цикле событий,
поэтому тик и действия оператора не пересекаются.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from config import settings
from database.models import Unit, UnitState, SessionLogEntry, User, OperatorSession, ROLE_OPERATOR
from database.repository import StateRepository
from engine.access import AccessControl
from engine.notifications import Deferrer, Notice, NotificationDispatcher, SignalKind
from engine.registry import UnitRegistry, default_units
from engine.session_log import SessionLog
from engine.timer import EventKind, TimerStateMachine, UnitEvent
from utils.colors import AMBER, INFO, RED
from utils.export import build_logs_csv, export_filename
from utils.time_utils import format_hms

logger = logging.getLogger(__name__)

# Удаление запускается чуть позже дедлайна
PURGE_DELAY = timedelta(milliseconds=120)
DELETE_NOTICE_EXTRA = 0.2

STATE_LABELS = {
    UnitState.IDLE: 'Свободна',
    UnitState.RUNNING: 'Идёт игра',
    UnitState.WARNING: 'Идёт игра',
    UnitState.FINISHED: 'Время вышло',
}


def delete_job_id(unit_id: int) -> str:
    return f"delete:{unit_id}"


@dataclass(frozen=True)
class CustomerView:
    """Снимок консоли для экрана клиента (без управления)"""
    unit_id: int
    name: str
    remaining: str
    state: UnitState
    state_label: str
    progress: float
    color: str


class RentalEngine:
    """Фасад движка аренды"""

    def __init__(self, deferrer: Deferrer, repository=StateRepository,
                 clock: Callable[[], datetime] = datetime.now):
        self._deferrer = deferrer
        self._repository = repository
        self._clock = clock
        self.registry = UnitRegistry()
        self.log = SessionLog()
        self.access = AccessControl(clock=clock)
        self.timer = TimerStateMachine(clock)
        self.notifications = NotificationDispatcher(deferrer, clock)
        self._delete_notices: Dict[int, str] = {}

    # ---- Загрузка и сохранение

    def load(self):
        """Загрузка состояния; отсутствующие записи заменяются значениями по умолчанию"""
        units = self._repository.load_units()
        if units is None:
            units = default_units()
            self._repository.save_units(units)
            logger.info(f"Созданы консоли по умолчанию: {len(units)}")
        self.registry = UnitRegistry(units)

        self.log = SessionLog(self._repository.load_logs() or [])

        users = self._repository.load_users()
        sessions = self._repository.load_sessions() or {}
        self.access = AccessControl(users, sessions, clock=self._clock)
        if users is None:
            self._repository.save_users(self.access.users)
            logger.info("Создан администратор по умолчанию")

        # Удаления, начатые до перезапуска
        for unit in self.registry.all():
            if unit.pending_delete is not None:
                self._schedule_purge(unit.id, unit.pending_delete)

        logger.info(f"Загружено: {len(self.registry)} консолей, {len(self.log)} записей журнала")

    def _save_units(self):
        self._repository.save_units(self.registry.all())

    def _save_logs(self):
        self._repository.save_logs(self.log.entries)

    def _save_users(self):
        self._repository.save_users(self.access.users)

    def _save_sessions(self):
        self._repository.save_sessions(self.access.sessions)

    # ---- Консоли

    @property
    def units(self) -> List[Unit]:
        return self.registry.all()

    def get_unit(self, unit_id: int) -> Unit:
        return self.registry.get(unit_id)

    def add_unit(self, name: Optional[str] = None, price: Optional[int] = None) -> Unit:
        unit = self.registry.add(name, price)
        self._save_units()
        self.notifications.enqueue(f"{unit.name} добавлена")
        self.notifications.signal(SignalKind.ADDED)
        return unit

    def rename_unit(self, unit_id: int, name: str) -> Optional[Unit]:
        unit = self.registry.rename(unit_id, name)
        if unit is None:
            return None
        self._save_units()
        self.notifications.enqueue("Название обновлено")
        self.notifications.signal(SignalKind.CLICK)
        return unit

    def set_price(self, unit_id: int, price) -> Unit:
        unit = self.registry.set_price(unit_id, price)
        self._save_units()
        self.notifications.enqueue("Цена обновлена")
        return unit

    def set_notes(self, unit_id: int, notes: str) -> Unit:
        unit = self.registry.set_notes(unit_id, notes)
        self._save_units()
        self.notifications.enqueue("Заметка сохранена")
        return unit

    def set_inputs(self, unit_id: int, hours: int, mins: int) -> Unit:
        unit = self.registry.set_inputs(unit_id, hours, mins)
        self._save_units()
        return unit

    def set_volume(self, unit_id: int, volume: float) -> Unit:
        unit = self.registry.set_volume(unit_id, volume)
        self._save_units()
        return unit

    def toggle_mute(self, unit_id: int) -> Unit:
        unit = self.registry.toggle_mute(unit_id)
        self._save_units()
        return unit

    # ---- Таймер

    def start(self, unit_id: int, hours: Optional[int] = None, mins: Optional[int] = None,
              confirm_restart: bool = False) -> UnitEvent:
        """
        Старт консоли. Переданные hours/mins сначала сохраняются как ввод.
        RestartConfirmationRequired: консоль уже идёт, нужно подтверждение.
        """
        unit = self.registry.get(unit_id)
        if hours is not None or mins is not None:
            self.registry.set_inputs(unit_id, hours or 0, mins or 0)
        try:
            event = self.timer.start(unit, confirm_restart=confirm_restart)
        finally:
            # Введённая длительность сохраняется и при отказе в старте
            self._save_units()
        self._dispatch([event])
        return event

    def stop(self, unit_id: int) -> UnitEvent:
        unit = self.registry.get(unit_id)
        event = self.timer.stop(unit)
        try:
            self._record([event])
            self._save_units()
        finally:
            self._dispatch([event])
        return event

    def tick(self) -> List[UnitEvent]:
        """Секунда отсчёта для всех консолей"""
        events: List[UnitEvent] = []
        has_active = False
        for unit in self.registry.all():
            if unit.active:
                has_active = True
                events.extend(self.timer.tick(unit))

        # Сигналы о финише уходят и при ошибке записи в базу
        try:
            self._record(events)
            if has_active:
                self._save_units()
        finally:
            self._dispatch(events)
        return events

    def _record(self, events: List[UnitEvent]):
        entries = [event.entry for event in events if event.entry is not None]
        if entries:
            self.log.extend(entries)
            self._save_logs()

    def _dispatch(self, events: List[UnitEvent]):
        notifications = self.notifications
        for event in events:
            if event.kind is EventKind.STARTED:
                notifications.signal(SignalKind.START, event.volume)
            elif event.kind is EventKind.WARNING:
                minutes = self.timer.warning_threshold // 60
                notifications.enqueue(
                    f"{event.unit_name} — осталось {minutes} мин",
                    AMBER, settings.WARNING_NOTICE_LIFE,
                )
                notifications.signal(SignalKind.WARNING, event.volume)
            elif event.kind is EventKind.FINISHED:
                notifications.enqueue(
                    f"{event.unit_name} — время вышло!",
                    RED, settings.FINISHED_NOTICE_LIFE,
                )
                notifications.signal(SignalKind.FINISHED, event.volume)
            elif event.kind is EventKind.STOPPED:
                notifications.signal(SignalKind.STOP, event.volume)
                notifications.enqueue(f"{event.unit_name} остановлена — {event.minutes} мин")

    # ---- Удаление с отменой

    def _schedule_purge(self, unit_id: int, deadline: datetime):
        self._deferrer.schedule(
            delete_job_id(unit_id), deadline + PURGE_DELAY, self.purge_deleted, unit_id
        )

    def request_delete(self, unit_id: int) -> Notice:
        """Мягкое удаление: консоль работает до конца окна отмены"""
        unit = self.registry.get(unit_id)
        deadline = self._clock() + timedelta(seconds=settings.UNDO_DELETE_SECONDS)
        self.registry.mark_pending_delete(unit_id, deadline)
        self._save_units()

        previous = self._delete_notices.pop(unit_id, None)
        if previous:
            self.notifications.dismiss(previous)
        notice = self.notifications.enqueue(
            f"{unit.name} будет удалена",
            RED,
            settings.UNDO_DELETE_SECONDS + DELETE_NOTICE_EXTRA,
            action_label="Отменить",
            action=lambda: self.undo_delete(unit_id),
        )
        self._delete_notices[unit_id] = notice.id
        self._schedule_purge(unit_id, deadline)
        logger.info(f"{unit.name}: удаление через {settings.UNDO_DELETE_SECONDS} с")
        return notice

    def undo_delete(self, unit_id: int) -> bool:
        """Отмена удаления; после дедлайна ничего не делает"""
        if not self.registry.undo_delete(unit_id, self._clock()):
            return False
        self._deferrer.cancel(delete_job_id(unit_id))
        notice_id = self._delete_notices.pop(unit_id, None)
        if notice_id:
            self.notifications.dismiss(notice_id)
        self._save_units()
        self.notifications.enqueue("Удаление отменено")
        return True

    def purge_deleted(self, unit_id: int) -> Optional[Unit]:
        """
        Срабатывает по отложенной задаче: состояние консоли перечитывается,
        удаление происходит, только если флаг ещё стоит и дедлайн прошёл
        """
        unit = self.registry.remove_if_expired(unit_id, self._clock())
        if unit is None:
            return None
        self._deferrer.cancel(delete_job_id(unit_id))
        notice_id = self._delete_notices.pop(unit_id, None)
        if notice_id:
            self.notifications.dismiss(notice_id)
        self._save_units()
        self.notifications.enqueue(f"{unit.name} удалена", RED)
        return unit

    def purge_expired(self) -> List[Unit]:
        removed = []
        for unit in self.registry.expired(self._clock()):
            if self.purge_deleted(unit.id) is not None:
                removed.append(unit)
        return removed

    # ---- Журнал

    def filter_logs(self, date_from: Optional[datetime] = None,
                    date_to: Optional[datetime] = None) -> List[SessionLogEntry]:
        return self.log.filter(date_from, date_to)

    def total_revenue(self) -> int:
        return self.log.total()

    def clear_logs(self) -> int:
        count = self.log.clear()
        self._save_logs()
        logger.info(f"Журнал очищен ({count} записей)")
        self.notifications.enqueue("Журнал очищен", RED)
        return count

    def export_logs(self, date_from: Optional[datetime] = None,
                    date_to: Optional[datetime] = None) -> Optional[Tuple[str, bytes]]:
        """
        CSV за период. Если записей нет, то уведомление и None, файл не создаётся
        """
        entries = self.log.filter(date_from, date_to)
        if not entries:
            self.notifications.enqueue("Нет записей за выбранный период", RED)
            return None
        content = build_logs_csv(entries)
        self.notifications.enqueue("CSV выгружен")
        return export_filename(self._clock().date()), content.encode('utf-8')

    # ---- Экран клиента

    def customer_view(self, unit_id: int) -> CustomerView:
        unit = self.registry.get(unit_id)
        elapsed = 0.0
        if unit.active and unit.initial_sec:
            elapsed = (unit.initial_sec - unit.remaining_sec) / unit.initial_sec
        return CustomerView(
            unit_id=unit.id,
            name=unit.name,
            remaining=format_hms(unit.remaining_sec),
            state=unit.state,
            state_label=STATE_LABELS[unit.state],
            progress=elapsed,
            color=unit.color,
        )

    # ---- Пользователи

    def login(self, telegram_id: int, username: str, password: str) -> OperatorSession:
        session = self.access.login(telegram_id, username, password)
        self._save_sessions()
        self.notifications.enqueue(f"Вход: {session.username}", INFO, settings.LOGIN_NOTICE_LIFE)
        return session

    def logout(self, telegram_id: int) -> bool:
        logged_out = self.access.logout(telegram_id)
        if logged_out:
            self._save_sessions()
        return logged_out

    def session_for(self, telegram_id: int) -> Optional[OperatorSession]:
        return self.access.session_for(telegram_id)

    def create_user(self, username: str, password: str, role: str = ROLE_OPERATOR) -> User:
        user = self.access.create_user(username, password, role)
        self._save_users()
        self.notifications.enqueue(f"Пользователь {user.username} создан", INFO)
        return user

    def edit_user(self, user_id: int, password: Optional[str] = None,
                  role: Optional[str] = None) -> User:
        user = self.access.edit_user(user_id, password=password, role=role)
        self._save_users()
        self._save_sessions()
        self.notifications.enqueue("Пользователь обновлён")
        return user

    def delete_user(self, user_id: int) -> User:
        user = self.access.delete_user(user_id)
        self._save_users()
        self._save_sessions()
        self.notifications.enqueue("Пользователь удалён", RED)
        return user
