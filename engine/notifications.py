"""
Диспетчер уведомлений: очередь всплывающих сообщений и звуковые сигналы.

Отображение сюда не входит. Слушатели получают события 'shown' и
'dismissed', приёмники сигналов получают вид тона и громкость.
"""
import itertools
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional, Protocol

from config import settings
from utils.colors import INFO

logger = logging.getLogger(__name__)

NOTICE_SHOWN = 'shown'
NOTICE_DISMISSED = 'dismissed'


class SignalKind(Enum):
    """Виды звуковых сигналов"""
    CLICK = 'click'
    START = 'start'
    STOP = 'stop'
    ADDED = 'added'
    WARNING = 'warning'
    FINISHED = 'finished'


SIGNAL_REPEATS = {
    SignalKind.WARNING: 3,
    SignalKind.FINISHED: 6,
}


class SignalSink(Protocol):
    def signal(self, kind: SignalKind, volume: float, repeat: int) -> None: ...


class Deferrer(Protocol):
    """Отложенные действия с идентификатором, которые можно отменить"""

    def schedule(self, job_id: str, run_at: datetime, callback: Callable, *args) -> None: ...

    def cancel(self, job_id: str) -> None: ...


@dataclass
class Notice:
    """Всплывающее уведомление"""
    id: str
    text: str
    color: str = INFO
    life: float = settings.NOTICE_LIFE
    action_label: Optional[str] = None
    action: Optional[Callable[[], object]] = None

    @property
    def has_action(self) -> bool:
        return self.action is not None


def notice_job_id(notice_id: str) -> str:
    return f"notice:{notice_id}"


class NotificationDispatcher:
    """Ограниченная очередь уведомлений с автоскрытием"""

    def __init__(self, deferrer: Deferrer, clock: Callable[[], datetime] = datetime.now,
                 limit: int = settings.NOTICE_LIMIT):
        self._deferrer = deferrer
        self._clock = clock
        self.limit = limit
        self._notices: 'OrderedDict[str, Notice]' = OrderedDict()
        self._ids = itertools.count(1)
        self._listeners: List[Callable[[str, Notice], None]] = []
        self._sinks: List[SignalSink] = []

    @property
    def notices(self) -> List[Notice]:
        return list(self._notices.values())

    def get(self, notice_id: str) -> Optional[Notice]:
        return self._notices.get(notice_id)

    def subscribe(self, listener: Callable[[str, Notice], None]):
        self._listeners.append(listener)

    def add_sink(self, sink: SignalSink):
        self._sinks.append(sink)

    def _emit(self, event: str, notice: Notice):
        for listener in self._listeners:
            try:
                listener(event, notice)
            except Exception as e:
                logger.error(f"Ошибка слушателя уведомлений: {e}", exc_info=True)

    def enqueue(self, text: str, color: str = INFO, life: Optional[float] = None,
                action_label: Optional[str] = None,
                action: Optional[Callable[[], object]] = None) -> Notice:
        """Добавление уведомления; сверх лимита вытесняется самое старое"""
        notice = Notice(
            id=f"t{next(self._ids)}",
            text=text,
            color=color,
            life=settings.NOTICE_LIFE if life is None else life,
            action_label=action_label,
            action=action,
        )
        self._notices[notice.id] = notice

        while len(self._notices) > self.limit:
            oldest_id = next(iter(self._notices))
            self.dismiss(oldest_id)

        if notice.life and notice.life > 0:
            self._deferrer.schedule(
                notice_job_id(notice.id),
                self._clock() + timedelta(seconds=notice.life),
                self.dismiss,
                notice.id,
            )

        self._emit(NOTICE_SHOWN, notice)
        return notice

    def dismiss(self, notice_id: str) -> bool:
        """Скрытие уведомления; повторный вызов ничего не делает"""
        notice = self._notices.pop(notice_id, None)
        if notice is None:
            return False
        self._deferrer.cancel(notice_job_id(notice_id))
        self._emit(NOTICE_DISMISSED, notice)
        return True

    def trigger(self, notice_id: str) -> bool:
        """Нажатие кнопки действия; для скрытого уведомления — ничего"""
        notice = self._notices.get(notice_id)
        if notice is None or notice.action is None:
            return False
        self.dismiss(notice_id)
        notice.action()
        return True

    def signal(self, kind: SignalKind, volume: float = 1.0):
        """Запрос звукового сигнала"""
        repeat = SIGNAL_REPEATS.get(kind, 1)
        for sink in self._sinks:
            try:
                sink.signal(kind, volume, repeat)
            except Exception as e:
                logger.error(f"Ошибка звукового сигнала {kind.value}: {e}", exc_info=True)

    def clear(self):
        for notice_id in list(self._notices):
            self.dismiss(notice_id)
