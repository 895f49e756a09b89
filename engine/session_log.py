"""
Журнал аренд: только добавление, новые записи первыми
"""
from datetime import datetime
from typing import Iterable, List, Optional

from database.models import SessionLogEntry


class SessionLog:
    """Журнал завершённых и остановленных аренд"""

    def __init__(self, entries: Optional[Iterable[SessionLogEntry]] = None):
        self._entries: List[SessionLogEntry] = list(entries or ())

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    @property
    def entries(self) -> List[SessionLogEntry]:
        return list(self._entries)

    def append(self, entry: SessionLogEntry):
        self._entries.insert(0, entry)

    def extend(self, entries: Iterable[SessionLogEntry]):
        """
        Пакетное добавление (несколько консолей завершились в один тик).
        Последняя запись пакета оказывается первой в журнале.
        """
        batch = list(entries)
        self._entries[:0] = reversed(batch)

    def filter(self, date_from: Optional[datetime] = None,
               date_to: Optional[datetime] = None) -> List[SessionLogEntry]:
        """Записи в диапазоне [date_from, date_to]; границы необязательны"""
        result = []
        for entry in self._entries:
            if date_from is not None and entry.timestamp < date_from:
                continue
            if date_to is not None and entry.timestamp > date_to:
                continue
            result.append(entry)
        return result

    def recent(self, limit: int = 20) -> List[SessionLogEntry]:
        return self._entries[:limit]

    def total(self) -> int:
        """Сумма по всему журналу, без учёта фильтра"""
        return sum(entry.cost for entry in self._entries)

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count
