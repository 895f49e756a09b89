"""
Утилиты для работы со временем
"""
import re
from datetime import datetime, time
from typing import Optional, Tuple

from config import settings

_DURATION_RE = re.compile(r'^\s*(\d{1,2})\s*[:.чh]\s*(\d{1,2})\s*(?:м|m)?\s*$')


def format_hms(total_seconds: int) -> str:
    """
    Оставшееся время: ЧЧ:ММ:СС, а меньше часа ММ:СС
    """
    if not total_seconds or total_seconds <= 0:
        return "00:00:00"
    hh = total_seconds // 3600
    mm = (total_seconds % 3600) // 60
    ss = total_seconds % 60
    if hh > 0:
        return f"{hh:02d}:{mm:02d}:{ss:02d}"
    return f"{mm:02d}:{ss:02d}"


def format_datetime(dt: datetime) -> str:
    """Форматирование datetime для отображения"""
    return dt.strftime("%d.%m.%Y %H:%M")


def format_money(amount: int) -> str:
    """Сумма с разделителями тысяч"""
    return f"{settings.CURRENCY}{amount:,}".replace(',', ' ')


def parse_duration(text: str) -> Optional[Tuple[int, int]]:
    """
    Разбор длительности, введённой оператором.
    Принимает '1:30', '1ч30', или просто минуты: '90'.
    Возвращает (часы, минуты) или None.
    """
    text = (text or '').strip().lower()
    if text.isdigit():
        minutes = int(text)
        return minutes // 60, minutes % 60
    match = _DURATION_RE.match(text)
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes >= 60:
        return None
    return hours, minutes


def parse_date_bound(text: str, end_of_day: bool = False) -> Optional[datetime]:
    """
    Граница периода для фильтра журнала.
    '-' или пустая строка: без границы. Дата без времени для конца
    периода включает весь день.
    Бросает ValueError на нераспознанный ввод.
    """
    text = (text or '').strip()
    if not text or text == '-':
        return None
    for fmt in ("%Y-%m-%d %H:%M", "%d.%m.%Y %H:%M"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            pass
    for fmt in ("%Y-%m-%d", "%d.%m.%Y"):
        try:
            day = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if end_of_day:
            return datetime.combine(day.date(), time.max)
        return day
    raise ValueError(f"Не удалось разобрать дату: {text}")
