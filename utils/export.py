"""
Выгрузка журнала в CSV
"""
import csv
import io
from datetime import date
from typing import Iterable, Optional

from database.models import SessionLogEntry

CSV_HEADER = ['Timestamp', 'Unit', 'Minutes', 'CostRp', 'Notes']


def build_logs_csv(entries: Iterable[SessionLogEntry]) -> str:
    """Все поля в кавычках, кавычки внутри удваиваются"""
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(CSV_HEADER)
    for entry in entries:
        writer.writerow([
            entry.timestamp.isoformat(),
            entry.unit,
            entry.duration_minutes,
            entry.cost,
            entry.notes or '',
        ])
    return output.getvalue().rstrip('\n')


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"playbox_logs_{today.isoformat()}.csv"
