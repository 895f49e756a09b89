"""
Модели данных
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from utils.colors import BLUE

ROLE_ADMIN = 'admin'
ROLE_OPERATOR = 'operator'
ROLES = (ROLE_ADMIN, ROLE_OPERATOR)


class UnitState(Enum):
    """Состояние таймера консоли"""
    IDLE = 'idle'
    RUNNING = 'running'
    WARNING = 'warning'
    FINISHED = 'finished'


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _format_dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Unit:
    """Модель консоли (слот аренды с таймером)"""
    id: int
    name: str
    price_per_hour: int
    notes: str = ''
    active: bool = False
    remaining_sec: int = 0
    initial_sec: int = 0
    warned: bool = False
    finished: bool = False
    color: str = BLUE
    volume: float = 1.0
    muted: bool = False
    pending_delete: Optional[datetime] = None
    # Буфер формы: длительность, введённая оператором до старта
    inputs: Dict[str, int] = field(default_factory=lambda: {'hours': 0, 'mins': 0})

    @property
    def state(self) -> UnitState:
        """Текущее состояние жизненного цикла"""
        if self.active:
            return UnitState.WARNING if self.warned else UnitState.RUNNING
        if self.finished:
            return UnitState.FINISHED
        return UnitState.IDLE

    @property
    def is_pending_delete(self) -> bool:
        return self.pending_delete is not None

    @property
    def effective_volume(self) -> float:
        """Громкость с учётом режима без звука"""
        return 0.0 if self.muted else self.volume

    @property
    def progress(self) -> float:
        """Доля оставшегося времени (0..1)"""
        if not self.initial_sec:
            return 0.0
        return self.remaining_sec / self.initial_sec

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'pricePerHour': self.price_per_hour,
            'notes': self.notes,
            'active': self.active,
            'remainingSec': self.remaining_sec,
            'initialSec': self.initial_sec,
            'warned': self.warned,
            'finished': self.finished,
            'color': self.color,
            'volume': self.volume,
            'muted': self.muted,
            'pendingDelete': _format_dt(self.pending_delete),
            'inputs': dict(self.inputs),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Unit':
        inputs = data.get('inputs') or {}
        return cls(
            id=int(data['id']),
            name=data['name'],
            price_per_hour=data['pricePerHour'],
            notes=data.get('notes') or '',
            active=bool(data.get('active', False)),
            remaining_sec=int(data.get('remainingSec', 0)),
            initial_sec=int(data.get('initialSec', 0)),
            warned=bool(data.get('warned', False)),
            finished=bool(data.get('finished', False)),
            color=data.get('color') or BLUE,
            volume=float(data.get('volume', 1.0)),
            muted=bool(data.get('muted', False)),
            pending_delete=_parse_dt(data.get('pendingDelete')),
            inputs={
                'hours': int(inputs.get('hours', 0)),
                'mins': int(inputs.get('mins', 0)),
            },
        )


@dataclass(frozen=True)
class SessionLogEntry:
    """Запись журнала: завершённая или остановленная аренда"""
    unit: str
    duration_minutes: int
    cost: int
    notes: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'unit': self.unit,
            'durationMinutes': self.duration_minutes,
            'cost': self.cost,
            'notes': self.notes,
            'timestamp': self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SessionLogEntry':
        return cls(
            unit=data['unit'],
            duration_minutes=int(data['durationMinutes']),
            cost=int(data['cost']),
            notes=data.get('notes') or '',
            timestamp=datetime.fromisoformat(data['timestamp']),
        )


@dataclass
class User:
    """Модель оператора/администратора"""
    id: int
    username: str
    password_encoded: str
    role: str = ROLE_OPERATOR

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'username': self.username,
            'passwordEncoded': self.password_encoded,
            'role': self.role,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        return cls(
            id=int(data['id']),
            username=data['username'],
            password_encoded=data['passwordEncoded'],
            role=data.get('role', ROLE_OPERATOR),
        )


@dataclass
class OperatorSession:
    """Активная сессия оператора в Telegram"""
    username: str
    role: str
    logged_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> Dict[str, Any]:
        return {
            'username': self.username,
            'role': self.role,
            'loggedAt': self.logged_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OperatorSession':
        return cls(
            username=data['username'],
            role=data['role'],
            logged_at=datetime.fromisoformat(data['loggedAt']),
        )
