"""
Цвета состояний консоли
"""
from typing import Sequence, Tuple

BLUE = '#065ea8'
PURPLE = '#7c3aed'
RED = '#ef4444'
AMBER = '#f59e0b'
NEUTRAL = '#222222'
INFO = '#0b5ea8'

_BLUE_RGB = (6, 94, 168)
_PURPLE_RGB = (124, 58, 237)
_RED_RGB = (239, 68, 68)


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def _lerp_color(a: Sequence[int], b: Sequence[int], t: float) -> Tuple[int, int, int]:
    # Половина округляется вверх, round() в Python банковский
    return tuple(int(_lerp(x, y, t) + 0.5) for x, y in zip(a, b))


def rgb_to_hex(rgb: Sequence[int]) -> str:
    """Перевод RGB в строку #rrggbb"""
    return '#' + ''.join(f'{value:02x}' for value in rgb)


def progress_to_color(progress: float) -> str:
    """
    Цвет по доле оставшегося времени:
    1: синий, 0.5: фиолетовый, 0: красный
    """
    t = max(0.0, min(1.0, progress))
    if t > 0.5:
        return rgb_to_hex(_lerp_color(_PURPLE_RGB, _BLUE_RGB, (t - 0.5) / 0.5))
    return rgb_to_hex(_lerp_color(_RED_RGB, _PURPLE_RGB, t / 0.5))
