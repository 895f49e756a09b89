"""
Расчёт стоимости аренды.

Стоимость всегда округляется вверх (в пользу клуба), а минуты для
отображения округляются до ближайшего целого. Правила разные намеренно.
"""
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP

SECONDS_PER_HOUR = Decimal(3600)
SIXTY = Decimal(60)


def used_seconds(initial_sec: int, remaining_sec: int) -> int:
    """Сколько секунд прошло с начала аренды (не меньше нуля)"""
    if not initial_sec:
        return 0
    return max(0, initial_sec - remaining_sec)


def calculate_cost(seconds: int, price_per_hour) -> int:
    """ceil(seconds / 3600 * price_per_hour), точная арифметика"""
    if seconds <= 0:
        return 0
    cost = Decimal(seconds) * Decimal(str(price_per_hour)) / SECONDS_PER_HOUR
    return max(0, int(cost.to_integral_value(rounding=ROUND_CEILING)))


def duration_minutes(seconds: int) -> int:
    """Минуты для отображения, округление половины вверх"""
    if seconds <= 0:
        return 0
    minutes = Decimal(seconds) / SIXTY
    return int(minutes.to_integral_value(rounding=ROUND_HALF_UP))
