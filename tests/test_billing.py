from engine.billing import calculate_cost, duration_minutes, used_seconds


def test_full_hour_costs_hourly_price():
    assert calculate_cost(3600, 30000) == 30000


def test_partial_time_rounds_cost_up():
    # 125 / 3600 * 30000 = 1041.67
    assert calculate_cost(125, 30000) == 1042
    assert calculate_cost(1, 30000) == 9


def test_exact_division_is_not_rounded_up():
    # 120 / 3600 * 30000 = 1000 ровно
    assert calculate_cost(120, 30000) == 1000


def test_zero_or_negative_time_costs_nothing():
    assert calculate_cost(0, 30000) == 0
    assert calculate_cost(-5, 30000) == 0


def test_duration_minutes_rounds_half_up():
    assert duration_minutes(125) == 2
    assert duration_minutes(150) == 3
    assert duration_minutes(149) == 2
    assert duration_minutes(29) == 0
    assert duration_minutes(30) == 1
    assert duration_minutes(3600) == 60


def test_used_seconds_never_negative():
    assert used_seconds(1500, 1375) == 125
    assert used_seconds(100, 200) == 0
    assert used_seconds(0, 0) == 0
