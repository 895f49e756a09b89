from datetime import datetime, timedelta

import pytest

from engine.errors import InvalidPrice, UnitNotFound
from engine.registry import UnitRegistry, default_units

NOW = datetime(2024, 5, 1, 12, 0, 0)


@pytest.fixture()
def registry():
    return UnitRegistry(default_units())


def test_default_units():
    units = default_units()

    assert [unit.name for unit in units] == ["PlayBox 1", "PlayBox 2", "PlayBox 3"]
    assert all(unit.price_per_hour == 30000 for unit in units)
    assert all(not unit.active for unit in units)


def test_add_uses_next_id_and_defaults(registry):
    unit = registry.add()

    assert unit.id == 4
    assert unit.name == "PlayBox 4"
    assert unit.price_per_hour == 30000
    assert len(registry) == 4


def test_add_with_name_and_price(registry):
    unit = registry.add("  Зал VIP ", "45000")

    assert unit.name == "Зал VIP"
    assert unit.price_per_hour == 45000


def test_next_id_follows_highest_id(registry):
    registry.mark_pending_delete(2, NOW)
    registry.remove_if_expired(2, NOW)

    unit = registry.add()

    assert unit.id == 4
    assert [u.id for u in registry.all()] == [1, 3, 4]


@pytest.mark.parametrize("price", [0, -100, "abc", None])
def test_invalid_price_is_rejected(registry, price):
    with pytest.raises(InvalidPrice):
        registry.set_price(1, price)

    assert registry.get(1).price_per_hour == 30000


def test_rename_ignores_empty_name(registry):
    assert registry.rename(1, "   ") is None
    assert registry.get(1).name == "PlayBox 1"

    assert registry.rename(1, "Xbox").name == "Xbox"


def test_unknown_unit(registry):
    with pytest.raises(UnitNotFound):
        registry.get(99)
    assert registry.find(99) is None
    assert 99 not in registry


def test_volume_is_clamped_and_zero_mutes(registry):
    assert registry.set_volume(1, 1.5).volume == 1.0
    unit = registry.set_volume(1, 0)
    assert unit.volume == 0.0
    assert unit.muted

    assert not registry.toggle_mute(1).muted


def test_set_inputs_keeps_non_negative_values(registry):
    unit = registry.set_inputs(1, -1, 45)

    assert unit.inputs == {'hours': 0, 'mins': 45}


def test_undo_inside_window(registry):
    registry.mark_pending_delete(1, NOW + timedelta(seconds=5))

    assert registry.undo_delete(1, NOW + timedelta(seconds=2))
    assert registry.get(1).pending_delete is None
    assert registry.remove_if_expired(1, NOW + timedelta(seconds=10)) is None
    assert 1 in registry


def test_undo_after_deadline_does_nothing(registry):
    registry.mark_pending_delete(1, NOW + timedelta(seconds=5))

    assert not registry.undo_delete(1, NOW + timedelta(seconds=6))
    assert registry.get(1).is_pending_delete

    removed = registry.remove_if_expired(1, NOW + timedelta(seconds=6))
    assert removed.name == "PlayBox 1"
    assert 1 not in registry


def test_pending_unit_stays_listed_until_deadline(registry):
    registry.mark_pending_delete(1, NOW + timedelta(seconds=5))

    assert registry.remove_if_expired(1, NOW) is None
    assert [unit.id for unit in registry.all()] == [1, 2, 3]
    assert registry.expired(NOW) == []
    assert [unit.id for unit in registry.expired(NOW + timedelta(seconds=5))] == [1]
