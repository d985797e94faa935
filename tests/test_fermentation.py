import pytest
from pydantic import ValidationError
from bake_planner.fermentation import (
    balance_bulk_proof,
    calculate_batch_weights,
    calculate_fermentation_times,
    cold_equivalence_factor,
)
from bake_planner.models import BakerConfig


def _config(**overrides) -> BakerConfig:
    base = dict(total_flour=1000, hydration=75, salt=2, yeast=0.5, target_temp=24)
    base.update(overrides)
    return BakerConfig(**base)


def test_baseline_fermentation_times():
    times = calculate_fermentation_times(_config())
    assert times.bulk_mins == 300
    assert times.proof_mins == 180
    assert times.cold_bulk_mins == 0
    assert times.cold_proof_mins == 0


def test_baseline_batch_weights():
    weights = calculate_batch_weights(_config())
    assert weights.flour == pytest.approx(1000)
    assert weights.water == pytest.approx(750)
    assert weights.salt == pytest.approx(20)
    assert weights.yeast == pytest.approx(5)
    assert weights.total == pytest.approx(1775)


def test_batch_weights_are_not_rounded():
    weights = calculate_batch_weights(_config(total_flour=333, yeast=0.7))
    assert weights.yeast == pytest.approx(2.331)


def test_double_yeast_halves_fermentation():
    times = calculate_fermentation_times(_config(yeast=1.0))
    assert times.bulk_mins == 150
    assert times.proof_mins == 90


def test_warmer_dough_ferments_faster():
    warm = calculate_fermentation_times(_config(target_temp=30))
    assert warm.bulk_mins < 300
    assert warm.bulk_mins == round(300 * 0.85**3)
    assert warm.proof_mins == round(180 * 0.80**3)


def test_cold_bulk_supplements_warm_bulk():
    times = calculate_fermentation_times(
        _config(cold_bulk_enabled=True, cold_bulk_duration_hours=12, fridge_temp=4)
    )
    assert times.cold_bulk_mins == 720
    # 720 cold minutes at 4°C are worth 24 warm minutes
    assert times.bulk_mins == 276
    assert times.bulk_mins - 45 > 0


def test_cold_duration_ignored_when_disabled():
    times = calculate_fermentation_times(_config(cold_proof_enabled=False, cold_proof_duration_hours=10))
    assert times.cold_proof_mins == 0
    assert times.proof_mins == 180


def test_long_warm_fridge_absorbs_all_warm_proof():
    times = calculate_fermentation_times(
        _config(cold_proof_enabled=True, cold_proof_duration_hours=72, fridge_temp=12)
    )
    assert times.cold_proof_mins == 72 * 60
    assert times.proof_mins == 0


@pytest.mark.parametrize("temp", [-5, 0, 2])
def test_cold_factor_is_zero_at_or_below_two_degrees(temp):
    assert cold_equivalence_factor(temp) == 0


def test_cold_factor_is_continuous_at_five_degrees():
    assert cold_equivalence_factor(5) == pytest.approx(0.05)
    assert cold_equivalence_factor(4.999999) == pytest.approx(0.05, abs=1e-6)


def test_cold_factor_doubles_every_ten_degrees():
    assert cold_equivalence_factor(15) == pytest.approx(2 * cold_equivalence_factor(5))


def test_cold_factor_linear_ramp():
    assert cold_equivalence_factor(3.5) == pytest.approx(0.025)


def test_more_yeast_never_lengthens_fermentation():
    yeasts = [0.05, 0.1, 0.2, 0.35, 0.5, 0.8, 1.0, 1.5, 2.0]
    results = [calculate_fermentation_times(_config(yeast=y)) for y in yeasts]
    for shorter, longer in zip(results[1:], results):
        assert shorter.bulk_mins <= longer.bulk_mins
        assert shorter.proof_mins <= longer.proof_mins


def test_warmer_temperature_strictly_shortens_bulk():
    temps = list(range(16, 34))
    bulks = [calculate_fermentation_times(_config(target_temp=t)).bulk_mins for t in temps]
    assert all(later < earlier for earlier, later in zip(bulks, bulks[1:]))


@pytest.mark.parametrize(
    "balance,expected",
    [(0, (432, 48)), (50, (360, 120)), (100, (288, 192))],
)
def test_balance_redistributes_total_warm_time(balance, expected):
    assert balance_bulk_proof(480, balance) == expected


def test_balance_applies_to_fermentation_times():
    times = calculate_fermentation_times(_config(fermentation_balance=100))
    assert times.bulk_mins == 288
    assert times.proof_mins == 192


@pytest.mark.parametrize("field", ["yeast", "total_flour"])
@pytest.mark.parametrize("value", [0, -1])
def test_config_rejects_non_positive_divisors(field, value):
    with pytest.raises(ValidationError):
        _config(**{field: value})
