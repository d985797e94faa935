from __future__ import annotations
from bake_planner.models import BakerConfig, BatchWeights, FermentationTimes

BASE_YEAST_PERCENT = 0.5
BASE_TEMP_C = 24.0
BASE_BULK_MINS = 300
BASE_PROOF_MINS = 180

BULK_TEMP_BASE = 0.85
PROOF_TEMP_BASE = 0.80

COLD_HALT_TEMP_C = 2.0
COLD_RAMP_END_C = 5.0
COLD_FACTOR_AT_RAMP_END = 0.05


def cold_equivalence_factor(temp_c: float) -> float:
    """Warm-equivalent minutes for one minute of cold fermentation at ``temp_c``.

    Fermentation is treated as halted at or below 2°C, ramps linearly up to
    0.05 at 5°C, then follows a Q10=2 curve scaled to meet the ramp at 5°C.
    """
    if temp_c <= COLD_HALT_TEMP_C:
        return 0.0
    if temp_c < COLD_RAMP_END_C:
        return COLD_FACTOR_AT_RAMP_END * (temp_c - COLD_HALT_TEMP_C) / (COLD_RAMP_END_C - COLD_HALT_TEMP_C)
    k = COLD_FACTOR_AT_RAMP_END / 2 ** ((COLD_RAMP_END_C - 20) / 10)
    return k * 2 ** ((temp_c - 20) / 10)


def balance_bulk_proof(total_mins: float, balance: float) -> tuple[int, int]:
    """Split total warm time: balance 0 is 90/10 bulk/proof, 100 is 60/40."""
    bulk_percent = 90 - (balance / 100) * 30
    proof_percent = 100 - bulk_percent
    return round(total_mins * bulk_percent / 100), round(total_mins * proof_percent / 100)


def calculate_fermentation_times(config: BakerConfig) -> FermentationTimes:
    """Warm bulk/proof minutes plus the cold windows, rounded to whole minutes.

    Baseline is 0.5% yeast at 24°C: 300 min bulk, 180 min proof. Time scales
    with 1/yeast and decays by 0.85 (bulk) or 0.80 (proof) per 2°C above 24°C.
    Cold fermentation supplements warm time; it never replaces it outright.
    """
    yeast_factor = BASE_YEAST_PERCENT / config.yeast
    steps = (config.target_temp - BASE_TEMP_C) / 2

    bulk_warm_target = BASE_BULK_MINS * yeast_factor * BULK_TEMP_BASE**steps
    proof_warm_target = BASE_PROOF_MINS * yeast_factor * PROOF_TEMP_BASE**steps

    cold_bulk_mins = round(config.cold_bulk_duration_hours * 60) if config.cold_bulk_enabled else 0
    cold_proof_mins = round(config.cold_proof_duration_hours * 60) if config.cold_proof_enabled else 0

    cold_factor = cold_equivalence_factor(config.fridge_temp)
    bulk_remaining = max(0.0, bulk_warm_target - cold_bulk_mins * cold_factor)
    proof_remaining = max(0.0, proof_warm_target - cold_proof_mins * cold_factor)

    if config.fermentation_balance is None:
        bulk_mins, proof_mins = round(bulk_remaining), round(proof_remaining)
    else:
        bulk_mins, proof_mins = balance_bulk_proof(
            bulk_remaining + proof_remaining, config.fermentation_balance
        )

    return FermentationTimes(
        bulk_mins=bulk_mins,
        proof_mins=proof_mins,
        cold_bulk_mins=cold_bulk_mins,
        cold_proof_mins=cold_proof_mins,
    )


def calculate_batch_weights(config: BakerConfig) -> BatchWeights:
    flour = config.total_flour
    water = flour * config.hydration / 100
    yeast = flour * config.yeast / 100
    salt = flour * config.salt / 100
    return BatchWeights(flour=flour, water=water, yeast=yeast, salt=salt, total=flour + water + yeast + salt)
