from __future__ import annotations
from bake_planner.fermentation import calculate_fermentation_times
from bake_planner.models import BakerConfig, FermentationTimes, Stage, StageDefinition, StageType

KNEADING_MINS = 15
FOLDS_MINS = 45
SHAPING_MINS = 15
BAKING_MINS = 50

LABELS = {
    "autolyse": "Autolyse",
    "kneading": "Mixing",
    "folds": "Folds",
    "bulkFerment": "Bulk Ferment",
    "coldBulk": "Cold Bulk",
    "shaping": "Shaping",
    "finalProof": "Final Proof",
    "coldProof": "Cold Proof",
    "baking": "Baking",
}


def _define(kind: str, stage_type: StageType, minutes: int, active: bool, cold: bool = False) -> StageDefinition:
    return StageDefinition(
        kind=kind,
        stage_type=stage_type,
        label=LABELS[kind],
        duration_minutes=minutes,
        is_active=active,
        is_cold=cold,
    )


def get_stage_definitions(config: BakerConfig, times: FermentationTimes | None = None) -> list[StageDefinition]:
    """Ordered stage sequence for a bake.

    Folds take up to the first 45 minutes of bulk; the remainder becomes a
    separate passive bulk stage. Cold stages follow their warm counterpart.
    """
    times = times or calculate_fermentation_times(config)
    stages: list[StageDefinition] = []

    if config.autolyse_enabled:
        stages.append(_define("autolyse", StageType.AUTOLYSE, config.autolyse_duration_minutes, active=False))

    stages.append(_define("kneading", StageType.KNEADING, KNEADING_MINS, active=True))

    fold_mins = min(FOLDS_MINS, times.bulk_mins)
    bulk_rest_mins = max(0, times.bulk_mins - fold_mins)
    stages.append(_define("folds", StageType.STRETCH_AND_FOLD, fold_mins, active=True))
    stages.append(_define("bulkFerment", StageType.BULK_FERMENTATION, bulk_rest_mins, active=False))

    if times.cold_bulk_mins > 0:
        stages.append(
            _define("coldBulk", StageType.BULK_FERMENTATION, times.cold_bulk_mins, active=False, cold=True)
        )

    stages.append(_define("shaping", StageType.SHAPING, SHAPING_MINS, active=True))
    stages.append(_define("finalProof", StageType.PROVING, times.proof_mins, active=False))

    if times.cold_proof_mins > 0:
        stages.append(
            _define("coldProof", StageType.PROVING, times.cold_proof_mins, active=False, cold=True)
        )

    stages.append(_define("baking", StageType.BAKING, BAKING_MINS, active=True))
    return stages


def generate_baking_stages(config: BakerConfig) -> list[Stage]:
    return [
        Stage(
            id=f"{d.kind}-{i}",
            type=d.stage_type,
            label=d.label,
            duration_minutes=d.duration_minutes,
            is_active=d.is_active,
            is_cold=d.is_cold,
        )
        for i, d in enumerate(get_stage_definitions(config))
    ]


def total_duration(stages: list[StageDefinition] | list[Stage]) -> int:
    return sum(s.duration_minutes for s in stages)


def calculate_session_duration(config: BakerConfig) -> int:
    return total_duration(get_stage_definitions(config))
