from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Literal, Optional
from pydantic import BaseModel, Field

SessionStatus = Literal["planning", "recipe", "active", "completed"]
HistoryStatus = Literal["in-progress", "completed", "abandoned"]
PlanningDirection = Literal["forward", "backward"]


class StageType(str, Enum):
    AUTOLYSE = "AUTOLYSE"
    KNEADING = "KNEADING"
    STRETCH_AND_FOLD = "STRETCH_AND_FOLD"
    BULK_FERMENTATION = "BULK_FERMENTATION"
    SHAPING = "SHAPING"
    PROVING = "PROVING"
    BAKING = "BAKING"


class BakerConfig(BaseModel):
    """Baker's-percentage recipe plus process parameters."""

    total_flour: float = Field(default=1000, gt=0)
    hydration: float = Field(default=75, ge=0)
    salt: float = Field(default=2, ge=0)
    yeast: float = Field(default=0.5, gt=0)
    target_temp: float = 22
    fridge_temp: float = 6
    autolyse_enabled: bool = False
    autolyse_duration_minutes: int = Field(default=60, ge=0)
    cold_bulk_enabled: bool = False
    cold_bulk_duration_hours: float = Field(default=8, ge=0)
    cold_proof_enabled: bool = False
    cold_proof_duration_hours: float = Field(default=8, ge=0)
    final_proof_duration_minutes: int = Field(default=60, ge=0)
    fermentation_balance: Optional[float] = Field(default=None, ge=0, le=100)


class FermentationTimes(BaseModel):
    bulk_mins: int
    proof_mins: int
    cold_bulk_mins: int = 0
    cold_proof_mins: int = 0


class BatchWeights(BaseModel):
    flour: float
    water: float
    yeast: float
    salt: float
    total: float


class StageDefinition(BaseModel):
    kind: str
    stage_type: StageType
    label: str
    duration_minutes: int = Field(ge=0)
    is_active: bool
    is_cold: bool = False


class Stage(BaseModel):
    id: str
    type: StageType
    label: str
    duration_minutes: int = Field(ge=0)
    completed: bool = False
    # hands-on work vs passive wait, not "currently selected"
    is_active: bool = False
    is_cold: bool = False
    start_time: Optional[datetime] = None
    stage_end_time: Optional[datetime] = None


class BakerSession(BaseModel):
    id: str
    name: str = "Experimental Batch"
    start_time: datetime
    target_end_time: datetime
    stages: list[Stage] = Field(default_factory=list)
    active_stage_index: int = Field(default=0, ge=0)
    status: SessionStatus = "planning"
    config: BakerConfig = Field(default_factory=BakerConfig)

    @property
    def active_stage(self) -> Optional[Stage]:
        if 0 <= self.active_stage_index < len(self.stages):
            return self.stages[self.active_stage_index]
        return None


class ScheduledStage(StageDefinition):
    start: datetime
    end: datetime


class HourMarker(BaseModel):
    label: str
    at: datetime
    position: float


class Schedule(BaseModel):
    stages: list[ScheduledStage]
    session_start: datetime
    session_end: datetime
    hourly_markers: list[HourMarker] = Field(default_factory=list)
    total_minutes: int
    bulk_minutes: int
    proof_minutes: int


class HistoryEntry(BaseModel):
    id: str
    name: str = ""
    start_time: datetime
    end_time: Optional[datetime] = None
    status: HistoryStatus = "in-progress"

    autolyse_enabled: bool = False
    cold_bulk_enabled: bool = False
    cold_proof_enabled: bool = False

    flour_grams: int
    water_grams: int
    salt_grams: int
    yeast_grams: int

    room_temp: float
    fridge_temp: Optional[float] = None

    notes: str = ""
    total_duration_minutes: Optional[int] = None
    stages: list[Stage] = Field(default_factory=list)
