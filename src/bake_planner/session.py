from __future__ import annotations
import logging
import uuid
from datetime import datetime
from typing import Any, Callable
from pydantic import ValidationError
from bake_planner.models import BakerConfig, BakerSession
from bake_planner.schedule import compute_sequential_stages
from bake_planner.stages import calculate_session_duration, generate_baking_stages
from bake_planner.storage import SESSION_KEY, JsonFileStore, KeyValueStore, decode, encode
from bake_planner.timer import seconds_left
from bake_planner.timeutils import add_minutes, now as _now

logger = logging.getLogger(__name__)

SessionListener = Callable[[BakerSession], None]

EDITABLE_STATUSES = ("planning", "recipe")
STARTABLE_STATUSES = ("planning", "recipe", "active")


class ConfigError(ValueError):
    pass


def _make_id(moment: datetime) -> str:
    return f"{moment.strftime('%Y-%m-%d')}-{uuid.uuid4().hex[:8]}"


def validate_config(config: BakerConfig, updates: dict[str, Any]) -> BakerConfig:
    unknown = sorted(set(updates) - set(BakerConfig.model_fields))
    if unknown:
        raise ConfigError(f"Unknown config field(s): {', '.join(unknown)}")
    try:
        return BakerConfig.model_validate({**config.model_dump(), **updates})
    except ValidationError as e:
        raise ConfigError(f"Invalid config: {e}") from e


class SessionManager:
    """Owns the live bake session and its lifecycle.

    Every mutation pushes a fresh snapshot to subscribers. The session is
    written to the store only while it is active; anything else clears the
    stored record so a stale plan is never resumed.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        default_config: BakerConfig | None = None,
        clock: Callable[[], datetime] = _now,
    ):
        self.store = store if store is not None else JsonFileStore()
        self._clock = clock
        self._default_config = default_config or BakerConfig()
        self._listeners: list[SessionListener] = []
        self._session = self._create_default_session()
        self._restore()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispose(self) -> None:
        self._listeners.clear()

    def get_session(self) -> BakerSession:
        return self._session.model_copy(deep=True)

    def get_config(self) -> BakerConfig:
        return self._session.config.model_copy()

    @property
    def status(self) -> str:
        return self._session.status

    def time_left(self) -> int:
        stage = self._session.active_stage
        if self._session.status != "active" or stage is None:
            return 0
        return seconds_left(stage.stage_end_time, self._clock())

    def update_config(self, **updates: Any) -> None:
        if self._session.status not in EDITABLE_STATUSES:
            logger.debug("Ignoring config update while session is %s", self._session.status)
            return
        config = validate_config(self._session.config, updates)
        self._update(config=config, stages=generate_baking_stages(config))

    def regenerate_stages(self) -> None:
        if self._session.status in EDITABLE_STATUSES:
            self._update(stages=generate_baking_stages(self._session.config))

    def transition_to_recipe(self) -> None:
        if self._session.status == "planning":
            self._update(status="recipe")

    def start_session(self) -> None:
        if self._session.status not in STARTABLE_STATUSES:
            logger.debug("Cannot start a session that is %s", self._session.status)
            return
        now = self._clock()
        config = self._session.config
        stages = compute_sequential_stages(generate_baking_stages(config), 0, now)
        self._update(
            id=_make_id(now),
            status="active",
            active_stage_index=0,
            start_time=now,
            target_end_time=add_minutes(now, calculate_session_duration(config)),
            stages=stages,
        )
        logger.info("Started bake %s", self._session.id)

    def advance_to_next_stage(self) -> None:
        if self._session.status != "active":
            logger.debug("Ignoring advance while session is %s", self._session.status)
            return

        now = self._clock()
        current_index = self._session.active_stage_index
        next_index = current_index + 1
        stages = [s.model_copy() for s in self._session.stages]

        current = stages[current_index]
        current.completed = True
        current.is_active = False
        current.stage_end_time = now

        if next_index < len(stages):
            stages = compute_sequential_stages(stages, next_index, now)
            self._update(
                stages=stages,
                active_stage_index=next_index,
                target_end_time=stages[-1].stage_end_time,
            )
        else:
            self._update(stages=stages, status="completed")
            logger.info("Completed bake %s", self._session.id)

    def reset_session(self) -> None:
        self._update(
            status="planning",
            active_stage_index=0,
            stages=generate_baking_stages(self._session.config),
        )

    def complete_session(self) -> None:
        if self._session.status == "active":
            self._update(status="completed")
            logger.info("Completed bake %s", self._session.id)

    def _create_default_session(self) -> BakerSession:
        now = self._clock()
        config = self._default_config.model_copy()
        return BakerSession(
            id="new-bake",
            start_time=now,
            target_end_time=now,
            stages=generate_baking_stages(config),
            status="planning",
            config=config,
        )

    def _restore(self) -> None:
        try:
            raw = self.store.get(SESSION_KEY)
        except (OSError, ValueError) as e:
            logger.warning("Could not read persisted session: %s", e)
            return
        if raw is None:
            return
        try:
            session = BakerSession.model_validate(decode(raw))
        except (ValueError, TypeError) as e:
            logger.warning("Ignoring unreadable persisted session: %s", e)
            return
        if session.status != "active" or session.active_stage is None:
            logger.debug("Persisted session is not resumable (status=%s)", session.status)
            return
        self._session = session
        logger.info("Resumed active bake %s", session.id)

    def _save(self) -> None:
        try:
            if self._session.status == "active":
                self.store.set(SESSION_KEY, encode(self._session.model_dump()))
            else:
                self.store.delete(SESSION_KEY)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Could not persist session %s: %s", self._session.id, e)

    def _update(self, **changes: Any) -> None:
        self._session = self._session.model_copy(update=changes)
        self._save()
        self._notify()

    def _notify(self) -> None:
        snapshot = self.get_session()
        for listener in list(self._listeners):
            listener(snapshot)
