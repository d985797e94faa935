from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Callable, TYPE_CHECKING
from pydantic import ValidationError
from bake_planner.models import BakerSession, HistoryEntry
from bake_planner.storage import HISTORY_KEY, JsonFileStore, KeyValueStore, decode, encode
from bake_planner.timeutils import minutes_between, now as _now

if TYPE_CHECKING:
    from bake_planner.session import SessionManager

logger = logging.getLogger(__name__)

HistoryListener = Callable[[list[HistoryEntry]], None]


def entry_from_session(session: BakerSession) -> HistoryEntry:
    config = session.config
    flour = config.total_flour
    cold = config.cold_bulk_enabled or config.cold_proof_enabled
    return HistoryEntry(
        id=session.id,
        start_time=session.start_time,
        autolyse_enabled=config.autolyse_enabled,
        cold_bulk_enabled=config.cold_bulk_enabled,
        cold_proof_enabled=config.cold_proof_enabled,
        flour_grams=round(flour),
        water_grams=round(flour * config.hydration / 100),
        salt_grams=round(flour * config.salt / 100),
        yeast_grams=round(flour * config.yeast / 100),
        room_temp=config.target_temp,
        fridge_temp=config.fridge_temp if cold else None,
        stages=[s.model_copy() for s in session.stages],
    )


class HistoryManager:
    """Newest-first log of bakes, persisted on every change."""

    def __init__(self, store: KeyValueStore | None = None, clock: Callable[[], datetime] = _now):
        self.store = store if store is not None else JsonFileStore()
        self._clock = clock
        self._listeners: list[HistoryListener] = []
        self._history: list[HistoryEntry] = self._load()

    def subscribe(self, listener: HistoryListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispose(self) -> None:
        self._listeners.clear()

    def get_history(self) -> list[HistoryEntry]:
        return [e.model_copy(deep=True) for e in self._history]

    def get(self, entry_id: str) -> HistoryEntry | None:
        entry = self._find(entry_id)
        return entry.model_copy(deep=True) if entry else None

    def add_session(self, session: BakerSession) -> None:
        if self._find(session.id):
            logger.debug("Session %s is already in history", session.id)
            return
        self._history.insert(0, entry_from_session(session))
        self._changed()

    def update_session(self, entry_id: str, **updates: Any) -> None:
        """Merge ``updates`` into an entry; setting ``end_time`` recomputes the duration."""
        for index, entry in enumerate(self._history):
            if entry.id != entry_id:
                continue
            updates.pop("id", None)
            updated = HistoryEntry.model_validate({**entry.model_dump(), **updates})
            if updates.get("end_time") is not None:
                updated.total_duration_minutes = round(minutes_between(updated.start_time, updated.end_time))
            self._history[index] = updated
            self._changed()
            return
        logger.debug("No history entry %s to update", entry_id)

    def update_name(self, entry_id: str, name: str) -> None:
        self.update_session(entry_id, name=name)

    def update_notes(self, entry_id: str, notes: str) -> None:
        self.update_session(entry_id, notes=notes)

    def delete_entry(self, entry_id: str) -> None:
        self._history = [e for e in self._history if e.id != entry_id]
        self._changed()

    def track(self, sessions: SessionManager) -> Callable[[], None]:
        """Record bakes as ``sessions`` starts, completes or abandons them."""
        current = sessions.get_session()
        if current.status == "active":
            self.add_session(current)
        last = {"id": current.id, "status": current.status}

        def on_session(session: BakerSession) -> None:
            previous_id, previous_status = last["id"], last["status"]
            last["id"], last["status"] = session.id, session.status

            if session.status == "active" and session.id != previous_id:
                if previous_status == "active":
                    self._abandon(previous_id)
                self.add_session(session)
            elif session.status == "completed" and previous_status == "active":
                self.update_session(
                    session.id,
                    end_time=self._clock(),
                    status="completed",
                    stages=session.stages,
                )
            elif session.status == "planning" and previous_status == "active":
                self._abandon(previous_id)

        return sessions.subscribe(on_session)

    def _abandon(self, entry_id: str) -> None:
        self.update_session(entry_id, end_time=self._clock(), status="abandoned")

    def _find(self, entry_id: str) -> HistoryEntry | None:
        return next((e for e in self._history if e.id == entry_id), None)

    def _load(self) -> list[HistoryEntry]:
        try:
            raw = self.store.get(HISTORY_KEY)
            data = decode(raw) if raw else []
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Could not load bake history: %s", e)
            return []
        if not isinstance(data, list):
            logger.warning("Ignoring malformed bake history record")
            return []

        entries = []
        for item in data:
            try:
                entries.append(HistoryEntry.model_validate(item))
            except ValidationError:
                logger.warning("Skipping unreadable history entry %s", item.get("id") if isinstance(item, dict) else item)
        return entries

    def _changed(self) -> None:
        try:
            self.store.set(HISTORY_KEY, encode([e.model_dump() for e in self._history]))
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Could not persist bake history: %s", e)
        snapshot = self.get_history()
        for listener in list(self._listeners):
            listener(snapshot)
