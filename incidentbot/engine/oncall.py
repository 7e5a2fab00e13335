"""On-call directory: a read-mostly lookup table of team rosters."""

import copy
import json
import threading
from dataclasses import fields
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..models.oncall import OnCallSchedule, OnCallSnapshot, RotationSlot
from ..utils.logging import get_logger

logger = get_logger("engine.oncall")

DEFAULT_TEAM = "default"

_UPDATABLE_FIELDS = {f.name for f in fields(OnCallSchedule)} - {"team_id"}


def default_roster() -> dict[str, OnCallSchedule]:
    """Demo roster used when no roster file is configured."""
    return {
        DEFAULT_TEAM: OnCallSchedule(
            team_id=DEFAULT_TEAM,
            team_name="Engineering",
            primary="U123456789",
            secondary="U987654321",
            escalation=["U555666777", "U888999000"],
        )
    }


def _schedule_from_dict(team_id: str, raw: dict) -> OnCallSchedule:
    rotations = [
        RotationSlot(
            start_date=datetime.fromisoformat(r["start_date"]),
            end_date=datetime.fromisoformat(r["end_date"]),
            user_id=r["user_id"],
            type=r.get("type", "primary"),
        )
        for r in raw.get("rotations", [])
    ]
    return OnCallSchedule(
        team_id=team_id,
        team_name=raw.get("team_name", team_id),
        primary=raw.get("primary"),
        secondary=raw.get("secondary"),
        escalation=list(raw.get("escalation", [])),
        timezone=raw.get("timezone", "UTC"),
        rotations=rotations,
    )


def load_roster(path: str | Path) -> dict[str, OnCallSchedule]:
    """Load a roster file shaped as ``{"teams": {"<team_id>": {...}}}``."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    teams = data.get("teams", data)
    roster = {team_id: _schedule_from_dict(team_id, raw) for team_id, raw in teams.items()}
    logger.info("oncall_roster_loaded", path=str(path), teams=len(roster))
    return roster


class OnCallDirectory:
    """Answers "who is on call" per team. Rotations are never computed here."""

    def __init__(self, schedules: Optional[dict[str, OnCallSchedule]] = None, default_team: str = DEFAULT_TEAM):
        self._schedules = dict(schedules) if schedules is not None else default_roster()
        self._default_team = default_team
        self._lock = threading.Lock()

    @property
    def default_team(self) -> str:
        return self._default_team

    def teams(self) -> list[str]:
        with self._lock:
            return list(self._schedules)

    def get_schedule(self, team_id: Optional[str] = None) -> Optional[OnCallSchedule]:
        with self._lock:
            schedule = self._schedules.get(team_id or self._default_team)
            return copy.deepcopy(schedule) if schedule else None

    def get_current(self, team_id: Optional[str] = None) -> OnCallSnapshot:
        schedule = self.get_schedule(team_id)
        if schedule is None:
            return OnCallSnapshot()
        return OnCallSnapshot(
            primary=schedule.primary,
            secondary=schedule.secondary,
            escalation=tuple(schedule.escalation),
        )

    def update_schedule(self, team_id: str, **changes) -> bool:
        """Partially update a known team's schedule. Unknown teams are not created."""
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown schedule fields: {sorted(unknown)}")

        with self._lock:
            existing = self._schedules.get(team_id)
            if existing is None:
                return False
            updated = copy.deepcopy(existing)
            for name, value in changes.items():
                setattr(updated, name, value)
            self._schedules[team_id] = updated

        logger.info("oncall_schedule_updated", team_id=team_id, fields=sorted(changes))
        return True
