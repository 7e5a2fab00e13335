"""On-call roster records."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class RotationSlot:
    start_date: datetime
    end_date: datetime
    user_id: str
    type: str  # primary, secondary, escalation


@dataclass
class OnCallSchedule:
    """Roster for one team. Rotations are stored but never computed."""

    team_id: str
    team_name: str
    primary: Optional[str] = None
    secondary: Optional[str] = None
    escalation: list[str] = field(default_factory=list)
    timezone: str = "UTC"
    rotations: list[RotationSlot] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "team_id": self.team_id,
            "team_name": self.team_name,
            "primary": self.primary,
            "secondary": self.secondary,
            "escalation": list(self.escalation),
            "timezone": self.timezone,
            "rotations": [
                {
                    "start_date": r.start_date.isoformat(),
                    "end_date": r.end_date.isoformat(),
                    "user_id": r.user_id,
                    "type": r.type,
                }
                for r in self.rotations
            ],
        }


@dataclass(frozen=True)
class OnCallSnapshot:
    """Who is on call right now for one team."""

    primary: Optional[str] = None
    secondary: Optional[str] = None
    escalation: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "primary": self.primary,
            "secondary": self.secondary,
            "escalation": list(self.escalation),
        }
