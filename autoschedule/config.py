"""Tunable scheduling constants.

The defaults reproduce the scoring the app has always used; none of the
numbers have a derivation behind them, so every one can be overridden from
the ``scheduling:`` section of settings.yaml.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from autoschedule.fileio import read_yaml
from autoschedule.models import WorkingHours
from autoschedule.workspace import settings_path


PRODUCTIVITY_PRIORS = ("circadian", "uniform")


@dataclass
class TypeRatePrior:
    """Baseline success rate of a task type: one value inside its good hours, another outside."""

    first_hour: int
    last_hour: int
    inside: float
    outside: float

    def rate(self, hour: int) -> float:
        return self.inside if self.first_hour <= hour <= self.last_hour else self.outside

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> TypeRatePrior:
        first, last = (int(h) for h in str(d["hours"]).split("-"))
        return cls(first, last, float(d["inside"]), float(d["outside"]))


def _default_type_priors() -> dict[str, TypeRatePrior]:
    return {
        "coding": TypeRatePrior(9, 17, 0.8, 0.4),
        "meeting": TypeRatePrior(10, 16, 0.9, 0.3),
        "planning": TypeRatePrior(8, 11, 0.9, 0.5),
        "design": TypeRatePrior(13, 18, 0.85, 0.6),
    }


@dataclass
class SchedulerSettings:
    # priority scoring
    tier_base: dict[str, float] = field(
        default_factory=lambda: {"high": 100.0, "medium": 50.0, "low": 25.0}
    )
    deadline_bonuses: list[tuple[float, float]] = field(
        default_factory=lambda: [(24.0, 100.0), (72.0, 50.0), (168.0, 25.0)]
    )  # (within hours, bonus), checked in order
    dependency_bonus: float = 25.0
    short_task_numerator: float = 10.0
    # adaptive heuristic
    duration_decay_minutes: float = 120.0
    confidence_saturation: int = 10
    strong_confidence: float = 0.7
    prior_weight: float = 2.0
    productivity_prior: str = "circadian"
    default_type_rate: float = 0.5
    type_priors: dict[str, TypeRatePrior] = field(default_factory=_default_type_priors)
    # availability
    default_working_hours: WorkingHours = field(default_factory=WorkingHours)

    def __post_init__(self) -> None:
        if self.productivity_prior not in PRODUCTIVITY_PRIORS:
            raise ValueError(f"Unknown productivity prior: {self.productivity_prior!r}")
        if self.duration_decay_minutes <= 0:
            raise ValueError("duration_decay_minutes must be positive")
        if self.confidence_saturation <= 0:
            raise ValueError("confidence_saturation must be positive")
        self.deadline_bonuses = sorted(self.deadline_bonuses)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> SchedulerSettings:
        if not d or not isinstance(d, dict):
            return cls()
        defaults = cls()
        tier_base = dict(defaults.tier_base)
        tier_base.update({k: float(v) for k, v in (d.get("tier_base") or {}).items()})
        bonuses = d.get("deadline_bonuses")
        type_priors = dict(defaults.type_priors)
        for name, entry in (d.get("type_priors") or {}).items():
            type_priors[str(name)] = TypeRatePrior.from_dict(entry)
        return cls(
            tier_base=tier_base,
            deadline_bonuses=(
                [(float(h), float(b)) for h, b in bonuses] if bonuses else defaults.deadline_bonuses
            ),
            dependency_bonus=float(d.get("dependency_bonus", defaults.dependency_bonus)),
            short_task_numerator=float(d.get("short_task_numerator", defaults.short_task_numerator)),
            duration_decay_minutes=float(d.get("duration_decay_minutes", defaults.duration_decay_minutes)),
            confidence_saturation=int(d.get("confidence_saturation", defaults.confidence_saturation)),
            strong_confidence=float(d.get("strong_confidence", defaults.strong_confidence)),
            prior_weight=float(d.get("prior_weight", defaults.prior_weight)),
            productivity_prior=str(d.get("productivity_prior", defaults.productivity_prior)),
            default_type_rate=float(d.get("default_type_rate", defaults.default_type_rate)),
            type_priors=type_priors,
            default_working_hours=WorkingHours.from_dict(d.get("default_working_hours") or {}),
        )


def load_settings(root: Path | None = None) -> SchedulerSettings:
    """Load the ``scheduling:`` section of settings.yaml."""
    data = read_yaml(settings_path(root))
    return SchedulerSettings.from_dict(data.get("scheduling") or {})
