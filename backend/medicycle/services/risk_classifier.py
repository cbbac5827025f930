"""
Expiry risk classification.

Days remaining until expiry map onto four tiers:
    < 0      EXPIRED
    0 - 30   CRITICAL
    31 - 60  WARNING
    > 60     SAFE
"""
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Union

from medicycle.models.enums import RiskLevel

DateLike = Union[date, datetime, str]

CRITICAL_DAYS = 30
WARNING_DAYS = 60

RISK_COLORS = {
    RiskLevel.EXPIRED: "red",
    RiskLevel.CRITICAL: "darkred",
    RiskLevel.WARNING: "orange",
    RiskLevel.SAFE: "green",
}


@dataclass(frozen=True)
class RiskAssessment:
    level: RiskLevel
    color: str
    days_remaining: int

    def as_dict(self) -> dict:
        return {
            "level": self.level.value,
            "color": self.color,
            "daysRemaining": self.days_remaining,
        }


def _coerce(value: DateLike, field: str) -> Union[date, datetime]:
    if isinstance(value, (date, datetime)):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"Invalid {field}: {value!r}")
    raise ValueError(f"Invalid {field}: expected a date, got {type(value).__name__}")


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def days_until(expiry: DateLike, today: Optional[DateLike] = None) -> int:
    """Whole days from today to expiry; partial days count as a full day remaining."""
    exp = _coerce(expiry, "expiry date")
    if today is not None:
        now = _coerce(today, "current date")
    elif isinstance(exp, datetime):
        now = datetime.now(timezone.utc)
    else:
        now = date.today()

    if isinstance(exp, datetime) or isinstance(now, datetime):
        # Mixed precision: promote plain dates to midnight UTC
        if not isinstance(exp, datetime):
            exp = datetime(exp.year, exp.month, exp.day, tzinfo=timezone.utc)
        if not isinstance(now, datetime):
            now = datetime(now.year, now.month, now.day, tzinfo=timezone.utc)
        seconds = (_as_aware(exp) - _as_aware(now)).total_seconds()
        return math.ceil(seconds / 86400)

    return (exp - now).days


def classify_days(days_remaining: int) -> RiskLevel:
    if days_remaining < 0:
        return RiskLevel.EXPIRED
    if days_remaining <= CRITICAL_DAYS:
        return RiskLevel.CRITICAL
    if days_remaining <= WARNING_DAYS:
        return RiskLevel.WARNING
    return RiskLevel.SAFE


def classify_expiry(expiry: DateLike, today: Optional[DateLike] = None) -> RiskAssessment:
    """Classify an expiry date. Raises ValueError for anything that is not a valid date."""
    days = days_until(expiry, today)
    level = classify_days(days)
    return RiskAssessment(level=level, color=RISK_COLORS[level], days_remaining=days)


def summarize(medicines: Iterable, today: Optional[DateLike] = None) -> dict:
    """Dashboard counters: batches per tier plus units expiring within the critical window."""
    counts = {level.value.lower(): 0 for level in RiskLevel}
    units_at_risk = 0
    for med in medicines:
        level = classify_expiry(med.expiry_date, today).level
        counts[level.value.lower()] += 1
        if level in (RiskLevel.EXPIRED, RiskLevel.CRITICAL):
            units_at_risk += med.quantity or 0
    counts["units_at_risk"] = units_at_risk
    return counts
