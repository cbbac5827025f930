"""Demand forecast: least-squares trend line over monthly demand, projected forward."""
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from medicycle.core.exceptions import ValidationFailedError

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

# Six months of sample usage shown on the dashboard before real history exists
DEMO_HISTORY: List[Tuple[int, float]] = [
    (1, 40),
    (2, 45),
    (3, 60),
    (4, 65),
    (5, 80),
    (6, 95),
]


@dataclass
class Forecast:
    slope: float
    intercept: float
    points: List[dict]

    @property
    def next_value(self) -> int:
        return next(p["demand"] for p in self.points if p["isPrediction"])


def month_label(month: int) -> str:
    return MONTH_LABELS[(month - 1) % 12]


def fit_trend(history: Sequence[Tuple[int, float]]) -> Tuple[float, float]:
    """Return (slope, intercept) of the best-fit line through (month, demand)."""
    if len(history) < 2:
        raise ValidationFailedError("At least two data points are required")
    months = np.array([m for m, _ in history], dtype=float)
    demand = np.array([d for _, d in history], dtype=float)
    if np.unique(months).size < 2:
        raise ValidationFailedError("Data points must cover at least two different months")
    slope, intercept = np.polyfit(months, demand, 1)
    return float(slope), float(intercept)


def forecast_demand(history: Sequence[Tuple[int, float]], horizon: int = 1) -> Forecast:
    """Fit the history and append `horizon` predicted months after the last one."""
    if horizon < 1:
        raise ValidationFailedError("Horizon must be at least 1")
    ordered = sorted(history, key=lambda point: point[0])
    slope, intercept = fit_trend(ordered)

    points = [
        {"month": m, "label": month_label(m), "demand": d, "isPrediction": False}
        for m, d in ordered
    ]
    last_month = ordered[-1][0]
    for step in range(1, horizon + 1):
        month = last_month + step
        predicted = max(0, int(round(slope * month + intercept)))
        points.append(
            {"month": month, "label": f"{month_label(month)} (AI)", "demand": predicted, "isPrediction": True}
        )
    return Forecast(slope=slope, intercept=intercept, points=points)
