"""Weekly body composition from canonical weigh-ins."""

from __future__ import annotations

from datetime import timedelta
from typing import Iterable, Optional

import pandas as pd

from fastcomp.analytics.models import BodyLogEntry, WeeklyComposition, round_or_none
from fastcomp.analytics.timezone import entry_local_date


def _delta(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    if current is None or previous is None:
        return None
    return round_or_none(current - previous)


def compute_weekly_composition(
    canonical_entries: Iterable[BodyLogEntry],
) -> list[WeeklyComposition]:
    """Average weight, body fat, fat mass and lean mass per Monday-based week.

    Weeks are keyed on each entry's local date. Fat and lean mass are
    derived from the week's average weight and average body fat; weeks
    without any body fat reading report them as None. Deltas compare each
    week with the previous week that has data.
    """
    rows = []
    for entry in canonical_entries or ():
        if entry is None or entry.weight_lbs is None:
            continue
        day = entry_local_date(entry)
        if day is None:
            continue
        rows.append({"day": day, "weight": entry.weight_lbs, "body_fat": entry.body_fat_pct})

    if not rows:
        return []

    df = pd.DataFrame(rows)
    df["weight"] = pd.to_numeric(df["weight"], errors="coerce")
    df["body_fat"] = pd.to_numeric(df["body_fat"], errors="coerce")
    days = pd.to_datetime(df["day"])
    df["week_start"] = (days - pd.to_timedelta(days.dt.weekday, unit="D")).dt.date

    weekly = (
        df.groupby("week_start", sort=True)
        .agg(average_weight=("weight", "mean"), average_body_fat=("body_fat", "mean"))
        .dropna(subset=["average_weight"])
    )

    results: list[WeeklyComposition] = []
    for week_start, row in weekly.iterrows():
        avg_weight = float(row["average_weight"])
        avg_body_fat = row["average_body_fat"]
        if pd.isna(avg_body_fat):
            avg_body_fat = None
            fat_mass = None
            lean_mass = None
        else:
            avg_body_fat = float(avg_body_fat)
            fat_mass = avg_weight * (avg_body_fat / 100)
            lean_mass = avg_weight - fat_mass

        week = WeeklyComposition(
            week_start=week_start,
            week_end=week_start + timedelta(days=6),
            average_weight=round_or_none(avg_weight),
            average_body_fat=round_or_none(avg_body_fat),
            average_fat_mass=round_or_none(fat_mass),
            average_lean_mass=round_or_none(lean_mass),
        )
        if results:
            previous = results[-1]
            week.delta_weight = _delta(week.average_weight, previous.average_weight)
            week.delta_fat_mass = _delta(week.average_fat_mass, previous.average_fat_mass)
            week.delta_lean_mass = _delta(week.average_lean_mass, previous.average_lean_mass)
        results.append(week)

    return results
