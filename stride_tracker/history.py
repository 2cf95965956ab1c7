"""Statistics over finished sessions.

Pure functions that turn a session history into DataFrames and summary
figures for a stats panel. Distances are reported in the chosen unit system,
pace in minutes per unit.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import Optional, Sequence

import pandas as pd

from .models import RunSession
from .units import UnitSystem, default_unit_system

ID_COL = "id"
START_COL = "start_time"
END_COL = "end_time"
DISTANCE_M_COL = "distance_m"
DISTANCE_COL = "distance"
DURATION_COL = "duration_seconds"
PACE_COL = "average_pace"
MAX_SPEED_COL = "max_speed"

FRAME_COLUMNS = [
    ID_COL,
    START_COL,
    END_COL,
    DISTANCE_M_COL,
    DISTANCE_COL,
    DURATION_COL,
    PACE_COL,
    MAX_SPEED_COL,
]


@dataclass(frozen=True, slots=True)
class HistoryStats:
    session_count: int = 0
    completed_count: int = 0
    total_distance: float = 0.0
    total_duration_seconds: float = 0.0
    mean_pace: float = 0.0
    best_distance: float = 0.0
    longest_duration_seconds: float = 0.0


def sessions_frame(
    sessions: Sequence[RunSession],
    units: UnitSystem | None = None,
    tz: Optional[tzinfo] = None,
) -> pd.DataFrame:
    """One row per session, sorted by start time (oldest first)."""

    units = units or default_unit_system()
    rows = [
        {
            ID_COL: s.id,
            START_COL: s.start_time,
            END_COL: s.end_time,
            DISTANCE_M_COL: s.distance_m,
            DISTANCE_COL: units.to_units(s.distance_m),
            DURATION_COL: s.duration_seconds,
            PACE_COL: s.average_pace,
            MAX_SPEED_COL: s.max_speed,
        }
        for s in sessions
    ]
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    if df.empty:
        return df
    df[START_COL] = pd.to_datetime(df[START_COL], utc=True)
    df[END_COL] = pd.to_datetime(df[END_COL], utc=True, errors="coerce")
    if tz is not None:
        df[START_COL] = df[START_COL].dt.tz_convert(tz)
        df[END_COL] = df[END_COL].dt.tz_convert(tz)
    df.sort_values(by=START_COL, inplace=True)
    df.reset_index(drop=True, inplace=True)
    return df


def summarize_history(
    sessions: Sequence[RunSession],
    units: UnitSystem | None = None,
) -> HistoryStats:
    df = sessions_frame(sessions, units)
    if df.empty:
        return HistoryStats()
    paced = df.loc[df[PACE_COL] > 0, PACE_COL]
    return HistoryStats(
        session_count=int(len(df)),
        completed_count=int(df[END_COL].notna().sum()),
        total_distance=float(df[DISTANCE_COL].sum()),
        total_duration_seconds=float(df[DURATION_COL].sum()),
        mean_pace=float(paced.mean()) if not paced.empty else 0.0,
        best_distance=float(df[DISTANCE_COL].max()),
        longest_duration_seconds=float(df[DURATION_COL].max()),
    )


def weekly_distance(
    sessions: Sequence[RunSession],
    units: UnitSystem | None = None,
    tz: Optional[tzinfo] = None,
) -> pd.Series:
    """Distance per ISO week, indexed by ``"YYYY-Www"`` labels in date order."""

    df = sessions_frame(sessions, units, tz)
    if df.empty:
        return pd.Series(dtype=float, name=DISTANCE_COL)
    iso = df[START_COL].dt.isocalendar()
    labels = (
        iso["year"].astype(str) + "-W" + iso["week"].astype(int).map("{:02d}".format)
    )
    weekly = df.groupby(labels, sort=True)[DISTANCE_COL].sum()
    weekly.index.name = "week"
    return weekly


__all__ = [
    "HistoryStats",
    "sessions_frame",
    "summarize_history",
    "weekly_distance",
]
