# services/conflicts.py
"""
Schedule conflict detection.

A schedule blocks a car/driver on its weekdays within [departure, arrival).
The overlap test is written as three cases:

  (a) existing.departure <= new.departure <  existing.arrival
  (b) existing.departure <  new.arrival   <= existing.arrival
  (c) new.departure <= existing.departure and existing.arrival <= new.arrival

which, for windows with departure < arrival, is the half-open rule
d1 < a2 and d2 < a1. Back-to-back windows (08:00-10:00, 10:00-11:00) do
not conflict.

Public API:
  - windows_overlap(existing_dep, existing_arr, new_dep, new_arr) -> bool
  - days_match(requested, stored, mode="all") -> bool
  - find_conflicts(car_id=None, driver_id=None, *, departure, arrival, days,
                   exclude_schedule_id=None) -> list[Schedule]
  - check_schedule(car_id, driver_id, *, departure, arrival, days,
                   exclude_schedule_id=None) -> None  (raises ScheduleConflict)
"""
from __future__ import annotations

from datetime import time
from typing import Iterable, Optional

from flask import current_app
from sqlalchemy import and_, or_

from models.schedule import Schedule, STATUS_ACTIVE
from services.errors import ScheduleConflict

DAY_MATCH_MODES = ("all", "any")


def windows_overlap(existing_dep: time, existing_arr: time, new_dep: time, new_arr: time) -> bool:
    return (
        (existing_dep <= new_dep < existing_arr)
        or (existing_dep < new_arr <= existing_arr)
        or (new_dep <= existing_dep and existing_arr <= new_arr)
    )


def _overlap_clause(new_dep: time, new_arr: time):
    """SQL twin of windows_overlap() against Schedule's columns."""
    dep, arr = Schedule.departure_time, Schedule.arrival_time
    return or_(
        and_(dep <= new_dep, arr > new_dep),
        and_(dep < new_arr, arr >= new_arr),
        and_(dep >= new_dep, arr <= new_arr),
    )


def days_match(requested: Iterable[str], stored: Iterable[str], mode: str = "all") -> bool:
    """
    "all": every requested day must be on the stored schedule (one filter per
           requested day, applied cumulatively).
    "any": at least one shared day.
    """
    req = {str(d).lower() for d in requested}
    have = {str(d).lower() for d in stored}
    if mode == "any":
        return bool(req & have)
    return bool(req) and req <= have


def _day_match_mode() -> str:
    mode = (current_app.config.get("SCHEDULE_DAY_MATCH") or "all").lower()
    if mode not in DAY_MATCH_MODES:
        current_app.logger.warning("[conflicts] unknown SCHEDULE_DAY_MATCH=%r; using 'all'", mode)
        return "all"
    return mode


def find_conflicts(
    car_id: Optional[int] = None,
    driver_id: Optional[int] = None,
    *,
    departure: time,
    arrival: time,
    days: Iterable[str],
    exclude_schedule_id: Optional[int] = None,
) -> list[Schedule]:
    """
    Active schedules of the given car (or driver) that share the requested
    days and overlap [departure, arrival). Pure read; callers validate
    departure < arrival beforehand.
    """
    if car_id is None and driver_id is None:
        raise ValueError("find_conflicts needs a car_id or a driver_id")

    q = Schedule.query.filter(Schedule.status == STATUS_ACTIVE)
    if car_id is not None:
        q = q.filter(Schedule.car_id == car_id)
    if driver_id is not None:
        q = q.filter(Schedule.driver_id == driver_id)
    if exclude_schedule_id is not None:
        q = q.filter(Schedule.id != exclude_schedule_id)
    q = q.filter(_overlap_clause(departure, arrival))

    # days_of_week is a JSON list; JSON containment isn't portable across
    # MySQL/SQLite so the day filter runs here
    mode = _day_match_mode()
    wanted = list(days)
    return [
        s for s in q.order_by(Schedule.departure_time.asc(), Schedule.id.asc()).all()
        if days_match(wanted, s.days, mode)
    ]


def check_schedule(
    car_id: Optional[int],
    driver_id: Optional[int],
    *,
    departure: time,
    arrival: time,
    days: Iterable[str],
    exclude_schedule_id: Optional[int] = None,
) -> None:
    """Car first, then driver; each queried on its own. Raises ScheduleConflict."""
    days = list(days)
    window = dict(departure=departure, arrival=arrival, days=days,
                  exclude_schedule_id=exclude_schedule_id)

    if car_id is not None:
        hits = find_conflicts(car_id=car_id, **window)
        if hits:
            current_app.logger.info("[conflicts] car=%s blocked by %s", car_id, [s.id for s in hits])
            raise ScheduleConflict("car", hits)

    if driver_id is not None:
        hits = find_conflicts(driver_id=driver_id, **window)
        if hits:
            current_app.logger.info("[conflicts] driver=%s blocked by %s", driver_id, [s.id for s in hits])
            raise ScheduleConflict("driver", hits)
