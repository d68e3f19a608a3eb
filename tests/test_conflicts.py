from datetime import time

import pytest

from services.conflicts import find_conflicts, check_schedule, windows_overlap, days_match
from services.errors import ScheduleConflict


def _ids(rows):
    return [s.id for s in rows]


@pytest.mark.parametrize(
    "new_dep, new_arr, expected",
    [
        (time(9), time(11), True),                 # starts inside
        (time(7), time(9), True),                  # ends inside
        (time(8, 30), time(9, 30), True),          # fully inside
        (time(7), time(12), True),                 # swallows existing
        (time(8), time(10), True),                 # identical
        (time(10), time(11), False),               # starts at existing arrival
        (time(7), time(8), False),                 # ends at existing departure
        (time(11), time(12), False),
    ],
)
def test_windows_overlap_half_open(new_dep, new_arr, expected):
    assert windows_overlap(time(8), time(10), new_dep, new_arr) is expected


def test_days_match_modes():
    assert days_match(["monday"], ["monday", "friday"], "all")
    assert not days_match(["monday", "tuesday"], ["monday"], "all")
    assert days_match(["monday", "tuesday"], ["monday"], "any")
    assert not days_match(["tuesday"], ["monday"], "any")


def test_overlapping_window_conflicts(fleet, add_schedule):
    a = add_schedule(time(8), time(10), ["monday"])
    hits = find_conflicts(car_id=fleet.car_id, departure=time(9), arrival=time(11), days=["monday"])
    assert _ids(hits) == [a]


def test_back_to_back_windows_do_not_conflict(fleet, add_schedule):
    add_schedule(time(8), time(10), ["monday"])
    after = find_conflicts(car_id=fleet.car_id, departure=time(10), arrival=time(11), days=["monday"])
    before = find_conflicts(car_id=fleet.car_id, departure=time(7), arrival=time(8), days=["monday"])
    assert after == []
    assert before == []


def test_new_window_containing_existing_conflicts(fleet, add_schedule):
    a = add_schedule(time(8), time(10), ["monday"])
    hits = find_conflicts(car_id=fleet.car_id, departure=time(6), arrival=time(12), days=["monday"])
    assert _ids(hits) == [a]


def test_disjoint_days_do_not_conflict(fleet, add_schedule):
    add_schedule(time(8), time(10), ["monday"])
    hits = find_conflicts(car_id=fleet.car_id, departure=time(8), arrival=time(10), days=["tuesday"])
    assert hits == []


def test_excluded_schedule_is_ignored(fleet, add_schedule):
    a = add_schedule(time(8), time(10), ["monday"])
    hits = find_conflicts(
        car_id=fleet.car_id, departure=time(8), arrival=time(10), days=["monday"], exclude_schedule_id=a
    )
    assert hits == []


@pytest.mark.parametrize("status", ["cancelled", "completed"])
def test_inactive_schedules_never_conflict(fleet, add_schedule, status):
    add_schedule(time(8), time(10), ["monday"], status=status)
    hits = find_conflicts(car_id=fleet.car_id, departure=time(8), arrival=time(10), days=["monday"])
    assert hits == []


def test_car_and_driver_scopes_are_independent(fleet, add_schedule):
    a = add_schedule(time(8), time(10), ["monday"], car_id=fleet.car_id, driver_id=fleet.driver_id)

    # other car, same driver
    by_car = find_conflicts(car_id=fleet.car2_id, departure=time(9), arrival=time(11), days=["monday"])
    by_driver = find_conflicts(driver_id=fleet.driver_id, departure=time(9), arrival=time(11), days=["monday"])
    assert by_car == []
    assert _ids(by_driver) == [a]


def test_needs_car_or_driver(app):
    with pytest.raises(ValueError):
        find_conflicts(departure=time(8), arrival=time(9), days=["monday"])


def test_every_requested_day_must_be_stored_by_default(fleet, add_schedule):
    add_schedule(time(8), time(10), ["monday"])
    hits = find_conflicts(
        car_id=fleet.car_id, departure=time(8), arrival=time(10), days=["monday", "tuesday"]
    )
    assert hits == []


def test_any_day_mode_reports_partial_day_overlap(app, fleet, add_schedule):
    app.config["SCHEDULE_DAY_MATCH"] = "any"
    a = add_schedule(time(8), time(10), ["monday"])
    hits = find_conflicts(
        car_id=fleet.car_id, departure=time(8), arrival=time(10), days=["monday", "tuesday"]
    )
    assert _ids(hits) == [a]


def test_results_ordered_by_departure(fleet, add_schedule):
    late = add_schedule(time(11), time(12), ["monday"])
    early = add_schedule(time(8), time(9), ["monday"])
    hits = find_conflicts(car_id=fleet.car_id, departure=time(7), arrival=time(13), days=["monday"])
    assert _ids(hits) == [early, late]


def test_check_schedule_reports_car_before_driver(fleet, add_schedule):
    a = add_schedule(time(8), time(10), ["monday"], car_id=fleet.car_id, driver_id=fleet.driver_id)

    with pytest.raises(ScheduleConflict) as exc:
        check_schedule(fleet.car_id, fleet.driver2_id, departure=time(9), arrival=time(11), days=["monday"])
    assert exc.value.resource == "car"
    assert _ids(exc.value.conflicts) == [a]
    assert exc.value.message == "Car is already scheduled during this time on these days"

    with pytest.raises(ScheduleConflict) as exc:
        check_schedule(fleet.car2_id, fleet.driver_id, departure=time(9), arrival=time(11), days=["monday"])
    assert exc.value.resource == "driver"
    assert exc.value.message == "Driver is already scheduled during this time on these days"


def test_check_schedule_passes_when_free(fleet, add_schedule):
    add_schedule(time(8), time(10), ["monday"])
    check_schedule(fleet.car_id, fleet.driver_id, departure=time(10), arrival=time(12), days=["monday"])
