# routes/schedules.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, current_app

from db import db
from models.car import Car
from models.route import Route
from models.schedule import Schedule, SCHEDULE_STATUSES, STATUS_ACTIVE
from models.user import User
from realtime import emit_schedule_changed
from services.conflicts import check_schedule
from utils.locks import keyed_lock
from utils.payloads import schedule_payload
from utils.timefmt import parse_hhmm, parse_days

schedules_bp = Blueprint("schedules", __name__, url_prefix="/schedules")

REQUIRED = ("route_id", "car_id", "driver_id", "departure_time", "arrival_time", "days_of_week")


def _as_id(v) -> int | None:
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def _get(model, raw):
    pk = _as_id(raw)
    return db.session.get(model, pk) if pk is not None else None


def _driver(uid):
    u = db.session.get(User, uid) if uid is not None else None
    if u is None or (u.role or "").lower() != "driver":
        return None
    return u


def _row_lock(model, pk):
    """SELECT ... FOR UPDATE on one row (SQLite ignores the clause)."""
    return db.session.query(model).filter(model.id == pk).with_for_update(read=False, nowait=False)


def _save_checked(schedule: Schedule, *, exclude_id: int | None) -> None:
    """
    Conflict check + commit while holding the car and driver locks.
    The keyed locks cover threads of this process; the car/driver row locks
    (always car first) make other workers wait until this transaction ends.
    """
    with keyed_lock(("car", schedule.car_id), ("driver", schedule.driver_id)):
        _row_lock(Car, schedule.car_id).first()
        _row_lock(User, schedule.driver_id).first()
        if schedule.status == STATUS_ACTIVE:
            check_schedule(
                schedule.car_id,
                schedule.driver_id,
                departure=schedule.departure_time,
                arrival=schedule.arrival_time,
                days=schedule.days_of_week,
                exclude_schedule_id=exclude_id,
            )
        db.session.add(schedule)
        db.session.commit()


@schedules_bp.route("", methods=["GET"])
def list_schedules():
    """
    GET /schedules
      Query (all optional):
        - status=active|cancelled|completed
        - day=monday..sunday
        - route_id / car_id / driver_id
    """
    q = Schedule.query
    status = (request.args.get("status") or "").strip().lower()
    if status:
        q = q.filter(Schedule.status == status)
    for arg, col in (("route_id", Schedule.route_id), ("car_id", Schedule.car_id), ("driver_id", Schedule.driver_id)):
        val = request.args.get(arg, type=int)
        if val is not None:
            q = q.filter(col == val)

    rows = q.order_by(Schedule.departure_time.asc(), Schedule.id.asc()).all()

    day = (request.args.get("day") or "").strip().lower()
    if day:
        rows = [s for s in rows if day in s.days]

    return jsonify([schedule_payload(s) for s in rows]), 200


@schedules_bp.route("/<int:schedule_id>", methods=["GET"])
def get_schedule(schedule_id: int):
    s = Schedule.query.get_or_404(schedule_id)
    out = schedule_payload(s)
    out["bookings_count"] = s.bookings.count()
    return jsonify(out), 200


@schedules_bp.route("/driver/<int:driver_id>", methods=["GET"])
def driver_schedule(driver_id: int):
    """Active schedules a driver works, with route name and car plate."""
    u = User.query.get_or_404(driver_id)
    if (u.role or "").lower() != "driver":
        return jsonify(error="User is not a driver"), 400

    rows = (
        Schedule.query.filter(Schedule.driver_id == u.id, Schedule.status == STATUS_ACTIVE)
        .order_by(Schedule.departure_time.asc(), Schedule.id.asc())
        .all()
    )
    out = []
    for s in rows:
        p = schedule_payload(s)
        p["route_name"] = s.route.name if s.route else None
        p["plate_number"] = s.car.plate_number if s.car else None
        out.append(p)
    return jsonify(out), 200


@schedules_bp.route("", methods=["POST"])
def create_schedule():
    data = request.get_json() or {}
    missing = [k for k in REQUIRED if k not in data]
    if missing:
        return jsonify(error=f"Missing field(s): {', '.join(missing)}"), 400

    try:
        departure = parse_hhmm(data["departure_time"])
        arrival = parse_hhmm(data["arrival_time"])
        days = parse_days(data["days_of_week"])
    except ValueError as e:
        return jsonify(error=f"Invalid payload: {e}"), 400

    if arrival <= departure:
        return jsonify(error="arrival_time must be after departure_time"), 400

    status = str(data.get("status") or STATUS_ACTIVE).strip().lower()
    if status not in SCHEDULE_STATUSES:
        return jsonify(error="invalid status"), 400

    route = _get(Route, data["route_id"])
    if not route:
        return jsonify(error="invalid route_id"), 400
    car = _get(Car, data["car_id"])
    if not car:
        return jsonify(error="invalid car_id"), 400
    driver = _driver(_as_id(data["driver_id"]))
    if not driver:
        return jsonify(error="invalid driver_id"), 400

    if not car.is_active:
        return jsonify(error="Car is not active and cannot be scheduled"), 422
    if not driver.is_active_driver:
        return jsonify(error="Driver is not active and cannot be scheduled"), 422

    schedule = Schedule(
        route_id=route.id,
        car_id=car.id,
        driver_id=driver.id,
        departure_time=departure,
        arrival_time=arrival,
        days_of_week=days,
        status=status,
    )
    # ScheduleConflict bubbles up to the app's TransitError handler (422)
    try:
        _save_checked(schedule, exclude_id=None)
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "[schedules] created id=%s route=%s car=%s driver=%s %s-%s %s",
        schedule.id, route.id, car.id, driver.id, data["departure_time"], data["arrival_time"], days,
    )
    payload = schedule_payload(schedule)
    emit_schedule_changed({**payload, "event": "created"}, route_id=schedule.route_id)
    return jsonify(message="Schedule created successfully", schedule=payload), 201


@schedules_bp.route("/<int:schedule_id>", methods=["PATCH"])
def update_schedule(schedule_id: int):
    s = Schedule.query.get_or_404(schedule_id)
    data = request.get_json() or {}

    try:
        departure = parse_hhmm(data["departure_time"]) if "departure_time" in data else s.departure_time
        arrival = parse_hhmm(data["arrival_time"]) if "arrival_time" in data else s.arrival_time
        days = parse_days(data["days_of_week"]) if "days_of_week" in data else list(s.days_of_week or [])
    except ValueError as e:
        return jsonify(error=f"Invalid payload: {e}"), 400

    if arrival <= departure:
        return jsonify(error="arrival_time must be after departure_time"), 400

    status = str(data.get("status") or s.status).strip().lower()
    if status not in SCHEDULE_STATUSES:
        return jsonify(error="invalid status"), 400

    route_id = s.route_id
    if "route_id" in data:
        route = _get(Route, data["route_id"])
        if not route:
            return jsonify(error="invalid route_id"), 400
        route_id = route.id

    car_id = s.car_id
    if "car_id" in data and _as_id(data["car_id"]) != s.car_id:
        car = _get(Car, data["car_id"])
        if not car:
            return jsonify(error="invalid car_id"), 400
        if not car.is_active:
            return jsonify(error="Car is not active and cannot be scheduled"), 422
        car_id = car.id

    driver_id = s.driver_id
    if "driver_id" in data and _as_id(data["driver_id"]) != s.driver_id:
        driver = _driver(_as_id(data["driver_id"]))
        if not driver:
            return jsonify(error="invalid driver_id"), 400
        if not driver.is_active_driver:
            return jsonify(error="Driver is not active and cannot be scheduled"), 422
        driver_id = driver.id

    s.route_id = route_id
    s.car_id = car_id
    s.driver_id = driver_id
    s.departure_time = departure
    s.arrival_time = arrival
    s.days_of_week = days
    s.status = status

    try:
        _save_checked(s, exclude_id=s.id)
    except Exception:
        db.session.rollback()
        raise

    payload = schedule_payload(s)
    emit_schedule_changed({**payload, "event": "updated"}, route_id=s.route_id)
    return jsonify(message="Schedule updated successfully", schedule=payload), 200


@schedules_bp.route("/<int:schedule_id>/status", methods=["PATCH"])
def change_status(schedule_id: int):
    s = Schedule.query.get_or_404(schedule_id)
    data = request.get_json() or {}
    status = str(data.get("status") or "").strip().lower()
    if status not in SCHEDULE_STATUSES:
        return jsonify(error="status must be one of: " + ", ".join(SCHEDULE_STATUSES)), 400

    old_status = s.status
    s.status = status
    try:
        # re-activating puts the schedule back into conflict checks
        _save_checked(s, exclude_id=s.id)
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("[schedules] id=%s status %s→%s", s.id, old_status, status)
    payload = schedule_payload(s)
    emit_schedule_changed({**payload, "event": "status", "old_status": old_status}, route_id=s.route_id)
    return jsonify(
        message=f"Schedule status changed from {old_status} to {status} successfully",
        schedule=payload,
    ), 200


@schedules_bp.route("/<int:schedule_id>", methods=["DELETE"])
def delete_schedule(schedule_id: int):
    s = Schedule.query.get_or_404(schedule_id)
    if s.bookings.count() > 0:
        return jsonify(error="Cannot delete schedule with active bookings"), 422

    try:
        db.session.delete(s)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("ERROR deleting schedule id=%s", schedule_id)
        return jsonify(error="Failed to delete schedule"), 500

    return jsonify(message="Schedule deleted successfully"), 200
