# routes/stations.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation

from flask import Blueprint, request, jsonify, current_app

from db import db
from models.route import Route
from models.station import Station, RouteStation
from realtime import emit_route_stations
from services.sequencer import attach_station, detach_station, update_station
from utils.payloads import station_payload, route_payload, link_payload
from utils.timefmt import parse_optional_hhmm

stations_bp = Blueprint("stations", __name__)

STATION_STATUSES = ("active", "inactive")


def _coord(v, limit: int) -> Decimal | None:
    try:
        d = Decimal(str(v))
    except (InvalidOperation, ValueError):
        return None
    return d if -limit <= d <= limit else None


def _station_fields(data: dict, *, partial: bool) -> tuple[dict, str | None]:
    """Validate station payload → (fields, error)."""
    out = {}
    for k in ("name", "address"):
        if k in data:
            v = str(data[k] or "").strip()
            if not v or len(v) > 255:
                return {}, f"{k} must be 1-255 characters"
            out[k] = v
        elif not partial:
            return {}, f"Missing field: {k}"

    for k, limit in (("latitude", 90), ("longitude", 180)):
        if k in data:
            v = _coord(data[k], limit)
            if v is None:
                return {}, f"{k} must be a number between -{limit} and {limit}"
            out[k] = v
        elif not partial:
            return {}, f"Missing field: {k}"

    if "description" in data:
        out["description"] = (str(data["description"]).strip() or None) if data["description"] is not None else None

    if "status" in data:
        st = str(data["status"] or "").strip().lower()
        if st not in STATION_STATUSES:
            return {}, "invalid status"
        out["status"] = st
    return out, None


def _stop_times(data: dict):
    """Parse optional arrival/departure; departure may not precede arrival."""
    arrival = parse_optional_hhmm(data.get("arrival_time"))
    departure = parse_optional_hhmm(data.get("departure_time"))
    if arrival and departure and departure < arrival:
        raise ValueError("departure_time must be at or after arrival_time")
    return arrival, departure


def _order(raw) -> int:
    # int(1.9) would silently truncate
    if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
        raise ValueError("order must be an integer >= 1")
    n = int(raw)
    if n < 1:
        raise ValueError("order must be an integer >= 1")
    return n


def _after_sequence_change(route: Route, links: list) -> dict:
    stops = [link_payload(l) for l in links]
    emit_route_stations(route.id, stops)
    return route_payload(route, links=links)


# ─────────────────────────────────────────────
# Stations
# ─────────────────────────────────────────────
@stations_bp.route("/stations", methods=["GET"])
def list_stations():
    rows = Station.query.order_by(Station.name.asc()).all()
    return jsonify([station_payload(s) for s in rows]), 200


@stations_bp.route("/stations", methods=["POST"])
def create_station():
    fields, err = _station_fields(request.get_json() or {}, partial=False)
    if err:
        return jsonify(error=err), 400

    st = Station(**fields)
    try:
        db.session.add(st)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("ERROR creating station")
        return jsonify(error="Failed to create station"), 500

    return jsonify(message="Station created successfully", station=station_payload(st)), 201


@stations_bp.route("/stations/<int:station_id>", methods=["GET"])
def get_station(station_id: int):
    st = Station.query.get_or_404(station_id)
    out = station_payload(st)
    out["routes"] = [
        {"route_id": l.route_id, "name": l.route.name, "order": l.order}
        for l in st.route_links
    ]
    return jsonify(out), 200


@stations_bp.route("/stations/<int:station_id>", methods=["PATCH", "PUT"])
def update_station_record(station_id: int):
    st = Station.query.get_or_404(station_id)
    fields, err = _station_fields(request.get_json() or {}, partial=True)
    if err:
        return jsonify(error=err), 400

    for k, v in fields.items():
        setattr(st, k, v)
    db.session.commit()
    return jsonify(message="Station updated successfully", station=station_payload(st)), 200


@stations_bp.route("/stations/<int:station_id>", methods=["DELETE"])
def delete_station(station_id: int):
    st = Station.query.get_or_404(station_id)
    if RouteStation.query.filter_by(station_id=st.id).first() is not None:
        return jsonify(error="Cannot delete station that is used in routes"), 422

    db.session.delete(st)
    db.session.commit()
    return jsonify(message="Station deleted successfully"), 200


# ─────────────────────────────────────────────
# Route ↔ station sequence
# ─────────────────────────────────────────────
@stations_bp.route("/routes/<int:route_id>/stations", methods=["POST"])
def add_station_to_route(route_id: int):
    """
    POST /routes/<route_id>/stations
      { "station_id": 4, "order": 2, "arrival_time": "08:10", "departure_time": "08:12" }
    Stations at `order` and after move one slot later.
    """
    route = Route.query.get_or_404(route_id)
    data = request.get_json() or {}

    if "station_id" not in data or "order" not in data:
        return jsonify(error="station_id and order are required"), 400
    try:
        order = _order(data["order"])
        arrival, departure = _stop_times(data)
        station_id = int(data["station_id"])
    except (TypeError, ValueError) as e:
        return jsonify(error=f"Invalid payload: {e}"), 400

    if db.session.get(Station, station_id) is None:
        return jsonify(error="invalid station_id"), 400

    # DuplicateStation → 422 via the app's TransitError handler
    links = attach_station(route.id, station_id, order, arrival, departure)
    return jsonify(
        message="Station added to route successfully",
        route=_after_sequence_change(route, links),
    ), 200


@stations_bp.route("/routes/<int:route_id>/stations/<int:station_id>", methods=["PUT", "PATCH"])
def update_station_in_route(route_id: int, station_id: int):
    route = Route.query.get_or_404(route_id)
    Station.query.get_or_404(station_id)
    data = request.get_json() or {}

    try:
        order = _order(data["order"]) if data.get("order") is not None else None
        arrival, departure = _stop_times(data)
    except (TypeError, ValueError) as e:
        return jsonify(error=f"Invalid payload: {e}"), 400

    try:
        # one side supplied → compared against the stored row under the route lock
        links = update_station(route.id, station_id, order, arrival, departure)
    except ValueError as e:
        return jsonify(error=str(e)), 400
    return jsonify(
        message="Station in route updated successfully",
        route=_after_sequence_change(route, links),
    ), 200


@stations_bp.route("/routes/<int:route_id>/stations/<int:station_id>", methods=["DELETE"])
def remove_station_from_route(route_id: int, station_id: int):
    route = Route.query.get_or_404(route_id)
    Station.query.get_or_404(station_id)

    links = detach_station(route.id, station_id)
    return jsonify(
        message="Station removed from route successfully",
        route=_after_sequence_change(route, links),
    ), 200
