# tasks/audit.py
"""
Post-commit safety net for the two invariants the request path protects
with locks: no overlapping active schedules per car/driver, and 1..N stop
orders per route. Findings are logged, never repaired automatically.
"""
from collections import defaultdict
from itertools import combinations

from flask import current_app

from db import db
from models.schedule import Schedule, STATUS_ACTIVE
from models.station import RouteStation
from services.conflicts import windows_overlap, days_match
from services.sequencer import is_contiguous


def audit_schedule_overlaps():
    """Return [(resource, resource_id, schedule_a_id, schedule_b_id)] for overlapping pairs."""
    active = Schedule.query.filter(Schedule.status == STATUS_ACTIVE).order_by(Schedule.id).all()

    by_resource = defaultdict(list)
    for s in active:
        by_resource[("car", s.car_id)].append(s)
        by_resource[("driver", s.driver_id)].append(s)

    findings = []
    for (resource, rid), rows in by_resource.items():
        for a, b in combinations(rows, 2):
            if not windows_overlap(a.departure_time, a.arrival_time, b.departure_time, b.arrival_time):
                continue
            # any shared weekday is a double booking, whatever SCHEDULE_DAY_MATCH let through
            if days_match(a.days, b.days, "any"):
                findings.append((resource, rid, a.id, b.id))
                current_app.logger.warning(
                    "[audit] %s=%s schedules %s and %s overlap", resource, rid, a.id, b.id
                )
    return findings


def audit_route_orders():
    """Return {route_id: [orders]} for every route whose orders are not 1..N."""
    rows = (
        db.session.query(RouteStation.route_id, RouteStation.order)
        .order_by(RouteStation.route_id, RouteStation.order)
        .all()
    )
    orders = defaultdict(list)
    for route_id, order in rows:
        orders[route_id].append(int(order))

    broken = {rid: seq for rid, seq in orders.items() if not is_contiguous(seq)}
    for rid, seq in broken.items():
        current_app.logger.error("[audit] route=%s station orders not contiguous: %s", rid, seq)
    return broken
