import random
from datetime import time

import pytest

import services.sequencer as sequencer
from services.sequencer import attach_station, detach_station, update_station, route_links
from services.errors import DuplicateStation, StationNotAttached, InvariantViolation


def _order_of(route_id):
    """{station_id: order}"""
    return {l.station_id: l.order for l in route_links(route_id)}


def _assert_contiguous(route_id):
    orders = sorted(_order_of(route_id).values())
    assert orders == list(range(1, len(orders) + 1))


@pytest.fixture
def three_stops(route_id, make_stations):
    """Route with stations s1, s2, s3 at orders 1, 2, 3 and one spare station."""
    s1, s2, s3, spare = make_stations(4)
    for order, sid in enumerate((s1, s2, s3), start=1):
        attach_station(route_id, sid, order)
    return s1, s2, s3, spare


def test_attach_into_occupied_slot_shifts_later_stops(route_id, three_stops):
    s1, s2, s3, new = three_stops
    links = attach_station(route_id, new, 2, time(8, 10), time(8, 12))

    assert [l.station_id for l in links] == [s1, new, s2, s3]
    assert _order_of(route_id) == {s1: 1, new: 2, s2: 3, s3: 4}
    assert links[1].arrival_time == time(8, 10)


def test_attach_duplicate_station_leaves_state_unchanged(route_id, three_stops):
    s1, s2, s3, _ = three_stops
    before = _order_of(route_id)
    with pytest.raises(DuplicateStation) as exc:
        attach_station(route_id, s2, 1)
    assert exc.value.message == "Station is already in this route"
    assert _order_of(route_id) == before


def test_attach_past_end_appends(route_id, three_stops):
    *_, spare = three_stops
    attach_station(route_id, spare, 10)
    assert _order_of(route_id)[spare] == 4
    _assert_contiguous(route_id)


def test_attach_first_station_on_empty_route(route_id, make_stations):
    (sid,) = make_stations(1)
    links = attach_station(route_id, sid, 3)
    assert [(l.station_id, l.order) for l in links] == [(sid, 1)]


def test_attach_rejects_non_positive_order(route_id, make_stations):
    (sid,) = make_stations(1)
    with pytest.raises(ValueError):
        attach_station(route_id, sid, 0)


def test_detach_closes_gap(route_id, three_stops):
    s1, s2, s3, _ = three_stops
    links = detach_station(route_id, s2)
    assert [(l.station_id, l.order) for l in links] == [(s1, 1), (s3, 2)]


def test_detach_missing_station_leaves_state_unchanged(route_id, three_stops):
    *_, spare = three_stops
    before = _order_of(route_id)
    with pytest.raises(StationNotAttached) as exc:
        detach_station(route_id, spare)
    assert exc.value.message == "Station is not in this route"
    assert _order_of(route_id) == before


def test_move_station_earlier(route_id, make_stations):
    s1, s2, s3, s4 = make_stations(4)
    for order, sid in enumerate((s1, s2, s3, s4), start=1):
        attach_station(route_id, sid, order)

    update_station(route_id, s3, order=1)
    assert _order_of(route_id) == {s3: 1, s1: 2, s2: 3, s4: 4}


def test_move_station_later(route_id, make_stations):
    s1, s2, s3, s4 = make_stations(4)
    for order, sid in enumerate((s1, s2, s3, s4), start=1):
        attach_station(route_id, sid, order)

    update_station(route_id, s1, order=3)
    assert _order_of(route_id) == {s2: 1, s3: 2, s1: 3, s4: 4}


def test_move_past_end_lands_last(route_id, three_stops):
    s1, s2, s3, _ = three_stops
    update_station(route_id, s1, order=99)
    assert _order_of(route_id) == {s2: 1, s3: 2, s1: 3}


def test_update_times_only_keeps_position(route_id, three_stops):
    s1, s2, s3, _ = three_stops
    update_station(route_id, s2, arrival_time=time(9, 0), departure_time=time(9, 5))
    links = update_station(route_id, s2, departure_time=time(9, 10))

    link = next(l for l in links if l.station_id == s2)
    assert link.order == 2
    assert link.arrival_time == time(9, 0)
    assert link.departure_time == time(9, 10)


def test_update_checks_times_against_the_stored_row(route_id, three_stops):
    s1, s2, s3, _ = three_stops
    update_station(route_id, s2, arrival_time=time(9, 0), departure_time=time(9, 5))

    with pytest.raises(ValueError):
        update_station(route_id, s2, order=1, departure_time=time(8, 55))

    link = next(l for l in route_links(route_id) if l.station_id == s2)
    assert (link.order, link.arrival_time, link.departure_time) == (2, time(9, 0), time(9, 5))
    assert _order_of(route_id) == {s1: 1, s2: 2, s3: 3}


def test_update_missing_station(route_id, three_stops):
    *_, spare = three_stops
    with pytest.raises(StationNotAttached):
        update_station(route_id, spare, order=1)


def test_broken_shift_is_rolled_back(route_id, three_stops, monkeypatch):
    *_, spare = three_stops
    before = _order_of(route_id)
    monkeypatch.setattr(sequencer, "_shift", lambda *a, **kw: 0)

    with pytest.raises(InvariantViolation):
        attach_station(route_id, spare, 2)
    assert _order_of(route_id) == before


def test_orders_stay_contiguous_under_random_edits(route_id, make_stations):
    rng = random.Random(20231018)
    pool = make_stations(8)
    on_route = []

    for _ in range(80):
        op = rng.choice(("attach", "detach", "move"))
        if op == "attach" and len(on_route) < len(pool):
            sid = rng.choice([s for s in pool if s not in on_route])
            attach_station(route_id, sid, rng.randint(1, len(on_route) + 2))
            on_route.append(sid)
        elif op == "detach" and on_route:
            sid = rng.choice(on_route)
            detach_station(route_id, sid)
            on_route.remove(sid)
        elif op == "move" and on_route:
            sid = rng.choice(on_route)
            target = rng.randint(1, len(on_route))
            update_station(route_id, sid, order=target)
            assert _order_of(route_id)[sid] == target

        assert set(_order_of(route_id)) == set(on_route)
        _assert_contiguous(route_id)
