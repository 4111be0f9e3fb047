import random
from datetime import datetime, timedelta
from itertools import permutations

import pytest

from src.courier_routing.models.domain import Location, Order, TravelTimeEntry
from src.courier_routing.services.routing.heuristic import solve_greedy
from src.courier_routing.services.routing.models import SolverMode
from src.courier_routing.services.routing.solver import SolverBoundExceeded, SolverLimits, solve_exact
from src.courier_routing.services.routing.travel_time import TravelTimeOracle

START = datetime(2025, 3, 14, 18, 0)


def _order(oid: str, destination: str, due_in_min: float, depot: str = "D") -> Order:
    return Order(
        order_id=oid,
        depot_location_id=depot,
        destination_location_id=destination,
        due_time=START + timedelta(minutes=due_in_min),
    )


def _oracle(table: dict[tuple[str, str], float], symmetric: bool = False) -> TravelTimeOracle:
    entries = {}
    for (a, b), minutes in table.items():
        entries[(a, b)] = minutes
        if symmetric:
            entries.setdefault((b, a), minutes)
    ids = {lid for pair in entries for lid in pair}
    locations = [Location(location_id=lid, name=lid) for lid in sorted(ids)]
    return TravelTimeOracle(
        locations,
        [TravelTimeEntry(from_location_id=a, to_location_id=b, minutes=m) for (a, b), m in entries.items()],
    )


def _solve(orders, oracle, max_orders: int = 18):
    return solve_exact(
        depot_id="D",
        orders=orders,
        start_time=START,
        oracle=oracle,
        limits=SolverLimits(max_exact_orders=max_orders),
    )


def test_zero_orders_yield_empty_plan():
    plan = _solve([], _oracle({}))

    assert plan.mode is SolverMode.EXACT
    assert plan.stops == []
    assert plan.total_minutes == 0


def test_order_unreachable_from_depot_is_left_out():
    oracle = _oracle({("D", "A"): 10, ("D", "B"): 20, ("A", "B"): 15}, symmetric=True)
    orders = [_order("O1", "A", 60), _order("O2", "B", 15)]

    plan = _solve(orders, oracle)

    assert plan.delivered_order_ids == ["O1"]
    assert [stop.location_id for stop in plan.stops] == ["A"]
    assert plan.total_minutes == 10


def test_picks_fastest_pair_when_only_pairs_are_feasible():
    oracle = _oracle(
        {
            ("D", "X"): 10, ("D", "Y"): 10, ("D", "Z"): 10,
            ("X", "Y"): 5, ("X", "Z"): 12, ("Y", "Z"): 8,
        },
        symmetric=True,
    )
    orders = [_order("o1", "X", 22), _order("o2", "Y", 22), _order("o3", "Z", 22)]

    plan = _solve(orders, oracle)

    # {X, Y} takes 15 minutes either way; the lower order id is visited last.
    assert plan.delivered_order_ids == ["o2", "o1"]
    assert plan.total_minutes == 15


def test_keeps_largest_feasible_subset_instead_of_giving_up():
    oracle = _oracle(
        {("D", "A"): 5, ("D", "B"): 6, ("D", "C"): 20, ("A", "B"): 4, ("A", "C"): 20, ("B", "C"): 20},
        symmetric=True,
    )
    # "c" is reachable on its own but fits with nothing else.
    orders = [_order("a", "A", 30), _order("b", "B", 30), _order("c", "C", 20)]

    plan = _solve(orders, oracle)

    assert plan.delivered_order_ids == ["a", "b"]
    assert plan.total_minutes == 9


def test_deadline_is_inclusive():
    oracle = _oracle({("D", "A"): 20})

    plan = _solve([_order("O1", "A", 20)], oracle)

    assert plan.delivered_order_ids == ["O1"]
    assert plan.stops[0].slack_min == 0


def test_already_late_order_is_undeliverable():
    oracle = _oracle({("D", "A"): 1})

    plan = _solve([_order("O1", "A", -5)], oracle)

    assert plan.stops == []


def test_stops_carry_arrival_times_and_slack():
    oracle = _oracle({("D", "A"): 10, ("A", "B"): 7}, symmetric=True)
    orders = [_order("O1", "A", 30), _order("O2", "B", 40)]

    plan = _solve(orders, oracle)

    first, second = plan.stops
    assert (first.sequence, first.travel_min, first.arrival_min) == (1, 10, 10)
    assert (second.sequence, second.travel_min, second.arrival_min) == (2, 7, 17)
    assert second.arrival_time == START + timedelta(minutes=17)
    assert second.slack_min == 23


def test_bound_exceeded_is_rejected():
    oracle = _oracle({("D", "A"): 1, ("D", "B"): 1, ("D", "C"): 1}, symmetric=True)
    orders = [_order("1", "A", 60), _order("2", "B", 60), _order("3", "C", 60)]

    with pytest.raises(SolverBoundExceeded):
        _solve(orders, oracle, max_orders=2)


def test_input_order_does_not_change_result():
    oracle = _oracle(
        {("D", "A"): 4, ("D", "B"): 4, ("D", "C"): 4, ("A", "B"): 4, ("A", "C"): 4, ("B", "C"): 4},
        symmetric=True,
    )
    orders = [_order("x", "A", 50), _order("y", "B", 50), _order("z", "C", 50)]

    first = _solve(orders, oracle)
    second = _solve(list(reversed(orders)), oracle)

    assert first == second


def _random_instance(rng: random.Random, size: int):
    nodes = ["D", *[f"L{i}" for i in range(size)]]
    table = {(a, b): rng.randint(5, 30) for a in nodes for b in nodes if a != b}
    orders = [_order(f"o{i:02d}", f"L{i}", rng.randint(5, 70)) for i in range(size)]
    return _oracle(table), orders


def _brute_force(oracle: TravelTimeOracle, orders: list[Order]) -> tuple[int, float]:
    best = (0, 0.0)
    for size in range(1, len(orders) + 1):
        for sequence in permutations(orders, size):
            elapsed, current, feasible = 0.0, "D", True
            for order in sequence:
                elapsed += oracle.duration(current, order.destination_location_id)
                if elapsed > (order.due_time - START).total_seconds() / 60:
                    feasible = False
                    break
                current = order.destination_location_id
            if feasible and (size > best[0] or (size == best[0] and elapsed < best[1])):
                best = (size, elapsed)
    return best


def test_matches_brute_force_on_small_instances():
    rng = random.Random(7)
    for _ in range(25):
        oracle, orders = _random_instance(rng, rng.randint(1, 5))

        plan = _solve(orders, oracle)

        assert (len(plan.stops), plan.total_minutes) == _brute_force(oracle, orders)


def test_exact_never_delivers_fewer_than_greedy():
    rng = random.Random(11)
    for _ in range(30):
        oracle, orders = _random_instance(rng, 8)

        exact = _solve(orders, oracle)
        greedy = solve_greedy(depot_id="D", orders=orders, start_time=START, oracle=oracle)

        assert len(exact.stops) >= len(greedy.stops)
        if len(exact.stops) == len(greedy.stops):
            assert exact.total_minutes <= greedy.total_minutes
