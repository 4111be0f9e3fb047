"""Exact deadline-constrained sequencing via bitmask dynamic programming."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Sequence

import numpy as np

from ...config import settings
from ...models.domain import Order
from .models import RouteStop, SequencePlan, SolverMode
from .travel_time import TravelTimeOracle

logger = logging.getLogger(__name__)

# Summed leg times are floats; arrivals within this margin of the deadline count as on time.
DEADLINE_TOLERANCE_MIN = 1e-9
NO_PARENT = -1


class SolverBoundExceeded(ValueError):
    """Raised when a batch is larger than the exact solver accepts."""


@dataclass(slots=True)
class SolverLimits:
    max_exact_orders: int = settings.exact_solver_max_orders


def budget_minutes(order: Order, start_time: datetime) -> float:
    """Minutes between the start time and the order's deadline (negative when already late)."""
    return (order.due_time - start_time).total_seconds() / 60.0


def sort_orders(orders: Iterable[Order]) -> list[Order]:
    return sorted(orders, key=lambda order: order.order_id)


def reachable_from_depot(
    *,
    depot_id: str,
    orders: Iterable[Order],
    start_time: datetime,
    oracle: TravelTimeOracle,
) -> tuple[list[Order], list[Order]]:
    """Split orders into those a direct trip can still reach in time and those it cannot.

    An order that misses its deadline on the direct leg misses it on every route.
    """
    reachable: list[Order] = []
    unreachable: list[Order] = []
    for order in sort_orders(orders):
        direct = oracle.duration(depot_id, order.destination_location_id)
        if direct <= budget_minutes(order, start_time) + DEADLINE_TOLERANCE_MIN:
            reachable.append(order)
        else:
            unreachable.append(order)
    return reachable, unreachable


def build_stops(
    *,
    depot_id: str,
    sequence: Sequence[Order],
    start_time: datetime,
    oracle: TravelTimeOracle,
) -> tuple[list[RouteStop], float]:
    stops: list[RouteStop] = []
    elapsed = 0.0
    current = depot_id
    for position, order in enumerate(sequence, start=1):
        leg = oracle.duration(current, order.destination_location_id)
        elapsed += leg
        stops.append(
            RouteStop(
                order_id=order.order_id,
                location_id=order.destination_location_id,
                sequence=position,
                travel_min=leg,
                arrival_min=elapsed,
                arrival_time=start_time + timedelta(minutes=elapsed),
                slack_min=budget_minutes(order, start_time) - elapsed,
            )
        )
        current = order.destination_location_id
    return stops, elapsed


def _travel_matrices(
    depot_id: str, orders: Sequence[Order], oracle: TravelTimeOracle
) -> tuple[np.ndarray, np.ndarray]:
    destinations = [order.destination_location_id for order in orders]
    depot_travel = np.array([oracle.duration(depot_id, dest) for dest in destinations], dtype=float)
    travel = np.array(
        [[oracle.duration(origin, dest) for dest in destinations] for origin in destinations],
        dtype=float,
    )
    return depot_travel, travel


def _popcount_layers(n: int) -> list[np.ndarray]:
    masks = np.arange(1 << n, dtype=np.int64)
    popcount = np.zeros(1 << n, dtype=np.int8)
    for bit in range(n):
        popcount += ((masks >> bit) & 1).astype(np.int8)
    return [masks[popcount == size] for size in range(n + 1)]


def _reconstruct(parent: np.ndarray, mask: int, last: int) -> list[int]:
    sequence: list[int] = []
    while last != NO_PARENT:
        sequence.append(last)
        previous = int(parent[mask, last])
        mask ^= 1 << last
        last = previous
    sequence.reverse()
    return sequence


def _best_sequence(depot_travel: np.ndarray, travel: np.ndarray, budgets: np.ndarray) -> list[int]:
    """Return order indices of the largest on-time subset with the earliest finish.

    ``arrival[mask, j]`` holds the earliest arrival (minutes after start) at order
    ``j`` having visited exactly the orders in ``mask`` on time; ``inf`` marks an
    unreachable state. Masks of equal popcount only depend on the previous
    popcount, so each layer is relaxed as a whole.
    """
    n = len(budgets)
    deadline = budgets + DEADLINE_TOLERANCE_MIN
    arrival = np.full((1 << n, n), np.inf)
    parent = np.full((1 << n, n), NO_PARENT, dtype=np.int8)

    for j in range(n):
        if depot_travel[j] <= deadline[j]:
            arrival[1 << j, j] = depot_travel[j]

    layers = _popcount_layers(n)
    for size in range(2, n + 1):
        if not np.isfinite(arrival[layers[size - 1]]).any():
            break
        layer = layers[size]
        for j in range(n):
            bit = 1 << j
            targets = layer[(layer & bit) != 0]
            # arrival[previous, j] is inf because j is not in previous, so i == j never wins.
            candidates = arrival[targets ^ bit] + travel[:, j]
            best_from = np.argmin(candidates, axis=1)
            best = candidates[np.arange(len(targets)), best_from]
            feasible = best <= deadline[j]
            arrival[targets[feasible], j] = best[feasible]
            parent[targets[feasible], j] = best_from[feasible]

    for size in range(n, 0, -1):
        layer = layers[size]
        block = arrival[layer]
        if not np.isfinite(block).any():
            continue
        finish = block.min()
        rows, cols = np.nonzero(block == finish)
        # Ties: lowest last-visited index (orders are sorted by id), then lowest mask.
        pick = np.lexsort((layer[rows], cols))[0]
        return _reconstruct(parent, int(layer[rows[pick]]), int(cols[pick]))
    return []


def sequence_candidates(
    *,
    depot_id: str,
    candidates: Sequence[Order],
    start_time: datetime,
    oracle: TravelTimeOracle,
) -> SequencePlan:
    """Run the DP over orders already known to be reachable from the depot."""
    candidates = sort_orders(candidates)
    if not candidates:
        return SequencePlan(mode=SolverMode.EXACT, stops=[], total_minutes=0.0)

    depot_travel, travel = _travel_matrices(depot_id, candidates, oracle)
    budgets = np.array([budget_minutes(order, start_time) for order in candidates], dtype=float)
    sequence = _best_sequence(depot_travel, travel, budgets)

    stops, total = build_stops(
        depot_id=depot_id,
        sequence=[candidates[index] for index in sequence],
        start_time=start_time,
        oracle=oracle,
    )
    logger.debug(f"Exact solver delivered {len(stops)}/{len(candidates)} candidate orders in {total:.1f} min")
    return SequencePlan(mode=SolverMode.EXACT, stops=stops, total_minutes=total)


def log_pruned(depot_id: str, pruned: Sequence[Order]) -> None:
    if pruned:
        logger.info(
            f"{len(pruned)} order(s) cannot reach their destination from depot {depot_id} before the deadline"
        )


def solve_exact(
    *,
    depot_id: str,
    orders: Sequence[Order],
    start_time: datetime,
    oracle: TravelTimeOracle,
    limits: SolverLimits | None = None,
) -> SequencePlan:
    """Visit the most orders on time, using the least travel among maximal routes."""
    limits = limits or SolverLimits()
    candidates, pruned = reachable_from_depot(
        depot_id=depot_id, orders=orders, start_time=start_time, oracle=oracle
    )
    if len(candidates) > limits.max_exact_orders:
        raise SolverBoundExceeded(
            f"{len(candidates)} orders exceed the exact solver bound of {limits.max_exact_orders}."
        )
    log_pruned(depot_id, pruned)
    return sequence_candidates(depot_id=depot_id, candidates=candidates, start_time=start_time, oracle=oracle)
