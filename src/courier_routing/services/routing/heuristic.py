"""Nearest-feasible-neighbour sequencing for batches above the exact solver bound.

This is an approximation: it can deliver fewer orders than the exact solver
would on the same batch, in exchange for O(n^2) running time.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from ...models.domain import Order
from .models import SequencePlan, SolverMode
from .solver import DEADLINE_TOLERANCE_MIN, budget_minutes, build_stops, sort_orders
from .travel_time import TravelTimeOracle

logger = logging.getLogger(__name__)


def solve_greedy(
    *,
    depot_id: str,
    orders: Sequence[Order],
    start_time: datetime,
    oracle: TravelTimeOracle,
) -> SequencePlan:
    remaining = sort_orders(orders)
    budgets = {order.order_id: budget_minutes(order, start_time) for order in remaining}

    sequence: list[Order] = []
    current = depot_id
    elapsed = 0.0
    while remaining:
        best: Order | None = None
        best_key: tuple[float, float, str] | None = None
        for order in remaining:
            leg = oracle.duration(current, order.destination_location_id)
            if elapsed + leg > budgets[order.order_id] + DEADLINE_TOLERANCE_MIN:
                continue
            key = (leg, budgets[order.order_id], order.order_id)
            if best_key is None or key < best_key:
                best, best_key = order, key
        if best is None:
            break
        sequence.append(best)
        remaining.remove(best)
        elapsed += best_key[0]
        current = best.destination_location_id

    stops, total = build_stops(depot_id=depot_id, sequence=sequence, start_time=start_time, oracle=oracle)
    logger.debug(f"Greedy heuristic delivered {len(stops)}/{len(orders)} orders in {total:.1f} min")
    return SequencePlan(mode=SolverMode.HEURISTIC, stops=stops, total_minutes=total)
