"""Routing orchestration service."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Iterable, Sequence

from ...models.domain import Location, Order, TravelTimeEntry
from ...persistence.filesystem import FileStorage
from ...schemas.routing import (
    ReleaseIntentModel,
    RouteOptimizeRequest,
    RouteOptimizeResponse,
    RouteStopModel,
)
from ..outputs.routing_formatter import route_result_to_csv, route_result_to_json
from .heuristic import solve_greedy
from .models import InvalidRouteRequest, RouteRequest, RouteResult, RouteStop, SequencePlan
from .reconciler import reconcile
from .solver import SolverLimits, log_pruned, reachable_from_depot, sequence_candidates
from .travel_time import TravelTimeFallbacks, TravelTimeOracle, TravelTimeTier, index_travel_times

logger = logging.getLogger(__name__)


def _validate_request(
    request: RouteRequest,
    locations: Sequence[Location],
    travel_times: Sequence[TravelTimeEntry],
) -> None:
    location_ids = [location.location_id for location in locations]
    if len(location_ids) != len(set(location_ids)):
        raise InvalidRouteRequest("Location ids must be unique.")
    known = set(location_ids)

    seen: set[str] = set()
    for order in request.orders:
        if order.order_id in seen:
            raise InvalidRouteRequest(f"Order '{order.order_id}' appears more than once.")
        seen.add(order.order_id)
        if order.depot_location_id != request.depot_location_id:
            raise InvalidRouteRequest(
                f"Order '{order.order_id}' belongs to depot '{order.depot_location_id}', "
                f"not '{request.depot_location_id}'."
            )
        if order.destination_location_id not in known:
            raise InvalidRouteRequest(
                f"Order '{order.order_id}' references unknown destination '{order.destination_location_id}'."
            )
        if (order.due_time.tzinfo is None) != (request.start_time.tzinfo is None):
            raise InvalidRouteRequest(
                f"Order '{order.order_id}' due time and the start time must both be timezone-aware or both naive."
            )

    try:
        index_travel_times(travel_times)
    except ValueError as exc:
        raise InvalidRouteRequest(str(exc)) from exc


def _log_fallbacks(oracle: TravelTimeOracle) -> None:
    for from_id, to_id, tier in oracle.fallback_pairs():
        if tier is TravelTimeTier.REVERSE:
            logger.warning(f"Travel table has no {from_id} -> {to_id} entry; using the reverse direction")
        else:
            logger.warning(f"Travel table has no entry between {from_id} and {to_id}; using {tier.value} estimate")


def _route_locations(depot_id: str, stops: Sequence[RouteStop]) -> list[str]:
    """Locations the courier travels through; stops at the current location add no entry."""
    route = [depot_id]
    for stop in stops:
        if stop.location_id != route[-1]:
            route.append(stop.location_id)
    return route


def plan_route(
    request: RouteRequest,
    locations: Iterable[Location],
    travel_times: Iterable[TravelTimeEntry],
    *,
    limits: SolverLimits | None = None,
    fallbacks: TravelTimeFallbacks | None = None,
) -> RouteResult:
    """Sequence a courier's batch and split it into deliverable and undeliverable orders."""
    locations = list(locations)
    travel_times = list(travel_times)
    limits = limits or SolverLimits()
    _validate_request(request, locations, travel_times)

    depot_id = request.depot_location_id
    oracle = TravelTimeOracle(locations, travel_times, fallbacks)
    candidates, pruned = reachable_from_depot(
        depot_id=depot_id, orders=request.orders, start_time=request.start_time, oracle=oracle
    )

    log_pruned(depot_id, pruned)

    plan: SequencePlan
    if len(candidates) <= limits.max_exact_orders:
        plan = sequence_candidates(
            depot_id=depot_id, candidates=candidates, start_time=request.start_time, oracle=oracle
        )
    else:
        logger.warning(
            f"{len(candidates)} orders exceed the exact solver bound of {limits.max_exact_orders}; "
            f"using greedy heuristic"
        )
        plan = solve_greedy(depot_id=depot_id, orders=candidates, start_time=request.start_time, oracle=oracle)

    reconciliation = reconcile(request.orders, plan.delivered_order_ids, courier_id=request.courier_id)
    _log_fallbacks(oracle)
    logger.info(
        f"Route from {depot_id}: {len(reconciliation.delivered_order_ids)} delivered, "
        f"{len(reconciliation.undeliverable_order_ids)} undeliverable, "
        f"{plan.total_minutes:.1f} min ({plan.mode.value})"
    )

    return RouteResult(
        depot_location_id=depot_id,
        route=_route_locations(depot_id, plan.stops),
        delivered_order_ids=reconciliation.delivered_order_ids,
        undeliverable_order_ids=reconciliation.undeliverable_order_ids,
        total_minutes=plan.total_minutes,
        mode=plan.mode,
        stops=plan.stops,
        release_intents=reconciliation.release_intents,
        metadata={
            "travel_time_tiers": oracle.tier_usage(),
            "pruned_orders": [order.order_id for order in pruned],
            "exact_solver_max_orders": limits.max_exact_orders,
        },
    )


def _to_domain(payload: RouteOptimizeRequest) -> tuple[RouteRequest, list[Location], list[TravelTimeEntry]]:
    locations = [Location(**location.model_dump()) for location in payload.locations]
    travel_times = [TravelTimeEntry(**entry.model_dump()) for entry in payload.travel_times]
    orders = [Order(**order.model_dump()) for order in payload.orders]
    request = RouteRequest(
        depot_location_id=payload.depot_location_id,
        orders=orders,
        start_time=payload.start_time,
        courier_id=payload.courier_id,
    )
    return request, locations, travel_times


def optimize_route(payload: RouteOptimizeRequest) -> RouteOptimizeResponse:
    request, locations, travel_times = _to_domain(payload)
    result = plan_route(request, locations, travel_times)

    metadata = dict(result.metadata)
    if payload.run_label:
        metadata["run_label"] = payload.run_label
    if payload.courier_id:
        metadata["courier_id"] = payload.courier_id

    if payload.persist:
        storage = FileStorage()
        run_dir = storage.make_run_directory(prefix=f"route_{payload.depot_location_id}")
        storage.write_json(run_dir / "summary.json", route_result_to_json(result))
        storage.write_csv(run_dir / "stops.csv", route_result_to_csv(result))
        metadata["run_directory"] = str(run_dir)

    return RouteOptimizeResponse(
        depot_location_id=result.depot_location_id,
        mode=result.mode.value,
        route=result.route,
        delivered_order_ids=result.delivered_order_ids,
        undeliverable_order_ids=result.undeliverable_order_ids,
        total_minutes=result.total_minutes,
        stops=[RouteStopModel(**asdict(stop)) for stop in result.stops],
        release_intents=[ReleaseIntentModel(**asdict(intent)) for intent in result.release_intents],
        metadata=metadata,
    )
