"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence

from ...models.domain import Order, OrderStatus


class InvalidRouteRequest(ValueError):
    """Raised when a request breaks an input invariant before any computation."""


class SolverMode(str, Enum):
    EXACT = "exact"
    HEURISTIC = "heuristic"


@dataclass(frozen=True, slots=True)
class RouteRequest:
    depot_location_id: str
    orders: Sequence[Order]
    start_time: datetime
    courier_id: Optional[str] = None


@dataclass(slots=True)
class RouteStop:
    order_id: str
    location_id: str
    sequence: int
    travel_min: float
    arrival_min: float
    arrival_time: datetime
    slack_min: float


@dataclass(slots=True)
class SequencePlan:
    """Visiting order chosen by a solver, before reconciliation."""

    mode: SolverMode
    stops: List[RouteStop]
    total_minutes: float

    @property
    def delivered_order_ids(self) -> list[str]:
        return [stop.order_id for stop in self.stops]


@dataclass(frozen=True, slots=True)
class ReleaseIntent:
    """Ask the order-assignment side to put an order back in the unassigned pool."""

    order_id: str
    courier_id: Optional[str]
    expected_status: OrderStatus = OrderStatus.ACCEPTED
    target_status: OrderStatus = OrderStatus.PENDING
    reason: str = "deadline_unreachable"


@dataclass(slots=True)
class RouteResult:
    depot_location_id: str
    route: List[str]
    delivered_order_ids: List[str]
    undeliverable_order_ids: List[str]
    total_minutes: float
    mode: SolverMode
    stops: List[RouteStop] = field(default_factory=list)
    release_intents: List[ReleaseIntent] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)
