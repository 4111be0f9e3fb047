"""Domain models for locations, travel times and delivery orders."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class OrderStatus(str, Enum):
    """Lifecycle states of an order as stored by the order-management side."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class Location:
    """An address snapshot; the depot flag marks the restaurant."""

    location_id: str
    name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_depot: bool = False

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True, slots=True)
class TravelTimeEntry:
    """Directed travel duration between two locations."""

    from_location_id: str
    to_location_id: str
    minutes: float


@dataclass(frozen=True, slots=True)
class Order:
    """Represents an accepted delivery order waiting to be routed."""

    order_id: str
    depot_location_id: str
    destination_location_id: str
    due_time: datetime
    status: OrderStatus = OrderStatus.ACCEPTED
    courier_id: Optional[str] = None
