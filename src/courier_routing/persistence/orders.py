"""Order assignment state with atomic conditional updates."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Protocol

from ..models.domain import Order, OrderStatus


class OrderAssignmentStore(Protocol):
    def update_status_if(
        self,
        order_id: str,
        *,
        expected_status: OrderStatus,
        expected_courier_id: Optional[str],
        new_status: OrderStatus,
        new_courier_id: Optional[str],
    ) -> bool:
        """Apply the change only if the current status and courier match; return whether it applied."""
        ...


@dataclass(frozen=True, slots=True)
class AssignmentRecord:
    order_id: str
    status: OrderStatus
    courier_id: Optional[str] = None


class InMemoryOrderStore:
    """Thread-safe order assignment table, used by tests and local runs."""

    def __init__(self, orders: Iterable[Order] = ()) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, AssignmentRecord] = {}
        for order in orders:
            self.add(order)

    def add(self, order: Order) -> None:
        with self._lock:
            self._records[order.order_id] = AssignmentRecord(
                order_id=order.order_id, status=order.status, courier_id=order.courier_id
            )

    def get(self, order_id: str) -> AssignmentRecord | None:
        with self._lock:
            return self._records.get(order_id)

    def update_status_if(
        self,
        order_id: str,
        *,
        expected_status: OrderStatus,
        expected_courier_id: Optional[str],
        new_status: OrderStatus,
        new_courier_id: Optional[str],
    ) -> bool:
        with self._lock:
            record = self._records.get(order_id)
            if record is None:
                return False
            if record.status != expected_status or record.courier_id != expected_courier_id:
                return False
            self._records[order_id] = replace(record, status=new_status, courier_id=new_courier_id)
            return True

    def accept(self, order_id: str, courier_id: str) -> bool:
        """Assign a pending order to a courier; fails if someone else got it first."""
        return self.update_status_if(
            order_id,
            expected_status=OrderStatus.PENDING,
            expected_courier_id=None,
            new_status=OrderStatus.ACCEPTED,
            new_courier_id=courier_id,
        )
