"""Partition a routed batch and describe which orders go back to the pool."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from ...models.domain import Order
from ...persistence.orders import OrderAssignmentStore
from .models import ReleaseIntent

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Reconciliation:
    delivered_order_ids: list[str]
    undeliverable_order_ids: list[str]
    release_intents: list[ReleaseIntent]


def reconcile(
    orders: Iterable[Order],
    delivered_order_ids: Sequence[str],
    *,
    courier_id: Optional[str] = None,
) -> Reconciliation:
    """Compute the undeliverable complement of ``delivered_order_ids``.

    Delivered ids keep the visiting order they were given in. Undeliverable ids
    are sorted, and each gets one release intent addressed to ``courier_id``
    (or the courier recorded on the order when none is given).
    """
    by_id = {order.order_id: order for order in orders}
    unknown = [order_id for order_id in delivered_order_ids if order_id not in by_id]
    if unknown:
        raise ValueError(f"Delivered orders not in the batch: {', '.join(unknown)}")

    delivered = set(delivered_order_ids)
    undeliverable = sorted(order_id for order_id in by_id if order_id not in delivered)
    intents = [
        ReleaseIntent(
            order_id=order_id,
            courier_id=courier_id if courier_id is not None else by_id[order_id].courier_id,
        )
        for order_id in undeliverable
    ]
    return Reconciliation(
        delivered_order_ids=list(delivered_order_ids),
        undeliverable_order_ids=undeliverable,
        release_intents=intents,
    )


def apply_release_intents(store: OrderAssignmentStore, intents: Iterable[ReleaseIntent]) -> list[str]:
    """Return released orders to the unassigned pool; already released or reassigned orders are skipped."""
    released: list[str] = []
    for intent in intents:
        applied = store.update_status_if(
            intent.order_id,
            expected_status=intent.expected_status,
            expected_courier_id=intent.courier_id,
            new_status=intent.target_status,
            new_courier_id=None,
        )
        if applied:
            released.append(intent.order_id)
        else:
            logger.debug(f"Release of order {intent.order_id} skipped; it is no longer held by {intent.courier_id}")
    if released:
        logger.info(f"Released {len(released)} order(s) back to the unassigned pool")
    return released
