"""Serializers for routing outputs."""

from __future__ import annotations

import csv
import io

from ..routing.models import RouteResult


def route_result_to_json(result: RouteResult) -> dict:
    return {
        "depot_location_id": result.depot_location_id,
        "mode": result.mode.value,
        "route": list(result.route),
        "delivered_order_ids": list(result.delivered_order_ids),
        "undeliverable_order_ids": list(result.undeliverable_order_ids),
        "total_minutes": result.total_minutes,
        "metadata": result.metadata,
        "stops": [
            {
                "sequence": stop.sequence,
                "order_id": stop.order_id,
                "location_id": stop.location_id,
                "travel_min": stop.travel_min,
                "arrival_min": stop.arrival_min,
                "arrival_time": stop.arrival_time.isoformat(),
                "slack_min": stop.slack_min,
            }
            for stop in result.stops
        ],
        "release_intents": [
            {
                "order_id": intent.order_id,
                "courier_id": intent.courier_id,
                "expected_status": intent.expected_status.value,
                "target_status": intent.target_status.value,
                "reason": intent.reason,
            }
            for intent in result.release_intents
        ],
    }


def route_result_to_csv(result: RouteResult) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "sequence",
        "order_id",
        "location_id",
        "travel_min",
        "arrival_min",
        "arrival_time",
        "slack_min",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for stop in result.stops:
        writer.writerow(
            {
                "sequence": stop.sequence,
                "order_id": stop.order_id,
                "location_id": stop.location_id,
                "travel_min": stop.travel_min,
                "arrival_min": stop.arrival_min,
                "arrival_time": stop.arrival_time.isoformat(),
                "slack_min": stop.slack_min,
            }
        )
    return buffer.getvalue()
