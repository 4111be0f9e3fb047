"""Routing request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.domain import OrderStatus


class LocationModel(BaseModel):
    location_id: str
    name: str = ""
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    is_depot: bool = False


class TravelTimeModel(BaseModel):
    from_location_id: str
    to_location_id: str
    minutes: float = Field(..., ge=0)


class OrderModel(BaseModel):
    order_id: str
    depot_location_id: str
    destination_location_id: str
    due_time: datetime
    status: OrderStatus = OrderStatus.ACCEPTED
    courier_id: Optional[str] = None


class RouteOptimizeRequest(BaseModel):
    courier_id: Optional[str] = Field(default=None, description="Courier holding the batch; addressed by release intents.")
    depot_location_id: str
    start_time: datetime = Field(..., description="Point in time the courier leaves the depot.")
    locations: List[LocationModel] = Field(default_factory=list)
    travel_times: List[TravelTimeModel] = Field(default_factory=list)
    orders: List[OrderModel] = Field(default_factory=list)
    persist: bool = Field(default=False, description="Whether to write run outputs to files.")
    run_label: Optional[str] = Field(default=None, description="Friendly name for persisted outputs.")

    @field_validator("locations")
    @classmethod
    def validate_unique_locations(cls, value: List[LocationModel]) -> List[LocationModel]:
        ids = [location.location_id for location in value]
        if len(ids) != len(set(ids)):
            raise ValueError("location_id values must be unique")
        return value


class RouteStopModel(BaseModel):
    order_id: str
    location_id: str
    sequence: int
    travel_min: float
    arrival_min: float
    arrival_time: datetime
    slack_min: float


class ReleaseIntentModel(BaseModel):
    order_id: str
    courier_id: Optional[str]
    expected_status: OrderStatus
    target_status: OrderStatus
    reason: str


class RouteOptimizeResponse(BaseModel):
    depot_location_id: str
    mode: str
    route: List[str]
    delivered_order_ids: List[str]
    undeliverable_order_ids: List[str]
    total_minutes: float
    stops: List[RouteStopModel]
    release_intents: List[ReleaseIntentModel]
    metadata: dict
