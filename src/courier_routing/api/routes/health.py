"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...services.routing.solver import SolverLimits
from ...services.routing.travel_time import TravelTimeFallbacks

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/solver", status_code=status.HTTP_200_OK)
def health_solver() -> dict:
    """Report the solver limits and travel-time fallbacks currently in force."""
    limits = SolverLimits()
    fallbacks = TravelTimeFallbacks()
    return {
        "service": "route-solver",
        "healthy": True,
        "exact_solver_max_orders": limits.max_exact_orders,
        "travel_time_fallbacks": {
            "minutes_per_degree": fallbacks.minutes_per_degree,
            "min_minutes": fallbacks.min_minutes,
            "max_minutes": fallbacks.max_minutes,
            "default_minutes": fallbacks.default_minutes,
        },
    }
