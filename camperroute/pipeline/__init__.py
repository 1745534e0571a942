"""Deterministic trip planning pipeline."""

from .trip_pipeline import TripPlanningPipeline, TripPlanResult, TripRequest, load_trip

__all__ = ["TripPlanningPipeline", "TripPlanResult", "TripRequest", "load_trip"]
