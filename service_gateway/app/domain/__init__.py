"""Domain logic for the Gateway service."""

from .aggregator import Aggregator
from .models import BicycleRecord, BrandRecord, MergedEntity

__all__ = [
    "Aggregator",
    "BicycleRecord",
    "BrandRecord",
    "MergedEntity",
]
