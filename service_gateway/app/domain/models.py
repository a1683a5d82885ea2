"""
Record and response models for the bicycle aggregation.
"""

from pydantic import BaseModel, ConfigDict, Field


class BicycleRecord(BaseModel):
    """Bicycle as served by the bicycle upstream."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str = Field(..., min_length=1, description="Bicycle identifier")
    color: str = Field(..., description="Bicycle color")


class BrandRecord(BaseModel):
    """Brand as served by the brand upstream; the key is not echoed back."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Brand name")


class MergedEntity(BaseModel):
    """Gateway response combining both upstream records."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., description="Identifier as reported by the bicycle upstream")
    color: str = Field(..., description="Bicycle color")
    brand: str = Field(..., description="Brand name")
