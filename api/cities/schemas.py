"""
Pydantic schemas for city endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CityFields(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    county: str = Field(..., min_length=1, max_length=200)
    stateCode: str = Field(..., min_length=1, max_length=10)
    postalCode: str = Field(..., min_length=1, max_length=20)
    latitude: str | None = Field(default=None, max_length=32)
    longitude: str | None = Field(default=None, max_length=32)


class CityPatch(BaseModel):
    """
    Partial update. Omitted fields keep their stored value.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=1, max_length=200)
    county: str | None = Field(default=None, min_length=1, max_length=200)
    stateCode: str | None = Field(default=None, min_length=1, max_length=10)
    postalCode: str | None = Field(default=None, min_length=1, max_length=20)
    latitude: str | None = Field(default=None, max_length=32)
    longitude: str | None = Field(default=None, max_length=32)
