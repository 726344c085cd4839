"""Pydantic schemas for farmer records."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

FARMER_ID_PATTERN = r"^\d{8}-[a-z]+-\d{4}$"
GPS_COORDINATES_PATTERN = r"^Lat: -?\d{1,2}\.\d{4,}, Long: -?\d{1,3}\.\d{4,}$"

MAX_INPUT_TEXT_LENGTH = 100
MIN_TEXT_LENGTH = 2


class Location(BaseModel):
    """Farm location; blank parts are allowed on finalized records."""

    village: str = Field(default="", max_length=MAX_INPUT_TEXT_LENGTH)
    district: str = Field(default="", max_length=MAX_INPUT_TEXT_LENGTH)
    state: str = Field(default="", max_length=MAX_INPUT_TEXT_LENGTH)
    gps: str | None = Field(default=None, pattern=GPS_COORDINATES_PATTERN)


class Farmer(BaseModel):
    """A registered farmer."""

    id: str = Field(pattern=FARMER_ID_PATTERN)
    name: str
    date_of_joining: str = Field(alias="dateOfJoining")
    location: Location = Field(default_factory=Location)
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)


class FarmerCreateRequest(BaseModel):
    """Request body for registering a farmer."""

    name: str = Field(min_length=MIN_TEXT_LENGTH, max_length=MAX_INPUT_TEXT_LENGTH)
    location: Location | None = None


class FarmerIdentity(BaseModel):
    """Display fields derivable from a farmer id alone."""

    name: str
    date_of_joining: str = Field(alias="dateOfJoining")

    model_config = ConfigDict(populate_by_name=True)
