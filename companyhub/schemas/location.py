"""Location-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class LocationCreate(BaseModel):
    """Request schema for creating a location."""

    name: str = Field(min_length=1, max_length=255)
    street_address: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    postal_code: str | None = Field(default=None, max_length=20)
    country: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=50)
    email: EmailStr | None = None
    description: str | None = None
    is_active: bool = True
    latitude: Decimal | None = Field(default=None, ge=-90, le=90)
    longitude: Decimal | None = Field(default=None, ge=-180, le=180)


class LocationUpdate(BaseModel):
    """Partial update; only fields sent by the client are applied."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    street_address: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    postal_code: str | None = Field(default=None, max_length=20)
    country: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=50)
    email: EmailStr | None = None
    description: str | None = None
    is_active: bool | None = None
    latitude: Decimal | None = Field(default=None, ge=-90, le=90)
    longitude: Decimal | None = Field(default=None, ge=-180, le=180)

    @field_validator("name", "is_active")
    @classmethod
    def reject_null(cls, v):
        # Omit the field to leave it unchanged; these columns are NOT NULL
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class LocationAssigneeRead(BaseModel):
    user_id: UUID
    display_name: str
    email: str
    is_primary: bool
    assigned_at: datetime


class LocationRead(BaseModel):
    """Response schema for a location."""

    id: UUID
    company_id: UUID
    name: str
    street_address: str | None
    city: str | None
    state: str | None
    postal_code: str | None
    country: str | None
    phone: str | None
    email: str | None
    description: str | None
    is_active: bool
    full_address: str
    coordinates: dict[str, float] | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class LocationDetail(LocationRead):
    users: list[LocationAssigneeRead] = []


class AssignUsersRequest(BaseModel):
    user_ids: list[UUID] = Field(min_length=1)
    set_primary: bool = False


class UnassignUsersRequest(BaseModel):
    user_ids: list[UUID] = Field(min_length=1)


class SetPrimaryRequest(BaseModel):
    """Target user; omitted means the acting user."""

    user_id: UUID | None = None


class LocationStatistics(BaseModel):
    total_locations: int
    active_locations: int
    inactive_locations: int
    locations_with_users: int
    locations_without_users: int
    total_users_assigned: int
    average_users_per_location: float
