import json
from collections.abc import Mapping
from datetime import datetime
from enum import StrEnum
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from hospital_rooms.errors import ValidationError

# multipart fields that arrive as JSON-encoded strings
JSON_FORM_FIELDS = ("additionalCharges", "packageRates", "facilities", "capacity")


class RoomStatus(StrEnum):
    AVAILABLE = "Available"
    OCCUPIED = "Occupied"
    MAINTENANCE = "Maintenance"
    RESERVED = "Reserved"
    BLOCKED = "Blocked"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AdditionalCharges(CamelModel):
    nursing_charges: float = Field(default=0, ge=0, allow_inf_nan=False)
    cleaning_charges: float = Field(default=0, ge=0, allow_inf_nan=False)
    equipment_charges: float = Field(default=0, ge=0, allow_inf_nan=False)


class PackageRate(CamelModel):
    package_name: str
    rate: float = Field(ge=0, allow_inf_nan=False)
    duration: str


class Capacity(CamelModel):
    total_beds: int = Field(ge=1)
    available_beds: int = Field(ge=0)
    patient_capacity: int = Field(ge=1)


def _unique_tags(tags: list[str] | None) -> list[str] | None:
    if tags is None:
        return None
    return list(dict.fromkeys(tag.strip() for tag in tags if tag.strip()))


def _flatten(data: dict) -> dict:
    """Map nested charge/capacity objects onto the room's flat columns."""
    values = dict(data)
    if (charges := values.pop("additional_charges", None)) is not None:
        values.update(charges)
    if (capacity := values.pop("capacity", None)) is not None:
        values.update(capacity)
    return values


class RoomCreate(CamelModel):
    room_name: str = Field(min_length=1, max_length=200)
    hospital_branch: str = Field(min_length=1, max_length=200)
    floor_name: str = Field(min_length=1, max_length=100)
    room_number: str = Field(min_length=1, max_length=50)
    wing_building: str = Field(min_length=1, max_length=200)
    room_category: str = Field(min_length=1, max_length=100)
    custom_category: str | None = Field(default=None, max_length=100)
    rent_amount: float = Field(ge=0, allow_inf_nan=False)
    additional_charges: AdditionalCharges = Field(default_factory=AdditionalCharges)
    package_rates: list[PackageRate] = Field(default_factory=list)
    facilities: list[str] = Field(default_factory=list)
    capacity: Capacity
    status: RoomStatus = RoomStatus.AVAILABLE

    @field_validator("facilities")
    @classmethod
    def dedupe_facilities(cls, tags):
        return _unique_tags(tags)

    def to_columns(self) -> dict:
        return _flatten(self.model_dump(mode="json"))


class RoomUpdate(CamelModel):
    room_name: str | None = Field(default=None, min_length=1, max_length=200)
    hospital_branch: str | None = Field(default=None, min_length=1, max_length=200)
    floor_name: str | None = Field(default=None, min_length=1, max_length=100)
    room_number: str | None = Field(default=None, min_length=1, max_length=50)
    wing_building: str | None = Field(default=None, min_length=1, max_length=200)
    room_category: str | None = Field(default=None, min_length=1, max_length=100)
    custom_category: str | None = Field(default=None, max_length=100)
    rent_amount: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    additional_charges: AdditionalCharges | None = None
    package_rates: list[PackageRate] | None = None
    facilities: list[str] | None = None
    capacity: Capacity | None = None
    status: RoomStatus | None = None

    @field_validator("facilities")
    @classmethod
    def dedupe_facilities(cls, tags):
        return _unique_tags(tags)

    @model_validator(mode="after")
    def reject_explicit_nulls(self):
        for name in self.model_fields_set:
            if name != "custom_category" and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self

    def to_columns(self) -> dict:
        # nested objects are replaced whole, so only top-level unset fields are dropped
        dumped = self.model_dump(mode="json")
        return _flatten({name: dumped[name] for name in self.model_fields_set})


class RoomOut(CamelModel):
    id: int
    room_id: str
    room_name: str
    hospital_branch: str
    floor_name: str
    room_number: str
    wing_building: str
    room_category: str
    custom_category: str | None
    rent_amount: float
    additional_charges: AdditionalCharges
    package_rates: list[PackageRate]
    facilities: list[str]
    capacity: Capacity
    images: list[str]
    status: RoomStatus
    is_active: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class DeleteImageRequest(CamelModel):
    room_id: int | None = None
    image_url: str | None = None


def parse_room_form(form: Mapping[str, Any], partial: bool = False) -> RoomCreate | RoomUpdate:
    """Turn raw multipart fields into a typed create/update payload.

    JSON-encoded sub-fields are decoded first; file parts are ignored. For
    partial updates, blank fields are treated as absent.
    """
    parsed = {key: value for key, value in form.items() if isinstance(value, str)}
    if partial:
        parsed = {key: value for key, value in parsed.items() if value != ""}

    for field in JSON_FORM_FIELDS:
        if isinstance(parsed.get(field), str):
            try:
                parsed[field] = json.loads(parsed[field])
            except json.JSONDecodeError:
                raise ValidationError.single(field, f"Invalid JSON format for {field}") from None

    schema = RoomUpdate if partial else RoomCreate
    try:
        return schema.model_validate(parsed)
    except pydantic.ValidationError as exc:
        raise ValidationError.from_pydantic(exc) from None
