import secrets
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Enum, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from hospital_rooms.models.base import Base, TimestampMixin

ROOM_STATUSES = ("Available", "Occupied", "Maintenance", "Reserved", "Blocked")


def generate_room_code() -> str:
    return f"RM{secrets.randbelow(1_000_000):06d}"


class Room(Base, TimestampMixin):
    __tablename__ = "rooms"

    id: Mapped[int] = mapped_column(primary_key=True)
    room_id: Mapped[str] = mapped_column(String(20), unique=True, default=generate_room_code)
    room_name: Mapped[str] = mapped_column(String(200))
    hospital_branch: Mapped[str] = mapped_column(String(200), index=True)
    floor_name: Mapped[str] = mapped_column(String(100))
    room_number: Mapped[str] = mapped_column(String(50))
    wing_building: Mapped[str] = mapped_column(String(200))
    room_category: Mapped[str] = mapped_column(String(100))
    custom_category: Mapped[str | None] = mapped_column(String(100))
    rent_amount: Mapped[float] = mapped_column(Float)

    # additional charges, flattened so they can be aggregated
    nursing_charges: Mapped[float] = mapped_column(Float, default=0)
    cleaning_charges: Mapped[float] = mapped_column(Float, default=0)
    equipment_charges: Mapped[float] = mapped_column(Float, default=0)

    package_rates: Mapped[list[dict]] = mapped_column(JSON, default=list)
    facilities: Mapped[list[str]] = mapped_column(JSON, default=list)

    # capacity; available_beds may exceed total_beds
    total_beds: Mapped[int] = mapped_column(Integer)
    available_beds: Mapped[int] = mapped_column(Integer)
    patient_capacity: Mapped[int] = mapped_column(Integer)

    images: Mapped[list[str]] = mapped_column(JSON, default=list)
    status: Mapped[str] = mapped_column(
        Enum(*ROOM_STATUSES, name="room_status_enum"), default="Available", index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    @property
    def additional_charges(self) -> dict:
        return {
            "nursing_charges": self.nursing_charges,
            "cleaning_charges": self.cleaning_charges,
            "equipment_charges": self.equipment_charges,
        }

    @property
    def capacity(self) -> dict:
        return {
            "total_beds": self.total_beds,
            "available_beds": self.available_beds,
            "patient_capacity": self.patient_capacity,
        }
