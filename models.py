from typing import Optional

from sqlalchemy import DDL, BigInteger, CheckConstraint, Index, event
from sqlmodel import Field, SQLModel

# Rooms without a category report this value instead of null
NO_CATEGORY = -1


class Category(SQLModel, table=True):
    __tablename__ = "categories"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: str = ""


class Room(SQLModel, table=True):
    __tablename__ = "rooms"
    __table_args__ = (CheckConstraint("seats >= 0", name="room_seats_non_negative"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    seats: int = 0
    category_id: Optional[int] = Field(
        default=None, foreign_key="categories.id", ondelete="SET NULL"
    )


class ReservationGroup(SQLModel, table=True):
    __tablename__ = "reservation_groups"

    id: Optional[int] = Field(default=None, primary_key=True)
    room_id: int = Field(foreign_key="rooms.id", ondelete="CASCADE", index=True)
    # null when the group was created with identity verification bypassed
    user_id: Optional[int] = Field(default=None, index=True)
    reservee: str
    email: str = ""
    phone_number: str = ""
    reason: str = ""


class ReservationSlot(SQLModel, table=True):
    __tablename__ = "reservation_slots"
    __table_args__ = (
        CheckConstraint("start_ts < end_ts", name="slot_range_not_empty"),
        Index("ix_reservation_slots_room_start", "room_id", "start_ts"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    room_id: int = Field(foreign_key="rooms.id", ondelete="CASCADE")
    group_id: int = Field(foreign_key="reservation_groups.id", ondelete="CASCADE", index=True)
    start_ts: int = Field(sa_type=BigInteger)
    end_ts: int = Field(sa_type=BigInteger)


# CRITICAL: Database-level protection against double booking.
# '[)' keeps touching ranges (A.end == B.start) legal.
EXCLUSION_CONSTRAINT_NAME = "no_room_overlap"

event.listen(
    ReservationSlot.__table__,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    ReservationSlot.__table__,
    "after_create",
    DDL(
        f"ALTER TABLE {ReservationSlot.__tablename__} "
        f"ADD CONSTRAINT {EXCLUSION_CONSTRAINT_NAME} "
        "EXCLUDE USING gist (room_id WITH =, int8range(start_ts, end_ts, '[)') WITH &&)"
    ).execute_if(dialect="postgresql"),
)
