"""
Storage gateway for rooms, categories, reservation groups and slots.

Every read and write goes through a ``Transaction`` obtained from
``StorageGateway.transaction()``. The context manager commits when the
block finishes and rolls back on any exception, so a multi-slot booking is
either fully visible or not stored at all.

Overlap between slots of the same room is rejected by the storage layer:

* PostgreSQL: the ``no_room_overlap`` exclusion constraint (see models.py)
  fails the INSERT, which is translated into ``SlotConflict``.
* Other engines: the room row is locked and an overlap query runs right
  before each INSERT, inside the same transaction. SQLite has no row locks,
  but it only admits one writer at a time, which gives the same result.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Tuple, Type

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app_logger import get_logger
from errors import (
    NotFoundError,
    ReservationError,
    SlotConflict,
    StorageError,
)
from models import (
    EXCLUSION_CONSTRAINT_NAME,
    Category,
    ReservationGroup,
    ReservationSlot,
    Room,
)
from timerange import TimeRange

logger = get_logger("storage")

# PostgreSQL SQLSTATE codes
EXCLUSION_VIOLATION = "23P01"
FOREIGN_KEY_VIOLATION = "23503"


def _sqlstate(exc: IntegrityError) -> Optional[str]:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_exclusion_violation(exc: IntegrityError) -> bool:
    return _sqlstate(exc) == EXCLUSION_VIOLATION or EXCLUSION_CONSTRAINT_NAME in str(exc.orig)


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    return (
        _sqlstate(exc) == FOREIGN_KEY_VIOLATION
        or "FOREIGN KEY constraint failed" in str(exc.orig)
    )


def translate_integrity_error(
    exc: IntegrityError, missing_reference: Optional[Type[NotFoundError]] = None
) -> ReservationError:
    if is_exclusion_violation(exc):
        return SlotConflict()
    if missing_reference is not None and is_foreign_key_violation(exc):
        return missing_reference()
    return StorageError("storage rejected the write")


class Transaction:
    """Typed operations bound to one open database transaction."""

    def __init__(self, session: AsyncSession, native_exclusion: bool):
        self._session = session
        self._native_exclusion = native_exclusion

    async def _flush(self, missing_reference: Optional[Type[NotFoundError]] = None):
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise translate_integrity_error(e, missing_reference) from e

    async def _delete_where(self, model, *criteria) -> None:
        result = await self._session.execute(delete(model).where(*criteria))
        if result.rowcount <= 0:
            raise NotFoundError(f"{model.__tablename__}: no rows affected")

    # --- categories -----------------------------------------------------

    async def get_all_categories(self) -> List[Category]:
        result = await self._session.execute(select(Category).order_by(Category.id))
        return list(result.scalars().all())

    async def get_category(self, category_id: int) -> Optional[Category]:
        return await self._session.get(Category, category_id)

    async def add_category(self, category: Category) -> Category:
        self._session.add(category)
        await self._flush()
        return category

    async def delete_category(self, category_id: int) -> None:
        await self._delete_where(Category, Category.id == category_id)

    # --- rooms ----------------------------------------------------------

    async def get_all_rooms(self) -> List[Room]:
        result = await self._session.execute(select(Room).order_by(Room.id))
        return list(result.scalars().all())

    async def get_room(self, room_id: int) -> Optional[Room]:
        return await self._session.get(Room, room_id)

    async def add_room(self, room: Room, missing_reference: Type[NotFoundError]) -> Room:
        self._session.add(room)
        await self._flush(missing_reference)
        return room

    async def delete_room(self, room_id: int) -> None:
        await self._delete_where(Room, Room.id == room_id)

    # --- reservation groups ---------------------------------------------

    async def get_group(self, group_id: int) -> Optional[ReservationGroup]:
        return await self._session.get(ReservationGroup, group_id)

    async def add_group(
        self, group: ReservationGroup, missing_reference: Type[NotFoundError]
    ) -> ReservationGroup:
        self._session.add(group)
        await self._flush(missing_reference)
        return group

    async def delete_group(self, group_id: int) -> None:
        # slots go with the group (ON DELETE CASCADE)
        await self._delete_where(ReservationGroup, ReservationGroup.id == group_id)

    async def count_group_slots(self, group_id: int) -> int:
        result = await self._session.execute(
            select(func.count(ReservationSlot.id)).where(ReservationSlot.group_id == group_id)
        )
        return result.scalar_one()

    # --- reservation slots ----------------------------------------------

    async def get_slot(self, slot_id: int) -> Optional[ReservationSlot]:
        return await self._session.get(ReservationSlot, slot_id)

    async def _lock_room(self, room_id: int) -> bool:
        result = await self._session.execute(
            select(Room.id).where(Room.id == room_id).with_for_update()
        )
        return result.scalar_one_or_none() is not None

    async def _has_overlap(self, room_id: int, during: TimeRange) -> bool:
        result = await self._session.execute(
            select(ReservationSlot.id)
            .where(
                ReservationSlot.room_id == room_id,
                ReservationSlot.start_ts < during.end,
                ReservationSlot.end_ts > during.start,
            )
            .limit(1)
        )
        return result.first() is not None

    async def add_slot(
        self, slot: ReservationSlot, missing_reference: Type[NotFoundError]
    ) -> ReservationSlot:
        if not self._native_exclusion:
            if not await self._lock_room(slot.room_id):
                raise missing_reference()
            if await self._has_overlap(slot.room_id, TimeRange(slot.start_ts, slot.end_ts)):
                raise SlotConflict()
        self._session.add(slot)
        await self._flush(missing_reference)
        return slot

    async def delete_slot(self, slot_id: int) -> None:
        await self._delete_where(ReservationSlot, ReservationSlot.id == slot_id)

    async def get_slots(
        self, room_id: int, window: TimeRange
    ) -> List[Tuple[ReservationSlot, str]]:
        """Slots of ``room_id`` lying entirely inside ``window``, with their reservee."""
        statement = (
            select(ReservationSlot, ReservationGroup.reservee)
            .join(ReservationGroup, ReservationSlot.group_id == ReservationGroup.id)
            .where(
                ReservationSlot.room_id == room_id,
                ReservationSlot.start_ts >= window.start,
                ReservationSlot.end_ts <= window.end,
            )
            .order_by(ReservationSlot.start_ts, ReservationSlot.id)
        )
        result = await self._session.execute(statement)
        return [(slot, reservee) for slot, reservee in result.all()]


class StorageGateway:
    def __init__(self, engine: AsyncEngine):
        self._sessionmaker = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )
        self.native_exclusion = engine.dialect.name == "postgresql"
        if not self.native_exclusion:
            logger.info(
                "dialect %s has no range exclusion; using lock-and-check overlap guard",
                engine.dialect.name,
            )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        async with self._sessionmaker() as session:
            try:
                async with session.begin():
                    yield Transaction(session, self.native_exclusion)
            except ReservationError as e:
                logger.debug("transaction rolled back: %s", e.message)
                raise
            except IntegrityError as e:
                # constraint failures surfacing at commit time
                translated = translate_integrity_error(e)
                logger.warning("transaction rolled back: %s", translated.message)
                raise translated from e
            except Exception as e:
                logger.exception("unexpected failure inside transaction, rolled back")
                raise StorageError("internal storage failure") from e
