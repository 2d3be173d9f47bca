from dataclasses import dataclass
from typing import List

from app_logger import get_logger
from errors import ForbiddenError, NotFoundError, RoomNotFound, TimeRangeTooWide
from expander import expand_weekly
from identity import Caller
from models import ReservationGroup, ReservationSlot
from policy import may_act
from storage import StorageGateway
from timerange import TimeRange

logger = get_logger("booking")


@dataclass(frozen=True)
class ReservationRequest:
    room_id: int
    reservee: str
    email: str
    phone_number: str
    reason: str
    start_timestamp: int
    end_timestamp: int
    repeats: int


@dataclass(frozen=True)
class CreatedReservation:
    group_id: int
    slot_ids: List[int]


@dataclass(frozen=True)
class SlotView:
    id: int
    room_id: int
    group_id: int
    reservee: str
    start_timestamp: int
    end_timestamp: int


class BookingService:
    """Creates, lists and deletes reservations for a single room at a time."""

    def __init__(
        self,
        storage: StorageGateway,
        repeat_limit: int,
        admin_idx: int,
        time_range_limit: int,
    ):
        self._storage = storage
        self._repeat_limit = repeat_limit
        self._admin_idx = admin_idx
        self._time_range_limit = time_range_limit

    async def create_reservation(
        self, request: ReservationRequest, caller: Caller
    ) -> CreatedReservation:
        # validation happens before any transaction is opened
        base = TimeRange(request.start_timestamp, request.end_timestamp)
        ranges = expand_weekly(base, request.repeats, self._repeat_limit)

        async with self._storage.transaction() as tx:
            group = await tx.add_group(
                ReservationGroup(
                    room_id=request.room_id,
                    user_id=caller.user_id,
                    reservee=request.reservee,
                    email=request.email,
                    phone_number=request.phone_number,
                    reason=request.reason,
                ),
                missing_reference=RoomNotFound,
            )
            slot_ids = []
            for during in ranges:
                slot = await tx.add_slot(
                    ReservationSlot(
                        room_id=request.room_id,
                        group_id=group.id,
                        start_ts=during.start,
                        end_ts=during.end,
                    ),
                    missing_reference=RoomNotFound,
                )
                slot_ids.append(slot.id)

        logger.info(
            "room %s: reservation group %s created with %d slot(s) by user %s",
            request.room_id, group.id, len(slot_ids), caller.user_id,
        )
        return CreatedReservation(group_id=group.id, slot_ids=slot_ids)

    async def delete_reservation(
        self, slot_id: int, delete_all_in_group: bool, caller: Caller
    ) -> None:
        async with self._storage.transaction() as tx:
            slot = await tx.get_slot(slot_id)
            if slot is None:
                raise NotFoundError("reservation not found")
            group = await tx.get_group(slot.group_id)
            if group is None:
                raise NotFoundError("reservation group not found")
            self._check_owner(group, caller)

            if delete_all_in_group:
                await tx.delete_group(group.id)
            else:
                await tx.delete_slot(slot.id)
                # an emptied group is removed with its last slot
                if await tx.count_group_slots(group.id) == 0:
                    await tx.delete_group(group.id)

        logger.info(
            "reservation %s deleted (whole group: %s) by user %s",
            slot_id, delete_all_in_group, caller.user_id,
        )

    async def list_reservations(
        self, room_id: int, start_timestamp: int, end_timestamp: int
    ) -> List[SlotView]:
        window = TimeRange(start_timestamp, end_timestamp)
        if window.duration > self._time_range_limit:
            raise TimeRangeTooWide()

        async with self._storage.transaction() as tx:
            rows = await tx.get_slots(room_id, window)

        return [
            SlotView(
                id=slot.id,
                room_id=slot.room_id,
                group_id=slot.group_id,
                reservee=reservee,
                start_timestamp=slot.start_ts,
                end_timestamp=slot.end_ts,
            )
            for slot, reservee in rows
        ]

    async def get_reservation_group(self, group_id: int, caller: Caller) -> ReservationGroup:
        async with self._storage.transaction() as tx:
            group = await tx.get_group(group_id)
            if group is None:
                raise NotFoundError("reservation group not found")
            self._check_owner(group, caller)
        return group

    def _check_owner(self, group: ReservationGroup, caller: Caller):
        if not may_act(caller.user_id, caller.permission_idx, group.user_id, self._admin_idx):
            raise ForbiddenError("you are not the owner of this reservation")
