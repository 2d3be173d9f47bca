from typing import List, Tuple

from app_logger import get_logger
from errors import (
    CategoryNotFound,
    ForbiddenError,
    NotFoundError,
    RoomNotFound,
    ValidationError,
)
from identity import Caller
from models import NO_CATEGORY, Category, Room
from policy import is_admin
from storage import StorageGateway

logger = get_logger("catalog")


class CatalogService:
    """Rooms and categories. Reading is open to everyone, changes are admin only."""

    def __init__(self, storage: StorageGateway, admin_idx: int):
        self._storage = storage
        self._admin_idx = admin_idx

    def _require_admin(self, caller: Caller):
        if not is_admin(caller.permission_idx, self._admin_idx):
            raise ForbiddenError("admin only")

    async def list_rooms_and_categories(self) -> Tuple[List[Room], List[Category]]:
        async with self._storage.transaction() as tx:
            categories = await tx.get_all_categories()
            rooms = await tx.get_all_rooms()
        return rooms, categories

    async def add_category(self, caller: Caller, name: str, description: str) -> Category:
        self._require_admin(caller)
        async with self._storage.transaction() as tx:
            category = await tx.add_category(Category(name=name, description=description))
        logger.info("category %s (%s) added", category.id, name)
        return category

    async def delete_category(self, caller: Caller, category_id: int) -> None:
        self._require_admin(caller)
        async with self._storage.transaction() as tx:
            # rooms in this category fall back to NO_CATEGORY (ON DELETE SET NULL)
            try:
                await tx.delete_category(category_id)
            except NotFoundError as e:
                raise CategoryNotFound() from e
        logger.info("category %s deleted", category_id)

    async def add_room(self, caller: Caller, name: str, seats: int, category_id: int) -> Room:
        self._require_admin(caller)
        if seats < 0:
            raise ValidationError("seats must not be negative")
        room = Room(
            name=name,
            seats=seats,
            category_id=None if category_id == NO_CATEGORY else category_id,
        )
        async with self._storage.transaction() as tx:
            room = await tx.add_room(room, missing_reference=CategoryNotFound)
        logger.info("room %s (%s) added", room.id, name)
        return room

    async def delete_room(self, caller: Caller, room_id: int) -> None:
        self._require_admin(caller)
        async with self._storage.transaction() as tx:
            # reservations of the room are removed with it (ON DELETE CASCADE)
            try:
                await tx.delete_room(room_id)
            except NotFoundError as e:
                raise RoomNotFound() from e
        logger.info("room %s deleted", room_id)
