from typing import Annotated, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models import NO_CATEGORY
from timerange import INT64_MAX, INT64_MIN

# ids and timestamps are stored as BIGINT
Int64 = Annotated[int, Field(ge=INT64_MIN, le=INT64_MAX)]


class CamelModel(BaseModel):
    # the web client speaks camelCase
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Pydantic Schemas for Request/Response
class AddScheduleReq(CamelModel):
    room_id: Int64
    reservee: str
    email: str = ""
    phone_number: str = ""
    reason: str = ""
    start_timestamp: Int64
    end_timestamp: Int64
    repeats: int = 1


class AddScheduleResp(CamelModel):
    group_id: int
    schedule_ids: List[int]


class DeleteScheduleReq(CamelModel):
    schedule_id: Int64
    delete_all_in_group: bool = False


class ScheduleOut(CamelModel):
    id: int
    room_id: int
    schedule_group_id: int
    reservee: str
    start_timestamp: int
    end_timestamp: int


class GetScheduleResp(CamelModel):
    schedules: List[ScheduleOut]


class ScheduleGroupOut(CamelModel):
    id: int
    room_id: int
    user_idx: int | None
    reservee: str
    email: str
    phone_number: str
    reason: str


class CategoryOut(CamelModel):
    id: int
    name: str
    description: str


class RoomOut(CamelModel):
    id: int
    name: str
    seats: int
    category_id: int = NO_CATEGORY


class GetRoomsAndCategoriesResp(CamelModel):
    rooms: List[RoomOut]
    categories: List[CategoryOut]


class AddRoomReq(CamelModel):
    name: str
    seats: int = Field(default=0, ge=0)
    category_id: Int64 = NO_CATEGORY


class AddCategoryReq(CamelModel):
    name: str
    description: str = ""


class DeleteRoomReq(CamelModel):
    room_id: Int64


class DeleteCategoryReq(CamelModel):
    category_id: Int64


class OkResp(BaseModel):
    msg: str = "ok"


class ErrorResp(BaseModel):
    msg: str
