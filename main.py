from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine

from app_logger import get_logger, setup_logging
from booking import BookingService, ReservationRequest
from catalog import CatalogService
from config import Settings, load_settings
from database import create_engine, init_db
from errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ReservationError,
    StorageError,
    UnauthenticatedError,
    ValidationError,
)
from identity import Caller, IdentitySource, build_identity_source
from models import NO_CATEGORY
from schemas import (
    AddCategoryReq,
    AddRoomReq,
    AddScheduleReq,
    AddScheduleResp,
    CategoryOut,
    DeleteCategoryReq,
    DeleteRoomReq,
    DeleteScheduleReq,
    GetRoomsAndCategoriesResp,
    GetScheduleResp,
    OkResp,
    RoomOut,
    ScheduleGroupOut,
    ScheduleOut,
)
from storage import StorageGateway
from timerange import INT64_MAX, INT64_MIN

logger = get_logger("http")

# Order matters: the first matching family wins
ERROR_STATUS = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (UnauthenticatedError, status.HTTP_401_UNAUTHORIZED),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(error: ReservationError) -> int:
    for family, code in ERROR_STATUS:
        if isinstance(error, family):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


# --- Dependencies ---

def get_caller(request: Request, authorization: Optional[str] = Header(default=None)) -> Caller:
    identity: IdentitySource = request.app.state.identity
    return identity.authenticate(authorization)


def get_booking(request: Request) -> BookingService:
    return request.app.state.booking


def get_catalog(request: Request) -> CatalogService:
    return request.app.state.catalog


def create_app(
    settings: Settings,
    engine: Optional[AsyncEngine] = None,
    identity: Optional[IdentitySource] = None,
) -> FastAPI:
    engine = engine if engine is not None else create_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_db(engine)
        yield
        await engine.dispose()

    app = FastAPI(title="Room Reservation System", lifespan=lifespan)
    storage = StorageGateway(engine)
    app.state.identity = identity if identity is not None else build_identity_source(settings)
    app.state.booking = BookingService(
        storage,
        repeat_limit=settings.schedule_repeat_limit,
        admin_idx=settings.admin_permission_idx,
        time_range_limit=settings.schedule_time_range_limit,
    )
    app.state.catalog = CatalogService(storage, admin_idx=settings.admin_permission_idx)

    @app.exception_handler(ReservationError)
    async def reservation_error_handler(request: Request, exc: ReservationError):
        code = status_for(exc)
        if code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s rejected (%d): %s", request.method, request.url.path, code, exc.message)
        return JSONResponse(status_code=code, content={"msg": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info("%s %s: malformed request: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"msg": "failed to deserialize request"},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("%s %s: unhandled error", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"msg": "internal error"},
        )

    @app.get("/healthz", include_in_schema=False)
    async def healthz():
        return {"status": "ok"}

    # --- Reservations ---

    @app.post("/api/schedule/add", response_model=AddScheduleResp)
    async def add_schedule(
        req: AddScheduleReq,
        caller: Caller = Depends(get_caller),
        booking: BookingService = Depends(get_booking),
    ):
        created = await booking.create_reservation(
            ReservationRequest(
                room_id=req.room_id,
                reservee=req.reservee,
                email=req.email,
                phone_number=req.phone_number,
                reason=req.reason,
                start_timestamp=req.start_timestamp,
                end_timestamp=req.end_timestamp,
                repeats=req.repeats,
            ),
            caller,
        )
        return AddScheduleResp(group_id=created.group_id, schedule_ids=created.slot_ids)

    @app.post("/api/schedule/delete", response_model=OkResp)
    async def delete_schedule(
        req: DeleteScheduleReq,
        caller: Caller = Depends(get_caller),
        booking: BookingService = Depends(get_booking),
    ):
        await booking.delete_reservation(req.schedule_id, req.delete_all_in_group, caller)
        return OkResp()

    @app.get("/api/schedule", response_model=GetScheduleResp)
    async def get_schedule(
        room_id: int = Query(alias="roomId", ge=INT64_MIN, le=INT64_MAX),
        start_timestamp: int = Query(alias="startTimestamp", ge=INT64_MIN, le=INT64_MAX),
        end_timestamp: int = Query(alias="endTimestamp", ge=INT64_MIN, le=INT64_MAX),
        booking: BookingService = Depends(get_booking),
    ):
        slots = await booking.list_reservations(room_id, start_timestamp, end_timestamp)
        return GetScheduleResp(
            schedules=[
                ScheduleOut(
                    id=s.id,
                    room_id=s.room_id,
                    schedule_group_id=s.group_id,
                    reservee=s.reservee,
                    start_timestamp=s.start_timestamp,
                    end_timestamp=s.end_timestamp,
                )
                for s in slots
            ]
        )

    @app.get("/api/schedule/info", response_model=ScheduleGroupOut)
    async def get_schedule_info(
        schedule_group_id: int = Query(alias="scheduleGroupId", ge=INT64_MIN, le=INT64_MAX),
        caller: Caller = Depends(get_caller),
        booking: BookingService = Depends(get_booking),
    ):
        group = await booking.get_reservation_group(schedule_group_id, caller)
        return ScheduleGroupOut(
            id=group.id,
            room_id=group.room_id,
            user_idx=group.user_id,
            reservee=group.reservee,
            email=group.email,
            phone_number=group.phone_number,
            reason=group.reason,
        )

    # --- Catalog ---

    @app.get("/api/room-and-category", response_model=GetRoomsAndCategoriesResp)
    async def get_rooms_and_categories(catalog: CatalogService = Depends(get_catalog)):
        rooms, categories = await catalog.list_rooms_and_categories()
        return GetRoomsAndCategoriesResp(
            rooms=[
                RoomOut(
                    id=r.id,
                    name=r.name,
                    seats=r.seats,
                    category_id=NO_CATEGORY if r.category_id is None else r.category_id,
                )
                for r in rooms
            ],
            categories=[
                CategoryOut(id=c.id, name=c.name, description=c.description)
                for c in categories
            ],
        )

    @app.post("/api/room/add", response_model=RoomOut, status_code=status.HTTP_201_CREATED)
    async def add_room(
        req: AddRoomReq,
        caller: Caller = Depends(get_caller),
        catalog: CatalogService = Depends(get_catalog),
    ):
        room = await catalog.add_room(caller, req.name, req.seats, req.category_id)
        return RoomOut(
            id=room.id,
            name=room.name,
            seats=room.seats,
            category_id=NO_CATEGORY if room.category_id is None else room.category_id,
        )

    @app.post("/api/room/delete", response_model=OkResp)
    async def delete_room(
        req: DeleteRoomReq,
        caller: Caller = Depends(get_caller),
        catalog: CatalogService = Depends(get_catalog),
    ):
        await catalog.delete_room(caller, req.room_id)
        return OkResp()

    @app.post("/api/category/add", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
    async def add_category(
        req: AddCategoryReq,
        caller: Caller = Depends(get_caller),
        catalog: CatalogService = Depends(get_catalog),
    ):
        category = await catalog.add_category(caller, req.name, req.description)
        return CategoryOut(id=category.id, name=category.name, description=category.description)

    @app.post("/api/category/delete", response_model=OkResp)
    async def delete_category(
        req: DeleteCategoryReq,
        caller: Caller = Depends(get_caller),
        catalog: CatalogService = Depends(get_catalog),
    ):
        await catalog.delete_category(caller, req.category_id)
        return OkResp()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


def run():
    settings = load_settings()
    setup_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.listen_host, port=settings.listen_port)


if __name__ == "__main__":
    run()
