"""HTTP controller layer for the assignment engine."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from lodging.controllers.dependencies import get_assignment_engine, require_admin
from lodging.controllers.schemas import (
    ClientResponse,
    HotelResponse,
    PlacementErrorResponse,
    PlacementResponse,
    RosterEntryResponse,
    SwappedClientResponse,
    ValidationIssueResponse,
)
from lodging.domain.errors import LodgingError
from lodging.services.assignment_service import AssignmentEngine
from lodging.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/assignments", tags=["assignments"])


class ManualAssignRequest(BaseModel):
    client_id: int = Field(gt=0)
    hotel_id: int = Field(gt=0)
    event_id: int = Field(gt=0)
    room_preference: int | None = Field(default=None, gt=0)


class ManualAssignResponse(BaseModel):
    success: bool = True
    message: str
    client: ClientResponse
    hotel: HotelResponse
    assignment: RosterEntryResponse


class BulkAssignRequest(BaseModel):
    client_ids: list[int] = Field(min_length=1)
    hotel_id: int = Field(gt=0)
    event_id: int = Field(gt=0)
    bed_count: int | None = Field(default=None, ge=1)

    @field_validator("client_ids")
    @classmethod
    def validate_client_ids(cls, value: list[int]) -> list[int]:
        if any(client_id <= 0 for client_id in value):
            raise ValueError("client_ids must be positive")
        return value


class BulkAssignResponse(BaseModel):
    success: bool = True
    message: str
    assigned_count: int = Field(ge=0)
    hotel: HotelResponse
    assignments: list[RosterEntryResponse]
    reserved_rooms: int = Field(ge=0)


class AutoAssignRequest(BaseModel):
    event_id: int = Field(gt=0)
    prioritize_vip: bool | None = None
    respect_groups_integrity: bool | None = None
    allow_mixed_groups: bool | None = None
    hotel_order: list[int] | None = None


class AutoAssignResponse(BaseModel):
    success: bool = True
    message: str
    assigned_count: int = Field(ge=0)
    total_clients: int = Field(ge=0)
    assignments: list[PlacementResponse]
    errors: list[PlacementErrorResponse]


class MoveRequest(BaseModel):
    client_id: int = Field(gt=0)
    from_hotel_id: int = Field(gt=0)
    to_hotel_id: int = Field(gt=0)
    event_id: int = Field(gt=0)


class MoveResponse(BaseModel):
    success: bool = True
    message: str
    client: ClientResponse
    from_hotel: HotelResponse
    to_hotel: HotelResponse
    warnings: list[ValidationIssueResponse]


class SwapRequest(BaseModel):
    client1_id: int = Field(gt=0)
    client2_id: int = Field(gt=0)
    event_id: int = Field(gt=0)


class SwapResponse(BaseModel):
    success: bool = True
    message: str
    client1: SwappedClientResponse
    client2: SwappedClientResponse
    warnings: list[ValidationIssueResponse]


class UnassignRequest(BaseModel):
    client_id: int = Field(gt=0)
    event_id: int = Field(gt=0)


class UnassignResponse(BaseModel):
    success: bool = True
    message: str
    client: ClientResponse
    hotel: HotelResponse


class ClearRequest(BaseModel):
    event_id: int = Field(gt=0)


class ClearResponse(BaseModel):
    success: bool = True
    message: str
    cleared_clients: int = Field(ge=0)
    cleared_hotels: int = Field(ge=0)


class ValidateResponse(BaseModel):
    success: bool = True
    is_valid: bool
    errors: list[ValidationIssueResponse]
    warnings: list[ValidationIssueResponse]
    stats: dict[str, Any]


@router.post("/manual", response_model=ManualAssignResponse, status_code=status.HTTP_200_OK)
async def manual_assign(
    payload: ManualAssignRequest,
    operator: str = Depends(require_admin),
    engine: AssignmentEngine = Depends(get_assignment_engine),
) -> ManualAssignResponse:
    try:
        result = engine.manual_assign(
            client_id=payload.client_id,
            hotel_id=payload.hotel_id,
            event_id=payload.event_id,
            room_preference=payload.room_preference,
            assigned_by=operator,
        )
    except LodgingError:
        raise
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected manual assignment failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to assign client",
        ) from exc
    return ManualAssignResponse(
        message=f"{result.client.full_name} assigned to {result.hotel.name}",
        client=ClientResponse.model_validate(result.client),
        hotel=HotelResponse.model_validate(result.hotel),
        assignment=RosterEntryResponse.model_validate(result.assignment),
    )


@router.post("/bulk", response_model=BulkAssignResponse, status_code=status.HTTP_200_OK)
async def bulk_assign(
    payload: BulkAssignRequest,
    operator: str = Depends(require_admin),
    engine: AssignmentEngine = Depends(get_assignment_engine),
) -> BulkAssignResponse:
    """All-or-nothing: a single ineligible client rejects the whole batch."""
    try:
        result = engine.bulk_assign(
            client_ids=payload.client_ids,
            hotel_id=payload.hotel_id,
            event_id=payload.event_id,
            bed_count=payload.bed_count,
            assigned_by=operator,
        )
    except LodgingError:
        raise
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected bulk assignment failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to assign clients",
        ) from exc
    return BulkAssignResponse(
        message=f"{result.assigned_count} clients assigned to {result.hotel.name}",
        assigned_count=result.assigned_count,
        hotel=HotelResponse.model_validate(result.hotel),
        assignments=[RosterEntryResponse.model_validate(item) for item in result.assignments],
        reserved_rooms=result.reserved_rooms,
    )


@router.post("/auto", response_model=AutoAssignResponse, status_code=status.HTTP_200_OK)
async def auto_assign(
    payload: AutoAssignRequest,
    operator: str = Depends(require_admin),
    engine: AssignmentEngine = Depends(get_assignment_engine),
) -> AutoAssignResponse:
    try:
        result = engine.auto_assign(
            event_id=payload.event_id,
            prioritize_vip=payload.prioritize_vip,
            respect_groups_integrity=payload.respect_groups_integrity,
            allow_mixed_groups=payload.allow_mixed_groups,
            hotel_order=payload.hotel_order,
            assigned_by=operator,
        )
    except LodgingError:
        raise
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected automatic assignment failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to run automatic assignment",
        ) from exc
    return AutoAssignResponse(
        message=f"{result.assigned_count}/{result.total_clients} clients assigned",
        assigned_count=result.assigned_count,
        total_clients=result.total_clients,
        assignments=[PlacementResponse.model_validate(item) for item in result.assignments],
        errors=[PlacementErrorResponse.model_validate(item) for item in result.errors],
    )


@router.post("/move", response_model=MoveResponse, status_code=status.HTTP_200_OK)
async def move_client(
    payload: MoveRequest,
    operator: str = Depends(require_admin),
    engine: AssignmentEngine = Depends(get_assignment_engine),
) -> MoveResponse:
    result = engine.move_client(
        client_id=payload.client_id,
        from_hotel_id=payload.from_hotel_id,
        to_hotel_id=payload.to_hotel_id,
        event_id=payload.event_id,
        assigned_by=operator,
    )
    return MoveResponse(
        message=f"{result.client.full_name} moved to {result.to_hotel.name}",
        client=ClientResponse.model_validate(result.client),
        from_hotel=HotelResponse.model_validate(result.from_hotel),
        to_hotel=HotelResponse.model_validate(result.to_hotel),
        warnings=[ValidationIssueResponse.model_validate(item) for item in result.warnings],
    )


@router.post("/swap", response_model=SwapResponse, status_code=status.HTTP_200_OK)
async def swap_clients(
    payload: SwapRequest,
    operator: str = Depends(require_admin),
    engine: AssignmentEngine = Depends(get_assignment_engine),
) -> SwapResponse:
    result = engine.swap_clients(
        client1_id=payload.client1_id,
        client2_id=payload.client2_id,
        event_id=payload.event_id,
        assigned_by=operator,
    )
    return SwapResponse(
        message=f"{result.client1.name} and {result.client2.name} swapped",
        client1=SwappedClientResponse.model_validate(result.client1),
        client2=SwappedClientResponse.model_validate(result.client2),
        warnings=[ValidationIssueResponse.model_validate(item) for item in result.warnings],
    )


@router.post("/unassign", response_model=UnassignResponse, status_code=status.HTTP_200_OK)
async def unassign_client(
    payload: UnassignRequest,
    operator: str = Depends(require_admin),
    engine: AssignmentEngine = Depends(get_assignment_engine),
) -> UnassignResponse:
    result = engine.unassign_client(
        client_id=payload.client_id,
        event_id=payload.event_id,
        assigned_by=operator,
    )
    return UnassignResponse(
        message=f"{result.client.full_name} removed from {result.hotel.name}",
        client=ClientResponse.model_validate(result.client),
        hotel=HotelResponse.model_validate(result.hotel),
    )


@router.post("/clear", response_model=ClearResponse, status_code=status.HTTP_200_OK)
async def clear_assignments(
    payload: ClearRequest,
    operator: str = Depends(require_admin),
    engine: AssignmentEngine = Depends(get_assignment_engine),
) -> ClearResponse:
    result = engine.clear_all(event_id=payload.event_id, assigned_by=operator)
    return ClearResponse(
        message=f"{result.cleared_clients} assignments cleared",
        cleared_clients=result.cleared_clients,
        cleared_hotels=result.cleared_hotels,
    )


@router.get(
    "/validate/{event_id}",
    response_model=ValidateResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def validate_assignments(
    event_id: int,
    engine: AssignmentEngine = Depends(get_assignment_engine),
) -> ValidateResponse:
    report = engine.validate(event_id)
    return ValidateResponse(
        is_valid=report.is_valid,
        errors=[ValidationIssueResponse.model_validate(item) for item in report.errors],
        warnings=[ValidationIssueResponse.model_validate(item) for item in report.warnings],
        stats=report.stats,
    )
