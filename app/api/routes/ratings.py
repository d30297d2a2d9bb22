from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, status
from pydantic import BaseModel, ConfigDict, Field

from app.api.errors import to_http_exception
from app.core.errors import MaintenanceDeskError
from app.dependencies.services import RatingServiceDep, StaffUser
from app.ratings.models import Rating

router = APIRouter(tags=["ratings"])


class RatingCreateRequest(BaseModel):
    rating: int
    comment: str | None = Field(default=None, max_length=2000)


class RatingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: int
    rating: int
    comment: str | None
    created_at: datetime


class RatingStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_ratings: int
    average_rating: float
    recent_ratings: list[RatingResponse]


def _to_response(rating: Rating) -> RatingResponse:
    return RatingResponse.model_validate(rating)


@router.post("/tickets/{ticket_id}/rating", response_model=RatingResponse, status_code=status.HTTP_201_CREATED)
async def create_rating(ticket_id: int, payload: RatingCreateRequest, service: RatingServiceDep) -> RatingResponse:
    try:
        rating = await service.create_rating(ticket_id, rating=payload.rating, comment=payload.comment)
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(rating)


@router.get("/tickets/{ticket_id}/rating", response_model=RatingResponse | None)
async def get_rating_by_ticket(ticket_id: int, service: RatingServiceDep) -> RatingResponse | None:
    rating = await service.get_rating_by_ticket(ticket_id)
    return _to_response(rating) if rating is not None else None


@router.get("/ratings", response_model=list[RatingResponse])
async def list_ratings(service: RatingServiceDep, _: StaffUser) -> list[RatingResponse]:
    return [_to_response(rating) for rating in await service.list_ratings()]


@router.get("/ratings/stats", response_model=RatingStatsResponse)
async def rating_stats(service: RatingServiceDep) -> RatingStatsResponse:
    return RatingStatsResponse.model_validate(await service.rating_stats())
