from __future__ import annotations

import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from ..scheduler import QuotaScheduler
from ..schemas import ChoreCreate, ChoreOut, ChoreUpdate, QuotaOut, WeekOut
from ..week import week_window

router = APIRouter(
    prefix="/api/chores",
    tags=["chores"],
)


def get_scheduler(request: Request) -> QuotaScheduler:
    """
    Dependency returning the scheduler built once at application startup.
    """
    return request.app.state.scheduler


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[ChoreOut],
    summary="List Chores",
    description=(
        "List chores ordered by date, then category, then creation order.\n\n"
        "Optional query parameters (give both or neither):\n"
        "- start: first date of the range (YYYY-MM-DD)\n"
        "- end: last date of the range, inclusive (YYYY-MM-DD)"
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        400: {"description": "Invalid range"},
    },
)
def list_chores(
    start: Optional[dt.date] = Query(None, description="First date of the range"),
    end: Optional[dt.date] = Query(None, description="Last date of the range (inclusive)"),
    scheduler: QuotaScheduler = Depends(get_scheduler),
) -> List[ChoreOut]:
    """
    List chores, optionally within an inclusive date range.
    """
    return [ChoreOut(**c) for c in scheduler.list(start, end)]  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "/week",
    response_model=WeekOut,
    summary="List Week",
    description="List the chores of the Monday-Sunday week containing the given date (default today).",
)
def list_week(
    date: Optional[dt.date] = Query(None, description="Any date inside the wanted week"),
    scheduler: QuotaScheduler = Depends(get_scheduler),
) -> WeekOut:
    day = date or dt.date.today()
    window = week_window(day)
    items = [ChoreOut(**c) for c in scheduler.list_week(day)]  # type: ignore[arg-type]
    return WeekOut(start=window.start, end=window.end, items=items)


# PUBLIC_INTERFACE
@router.get(
    "/quota",
    response_model=QuotaOut,
    summary="Weekly Quota",
    description="How many 'make your own' days are used and left in the week containing the date.",
)
def weekly_quota(
    date: Optional[dt.date] = Query(None, description="Any date inside the wanted week"),
    scheduler: QuotaScheduler = Depends(get_scheduler),
) -> QuotaOut:
    q = scheduler.quota_status(date or dt.date.today())
    return QuotaOut(
        start=q.week.start,
        end=q.week.end,
        category=q.category,
        used=q.used,
        cap=q.cap,
        remaining=q.remaining,
    )


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=ChoreOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Chore",
    description="Create a chore. 'Make your own' days are capped per Monday-Sunday week.",
    responses={
        201: {"description": "Chore created successfully"},
        400: {"description": "Validation error"},
        409: {"description": "Weekly limit reached"},
    },
)
def create_chore(payload: ChoreCreate, scheduler: QuotaScheduler = Depends(get_scheduler)) -> ChoreOut:
    """
    Create a new chore.
    """
    return ChoreOut(**scheduler.create(payload))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "/{chore_id}",
    response_model=ChoreOut,
    summary="Get Chore",
    description="Get a single chore by ID.",
    responses={
        200: {"description": "Chore found"},
        404: {"description": "Chore not found"},
    },
)
def get_chore(chore_id: str, scheduler: QuotaScheduler = Depends(get_scheduler)) -> ChoreOut:
    return ChoreOut(**scheduler.get(chore_id))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.patch(
    "/{chore_id}",
    response_model=ChoreOut,
    summary="Update Chore",
    description=(
        "Partially update a chore. Moving it to another week or turning it into a "
        "'make your own' day re-checks the weekly limit."
    ),
    responses={
        200: {"description": "Chore updated"},
        400: {"description": "Validation error"},
        404: {"description": "Chore not found"},
        409: {"description": "Weekly limit reached"},
    },
)
def patch_chore(
    chore_id: str, payload: ChoreUpdate, scheduler: QuotaScheduler = Depends(get_scheduler)
) -> ChoreOut:
    """
    Partial update of a chore.
    """
    return ChoreOut(**scheduler.update(chore_id, payload))  # type: ignore[arg-type]


# Older clients update with PUT and partial bodies
router.add_api_route(
    "/{chore_id}",
    patch_chore,
    methods=["PUT"],
    response_model=ChoreOut,
    summary="Update Chore (PUT)",
    description="Same partial-update semantics as PATCH.",
)


# PUBLIC_INTERFACE
@router.delete(
    "/{chore_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Chore",
    description="Delete a chore by ID.",
    responses={
        204: {"description": "Chore deleted"},
        404: {"description": "Chore not found"},
    },
)
def delete_chore(chore_id: str, scheduler: QuotaScheduler = Depends(get_scheduler)) -> None:
    """
    Delete a chore. Returns 204 on success, 404 if not found.
    """
    scheduler.delete(chore_id)
    return None
