import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import PlainTextResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from survey_intake.api.deps import get_mailer, get_settings, require_admin
from survey_intake.core.config import Settings
from survey_intake.core.errors import StorageError
from survey_intake.database import get_db_session
from survey_intake.schemas import (
    ErrorResponse,
    ForwardRequest,
    ForwardResponse,
    ResponseListResponse,
)
from survey_intake.services import admin_query, forwarding

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
    responses={401: {"model": ErrorResponse}},
)


@router.get("/responses", response_model=ResponseListResponse)
async def list_responses(
    q: Optional[str] = Query(None, description="Literal substring of answers or metadata"),
    db: AsyncSession = Depends(get_db_session),
):
    items = await admin_query.list_responses(db, q)
    return ResponseListResponse(items=items)


@router.get("/export.csv", response_description="CSV file of all responses")
async def export_responses_csv(db: AsyncSession = Depends(get_db_session)):
    try:
        content = await admin_query.export_csv(db)
    except StorageError:
        # CSV clients get plain text, not the JSON error shape
        return PlainTextResponse("DB error", status_code=500)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="responses.csv"'},
    )


@router.post(
    "/responses/{response_id}/forward",
    response_model=ForwardResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def forward_response(
    response_id: int,
    body: Optional[ForwardRequest] = Body(None),
    db: AsyncSession = Depends(get_db_session),
    mailer: Optional[Any] = Depends(get_mailer),
    settings: Settings = Depends(get_settings),
):
    to = body.to if body else None
    message_id = await forwarding.forward(db, mailer, settings, response_id, to)
    return ForwardResponse(message_id=message_id)
