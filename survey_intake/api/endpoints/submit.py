from typing import Optional

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from survey_intake.api.deps import client_ip
from survey_intake.database import get_db_session
from survey_intake.schemas import ErrorResponse, SubmissionCreate, SubmissionResponse
from survey_intake.services import submission

router = APIRouter(tags=["submit"])


# Public intake, no admin token required
@router.post(
    "/submit",
    response_model=SubmissionResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def submit_response(
    request: Request,
    payload: Optional[SubmissionCreate] = Body(None),
    db: AsyncSession = Depends(get_db_session),
):
    # an empty body is treated like a body without answers
    payload = payload or SubmissionCreate()
    response_id = await submission.submit(db, payload, ip=client_ip(request))
    return SubmissionResponse(id=response_id)
