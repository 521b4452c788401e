"""Public intake: validate a submission and append it to storage."""
import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from survey_intake.core.errors import ValidationError
from survey_intake.crud import crud_response
from survey_intake.models import serialize_answers
from survey_intake.schemas import SubmissionCreate

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "web"


def utc_timestamp() -> str:
    """Current UTC time as ``2024-05-01T12:00:00.000Z``."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def submit(db: AsyncSession, payload: SubmissionCreate, ip: str) -> int:
    if payload.answers is None:
        raise ValidationError("Missing answers")

    response_id = await crud_response.insert_response(
        db,
        created_at=utc_timestamp(),
        source=payload.source or DEFAULT_SOURCE,
        metadata=payload.metadata or "",
        answers_json=serialize_answers(payload.answers),
        email=payload.email or "",
        ip=ip or "",
    )
    logger.info(
        "Response %s stored (source=%s, %d answers)",
        response_id,
        payload.source or DEFAULT_SOURCE,
        len(payload.answers),
    )
    return response_id
