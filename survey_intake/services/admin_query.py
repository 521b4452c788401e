import csv
import io
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from survey_intake.crud import crud_response
from survey_intake.models import serialize_answers
from survey_intake.schemas import ResponseItem

CSV_HEADERS = ["id", "created_at", "source", "metadata", "email", "ip", "answers"]


async def list_responses(db: AsyncSession, q: Optional[str] = None) -> List[ResponseItem]:
    rows = await crud_response.list_responses(db, q or None)
    return [ResponseItem.model_validate(r) for r in rows]


async def export_csv(db: AsyncSession) -> str:
    """
    All responses as CSV, newest first.

    The header is written bare, data rows quote every text field and leave
    the integer id unquoted. The answers column holds the answers mapping as
    one JSON text blob. Same stored data always gives the same bytes.
    """
    rows = await crud_response.list_responses(db)

    output = io.StringIO()
    csv.writer(output).writerow(CSV_HEADERS)
    writer = csv.writer(output, quoting=csv.QUOTE_NONNUMERIC)
    for r in rows:
        writer.writerow(
            [
                r.id,
                r.created_at or "",
                r.source or "",
                r.meta or "",
                r.email or "",
                r.ip or "",
                serialize_answers(r.answers),
            ]
        )
    return output.getvalue()
