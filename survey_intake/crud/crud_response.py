import logging
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from survey_intake.core.errors import StorageError
from survey_intake.models import Response

logger = logging.getLogger(__name__)

SQLITE_MAX_INT = 2**63 - 1
SQLITE_MIN_INT = -(2**63)


async def insert_response(
    db: AsyncSession,
    created_at: str,
    source: str,
    metadata: str,
    answers_json: str,
    email: str,
    ip: str,
) -> int:
    db_response = Response(
        created_at=created_at,
        source=source,
        meta=metadata,
        answers_json=answers_json,
        email=email,
        ip=ip,
    )
    try:
        db.add(db_response)
        await db.commit()
    except SQLAlchemyError as e:
        # single INSERT per transaction, a rollback leaves nothing behind
        await db.rollback()
        logger.error("Insert into responses failed: %s", e)
        raise StorageError("DB insert failed") from e
    return db_response.id


async def list_responses(db: AsyncSession, q: Optional[str] = None) -> List[Response]:
    """
    All responses, newest id first.

    With ``q``, only rows whose answers JSON or metadata contain ``q`` as a
    literal, case-sensitive substring. ``instr`` is used instead of LIKE so
    ``%`` and ``_`` typed into the search box are not wildcards.
    """
    stmt = select(Response)
    if q:
        stmt = stmt.where(
            or_(
                func.instr(Response.answers_json, q) > 0,
                func.instr(Response.meta, q) > 0,
            )
        )
    stmt = stmt.order_by(Response.id.desc())
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as e:
        logger.error("Listing responses failed: %s", e)
        raise StorageError("DB error") from e
    return list(result.scalars().all())


async def get_response(db: AsyncSession, response_id: int) -> Optional[Response]:
    # SQLite INTEGER is signed 64-bit, no row can have an id outside it
    if not SQLITE_MIN_INT <= response_id <= SQLITE_MAX_INT:
        return None
    try:
        return await db.get(Response, response_id)
    except SQLAlchemyError as e:
        logger.error("Loading response %s failed: %s", response_id, e)
        raise StorageError("DB error") from e


async def count_responses(db: AsyncSession) -> int:
    try:
        result = await db.execute(select(func.count(Response.id)))
    except SQLAlchemyError as e:
        raise StorageError("DB error") from e
    return result.scalar_one()
