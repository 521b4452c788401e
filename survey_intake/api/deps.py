import hmac
import logging
from typing import Any, Optional

from fastapi import Header, Query, Request

from survey_intake.core.config import Settings
from survey_intake.core.errors import UnauthorizedError

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_mailer(request: Request) -> Optional[Any]:
    return request.app.state.mailer


def client_ip(request: Request) -> str:
    settings: Settings = request.app.state.settings
    if settings.TRUST_PROXY:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else ""


# --- Dependency for admin token verification ---
async def require_admin(
    request: Request,
    x_admin_token: Optional[str] = Header(None),
    token: Optional[str] = Query(None),
) -> None:
    """
    Gate for every admin endpoint. The token comes from the ``x-admin-token``
    header or, when that is absent, from the ``token`` query parameter, and
    must equal the configured ADMIN_TOKEN exactly.
    """
    settings: Settings = request.app.state.settings
    supplied = x_admin_token or token
    if not supplied or not hmac.compare_digest(
        supplied.encode("utf-8"), settings.ADMIN_TOKEN.encode("utf-8")
    ):
        logger.warning(
            "Admin access denied for %s %s from %s",
            request.method,
            request.url.path,
            client_ip(request),
        )
        raise UnauthorizedError("Unauthorized")
