"""Render one stored response as HTML and hand it to the mail capability."""
import html as html_lib
import json
import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from survey_intake.core.config import Settings
from survey_intake.core.errors import ConfigurationError, NotFoundError, ValidationError
from survey_intake.crud import crud_response
from survey_intake.models import Response

logger = logging.getLogger(__name__)

SUBJECT_TEMPLATE = "Survey response (ID {id})"
FONT_STACK = "system-ui,-apple-system,Segoe UI,Roboto,Helvetica,Arial,sans-serif"


def _text(value: Any, escape: bool) -> str:
    if value is None:
        text = ""
    elif isinstance(value, str):
        text = value
    else:
        text = json.dumps(value, ensure_ascii=False)
    return html_lib.escape(text) if escape else text


def render_response_html(response: Response, escape: bool = True) -> str:
    """
    HTML body for a forwarded response: heading with the id, metadata in
    italics, then one paragraph per question. Newlines in answers become
    ``<br/>``. With ``escape=False`` stored text is embedded verbatim.
    """
    paragraphs = []
    for question, answer in response.answers.items():
        answer_html = _text(answer or "", escape).replace("\n", "<br/>")
        paragraphs.append(
            f"<p><strong>{_text(question, escape)}</strong><br/>{answer_html}</p>"
        )
    pretty = "\n".join(paragraphs)
    subject = SUBJECT_TEMPLATE.format(id=response.id)
    return (
        f'<div style="font-family:{FONT_STACK}">\n'
        f"  <h2>{subject}</h2>\n"
        f"  <p><em>{_text(response.meta or '', escape)}</em></p>\n"
        f"  {pretty}\n"
        f"</div>"
    )


async def forward(
    db: AsyncSession,
    mailer: Optional[Any],
    settings: Settings,
    response_id: int,
    to: Optional[str],
) -> str:
    if not to:
        raise ValidationError("Missing to")
    if mailer is None:
        raise ConfigurationError("Mail not configured")

    response = await crud_response.get_response(db, response_id)
    if response is None:
        raise NotFoundError("Not found")

    body = render_response_html(response, escape=settings.MAIL_ESCAPE_HTML)
    # DeliveryError from the mailer propagates unchanged, no retry
    message_id = await mailer.send(
        html=body, to=to, subject=SUBJECT_TEMPLATE.format(id=response.id)
    )
    logger.info("Response %s forwarded to %s (%s)", response.id, to, message_id)
    return message_id
