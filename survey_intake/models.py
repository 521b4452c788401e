import json
from typing import Any, Dict

from sqlalchemy import Column, Integer, String, Text

from .database import Base


def serialize_answers(answers: Dict[str, Any]) -> str:
    """
    Canonical text form of an answers mapping.

    Used for storage, for the substring filter and for the CSV column, so all
    three agree byte for byte. Non-ASCII characters are kept as-is so that an
    admin searching for "ø" finds it.
    """
    return json.dumps(answers, ensure_ascii=False)


def deserialize_answers(answers_json: str) -> Dict[str, Any]:
    return json.loads(answers_json) if answers_json else {}


class Response(Base):
    """One submitted survey. Rows are append-only."""

    __tablename__ = "responses"
    # AUTOINCREMENT so ids of deleted rows are never handed out again
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(String, nullable=False)  # ISO-8601, UTC
    source = Column(String, nullable=False, default="web")
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", Text, nullable=False, default="")
    answers_json = Column(Text, nullable=False)
    email = Column(String, nullable=False, default="")
    ip = Column(String, nullable=False, default="")

    @property
    def answers(self) -> Dict[str, Any]:
        return deserialize_answers(self.answers_json)

    def __repr__(self) -> str:
        return f"<Response id={self.id} source={self.source!r} created_at={self.created_at!r}>"
