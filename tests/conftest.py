import pytest
from fastapi.testclient import TestClient

from survey_intake.core.config import Settings
from survey_intake.database import build_engine, build_session_factory, create_db_and_tables
from survey_intake.main import create_app

ADMIN_TOKEN = "s3cret"


class FakeMailer:
    """Stands in for SMTP, remembers what it was asked to send."""

    def __init__(self, fail_with=None):
        self.sent = []
        self.fail_with = fail_with

    async def send(self, html, to, subject):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"html": html, "to": to, "subject": subject})
        return f"<fake-{len(self.sent)}@example.test>"


def make_settings(tmp_path, **overrides):
    values = {"ADMIN_TOKEN": ADMIN_TOKEN, "DB_FILE": str(tmp_path / "test.db")}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers():
    return {"x-admin-token": ADMIN_TOKEN}


@pytest.fixture
def submit(client):
    def _submit(answers, **fields):
        body = {"answers": answers}
        body.update(fields)
        resp = client.post("/submit", json=body)
        assert resp.status_code == 200, resp.text
        return resp.json()["id"]

    return _submit


@pytest.fixture
async def db_session(settings):
    engine = build_engine(settings)
    await create_db_and_tables(engine)
    session_factory = build_session_factory(engine)
    async with session_factory() as session:
        yield session
    await engine.dispose()
