import smtplib

import pytest

from survey_intake.core.errors import DeliveryError
from survey_intake.services import mailer as mailer_module
from survey_intake.services.mailer import SmtpMailer, build_mailer

from conftest import make_settings


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.calls = []
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.calls.append("quit")
        return False

    def ehlo(self):
        self.calls.append("ehlo")

    def has_extn(self, name):
        return name == "starttls"

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user, password))

    def send_message(self, msg):
        self.sent.append(msg)


class FailingLoginSMTP(FakeSMTP):
    def login(self, user, password):
        raise smtplib.SMTPAuthenticationError(535, b"bad credentials")


@pytest.fixture(autouse=True)
def reset_instances():
    FakeSMTP.instances = []


def _mailer(**overrides):
    values = dict(
        host="smtp.example.com",
        port=587,
        user="robot@example.com",
        password="pw",
        from_email="survey@example.com",
        timeout=5.0,
    )
    values.update(overrides)
    return SmtpMailer(**values)


def test_build_mailer_needs_host_port_user_and_password(tmp_path):
    full = dict(SMTP_HOST="smtp.example.com", SMTP_PORT=587, SMTP_USER="u@example.com", SMTP_PASS="pw")
    assert isinstance(build_mailer(make_settings(tmp_path, **full)), SmtpMailer)
    for missing in full:
        partial = {k: v for k, v in full.items() if k != missing}
        assert build_mailer(make_settings(tmp_path, **partial)) is None


def test_build_mailer_from_address_falls_back_to_user(tmp_path):
    settings = make_settings(
        tmp_path, SMTP_HOST="h", SMTP_PORT=25, SMTP_USER="u@example.com", SMTP_PASS="pw"
    )
    assert build_mailer(settings).from_email == "u@example.com"


def test_build_message_is_html():
    msg = _mailer().build_message("<p>Hi</p>", "boss@example.com", "Subject line")
    assert msg["To"] == "boss@example.com"
    assert msg["From"] == "survey@example.com"
    assert msg["Subject"] == "Subject line"
    assert msg["Message-ID"].endswith("@example.com>")
    html_part = msg.get_body(preferencelist=("html",))
    assert "<p>Hi</p>" in html_part.get_content()


@pytest.mark.anyio
async def test_send_uses_starttls_and_returns_message_id(monkeypatch):
    monkeypatch.setattr(mailer_module.smtplib, "SMTP", FakeSMTP)
    message_id = await _mailer().send("<p>Hi</p>", "boss@example.com", "Subject")

    (smtp,) = FakeSMTP.instances
    assert (smtp.host, smtp.port, smtp.timeout) == ("smtp.example.com", 587, 5.0)
    assert "starttls" in smtp.calls
    assert ("login", "robot@example.com", "pw") in smtp.calls
    (msg,) = smtp.sent
    assert msg["Message-ID"] == message_id


@pytest.mark.anyio
async def test_secure_uses_implicit_tls(monkeypatch):
    monkeypatch.setattr(mailer_module.smtplib, "SMTP_SSL", FakeSMTP)
    await _mailer(port=465, secure=True).send("<p>Hi</p>", "boss@example.com", "Subject")

    (smtp,) = FakeSMTP.instances
    assert smtp.port == 465
    assert "starttls" not in smtp.calls


@pytest.mark.anyio
async def test_smtp_failure_becomes_delivery_error(monkeypatch):
    monkeypatch.setattr(mailer_module.smtplib, "SMTP", FailingLoginSMTP)
    with pytest.raises(DeliveryError) as exc_info:
        await _mailer().send("<p>Hi</p>", "boss@example.com", "Subject")
    assert "bad credentials" in exc_info.value.message


@pytest.mark.anyio
async def test_connection_failure_becomes_delivery_error(monkeypatch):
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("Connection refused")

    monkeypatch.setattr(mailer_module.smtplib, "SMTP", refuse)
    with pytest.raises(DeliveryError) as exc_info:
        await _mailer().send("<p>Hi</p>", "boss@example.com", "Subject")
    assert exc_info.value.message == "Connection refused"


@pytest.mark.anyio
async def test_header_injection_becomes_delivery_error(monkeypatch):
    monkeypatch.setattr(mailer_module.smtplib, "SMTP", FakeSMTP)
    with pytest.raises(DeliveryError):
        await _mailer().send("<p>Hi</p>", "boss@example.com\nBcc: x@evil.test", "Subject")
    assert FakeSMTP.instances == []
