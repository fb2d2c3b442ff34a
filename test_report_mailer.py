"""
Tests for the SMTP report dispatcher
"""

import aiosmtplib
import pytest

from visitlog.config.settings import Settings
from visitlog.workers.mail_worker.report_mailer import (
    REPORT_ATTACHMENT_NAME,
    SMTPReportDispatcher,
)

CSV_PAYLOAD = "\ufeffDNI,NOMBRE Y APELLIDOS\n\"12345678A\",\"Jane Doe\""


def smtp_settings(**overrides) -> Settings:
    values = dict(
        SMTP_HOST="smtp.example.com",
        SMTP_PORT=465,
        SMTP_USER="reports@example.com",
        SMTP_PASSWORD="secret",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def sent(monkeypatch):
    calls = []

    async def fake_send(message, **kwargs):
        calls.append((message, kwargs))
        return ({}, "OK")

    monkeypatch.setattr(aiosmtplib, "send", fake_send)
    return calls


async def test_sends_report_with_csv_attachment(sent):
    dispatcher = SMTPReportDispatcher(smtp_settings())

    result = await dispatcher.dispatch(CSV_PAYLOAD, ["a@example.com", "b@example.com"], "Visites", "Recepció")

    assert result.success
    message, kwargs = sent[0]
    assert message["To"] == "a@example.com, b@example.com"
    assert message["Subject"] == "Visites"
    assert message["From"] == '"Recepció" <reports@example.com>'
    assert kwargs["hostname"] == "smtp.example.com"
    assert kwargs["use_tls"] is True

    attachments = [part for part in message.walk() if part.get_filename()]
    assert [a.get_filename() for a in attachments] == [REPORT_ATTACHMENT_NAME]
    assert attachments[0].get_content_type() == "text/csv"
    assert "Jane Doe" in attachments[0].get_payload(decode=True).decode("utf-8")


async def test_starttls_port_does_not_use_implicit_tls(sent):
    dispatcher = SMTPReportDispatcher(smtp_settings(SMTP_PORT=587))

    await dispatcher.dispatch(CSV_PAYLOAD, ["a@example.com"], "Visites", "Recepció")

    assert sent[0][1]["use_tls"] is False


async def test_missing_recipients_or_payload(sent):
    dispatcher = SMTPReportDispatcher(smtp_settings())

    no_recipients = await dispatcher.dispatch(CSV_PAYLOAD, [], "Visites", "Recepció")
    no_payload = await dispatcher.dispatch("", ["a@example.com"], "Visites", "Recepció")

    assert not no_recipients.success
    assert no_recipients.message == "Missing data: csvData and recipients are required."
    assert not no_payload.success
    assert sent == []


async def test_unconfigured_smtp_is_a_failure(sent):
    dispatcher = SMTPReportDispatcher(smtp_settings(SMTP_PASSWORD=None))

    result = await dispatcher.dispatch(CSV_PAYLOAD, ["a@example.com"], "Visites", "Recepció")

    assert not result.success
    assert sent == []


async def test_smtp_error_is_reported_not_raised(monkeypatch):
    async def failing_send(message, **kwargs):
        raise aiosmtplib.SMTPConnectError("connection refused")

    monkeypatch.setattr(aiosmtplib, "send", failing_send)
    dispatcher = SMTPReportDispatcher(smtp_settings())

    result = await dispatcher.dispatch(CSV_PAYLOAD, ["a@example.com"], "Visites", "Recepció")

    assert not result.success
    assert result.message == "Failed to send email."
    assert "connection refused" in result.error
