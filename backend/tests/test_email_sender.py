import asyncio
import logging

import aiosmtplib
import pytest

from yardconnect.core.config import Settings
from yardconnect.utils import email as email_utils
from yardconnect.utils.email import (
    EmailDeliveryError,
    LoggingEmailSender,
    SmtpEmailSender,
    build_email_sender,
)
from yardconnect.utils.tokens import generate_verification_token


def test_dev_mode_logs_message(caplog):
    caplog.set_level(logging.INFO, logger="yardconnect.utils.email")
    asyncio.run(LoggingEmailSender().send("v@example.com", "Verify", '<a href="http://x/verify/abc">go</a>'))
    assert any("http://x/verify/abc" in r.getMessage() for r in caplog.records)


def test_smtp_sender_builds_html_message(monkeypatch):
    captured = {}

    async def fake_send(message, **kwargs):
        captured["message"] = message
        captured["kwargs"] = kwargs

    monkeypatch.setattr(email_utils.aiosmtplib, "send", fake_send)
    sender = SmtpEmailSender("smtp.example.com", 587, "user", "pw", "YardConnect <no-reply@example.com>")
    asyncio.run(sender.send("v@example.com", "Verify your review", "<p>Hello</p>"))

    msg = captured["message"]
    assert msg["To"] == "v@example.com"
    assert msg["Subject"] == "Verify your review"
    assert "<p>Hello</p>" in msg.get_body(preferencelist=("html",)).get_content()
    assert captured["kwargs"]["start_tls"] is True
    assert captured["kwargs"]["hostname"] == "smtp.example.com"


def test_smtp_sender_wraps_failures(monkeypatch):
    async def failing_send(message, **kwargs):
        raise aiosmtplib.SMTPConnectError("connection refused")

    monkeypatch.setattr(email_utils.aiosmtplib, "send", failing_send)
    sender = SmtpEmailSender("smtp.example.com", 587)
    with pytest.raises(EmailDeliveryError):
        asyncio.run(sender.send("v@example.com", "s", "<p>x</p>"))


def test_build_email_sender_follows_dev_mode():
    assert isinstance(build_email_sender(Settings(EMAIL_DEV_MODE=True)), LoggingEmailSender)
    smtp = build_email_sender(Settings(EMAIL_DEV_MODE=False, SMTP_HOST="mail.example.com"))
    assert isinstance(smtp, SmtpEmailSender)
    assert smtp.hostname == "mail.example.com"


def test_verification_tokens_are_unique_hex():
    tokens = {generate_verification_token() for _ in range(200)}
    assert len(tokens) == 200
    assert all(len(t) == 64 and int(t, 16) >= 0 for t in tokens)
