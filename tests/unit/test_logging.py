"""Tests for the JSON logger in :mod:`gmailremote.utils.logging`."""

import io
import json

from gmailremote.utils.logging import REDACTED, JsonLogger, get_logger


def test_logger_emits_one_json_line_per_call():
    stream = io.StringIO()
    logger = JsonLogger(stream=stream, component="unit")

    logger.info("store", uid=7, op="+FLAGS")
    logger.warning("slow")

    first, second = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert first["lvl"] == "INFO"
    assert first["component"] == "unit"
    assert first["uid"] == 7
    assert second["lvl"] == "WARN"
    assert "ts" in second


def test_sensitive_keys_are_redacted_at_any_depth():
    stream = io.StringIO()
    logger = JsonLogger(stream=stream, sensitive_keys=frozenset({"subject", "password"}))

    logger.error("login", password="hunter2", context={"subject": "Payslip", "uid": 3})

    payload = json.loads(stream.getvalue())
    assert payload["password"] == REDACTED
    assert payload["context"] == {"subject": REDACTED, "uid": 3}


def test_get_logger_uses_configured_component_and_redaction():
    stream = io.StringIO()

    logger = get_logger("imap.client", stream=stream)
    logger.info("store", subject="Private")

    payload = json.loads(stream.getvalue())
    assert payload["component"] == "gmailremote-test.imap.client"
    assert payload["subject"] == REDACTED


def test_default_stream_follows_stdout(capsys):
    logger = JsonLogger(component="unit")

    logger.debug("hello")

    assert json.loads(capsys.readouterr().out)["msg"] == "hello"
