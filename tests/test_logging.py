"""Structured account log tests."""

import logging

from app.utils.logger import StructuredFileHandler, log_auth_event


def _attach(tmp_path):
    path = tmp_path / "logs.txt"
    handler = StructuredFileHandler(str(path))
    handler.setLevel(logging.INFO)
    auth_logger = logging.getLogger("auth_events")
    auth_logger.addHandler(handler)
    previous_level = auth_logger.level
    auth_logger.setLevel(logging.INFO)
    return path, handler, auth_logger, previous_level


def test_log_auth_event_writes_user_columns(tmp_path):
    path, handler, auth_logger, previous_level = _attach(tmp_path)
    try:
        log_auth_event("Account verified", "user-123", "ann@example.com")
        log_auth_event(
            "OTP email delivery failed",
            "user-123",
            "ann@example.com",
            level=logging.ERROR,
            error="connection refused by smtp.example.com on port 465",
        )
    finally:
        auth_logger.removeHandler(handler)
        auth_logger.setLevel(previous_level)
        handler.close()

    content = path.read_text(encoding="utf-8")
    assert "BLOG AUTH - ACCOUNT LOG" in content
    lines = [line for line in content.splitlines() if line[:1].isdigit()]
    assert len(lines) == 2
    assert lines[0].startswith("1 ")
    assert "user-123" in lines[0] and "ann@example.com" in lines[0]
    assert "Account verified" in lines[0]
    assert lines[1].startswith("2 ")
    assert "ERROR" in lines[1]
    assert "Details: OTP email delivery failed | Error: connection refused" in content


def test_serial_numbers_continue_across_handlers(tmp_path):
    path, handler, auth_logger, previous_level = _attach(tmp_path)
    try:
        log_auth_event("Login", "u1", "a@example.com")
    finally:
        auth_logger.removeHandler(handler)
        handler.close()

    path, handler, auth_logger, _ = _attach(tmp_path)
    try:
        log_auth_event("Login", "u1", "a@example.com")
    finally:
        auth_logger.removeHandler(handler)
        auth_logger.setLevel(previous_level)
        handler.close()

    numbered = [line for line in path.read_text(encoding="utf-8").splitlines() if line[:1].isdigit()]
    assert [line.split(" | ")[0].strip() for line in numbered] == ["1", "2"]
