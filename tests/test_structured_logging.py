"""Tests for structured logging helpers."""

from taskflow.core.structured_logging import build_log_context


def test_build_log_context_includes_only_provided_fields():
    context = build_log_context(
        user_id="user-1",
        request_id="req-1",
        route="/tasks",
        method="GET",
    )

    assert context == {
        "user_id": "user-1",
        "request_id": "req-1",
        "route": "/tasks",
        "method": "GET",
    }


def test_build_log_context_ignores_empty_fields():
    context = build_log_context(
        user_id="",
        route=None,
        request_id="req-1",
    )

    assert context == {"request_id": "req-1"}


def test_build_log_context_keeps_zero_values_and_rounds_duration():
    context = build_log_context(status_code=0, duration_ms=12.345)

    assert context == {"status_code": 0, "duration_ms": 12.3}
