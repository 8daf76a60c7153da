"""Tests for gear.middleware.recovery: PanicRecovery."""

import asyncio
import logging

import pytest

from gear.app import wrap
from gear.middleware import PanicRecovery

from tests.conftest import ResponseCapture, make_receive, make_scope


async def boom(scope, receive, send) -> None:
    raise RuntimeError("boom")


class TestPanicRecovery:
    async def test_handler_fault_answers_500(self, caplog) -> None:
        cap = ResponseCapture()
        with caplog.at_level(logging.ERROR, logger="gear.errors"):
            await wrap(boom, PanicRecovery())(make_scope(), make_receive(), cap)

        assert cap.status == 500
        assert cap.body == b"Internal Server Error\n"
        records = [r for r in caplog.records if r.name == "gear.errors"]
        assert len(records) == 1
        assert records[0].levelno == logging.ERROR
        assert "recovered from panic" in records[0].getMessage()
        assert "value=boom" in records[0].getMessage()
        assert str(records[0].attrs["value"]) == "boom"

    async def test_stack_attribute(self, caplog) -> None:
        with caplog.at_level(logging.ERROR, logger="gear.errors"):
            await wrap(boom, PanicRecovery(add_stack=True))(
                make_scope(), make_receive(), ResponseCapture()
            )

        (record,) = [r for r in caplog.records if r.name == "gear.errors"]
        assert "Traceback" in record.attrs["stack"]
        assert "RuntimeError: boom" in record.attrs["stack"]

    async def test_no_stack_by_default(self, caplog) -> None:
        with caplog.at_level(logging.ERROR, logger="gear.errors"):
            await wrap(boom, PanicRecovery())(make_scope(), make_receive(), ResponseCapture())

        (record,) = [r for r in caplog.records if r.name == "gear.errors"]
        assert "stack" not in record.attrs

    async def test_inner_after_code_skipped(self) -> None:
        trace: list[str] = []

        async def inner(g, next) -> None:
            trace.append("inner:before")
            await next()
            trace.append("inner:after")

        async def failing(g, next) -> None:
            trace.append("failing")
            raise ValueError("bad")

        cap = ResponseCapture()
        app = wrap(boom, failing, inner, PanicRecovery())
        await app(make_scope(), make_receive(), cap)

        assert trace == ["inner:before", "failing"]
        assert cap.status == 500

    async def test_recovery_stops_chain(self) -> None:
        async def handler(scope, receive, send) -> None:
            raise KeyError("missing")

        scope = make_scope()
        await wrap(handler, PanicRecovery())(scope, make_receive(), ResponseCapture())

        assert scope["gear"].stopped

    async def test_no_fault_passes_through(self) -> None:
        async def ok(scope, receive, send) -> None:
            await send({"type": "http.response.start", "status": 204, "headers": []})
            await send({"type": "http.response.body", "body": b""})

        cap = ResponseCapture()
        scope = make_scope()
        await wrap(ok, PanicRecovery())(scope, make_receive(), cap)

        assert cap.status == 204
        assert not scope["gear"].stopped

    async def test_fault_after_response_started_keeps_status(self, caplog) -> None:
        async def half(scope, receive, send) -> None:
            await send({"type": "http.response.start", "status": 200, "headers": []})
            raise RuntimeError("late")

        cap = ResponseCapture()
        with caplog.at_level(logging.WARNING):
            await wrap(half, PanicRecovery())(make_scope(), make_receive(), cap)

        assert len(cap.starts) == 1
        assert cap.status == 200
        assert "value=late" in caplog.text

    async def test_cancellation_is_not_recovered(self) -> None:
        async def cancelled(scope, receive, send) -> None:
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await wrap(cancelled, PanicRecovery())(make_scope(), make_receive(), ResponseCapture())

    def test_name(self) -> None:
        assert PanicRecovery().name == "PanicRecovery"
