"""
Request/Reply objects and fault serialisation.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum

import pytest

from strix.faults import Fault, FaultDomain, Severity
from strix.request import BadRequestFault, Request
from strix.response import Reply

from conftest import make_receive, make_scope


class Color(Enum):
    RED = "red"


@dataclass
class Point:
    x: int
    y: int


# ============================================================================
# Request
# ============================================================================

class TestRequest:

    def test_headers_are_lowercased_and_joined(self):
        scope = make_scope(headers=[("Accept", "text/html"), ("accept", "application/json"), ("X-Id", "1")])
        request = Request(scope)

        assert request.headers == {"accept": "text/html, application/json", "x-id": "1"}

    def test_repeated_query_keys_collect_into_list(self):
        request = Request(make_scope(query_string="a=1&b=2&a=3&empty="))
        assert request.query == {"a": ["1", "3"], "b": "2", "empty": ""}

    @pytest.mark.asyncio
    async def test_chunked_json_body(self):
        scope = make_scope("POST", headers=[("Content-Type", "application/json; charset=utf-8")])
        request = Request(scope, make_receive(chunks=[b'{"name":', b' "ada"}']))

        await request.load()
        assert request.body == {"name": "ada"}

    @pytest.mark.asyncio
    async def test_text_and_empty_bodies(self):
        text = Request(make_scope("POST"), make_receive(b"hello"))
        await text.load()
        assert text.body == "hello"

        empty = Request(make_scope("POST"), make_receive(b""))
        await empty.load()
        assert empty.body is None

    @pytest.mark.asyncio
    async def test_invalid_json_is_bad_request(self):
        scope = make_scope("POST", headers=[("Content-Type", "application/json")])
        request = Request(scope, make_receive(b"{oops"))

        with pytest.raises(BadRequestFault) as exc_info:
            await request.load()
        assert exc_info.value.status == 400
        assert exc_info.value.public is True

    @pytest.mark.asyncio
    async def test_load_runs_once(self):
        scope = make_scope("POST", headers=[("Content-Type", "application/json")])
        request = Request(scope, make_receive(b"[1, 2]"))

        await request.load()
        request.body.append(3)
        await request.load()
        assert request.body == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_given_body_survives_load(self):
        request = Request(make_scope("POST"), body={"ready": True})
        await request.load()
        assert request.body == {"ready": True}

    @pytest.mark.asyncio
    async def test_disconnect_while_waiting(self):
        request = Request(make_scope(), make_receive(b""))
        await request.read_body()
        assert not request.is_disconnected()

        await request.listen_for_disconnect()
        assert request.is_disconnected()


# ============================================================================
# Reply
# ============================================================================

class TestReply:

    def test_send_variants(self):
        assert Reply().send(b"\x00").get_header("content-type") == "application/octet-stream"
        assert Reply().send("hi").body == b"hi"
        assert Reply().send(None).body == b""

    def test_json_serialises_common_types(self):
        reply = Reply().send({"day": date(2024, 1, 2), "color": Color.RED, "point": Point(1, 2), "tags": {"a"}})
        assert reply.body == b'{"day":"2024-01-02","color":"red","point":{"x":1,"y":2},"tags":["a"]}'

    def test_unknown_types_are_rejected(self):
        with pytest.raises(TypeError):
            Reply().send({"obj": object()})

    def test_header_must_be_latin1(self):
        reply = Reply()
        with pytest.raises(ValueError):
            reply.header("X-Price", "10 \u20ac")
        assert reply.get_header("x-price") is None

        reply.header("X-Name", "Jos\u00e9")
        assert (b"x-name", "Jos\u00e9".encode("latin-1")) in reply.raw_headers()

    def test_cannot_send_twice(self):
        reply = Reply().send({})
        with pytest.raises(RuntimeError):
            reply.send({})

    @pytest.mark.asyncio
    async def test_write_to_emits_asgi_messages(self):
        messages = []

        async def send(message):
            messages.append(message)

        reply = Reply().status(201).header("X-Trace", "t1")
        reply.send({"ok": True})
        await reply.write_to(send)

        start, body = messages
        assert start["status"] == 201
        assert (b"x-trace", b"t1") in start["headers"]
        assert (b"content-length", b"11") in start["headers"]
        assert body["body"] == b'{"ok":true}'


# ============================================================================
# Faults
# ============================================================================

class TestFaults:

    def test_domain_defaults(self):
        fault = Fault("CONFIG_BROKEN", "broken", domain=FaultDomain.CONFIG)
        assert fault.severity is Severity.FATAL
        assert fault.retryable is False
        assert fault.status is None
        assert str(fault) == "[CONFIG_BROKEN] broken"

    def test_class_attributes_fill_missing_fields(self):
        class Teapot(Fault):
            code = "TEAPOT"
            message = "I'm a teapot"
            domain = FaultDomain.FLOW
            status = 418

        fault = Teapot()
        assert fault.to_dict()["status"] == 418
        assert fault.to_dict()["domain"] == "flow"

    def test_missing_fields_are_rejected(self):
        with pytest.raises(TypeError):
            Fault("ONLY_CODE")

    def test_domains_compare_by_name(self):
        assert FaultDomain.DI == FaultDomain("di")
        assert FaultDomain.DI == "di"
        assert len({FaultDomain.DI, FaultDomain("di")}) == 1
