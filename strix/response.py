"""
Reply object - buffered response state written to ASGI once the pipeline ends.
"""

from __future__ import annotations

import dataclasses
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel


def _json_default_serializer(obj: Any) -> Any:
    """Serialize types the json module does not know."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def dumps(payload: Any) -> bytes:
    return json.dumps(payload, default=_json_default_serializer, separators=(",", ":")).encode("utf-8")


class Reply:
    """
    Response state for one request.

    Handlers either return a value (serialised by the pipeline) or take
    the reply with a ``Res()`` parameter and call ``send`` themselves.

    Example:
        reply.status(201).header("Location", "/users/7").send({"id": 7})
    """

    def __init__(self):
        self.status_code: int = 200
        self.headers: Dict[str, str] = {}
        self.body: bytes = b""
        self.sent: bool = False

    def status(self, code: int) -> "Reply":
        self.status_code = code
        return self

    def code(self, code: int) -> "Reply":
        return self.status(code)

    def header(self, name: str, value: str) -> "Reply":
        """
        Set a header.

        Raises:
            ValueError: The name or value cannot be encoded as latin-1
        """
        name, value = name.lower(), str(value)
        try:
            name.encode("latin-1")
            value.encode("latin-1")
        except UnicodeEncodeError as exc:
            raise ValueError(f"Header {name!r} is not latin-1 encodable: {value!r}") from exc
        self.headers[name] = value
        return self

    def get_header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    def send(self, payload: Any = None) -> "Reply":
        """
        Set the body and mark the reply as sent.

        bytes are sent as is, str as text/plain, anything else as JSON.
        ``None`` sends an empty body.
        """
        if self.sent:
            raise RuntimeError("Reply already sent")

        if payload is None:
            self.body = b""
        elif isinstance(payload, (bytes, bytearray)):
            self.body = bytes(payload)
            self.headers.setdefault("content-type", "application/octet-stream")
        elif isinstance(payload, str):
            self.body = payload.encode("utf-8")
            self.headers.setdefault("content-type", "text/plain; charset=utf-8")
        else:
            self.body = dumps(payload)
            self.headers.setdefault("content-type", "application/json")

        self.sent = True
        return self

    def json(self, payload: Any, status: Optional[int] = None) -> "Reply":
        if status is not None:
            self.status(status)
        self.headers["content-type"] = "application/json"
        return self.send(dumps(payload))

    def raw_headers(self) -> List[Tuple[bytes, bytes]]:
        headers = dict(self.headers)
        headers["content-length"] = str(len(self.body))
        return [(k.encode("latin-1"), v.encode("latin-1")) for k, v in headers.items()]

    async def write_to(self, send: Callable[[dict], Awaitable[None]], *, head: bool = False) -> None:
        """Emit the ASGI response messages."""
        await send({
            "type": "http.response.start",
            "status": self.status_code,
            "headers": self.raw_headers(),
        })
        await send({
            "type": "http.response.body",
            "body": b"" if head else self.body,
        })

    def __repr__(self) -> str:
        return f"<Reply {self.status_code} sent={self.sent}>"
