# nvr_rpc/protocol/envelope.py
"""
JSON request/response envelopes of the RPC2 protocol.

Request:  {"method", "params"?, "object"?, "session"?, "id"?}
Response: {"result"?, "params"?, "error"?: {"code", "message"}, "id"?, "session"?}

Absent request fields are omitted from the wire form, never sent as null.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from nvr_rpc.errors import DecodeError, RemoteError
from nvr_rpc.protocol.constants import CHALLENGE_CODES

# Values produced by json.loads.
JSONValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]


@dataclass
class RPCRequest:
    method: str
    params: Optional[Dict[str, Any]] = None
    session: Optional[str] = None
    id: Optional[int] = None
    object: Optional[int] = None

    def to_json(self) -> Dict[str, Any]:
        body = {"method": self.method}
        for name in ("object", "session", "id", "params"):
            value = getattr(self, name)
            if value is not None:
                body[name] = value
        return body

    def encode(self) -> bytes:
        return json.dumps(self.to_json(), separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True)
class RPCErrorInfo:
    code: int
    message: str
    # Whole error object; some firmwares put challenge fields here.
    data: Dict[str, Any] = field(default_factory=dict)


def _normalize_session(value: Any) -> Optional[str]:
    # Some firmwares send the session token as a number.
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise DecodeError(f"Unexpected session type: {type(value).__name__}")
    return str(value)


@dataclass
class RPCResponse:
    result: JSONValue = None
    params: JSONValue = None
    error: Optional[RPCErrorInfo] = None
    id: Optional[int] = None
    session: Optional[str] = None

    @classmethod
    def from_bytes(cls, raw: bytes, context: str = "response") -> "RPCResponse":
        try:
            data = json.loads(raw)
        except (UnicodeDecodeError, ValueError) as e:
            raise DecodeError(f"Invalid server response format for {context}: {e}") from e
        return cls.from_json(data, context)

    @classmethod
    def from_json(cls, data: Any, context: str = "response") -> "RPCResponse":
        if not isinstance(data, dict):
            raise DecodeError(f"Expected a JSON object for {context}, got {type(data).__name__}")

        error = None
        raw_error = data.get("error")
        if raw_error is not None:
            if not isinstance(raw_error, dict) or not isinstance(raw_error.get("code"), int):
                raise DecodeError(f"Malformed error object in {context}: {raw_error!r}")
            error = RPCErrorInfo(
                code=raw_error["code"],
                message=str(raw_error.get("message", "")),
                data=raw_error,
            )

        request_id = data.get("id")
        if request_id is not None and (isinstance(request_id, bool) or not isinstance(request_id, int)):
            raise DecodeError(f"Unexpected id in {context}: {request_id!r}")

        return cls(
            result=data.get("result"),
            params=data.get("params"),
            error=error,
            id=request_id,
            session=_normalize_session(data.get("session")),
        )

    @property
    def payload(self) -> JSONValue:
        """Typed result. A boolean result carries no payload and yields None."""
        if isinstance(self.result, bool):
            return None
        return self.result

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.result is not False

    @property
    def is_challenge(self) -> bool:
        return self.error is not None and self.error.code in CHALLENGE_CODES

    def raise_for_error(self):
        if self.error is not None:
            raise RemoteError(self.error.code, self.error.message)
