"""JSON encoding of values exchanged with invocation subprocesses.

Arguments are sent to the worker on stdin as a single JSON document, and
the worker writes a single JSON reply to a file. Python values are
encoded as one-key objects naming their kind, so that tuples, sets and
dicts with non-string keys survive the round trip::

    (1, {"a"})  ->  {"tuple": [{"int": 1}, {"set": [{"str": "a"}]}]}

Values with no structural encoding are sent as their repr and decoded to
an OpaqueValue, so they only compare equal when their reprs do.
"""

import json
from dataclasses import dataclass
from typing import Any

from feat.testcase import OpaqueValue


@dataclass
class Reply:
    """The outcome of calling an implementation, as reported by the worker."""

    result: Any = None
    error: str | None = None


def encode_value(value: Any) -> dict[str, Any]:
    match value:
        case None:
            return {"none": None}
        case bool():
            return {"bool": value}
        case int():
            return {"int": value}
        case float():
            return {"float": value}
        case str():
            return {"str": value}
        case list():
            return {"list": [encode_value(v) for v in value]}
        case tuple():
            return {"tuple": [encode_value(v) for v in value]}
        case frozenset():
            return {"frozenset": [encode_value(v) for v in value]}
        case set():
            return {"set": [encode_value(v) for v in value]}
        case dict():
            return {
                "dict": [[encode_value(k), encode_value(v)] for k, v in value.items()]
            }
        case OpaqueValue(text=text):
            return {"opaque": text}
        case _:
            return {"opaque": repr(value)}


def decode_value(data: Any) -> Any:
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(f"Cannot decode {data!r}")
    ((kind, payload),) = data.items()
    match kind:
        case "none":
            return None
        case "bool" | "int" | "float" | "str" | "opaque":
            expected = {
                "bool": bool,
                "int": int,
                "float": (float, int),
                "str": str,
                "opaque": str,
            }[kind]
            if not isinstance(payload, expected) or (
                kind == "int" and isinstance(payload, bool)
            ):
                raise ValueError(f"Invalid {kind} payload {payload!r}")
            if kind == "float":
                return float(payload)
            if kind == "opaque":
                return OpaqueValue(payload)
            return payload
        case "list":
            return [decode_value(v) for v in _items(kind, payload)]
        case "tuple":
            return tuple(decode_value(v) for v in _items(kind, payload))
        case "set":
            return {decode_value(v) for v in _items(kind, payload)}
        case "frozenset":
            return frozenset(decode_value(v) for v in _items(kind, payload))
        case "dict":
            result = {}
            for pair in _items(kind, payload):
                if not isinstance(pair, list) or len(pair) != 2:
                    raise ValueError(f"Invalid dict entry {pair!r}")
                result[decode_value(pair[0])] = decode_value(pair[1])
            return result
        case _:
            raise ValueError(f"Unknown value kind {kind!r}")


def _items(kind: str, payload: Any) -> list[Any]:
    if not isinstance(payload, list):
        raise ValueError(f"Invalid {kind} payload {payload!r}")
    return payload


def serialize_request(args: tuple[Any, ...]) -> str:
    return json.dumps({"args": [encode_value(a) for a in args]})


def deserialize_request(text: str) -> tuple[Any, ...]:
    data = json.loads(text)
    return tuple(decode_value(a) for a in _items("args", data["args"]))


def serialize_reply(reply: Reply) -> str:
    if reply.error is not None:
        return json.dumps({"error": reply.error})
    return json.dumps({"result": encode_value(reply.result)})


def deserialize_reply(text: str) -> Reply:
    """Decode a reply, raising ValueError if it is malformed."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Reply is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Reply must be an object, got {data!r}")
    if "error" in data:
        return Reply(error=str(data["error"]))
    if "result" in data:
        return Reply(result=decode_value(data["result"]))
    raise ValueError(f"Reply has neither a result nor an error: {data!r}")
