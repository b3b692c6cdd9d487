"""Worker subprocess that calls one implementation on one test case.

Usage::

    python -m feat.worker IMPLEMENTATION FNAME REPLY_PATH

The encoded arguments are read from stdin. The reply is written to
REPLY_PATH rather than stdout, so anything the implementation prints
cannot corrupt it. The exit status is 0 if the function returned and 1
if loading or calling it raised.
"""

import importlib.util
import os
import sys
import traceback
from collections.abc import Callable
from typing import Any

from feat.protocol import Reply, deserialize_request, serialize_reply


def load_function(path: str, fname: str) -> Callable[..., Any]:
    name = "feat_implementation_" + os.path.splitext(os.path.basename(path))[0]
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load implementation from {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    function = getattr(module, fname, None)
    if not callable(function):
        raise AttributeError(f"{path} does not define a function {fname!r}")
    return function


def run(path: str, fname: str, args: tuple[Any, ...]) -> tuple[int, str]:
    """Call the implementation and return the exit status and serialized reply."""
    try:
        function = load_function(path, fname)
        # Serialize inside the try: encoding a cyclic result raises too.
        return 0, serialize_reply(Reply(result=function(*args)))
    except Exception:
        return 1, serialize_reply(Reply(error=traceback.format_exc()))


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    if len(argv) != 3:
        print(
            "usage: python -m feat.worker IMPLEMENTATION FNAME REPLY_PATH",
            file=sys.stderr,
        )
        return 2
    path, fname, reply_path = argv
    args = deserialize_request(sys.stdin.read())
    status, reply = run(path, fname, args)
    with open(reply_path, "w", encoding="utf-8") as writer:
        writer.write(reply)
    return status


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
