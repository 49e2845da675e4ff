"""Listen address parsing for the development server."""

from __future__ import annotations

import sys
from typing import Optional, Sequence

DEFAULT_BIND = "127.0.0.1:9000"


def parse_bind(argv: Sequence[str]) -> tuple[str, int]:
    """Read ``HOST:PORT`` from argv, falling back to the default binding."""
    raw: Optional[str] = argv[1] if len(argv) > 1 else None
    if raw is None:
        print(f"No binding given, using default {DEFAULT_BIND}", file=sys.stderr)
        raw = DEFAULT_BIND
    host, sep, port = raw.rpartition(":")
    try:
        if not sep or not host:
            raise ValueError("expected HOST:PORT")
        port_num = int(port)
        if not 0 < port_num < 65536:
            raise ValueError(f"port out of range: {port_num}")
    except ValueError as exc:
        print(f"Invalid binding given ({exc}), using default {DEFAULT_BIND}", file=sys.stderr)
        host, _, port = DEFAULT_BIND.rpartition(":")
        port_num = int(port)
    return host.strip("[]"), port_num
