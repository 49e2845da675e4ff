"""WSGI entrypoint for domainvault.

``python -m domainvault.wsgi [HOST:PORT]`` serves with the development server.
"""

from __future__ import annotations

import sys

from domainvault import create_app
from domainvault.core.utils.binding import parse_bind

app = create_app()

if __name__ == "__main__":
    host, port = parse_bind(sys.argv)
    app.run(host=host, port=port)  # nosec B104
