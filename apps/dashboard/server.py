from __future__ import annotations

import os
from wsgiref.simple_server import make_server

from readiness_dashboard.web import application


def main() -> None:
    host = os.environ.get("READINESS_DASHBOARD_HOST", "127.0.0.1")
    port = int(os.environ.get("READINESS_DASHBOARD_PORT", "8080"))
    with make_server(host, port, application) as server:
        server.serve_forever()


if __name__ == "__main__":
    main()
