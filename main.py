"""
=============================================================================
DEMO SERVER
=============================================================================

A small site served by minihttpd:

    /          templates/home.html
    /about     templates/about.html
    /contact   templates/contact.html (a form that POSTs to /submit)
    /api       templates/api.html
    /hello     Plain greeting route
    /form      A one-field form that POSTs to /submit
    anything   Looked up under ./public (e.g. /style.css, /index.html)

POST /submit has no route, so it answers 404 - but the decoded form fields
show up in the log:

    [127.0.0.1:53422] POST /submit
    name = John Doe

Run it from the repository root:

    python main.py              # http://127.0.0.1:8080
    python main.py 0.0.0.0 80   # host and port

=============================================================================
"""

import sys
from pathlib import Path

from minihttpd import HTTPServer, ServerConfig, ServerStartupError


HERE = Path(__file__).parent
TEMPLATES = HERE / "templates"

TEMPLATE_ROUTES = {
    "/": "home.html",
    "/about": "about.html",
    "/contact": "contact.html",
    "/api": "api.html",
}

FORM_PAGE = (
    "<form method='POST' action='/submit'>"
    "<input type='text' name='name' placeholder='Name'>"
    "<input type='submit'>"
    "</form>"
)


def build_server(host: str = "127.0.0.1", port: int = 8080) -> HTTPServer:
    server = HTTPServer(ServerConfig(host=host, port=port, max_connections=10))

    for path, name in TEMPLATE_ROUTES.items():
        server.register_route(path, server.load_template(TEMPLATES / name))

    server.register_route("/hello", "<h1>Hello Route</h1>")
    server.register_route("/form", FORM_PAGE)

    server.set_static_root(HERE / "public")
    return server


def main(argv: list) -> int:
    host = argv[1] if len(argv) > 1 else "127.0.0.1"
    port = int(argv[2]) if len(argv) > 2 else 8080

    try:
        build_server(host, port).run()
    except ServerStartupError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
