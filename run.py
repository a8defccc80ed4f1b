"""Project root entry point for launching the HTTP API."""

from __future__ import annotations

import os


def main():
    from polylingo.web import create_app

    app = create_app()
    port = int(os.environ.get("POLYLINGO_PORT", "5500"))
    # The reloader would start a second scheduler thread
    app.run(host="0.0.0.0", port=port, debug=False, use_reloader=False)


if __name__ == "__main__":
    main()
