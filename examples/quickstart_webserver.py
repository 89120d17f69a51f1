# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Quickstart: serve a Hello World page from an Nginx container.

Scaffolds a throwaway project, writes an HTML page into its web root,
starts the container and waits for you to visit it in a browser.

Usage:
    python examples/quickstart_webserver.py

Then open http://localhost:8080 in your browser.
Press Enter to remove the container.
"""

import tempfile
from pathlib import Path

import nginxdock

HTML = """\
<!DOCTYPE html>
<html>
<head>
  <title>nginxdock</title>
  <style>
    body { font-family: system-ui, sans-serif; display: flex;
           justify-content: center; align-items: center; height: 100vh;
           margin: 0; background: #1a1a2e; color: #eee; }
    .card { background: #16213e; padding: 2rem 3rem; border-radius: 12px;
            box-shadow: 0 4px 24px rgba(0,0,0,0.3); text-align: center; }
    h1 { margin: 0 0 0.5rem; }
    p  { color: #aaa; }
  </style>
</head>
<body>
  <div class="card">
    <h1>Hello from nginxdock!</h1>
    <p>Served by Nginx from inside a container on port 8080.</p>
  </div>
</body>
</html>
"""


def main() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        nginxdock.init_project(root, container_name="nginxdock_quickstart", web_root="www")
        (root / "www").mkdir()
        (root / "www" / "index.html").write_text(HTML)

        controller = nginxdock.open_controller(root)
        print("Starting nginx container ...")
        result = controller.start()
        print(f"Container {result.name}: {result.action} {result.detail}")
        try:
            status = controller.status()
            print()
            print(f"  Open {status.access_url} in your browser")
            print()
            input("Press Enter to remove the container ...")
        finally:
            controller.remove()
            print("Container removed.")


if __name__ == "__main__":
    main()
