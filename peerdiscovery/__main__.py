"""Peer discovery server entry point.

Usage::

    python -m peerdiscovery [--config PATH] [--host HOST] [--port PORT]
"""

from __future__ import annotations

from peerdiscovery.server import main

if __name__ == "__main__":
    main()
