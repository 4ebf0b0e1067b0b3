"""HTTP binding of the module's command surface.

Exposes:
  POST /rpc/{command}   — register | remove | removeAll | exists | discover | list
  GET  /health          — liveness check

Requests carry ``{"data": {...}}``; the calling module identifies itself with
the ``X-Module-Domain`` header (required for ``register``). Replies are
``{"ok": true, "data": ...}`` or ``{"ok": false, "error": "..."}``.

Start with::

    python -m peerdiscovery
    # or
    uvicorn --factory peerdiscovery.server:create_app --port 5200
"""

from __future__ import annotations

import argparse
import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from peerdiscovery import __version__
from peerdiscovery.config import DiscoveryConfig
from peerdiscovery.discovery import PeerDiscovery
from peerdiscovery.handlers import ActiveQuery, DiscoveryModule
from peerdiscovery.rpc import HttpModuleCaller

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    "validation": 400,
    "no_route": 404,
    "duplicate": 409,
    "remote": 502,
}


class RpcRequest(BaseModel):
    data: Any = None


def build_module(config: DiscoveryConfig) -> DiscoveryModule:
    """Wire registry, orchestrator and RPC channel from *config*."""
    discovery = PeerDiscovery(
        strategy=config.strategy,
        source_timeout=config.effective_source_timeout,
    )
    return DiscoveryModule(discovery, HttpModuleCaller(timeout=config.rpc_timeout))


def create_app(module: DiscoveryModule | None = None) -> FastAPI:
    """Return a FastAPI app serving *module* (built from the environment if omitted)."""
    if module is None:
        module = build_module(DiscoveryConfig.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await module.caller.aclose()

    app = FastAPI(title="Peer Discovery", version=__version__, lifespan=lifespan)
    app.state.module = module

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        detail = "; ".join(err.get("msg", "") for err in exc.errors()) or "malformed request"
        return JSONResponse(
            status_code=400,
            content={"ok": False, "error": f"invalid request: {detail}"},
        )

    @app.get("/health")
    async def health():
        return {"status": "ok", "sources": len(module.discovery.registry)}

    @app.post("/rpc/{command}")
    async def rpc(
        command: str,
        request: RpcRequest | None = None,
        x_module_domain: str | None = Header(default=None),
    ):
        query = ActiveQuery(
            domain=x_module_domain,
            caller_input=request.data if request is not None else None,
        )
        resp = await module.handle(command, query)
        if resp.ok:
            return {"ok": True, "data": resp.data}
        return JSONResponse(
            status_code=_STATUS_CODES.get(resp.code, 500),
            content={"ok": False, "error": resp.error},
        )

    return app


# ──────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> None:
    import uvicorn

    parser = argparse.ArgumentParser(
        prog="python -m peerdiscovery",
        description="Peer discovery module server",
    )
    parser.add_argument("--config", metavar="PATH", default=None,
                        help="JSON config file (default: PEERDISCOVERY_* env vars)")
    parser.add_argument("--host", default=None, help="Bind address")
    parser.add_argument("--port", type=int, default=None, help="Bind port")
    args = parser.parse_args(argv)

    config = DiscoveryConfig.load(args.config) if args.config else DiscoveryConfig.from_env()
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port

    logging.basicConfig(level=config.log_level.upper())
    logger.info(
        "Starting peer discovery on %s:%d (strategy=%s)",
        config.host, config.port, config.strategy,
    )
    uvicorn.run(create_app(build_module(config)), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
