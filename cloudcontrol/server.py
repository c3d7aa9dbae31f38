"""Cloud Control node HTTP surface.

Exposes:
  POST /node/execute/poweroff                 — signed PoweroffAction
  POST /node/health                           — signed HealthAction → {"Status":"online"}

and, when the node runs with --webadmin:
  GET  /webadmin/?key=<UriKey>                — per-remote ping/health status (JSON)
  POST /webadmin/execute/poweroff-all-and-self?key=<UriKey>

Web admin routes additionally require HTTP Basic auth with the configured
password. Route handlers are plain `def` so every request runs on its own
worker thread.
"""

from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from starlette.requests import ClientDisconnect

from cloudcontrol import __version__
from cloudcontrol.auth import authenticate
from cloudcontrol.constants import (
    ENDPOINT_POWEROFF, ENDPOINT_HEALTH, WEBADMIN_DASHBOARD, WEBADMIN_POWEROFF_ALL,
    SIGNATURE_HEADER, HEALTH_ONLINE,
)
from cloudcontrol.envelope import HealthAction, HealthResponse, PoweroffAction
from cloudcontrol.errors import BadRequest, CloudControlError, PoweroffError, Unauthenticated
from cloudcontrol.executor import PoweroffTask
from cloudcontrol.logger import get_logger
from cloudcontrol.node import Node

log = get_logger("CC.Server")

_basic = HTTPBasic(auto_error=False)


class WebAdminUnauthorized(Exception):
    def __init__(self, challenge: bool = False):
        super().__init__("Unauthorized")
        self.challenge = challenge


# ──────────────────────────────────────────────────────────────────
# Dependencies
# ──────────────────────────────────────────────────────────────────

async def raw_body(request: Request) -> bytes:
    """The exact request bytes; the signature covers these, not a re-encoding."""
    try:
        return await request.body()
    except ClientDisconnect as e:
        log.error(f"[SERVER] cannot read request body for '{request.url.path}'")
        raise BadRequest("Bad request") from e


def get_node(request: Request) -> Node:
    return request.app.state.node


def _same(given: str, expected: str) -> bool:
    return secrets.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


async def require_webadmin(request: Request, node: Node = Depends(get_node)) -> Node:
    """URI key first, then Basic password. Every rejection is the same plain 401."""
    settings = node.config.webadmin
    uri_key = request.query_params.get("key", "")
    if not uri_key or not _same(uri_key, settings.uri_key):
        raise WebAdminUnauthorized()

    try:
        creds: Optional[HTTPBasicCredentials] = await _basic(request)
    except HTTPException:
        # malformed Authorization header
        creds = None
    if creds is None or not _same(creds.password, settings.password):
        raise WebAdminUnauthorized(challenge=True)
    return node


# ──────────────────────────────────────────────────────────────────
# App
# ──────────────────────────────────────────────────────────────────

def create_app(node: Node) -> FastAPI:
    app = FastAPI(title="Cloud Control", version=__version__, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.node = node

    @app.middleware("http")
    async def recover_panic(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            log.exception(f"[SERVER] panic for request with uri '{request.url.path}'")
            return PlainTextResponse("Internal server error", status_code=500)

    @app.exception_handler(Unauthenticated)
    async def _unauthenticated(request: Request, exc: Unauthenticated):
        log.warning(f"[SERVER] rejected '{request.url.path}': {exc}")
        return PlainTextResponse("Unauthorized", status_code=401)

    @app.exception_handler(BadRequest)
    async def _bad_request(request: Request, exc: BadRequest):
        log.warning(f"[SERVER] bad request '{request.url.path}': {exc}")
        return PlainTextResponse(str(exc), status_code=400)

    @app.exception_handler(WebAdminUnauthorized)
    async def _webadmin_unauthorized(request: Request, exc: WebAdminUnauthorized):
        headers = None
        if exc.challenge:
            headers = {
                "WWW-Authenticate": 'Basic charset="UTF-8"',
                "Proxy-Authenticate": 'Basic charset="UTF-8"',
            }
        return PlainTextResponse("Unauthorized", status_code=401, headers=headers)

    # ── Node endpoints ────────────────────────────────────────────

    @app.post(ENDPOINT_POWEROFF)
    def node_execute_poweroff(request: Request, body: bytes = Depends(raw_body)):
        node = get_node(request)
        action = authenticate(
            request.headers.get(SIGNATURE_HEADER), body, node.trusted_keys, PoweroffAction,
        )

        if action.async_:
            PoweroffTask(node.poweroff, action.poweroff_delay_msec).start()
            return PlainTextResponse("OK async")

        try:
            node.poweroff(action.poweroff_delay_msec)
        except PoweroffError as e:
            log.error(f"[SERVER] cannot execute poweroff: {e}")
            return PlainTextResponse(f"cannot execute poweroff: {e}", status_code=500)
        return PlainTextResponse("OK")

    @app.post(ENDPOINT_HEALTH)
    def node_health(request: Request, body: bytes = Depends(raw_body)):
        node = get_node(request)
        authenticate(request.headers.get(SIGNATURE_HEADER), body, node.trusted_keys, HealthAction)
        return JSONResponse(HealthResponse(status=HEALTH_ONLINE).to_dict())

    # ── Web admin ─────────────────────────────────────────────────

    if node.webadmin:
        @app.get(WEBADMIN_DASHBOARD)
        def webadmin_dashboard(node: Node = Depends(require_webadmin)):
            statuses = node.orchestrator.collect_status()
            return JSONResponse({"Remotes": [s.to_dict() for s in statuses]})

        @app.post(WEBADMIN_POWEROFF_ALL)
        def webadmin_poweroff_all_and_self(node: Node = Depends(require_webadmin)):
            try:
                node.orchestrator.poweroff_all_and_self()
            except CloudControlError as e:
                log.error(f"[SERVER] poweroff-all-and-self failed: {e}")
                return PlainTextResponse("Internal server error", status_code=500)
            return PlainTextResponse("Powering off remotes and self.")

    return app
