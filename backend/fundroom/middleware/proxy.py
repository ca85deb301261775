"""Entry proxy: host validation, classification and dispatch.

Every HTTP request passes through here before routing:

1. Reject a malformed Host header (400) or client IP (400).
2. Replace any inbound ``x-client-ip`` with the validated client IP.
3. Sanitise the path.
4. Classify: analytics -> webhook host -> tenant/platform domain -> app
   guard -> passthrough. Each branch yields one Decision.
5. Apply the Decision: JSON rejection, redirect, internal rewrite (the
   ASGI scope path is replaced) or pass-through.

API, static and health paths skip step 4. An exception raised while
deciding is reported to the error monitor and answered with a generic
500; exceptions raised by the downstream app are left to its own
exception handlers.

This is a raw ASGI middleware (not BaseHTTPMiddleware) for direct access
to scope["path"] and scope["headers"].
"""

from datetime import UTC, datetime
from urllib.parse import quote

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.requests import cookie_parser
from starlette.responses import JSONResponse, RedirectResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from fundroom.core.config import Settings, settings
from fundroom.core.monitoring import get_error_reporter
from fundroom.core.session import decode_session_token
from fundroom.routing.constants import NOT_FOUND_PATH, WEBHOOK_REWRITE_PREFIX
from fundroom.routing.decisions import Action, Decision
from fundroom.routing.domain import resolve_domain_request
from fundroom.routing.guard import evaluate_app_request, with_session_renewal
from fundroom.routing.host import (
    RouteKind,
    classify_request,
    get_client_ip,
    is_blocked_view_path,
    is_bypass_path,
    sanitize_path,
    validate_client_ip,
    validate_host,
)

logger = structlog.get_logger()

CLIENT_IP_HEADER = b"x-client-ip"


class EntryProxyMiddleware:
    """Outermost routing layer for tenant domains and the app host.

    Args:
        app: The next ASGI application in the middleware chain.
        config: Settings override (tests). Defaults to the module singleton,
            read on every request.
    """

    def __init__(self, app: ASGIApp, config: Settings | None = None) -> None:
        self.app = app
        self._config = config

    @property
    def config(self) -> Settings:
        return self._config if self._config is not None else settings

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        try:
            decision = self.decide(scope)
        except Exception as exc:
            headers = Headers(scope=scope)
            get_error_reporter().report_error(
                exc,
                path=scope.get("path"),
                method=scope.get("method"),
                host=headers.get("host"),
            )
            logger.error("proxy.error", error_type=type(exc).__name__)
            response = JSONResponse({"error": "Internal server error"}, status_code=500)
            await response(scope, receive, send)
            return

        await self._apply(decision, scope, receive, send)

    def decide(self, scope: Scope) -> Decision:
        """Validate, classify and route one request.

        Mutates scope headers (client IP) and the scope path (sanitised).

        Args:
            scope: ASGI HTTP scope.

        Returns:
            Decision to apply.
        """
        config = self.config
        headers = Headers(scope=scope)

        host = headers.get("host")
        if not validate_host(host):
            return Decision.reject(400, "Invalid host header")

        client_ip = get_client_ip(headers)
        if client_ip is not None and not validate_client_ip(client_ip):
            return Decision.reject(400, "Invalid client IP")
        _set_client_ip(scope, client_ip)

        raw_path = scope.get("raw_path")
        if raw_path:
            path = sanitize_path(raw_path.decode("latin-1").partition("?")[0])
        else:
            path = sanitize_path(scope["path"])

        _set_path(scope, path)
        if is_bypass_path(path):
            return Decision.allow()

        kind = classify_request(host, path, config)

        if kind is RouteKind.ANALYTICS:
            return Decision.allow()

        if kind is RouteKind.WEBHOOK:
            return Decision.rewrite(f"{WEBHOOK_REWRITE_PREFIX}{path}")

        if kind is RouteKind.DOMAIN:
            return resolve_domain_request(host, path, config)

        if kind is RouteKind.APP:
            now = datetime.now(UTC)
            cookies = cookie_parser(headers.get("cookie", ""))
            claims = decode_session_token(cookies.get(config.session_cookie_name))
            query = scope.get("query_string", b"").decode("latin-1")
            decision = evaluate_app_request(path, query, claims, now)
            return with_session_renewal(decision, claims, now)

        if path.startswith("/view/") and is_blocked_view_path(path):
            return Decision.rewrite(NOT_FOUND_PATH, status_code=404)

        return Decision.allow()

    async def _apply(
        self, decision: Decision, scope: Scope, receive: Receive, send: Send
    ) -> None:
        if decision.action is Action.REJECT:
            response = JSONResponse(
                {"error": decision.message}, status_code=decision.status_code or 400
            )
            await response(scope, receive, send)
            return

        if decision.action is Action.REDIRECT:
            redirect = RedirectResponse(
                decision.target or "/", status_code=decision.status_code or 307
            )
            for name, value in decision.headers:
                redirect.headers.append(name, value)
            if decision.set_cookie:
                redirect.headers.append("set-cookie", decision.set_cookie)
            await redirect(scope, receive, send)
            return

        if decision.action is Action.REWRITE and decision.target:
            _set_path(scope, decision.target)

        if not decision.headers and not decision.set_cookie and not (
            decision.action is Action.REWRITE and decision.status_code
        ):
            await self.app(scope, receive, send)
            return

        async def send_with_decision(message: Message) -> None:
            if message["type"] == "http.response.start":
                if decision.action is Action.REWRITE and decision.status_code:
                    message["status"] = decision.status_code
                response_headers = MutableHeaders(scope=message)
                for name, value in decision.headers:
                    response_headers.append(name, value)
                if decision.set_cookie:
                    response_headers.append("set-cookie", decision.set_cookie)
            await send(message)

        await self.app(scope, receive, send_with_decision)


def _set_client_ip(scope: Scope, client_ip: str | None) -> None:
    cleaned = [(k, v) for k, v in scope["headers"] if k.lower() != CLIENT_IP_HEADER]
    if client_ip:
        cleaned.append((CLIENT_IP_HEADER, client_ip.encode("latin-1")))
    scope["headers"] = cleaned


def _set_path(scope: Scope, path: str) -> None:
    scope["path"] = path
    scope["raw_path"] = quote(path).encode("ascii")
