"""Forwarding proxy that performs target requests server-side.

Clients that cannot reach a target directly (for example because of
cross-origin restrictions) post a request description here and receive the
outcome as a JSON envelope. ProxyTransport speaks this protocol.
"""

import asyncio
import logging
import time
from typing import Any, Dict

import aiohttp
from aiohttp import web

from ..presets import PROXY_DEFAULTS, REQUEST_DEFAULTS, SUPPORTED_METHODS

logger = logging.getLogger(__name__)

CLIENT_SESSION_KEY = web.AppKey("client_session", aiohttp.ClientSession)


def _bad_request(message: str) -> web.Response:
    return web.json_response({"error": message}, status=400)


def _clamp_timeout(value: Any) -> int:
    if value is None:
        return REQUEST_DEFAULTS["timeout_ms"]
    timeout = int(value)
    return min(max(timeout, REQUEST_DEFAULTS["min_timeout_ms"]), REQUEST_DEFAULTS["max_timeout_ms"])


def _parse_request(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object")

    url = payload.get("url")
    if not isinstance(url, str) or not url.startswith(("http://", "https://")):
        raise ValueError("'url' must be an absolute http(s) URL")

    method = str(payload.get("method", "GET")).upper()
    if method not in SUPPORTED_METHODS:
        raise ValueError(f"Unsupported method '{method}'")

    headers = payload.get("headers") or {}
    if not isinstance(headers, dict):
        raise ValueError("'headers' must be an object")

    body = payload.get("body")
    if body is not None and not isinstance(body, str):
        raise ValueError("'body' must be a string")

    return {
        "url": url,
        "method": method,
        "headers": {str(k): str(v) for k, v in headers.items()},
        "body": body,
        "timeout": _clamp_timeout(payload.get("timeout")),
    }


async def handle_proxy(request: web.Request) -> web.Response:
    """Forward one request and report status, body and server-side duration."""
    try:
        forward = _parse_request(await request.json())
    except (ValueError, TypeError) as e:
        return _bad_request(str(e))

    session = request.app[CLIENT_SESSION_KEY]
    timeout = aiohttp.ClientTimeout(total=forward["timeout"] / 1000)
    start_time = time.perf_counter()

    try:
        async with session.request(
            forward["method"],
            forward["url"],
            headers=forward["headers"],
            data=forward["body"],
            timeout=timeout,
        ) as response:
            body = await response.text(errors="replace")
            duration = (time.perf_counter() - start_time) * 1000
            return web.json_response({
                "success": 200 <= response.status < 300,
                "status": response.status,
                "statusText": response.reason or "",
                "duration": duration,
                "body": body,
                "headers": {k: v for k, v in response.headers.items()},
            })
    except asyncio.TimeoutError:
        duration = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Proxied request to {forward['url']} timed out")
        return web.json_response({
            "success": False,
            "status": 408,
            "statusText": "Request Timeout",
            "duration": duration,
            "body": None,
            "headers": {},
            "error": f"Request timeout after {forward['timeout']}ms",
        })
    except aiohttp.ClientError as e:
        duration = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Proxied request to {forward['url']} failed: {e}")
        return web.json_response({
            "success": False,
            "status": 0,
            "statusText": "Network Error",
            "duration": duration,
            "body": None,
            "headers": {},
            "error": str(e) or e.__class__.__name__,
        })


async def _client_session_ctx(app: web.Application):
    app[CLIENT_SESSION_KEY] = aiohttp.ClientSession()
    yield
    await app[CLIENT_SESSION_KEY].close()


def create_proxy_app(path: str = PROXY_DEFAULTS["path"]) -> web.Application:
    """Build the proxy application with one POST route at `path`."""
    app = web.Application()
    app.cleanup_ctx.append(_client_session_ctx)
    app.router.add_post(path, handle_proxy)
    return app


def run_proxy(
    host: str = PROXY_DEFAULTS["host"],
    port: int = PROXY_DEFAULTS["port"],
    path: str = PROXY_DEFAULTS["path"],
) -> None:
    """Serve the proxy until interrupted."""
    logger.info(f"Starting forwarding proxy on http://{host}:{port}{path}")
    web.run_app(create_proxy_app(path), host=host, port=port, print=None)
