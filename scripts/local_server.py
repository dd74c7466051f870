"""Run a funcbridge application locally (no function runtime needed).

Incoming HTTP requests are converted into DigitalOcean-style __ow_* events
and pushed through the same dispatcher and adapters used in production.
"""

import base64
import logging
import sys
from pathlib import Path
from typing import Any, Dict

# Add project root to Python path so we can import from core
project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from aiohttp import web

from core.logging_utils import configure_json_logging
from core.validators import get_logging_config, load_config
from server.adapters import HttpFunctionAdapter, HttpFunctionAdapterOptions
from server.dispatcher import AdapterDispatcher
from server.function_handler import load_handler

logger = logging.getLogger(__name__)

DISPATCHER_KEY = web.AppKey("dispatcher", AdapterDispatcher)


def build_event_from_request(request: web.BaseRequest, body: bytes) -> Dict[str, Any]:
    """Convert an aiohttp request into a DigitalOcean HTTP event.

    Args:
        request: Incoming aiohttp request
        body: Request body already read from the request

    Returns:
        Event dictionary with __ow_* fields
    """
    headers: Dict[str, Any] = {}
    for key, value in request.headers.items():
        key = key.lower()
        if key in headers:
            existing = headers[key]
            headers[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            headers[key] = value

    if request.remote and "x-forwarded-for" not in headers:
        headers["x-forwarded-for"] = request.remote

    event: Dict[str, Any] = {
        "__ow_method": request.method.lower(),
        "__ow_path": request.path,
        "__ow_headers": headers,
        "__ow_query": request.query_string,
    }

    if body:
        event["__ow_body"] = base64.b64encode(body).decode("ascii")
        event["__ow_isBase64Encoded"] = True

    return event


def to_web_response(platform_response: Dict[str, Any]) -> web.Response:
    """Convert a DigitalOcean response dictionary into an aiohttp response."""
    body = platform_response.get("body", "")
    headers = platform_response.get("headers", {})
    status = platform_response.get("statusCode", 200)

    if isinstance(body, bytes):
        return web.Response(body=body, status=status, headers=headers)
    return web.Response(text=str(body), status=status, headers=headers)


async def handle_request(request: web.Request) -> web.Response:
    """Forward any request through the dispatcher."""
    dispatcher = request.app[DISPATCHER_KEY]
    body = await request.read()
    event = build_event_from_request(request, body)

    platform_response = await dispatcher.forward_async(event)

    logger.info(
        "Local request handled",
        extra={
            "http_method": request.method,
            "request_path": request.path_qs,
            "response_status": platform_response.get("statusCode"),
        },
    )

    return to_web_response(platform_response)


def create_app(dispatcher: AdapterDispatcher) -> web.Application:
    """Create the local aiohttp application around a dispatcher."""
    app = web.Application()
    app[DISPATCHER_KEY] = dispatcher
    app.router.add_route("*", "/{tail:.*}", handle_request)
    return app


def main(host: str = "localhost", port: int = 8000) -> None:
    """Load config.yaml and serve the configured handler."""
    config = load_config()

    # Pretty-print JSON for better local readability
    logging_config = get_logging_config(config)
    configure_json_logging(level=logging_config["level"], pretty=True)

    dispatcher = AdapterDispatcher(
        handler=load_handler(config.handler),
        adapters=[
            HttpFunctionAdapter(
                HttpFunctionAdapterOptions(
                    strip_base_path=config.adapters.digital_ocean.strip_base_path
                )
            )
        ],
        respond_with_errors=config.respond_with_errors,
    )

    print("\n" + "=" * 50)
    print("🌐 Local funcbridge server running!")
    print("=" * 50)
    print(f"URL: http://{host}:{port}")
    print(f"Handler: {config.handler}")
    print("\nPress Ctrl+C to stop")
    print("=" * 50 + "\n")

    web.run_app(create_app(dispatcher), host=host, port=port, print=None)


if __name__ == "__main__":
    main()
