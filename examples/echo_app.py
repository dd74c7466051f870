"""Example application handler for funcbridge.

Echoes the canonical request back as JSON. Point config.yaml at it with
handler: "examples.echo_app:handle".
"""

import base64
import json

from core.interfaces import AdapterRequest, AdapterResponse


def handle(request: AdapterRequest) -> AdapterResponse:
    """Echo the request method, path, headers and body."""
    if request.path.startswith("/fail"):
        raise RuntimeError("Requested failure")

    body = None
    if request.body is not None:
        try:
            body = request.body.decode("utf-8")
        except UnicodeDecodeError:
            body = base64.b64encode(request.body).decode("ascii")

    payload = {
        "method": request.method,
        "path": request.path,
        "headers": request.headers,
        "body": body,
        "remote_address": request.remote_address,
    }

    return AdapterResponse(
        status_code=200,
        headers={"content-type": "application/json"},
        body=json.dumps(payload),
    )


async def handle_async(request: AdapterRequest) -> AdapterResponse:
    """Coroutine variant of handle."""
    return handle(request)
