"""DigitalOcean Functions adapter for funcbridge.

This adapter transforms events from DigitalOcean Functions invoked through
their HTTP endpoint (raw HTTP web actions, whose fields are prefixed with
__ow_) into the canonical AdapterRequest, and canonical responses back into
the {statusCode, body, headers} shape the runtime expects.
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional, Union

from core.encoding import (
    BodyDecodingError,
    get_default_if_undefined,
    get_event_body_as_bytes,
    get_flattened_headers_map,
    get_lowercased_headers_map,
    get_path_with_query_string_params,
    strip_base_path,
)
from core.interfaces import AdapterContract, AdapterOptions, AdapterRequest, HeaderValue
from core.resolver import DelegatedResolver

logger = logging.getLogger(__name__)

# Marker fields every HTTP-triggered DigitalOcean event carries
REQUIRED_EVENT_FIELDS = ("__ow_path", "__ow_method", "__ow_headers")


class HttpFunctionAdapterOptions(AdapterOptions):
    """Options to customize the HttpFunctionAdapter."""

    pass


class HttpFunctionAdapter(AdapterContract):
    """Adapter for DigitalOcean Functions called from an HTTP endpoint.

    Example:
        adapter = HttpFunctionAdapter(
            HttpFunctionAdapterOptions(strip_base_path="/any/custom/base/path")
        )
    """

    def __init__(self, options: Optional[HttpFunctionAdapterOptions] = None) -> None:
        self.options = options or HttpFunctionAdapterOptions()

    def can_handle(self, event: Any) -> bool:
        """Check for the __ow_path, __ow_method and __ow_headers markers."""
        if not isinstance(event, Mapping):
            return False

        return all(event.get(field) is not None for field in REQUIRED_EVENT_FIELDS)

    def get_request(self, event: Mapping[str, Any]) -> AdapterRequest:
        """Transform a DigitalOcean HTTP event into a canonical request.

        Args:
            event: DigitalOcean event with __ow_* fields

        Returns:
            Canonical request
        """
        headers = get_lowercased_headers_map(event.get("__ow_headers"))
        method = str(event.get("__ow_method")).upper()
        path = self.get_path_from_event(event)

        body = None
        raw_body = event.get("__ow_body")
        if isinstance(raw_body, (dict, list)):
            raw_body = json.dumps(raw_body)

        if raw_body:
            try:
                body, content_length = get_event_body_as_bytes(
                    str(raw_body), bool(event.get("__ow_isBase64Encoded"))
                )
                headers["content-length"] = str(content_length)
            except BodyDecodingError as e:
                logger.warning(
                    f"Ignoring undecodable request body: {e}",
                    extra={"adapter": self.get_adapter_name(), "request_path": path},
                )

        remote_address = headers.get("x-forwarded-for")
        if isinstance(remote_address, list):
            remote_address = remote_address[0] if remote_address else None

        return AdapterRequest(
            method=method,
            path=path,
            headers=headers,
            body=body,
            remote_address=remote_address,
        )

    def get_response(
        self,
        *,
        headers: Dict[str, HeaderValue],
        body: Optional[Union[str, bytes]],
        status_code: int,
        event: Any = None,
        is_base64_encoded: bool = False,
        log: Optional[logging.Logger] = None,
    ) -> Dict[str, Any]:
        """Build the DigitalOcean response with flattened headers."""
        return {
            "statusCode": status_code,
            "body": "" if body is None else body,
            "headers": get_flattened_headers_map(headers),
        }

    def on_error_while_forwarding(
        self,
        *,
        error: BaseException,
        delegated_resolver: DelegatedResolver,
        respond_with_errors: bool,
        event: Any = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        """Resolve the exchange with a 500 response.

        The traceback is only included in the body when respond_with_errors
        is set.
        """
        log = log or logger

        try:
            body = self.get_error_body(error, respond_with_errors)
            error_response = self.get_response(
                event=event,
                status_code=500,
                body=body,
                headers={},
                is_base64_encoded=False,
                log=log,
            )
        except Exception as e:
            log.error(
                f"Failed to build error response: {e}",
                extra={"adapter": self.get_adapter_name()},
                exc_info=True,
            )
            error_response = {"statusCode": 500, "body": "", "headers": {}}

        delegated_resolver.succeed(error_response)

    def get_path_from_event(self, event: Mapping[str, Any]) -> str:
        """Get path from event with base path stripped and query string added.

        Args:
            event: The event sent by DigitalOcean

        Returns:
            Request path with query string
        """
        base_path = get_default_if_undefined(self.options.strip_base_path, "")
        path = strip_base_path(str(event.get("__ow_path")), base_path) or "/"

        query_params = event.get("__ow_query")
        if not isinstance(query_params, (Mapping, str)):
            query_params = {}

        return get_path_with_query_string_params(path, query_params)
