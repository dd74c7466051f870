"""AWS API Gateway (REST, v1) adapter for funcbridge.

This adapter transforms API Gateway Lambda proxy integration events into the
canonical AdapterRequest. Unlike DigitalOcean, API Gateway accepts
multi-value headers, so responses carry both headers and multiValueHeaders.
"""

import base64
import json
import logging
from typing import Any, Dict, Mapping, Optional, Union

from core.encoding import (
    BodyDecodingError,
    get_default_if_undefined,
    get_event_body_as_bytes,
    get_flattened_headers_map,
    get_lowercased_headers_map,
    get_multi_value_headers_map,
    get_path_with_query_string_params,
    strip_base_path,
)
from core.interfaces import AdapterContract, AdapterOptions, AdapterRequest, HeaderValue
from core.resolver import DelegatedResolver

logger = logging.getLogger(__name__)


class ApiGatewayV1AdapterOptions(AdapterOptions):
    """Options to customize the ApiGatewayV1Adapter."""

    pass


class ApiGatewayV1Adapter(AdapterContract):
    """Adapter for API Gateway REST API proxy events."""

    def __init__(self, options: Optional[ApiGatewayV1AdapterOptions] = None) -> None:
        self.options = options or ApiGatewayV1AdapterOptions()

    def can_handle(self, event: Any) -> bool:
        """Check for httpMethod, path and requestContext markers.

        DigitalOcean events (__ow_path) are rejected so that both adapters
        can be registered together.
        """
        if not isinstance(event, Mapping) or "__ow_path" in event:
            return False

        return (
            isinstance(event.get("httpMethod"), str)
            and isinstance(event.get("path"), str)
            and isinstance(event.get("requestContext"), Mapping)
        )

    def get_request(self, event: Mapping[str, Any]) -> AdapterRequest:
        """Transform an API Gateway proxy event into a canonical request.

        Args:
            event: API Gateway v1 proxy event

        Returns:
            Canonical request
        """
        headers = get_lowercased_headers_map(event.get("headers"))

        # multiValueHeaders holds every value, including the one in headers
        for key, values in get_lowercased_headers_map(
            event.get("multiValueHeaders")
        ).items():
            if isinstance(values, list) and len(values) > 1:
                headers[key] = values

        base_path = get_default_if_undefined(self.options.strip_base_path, "")
        path = strip_base_path(event["path"], base_path) or "/"

        query_params = event.get("multiValueQueryStringParameters")
        if not isinstance(query_params, Mapping):
            query_params = event.get("queryStringParameters")
        if not isinstance(query_params, Mapping):
            query_params = {}
        path = get_path_with_query_string_params(path, query_params)

        body = None
        raw_body = event.get("body")
        if isinstance(raw_body, (dict, list)):
            raw_body = json.dumps(raw_body)

        if raw_body:
            try:
                body, content_length = get_event_body_as_bytes(
                    str(raw_body), bool(event.get("isBase64Encoded"))
                )
                headers["content-length"] = str(content_length)
            except BodyDecodingError as e:
                logger.warning(
                    f"Ignoring undecodable request body: {e}",
                    extra={"adapter": self.get_adapter_name(), "request_path": path},
                )

        return AdapterRequest(
            method=event["httpMethod"].upper(),
            path=path,
            headers=headers,
            body=body,
            remote_address=self._get_remote_address(event, headers),
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
        """Build the API Gateway proxy response.

        Bytes bodies are base64 encoded since API Gateway only carries text.
        """
        if isinstance(body, bytes):
            body = base64.b64encode(body).decode("ascii")
            is_base64_encoded = True

        return {
            "statusCode": status_code,
            "body": "" if body is None else body,
            "headers": get_flattened_headers_map(headers),
            "multiValueHeaders": get_multi_value_headers_map(headers),
            "isBase64Encoded": is_base64_encoded,
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
        """Resolve the exchange with a 500 response."""
        log = log or logger

        try:
            body = self.get_error_body(error, respond_with_errors)
            error_response = self.get_response(
                event=event, status_code=500, body=body, headers={}, log=log
            )
        except Exception as e:
            log.error(
                f"Failed to build error response: {e}",
                extra={"adapter": self.get_adapter_name()},
                exc_info=True,
            )
            error_response = {
                "statusCode": 500,
                "body": "",
                "headers": {},
                "multiValueHeaders": {},
                "isBase64Encoded": False,
            }

        delegated_resolver.succeed(error_response)

    @staticmethod
    def _get_remote_address(
        event: Mapping[str, Any], headers: Mapping[str, HeaderValue]
    ) -> Optional[str]:
        identity = event["requestContext"].get("identity")
        if isinstance(identity, Mapping) and identity.get("sourceIp"):
            return str(identity["sourceIp"])

        forwarded_for = headers.get("x-forwarded-for")
        if isinstance(forwarded_for, list):
            return forwarded_for[0] if forwarded_for else None
        return forwarded_for
