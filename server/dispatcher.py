"""Adapter dispatcher for funcbridge.

The dispatcher owns an ordered list of adapters, picks the first one whose
can_handle accepts the incoming event, forwards the canonical request to the
application handler and translates the result back. Handler failures are
answered through the adapter's on_error_while_forwarding.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, Union

from core.interfaces import AdapterContract, AdapterRequest, AdapterResponse
from core.logging_utils import format_request_log, format_response_log
from core.resolver import DelegatedResolver

logger = logging.getLogger(__name__)

HandlerResult = Union[AdapterResponse, Dict[str, Any]]
RequestHandler = Callable[
    [AdapterRequest], Union[HandlerResult, Awaitable[HandlerResult]]
]


class NoAdapterFoundError(Exception):
    """Raised when no registered adapter recognizes an event."""

    pass


class AdapterDispatcher:
    """Selects an adapter per event and forwards it to the application handler."""

    def __init__(
        self,
        handler: RequestHandler,
        adapters: Sequence[AdapterContract],
        respond_with_errors: bool = False,
        log: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            handler: Application handler, sync or async
            adapters: Adapters probed in order
            respond_with_errors: Expose error tracebacks in 500 responses
            log: Logger handed to adapters (defaults to this module's logger)
        """
        if not adapters:
            raise ValueError("At least one adapter is required")

        self.handler = handler
        self.adapters = tuple(adapters)
        self.respond_with_errors = respond_with_errors
        self.log = log or logger

    def get_adapter(self, event: Any) -> AdapterContract:
        """Get the first adapter that can handle the event.

        Args:
            event: Opaque platform event

        Returns:
            Matching adapter

        Raises:
            NoAdapterFoundError: If no adapter recognizes the event
        """
        for adapter in self.adapters:
            if adapter.can_handle(event):
                return adapter

        names = ", ".join(adapter.get_adapter_name() for adapter in self.adapters)
        raise NoAdapterFoundError(
            f"No adapter can handle this event. Registered adapters: {names}"
        )

    def forward(self, event: Any) -> Dict[str, Any]:
        """Forward an event to the handler and return the platform response.

        Coroutine handlers are run to completion with asyncio.run, so this
        must not be called from a running event loop; use forward_async there.

        Args:
            event: Opaque platform event

        Returns:
            Platform response

        Raises:
            NoAdapterFoundError: If no adapter recognizes the event
        """
        adapter = self.get_adapter(event)
        start_time = time.perf_counter()

        try:
            request = self._get_request(adapter, event)
            result = self.handler(request)
            if asyncio.iscoroutine(result):
                result = asyncio.run(result)
            return self._get_response(adapter, event, result, start_time)
        except Exception as e:
            return self._on_error(adapter, event, e, start_time)

    async def forward_async(self, event: Any) -> Dict[str, Any]:
        """Async variant of forward, awaiting coroutine handlers.

        Args:
            event: Opaque platform event

        Returns:
            Platform response

        Raises:
            NoAdapterFoundError: If no adapter recognizes the event
        """
        adapter = self.get_adapter(event)
        start_time = time.perf_counter()

        try:
            request = self._get_request(adapter, event)
            result = self.handler(request)
            if asyncio.iscoroutine(result):
                result = await result
            return self._get_response(adapter, event, result, start_time)
        except Exception as e:
            return self._on_error(adapter, event, e, start_time)

    def _get_request(self, adapter: AdapterContract, event: Any) -> AdapterRequest:
        request = adapter.get_request(event)

        request_log_data = format_request_log(
            adapter_name=adapter.get_adapter_name(),
            http_method=request.method,
            request_path=request.path,
            headers=request.headers,
            body=request.body,
            remote_address=request.remote_address,
        )
        self.log.info("Incoming request", extra=request_log_data)

        return request

    def _get_response(
        self,
        adapter: AdapterContract,
        event: Any,
        result: HandlerResult,
        start_time: float,
    ) -> Dict[str, Any]:
        if isinstance(result, dict):
            result = AdapterResponse.model_validate(result)
        if not isinstance(result, AdapterResponse):
            raise TypeError(
                f"Handler must return an AdapterResponse, got {type(result).__name__}"
            )

        platform_response = adapter.get_response(
            headers=result.headers,
            body=result.body,
            status_code=result.status_code,
            event=event,
            is_base64_encoded=result.is_base64_encoded,
            log=self.log,
        )

        duration_ms = (time.perf_counter() - start_time) * 1000
        response_log_data = format_response_log(
            adapter_name=adapter.get_adapter_name(),
            status_code=result.status_code,
            headers=result.headers,
            body=result.body,
            duration_ms=duration_ms,
            success=True,
        )
        self.log.info("Request processed successfully", extra=response_log_data)

        return platform_response

    def _on_error(
        self,
        adapter: AdapterContract,
        event: Any,
        error: Exception,
        start_time: float,
    ) -> Dict[str, Any]:
        duration_ms = (time.perf_counter() - start_time) * 1000
        self.log.error(
            f"Error while forwarding request: {error}",
            extra={
                "adapter": adapter.get_adapter_name(),
                "error_type": type(error).__name__,
                "duration_ms": round(duration_ms, 2),
            },
            exc_info=True,
        )

        resolver = DelegatedResolver()
        adapter.on_error_while_forwarding(
            error=error,
            delegated_resolver=resolver,
            respond_with_errors=self.respond_with_errors,
            event=event,
            log=self.log,
        )

        if not resolver.done:
            # Adapter broke the contract
            self.log.error(
                "Adapter did not resolve the error response",
                extra={"adapter": adapter.get_adapter_name()},
            )
            return {"statusCode": 500, "body": "", "headers": {}}

        return resolver.result()
