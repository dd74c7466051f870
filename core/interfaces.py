"""Core interfaces and data models for funcbridge adapters.

This module defines the canonical request/response models and the abstract
base class that every platform adapter must implement. The application
handler only ever sees these canonical shapes.
"""

import logging
import traceback
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from core.resolver import DelegatedResolver

HeaderValue = Union[str, List[str]]


class AdapterRequest(BaseModel):
    """Canonical request produced by an adapter from a platform event."""

    method: str = Field(..., description="HTTP method (e.g., GET, POST)")
    path: str = Field(..., description="Request path including the query string")
    headers: Dict[str, HeaderValue] = Field(
        default_factory=dict, description="Request headers with lowercased keys"
    )
    body: Optional[bytes] = Field(None, description="Raw request body bytes")
    remote_address: Optional[str] = Field(
        None, description="Client address taken from the platform event"
    )


class AdapterResponse(BaseModel):
    """Canonical response returned by the application handler."""

    status_code: int = Field(..., ge=100, le=599, description="HTTP status code")
    headers: Dict[str, HeaderValue] = Field(
        default_factory=dict, description="Response headers"
    )
    body: Optional[Union[str, bytes]] = Field(None, description="Response body")
    is_base64_encoded: bool = Field(
        default=False, description="Whether body is already base64 encoded"
    )


class AdapterOptions(BaseModel):
    """Options shared by every adapter. Immutable once built."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    strip_base_path: Optional[str] = Field(
        default="", description="Base path to strip for custom domains"
    )


class AdapterContract(ABC):
    """Abstract base class for all platform adapters.

    An adapter translates one hosting platform's event into an
    AdapterRequest and an AdapterResponse back into the platform's response
    shape. Instances hold only immutable options and are shared across
    concurrent requests.
    """

    def get_adapter_name(self) -> str:
        """Get the stable name of this adapter, used in logs."""
        return type(self).__name__

    def get_error_body(self, error: BaseException, respond_with_errors: bool) -> str:
        """Get the 500 body: the formatted traceback, or '' unless opted in."""
        if not respond_with_errors:
            return ""
        return "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )

    @abstractmethod
    def can_handle(self, event: Any) -> bool:
        """Check whether the event belongs to this adapter's platform.

        Must never raise: malformed input returns False.

        Args:
            event: Opaque platform event

        Returns:
            True if this adapter can translate the event
        """
        pass

    @abstractmethod
    def get_request(self, event: Any) -> AdapterRequest:
        """Translate a recognized platform event into a canonical request.

        Args:
            event: Platform event for which can_handle returned True

        Returns:
            Canonical request
        """
        pass

    @abstractmethod
    def get_response(
        self,
        *,
        headers: Dict[str, HeaderValue],
        body: Optional[Union[str, bytes]],
        status_code: int,
        event: Any,
        is_base64_encoded: bool = False,
        log: Optional[logging.Logger] = None,
    ) -> Dict[str, Any]:
        """Translate a canonical response into the platform response shape.

        Args:
            headers: Response headers
            body: Response body
            status_code: HTTP status code
            event: The platform event being answered
            is_base64_encoded: Whether body is already base64 encoded
            log: Logger supplied by the dispatcher

        Returns:
            Platform response dictionary
        """
        pass

    @abstractmethod
    def on_error_while_forwarding(
        self,
        *,
        error: BaseException,
        delegated_resolver: DelegatedResolver,
        respond_with_errors: bool,
        event: Any,
        log: Optional[logging.Logger] = None,
    ) -> None:
        """Answer a request whose downstream handler raised.

        Implementations must not raise and must complete delegated_resolver
        exactly once.

        Args:
            error: Exception raised by the downstream handler
            delegated_resolver: Completion handle for the pending response
            respond_with_errors: Whether to expose error details in the body
            event: The platform event being answered
            log: Logger supplied by the dispatcher
        """
        pass
