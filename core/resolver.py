"""Single-use completion handle for pending response exchanges."""

import threading
from typing import Any, Optional


class ResolverAlreadyCompletedError(RuntimeError):
    """Raised when a DelegatedResolver is completed more than once."""

    pass


class DelegatedResolver:
    """Completion handle passed by the dispatcher to an adapter.

    The adapter completes the pending exchange with either succeed() or
    fail(). Exactly one completion is accepted.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._done = False
        self._response: Optional[Any] = None
        self._error: Optional[BaseException] = None

    @property
    def done(self) -> bool:
        """Check if the exchange has been completed."""
        return self._done

    def succeed(self, response: Any) -> None:
        """Complete the exchange with a platform response.

        Args:
            response: Platform response to return to the caller

        Raises:
            ResolverAlreadyCompletedError: If already completed
        """
        self._complete(response=response)

    def fail(self, error: BaseException) -> None:
        """Complete the exchange with an error.

        Args:
            error: Error to surface to the caller

        Raises:
            ResolverAlreadyCompletedError: If already completed
        """
        self._complete(error=error)

    def result(self) -> Any:
        """Get the completed response, re-raising the error if failed.

        Raises:
            RuntimeError: If the exchange has not been completed
        """
        if not self._done:
            raise RuntimeError("Resolver has not been completed")
        if self._error is not None:
            raise self._error
        return self._response

    def _complete(
        self, response: Optional[Any] = None, error: Optional[BaseException] = None
    ) -> None:
        with self._lock:
            if self._done:
                raise ResolverAlreadyCompletedError(
                    "Response exchange was already completed"
                )
            self._response = response
            self._error = error
            self._done = True
