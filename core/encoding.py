"""Body and header encoding helpers shared by all adapters.

These are pure functions: they never touch the event they are given and
never perform I/O.
"""

import base64
import binascii
from typing import Any, Dict, List, Mapping, Optional, Tuple, TypeVar, Union
from urllib.parse import urlencode

T = TypeVar("T")

QueryParams = Union[str, Mapping[str, Any], None]


class BodyDecodingError(ValueError):
    """Raised when a base64-flagged body cannot be decoded."""

    pass


def get_default_if_undefined(value: Optional[T], fallback: T) -> T:
    """Return fallback only when value is None.

    Empty strings, 0 and False are real values and are returned unchanged.
    """
    return fallback if value is None else value


def get_event_body_as_bytes(body: str, is_base64_encoded: bool) -> Tuple[bytes, int]:
    """Decode an event body into raw bytes.

    Args:
        body: Body string as delivered by the platform
        is_base64_encoded: Whether the platform flagged the body as base64

    Returns:
        Tuple of (body_bytes, content_length) where content_length is the
        decoded byte length

    Raises:
        BodyDecodingError: If a base64-flagged body is not valid base64
    """
    if is_base64_encoded:
        body_bytes = _decode_base64(body)
    else:
        body_bytes = body.encode("utf-8")

    return body_bytes, len(body_bytes)


def _decode_base64(body: str) -> bytes:
    # Accept the URL-safe alphabet and missing padding, as platforms differ.
    normalized = "".join(body.split()).replace("-", "+").replace("_", "/")
    normalized = normalized.rstrip("=")
    normalized += "=" * (-len(normalized) % 4)

    try:
        return base64.b64decode(normalized, validate=True)
    except (binascii.Error, ValueError) as e:
        raise BodyDecodingError(f"Invalid base64-encoded body: {e}") from e


def get_flattened_headers_map(
    headers: Mapping[str, Any],
    separator: str = ",",
    lower_case_key: bool = False,
) -> Dict[str, str]:
    """Flatten multi-value headers into one string per key.

    Args:
        headers: Headers whose values are strings or lists of strings
        separator: Delimiter used to join multiple values
        lower_case_key: If True, lowercase every key

    Returns:
        Headers dictionary with a single string per key
    """
    flattened = {}
    for key, value in headers.items():
        output_key = key.lower() if lower_case_key else key
        if isinstance(value, (list, tuple)):
            flattened[output_key] = separator.join(str(item) for item in value)
        else:
            flattened[output_key] = "" if value is None else str(value)
    return flattened


def get_lowercased_headers_map(headers: Any) -> Dict[str, Union[str, List[str]]]:
    """Copy event headers with lowercased keys and string values.

    Anything that is not a mapping yields an empty dict; None values are
    dropped.
    """
    if not isinstance(headers, Mapping):
        return {}

    normalized: Dict[str, Union[str, List[str]]] = {}
    for key, value in headers.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            normalized[str(key).lower()] = [str(item) for item in value]
        else:
            normalized[str(key).lower()] = str(value)
    return normalized


def get_multi_value_headers_map(headers: Mapping[str, Any]) -> Dict[str, List[str]]:
    """Expand headers so that every value is a list of strings.

    Args:
        headers: Headers whose values are strings or lists of strings

    Returns:
        Headers dictionary with a list of strings per key
    """
    multi_value = {}
    for key, value in headers.items():
        if isinstance(value, (list, tuple)):
            multi_value[key] = [str(item) for item in value]
        elif value is None:
            multi_value[key] = [""]
        else:
            multi_value[key] = [str(value)]
    return multi_value


def get_path_with_query_string_params(path: str, query_params: QueryParams) -> str:
    """Append query parameters to a path.

    List values are emitted as repeated key=value pairs in their original
    order. A string is taken as an already-encoded query string.

    Args:
        path: Request path without a query string
        query_params: Query parameters mapping or raw query string

    Returns:
        Path, followed by '?' and the encoded query when there is one
    """
    if not query_params:
        return path

    if isinstance(query_params, str):
        return f"{path}?{query_params.lstrip('?')}"

    pairs = []
    for key, value in query_params.items():
        if isinstance(value, (list, tuple)):
            pairs.extend((key, item) for item in value if item is not None)
        elif value is not None:
            pairs.append((key, value))

    query_string = urlencode(pairs)
    if not query_string:
        return path

    return f"{path}?{query_string}"


def strip_base_path(path: str, base_path: str) -> str:
    """Remove base_path from the start of path.

    The base path is matched as a literal prefix anchored at position 0 and
    ending on a segment boundary, so '/api' strips '/api/users' and '/api'
    but not '/apiv2/users'. A trailing '/' on base_path is ignored.
    """
    base_path = base_path.rstrip("/") if base_path else ""
    if not base_path or not path.startswith(base_path):
        return path

    remainder = path[len(base_path):]
    if remainder and not remainder.startswith(("/", "?")):
        return path
    return remainder
