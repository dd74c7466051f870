"""Tests for the DigitalOcean HTTP function adapter.

These tests verify event recognition, request transformation, response
flattening and the 500 fallback.
"""

import base64
import json
from typing import Any, Dict
from unittest.mock import Mock, patch

import pytest
from pydantic import ValidationError

from core.interfaces import AdapterRequest
from core.resolver import DelegatedResolver
from server.adapters.digital_ocean import HttpFunctionAdapter, HttpFunctionAdapterOptions


def make_event(**fields: Any) -> Dict[str, Any]:
    """Build a DigitalOcean HTTP event; keyword names omit the __ow_ prefix."""
    event = {
        "__ow_method": "get",
        "__ow_path": "/users",
        "__ow_headers": {
            "accept": "application/json",
            "host": "example.com",
            "x-forwarded-for": "203.0.113.7",
        },
    }
    event.update({f"__ow_{key}": value for key, value in fields.items()})
    return event


def raise_and_catch(error: Exception) -> Exception:
    """Raise error so that it carries a traceback."""
    try:
        raise error
    except Exception as e:
        return e


class TestCanHandle:
    """Test event recognition."""

    def test_recognizes_http_event(self):
        """Test that an event with all markers is accepted."""
        assert HttpFunctionAdapter().can_handle(make_event()) is True

    @pytest.mark.parametrize(
        "event",
        [
            None,
            "event",
            42,
            ["__ow_path"],
            {},
            {"__ow_path": "/", "__ow_method": "get"},
            {"__ow_path": "/", "__ow_method": "get", "__ow_headers": None},
            {"httpMethod": "GET", "path": "/", "requestContext": {}},
        ],
    )
    def test_rejects_other_events(self, event):
        """Test that malformed or foreign events return False."""
        assert HttpFunctionAdapter().can_handle(event) is False

    def test_adapter_name(self):
        """Test that the adapter name is the class name."""
        assert HttpFunctionAdapter().get_adapter_name() == "HttpFunctionAdapter"


class TestGetRequest:
    """Test event to canonical request transformation."""

    def test_extracts_method_path_headers_and_remote_address(self):
        """Test basic field extraction."""
        request = HttpFunctionAdapter().get_request(make_event())

        assert isinstance(request, AdapterRequest)
        assert request.method == "GET"
        assert request.path == "/users"
        assert request.headers["host"] == "example.com"
        assert request.remote_address == "203.0.113.7"
        assert request.body is None

    def test_header_keys_are_lowercased(self):
        """Test that header keys are normalized to lowercase."""
        event = make_event(headers={"Content-Type": "text/plain"})

        request = HttpFunctionAdapter().get_request(event)

        assert request.headers == {"content-type": "text/plain"}

    def test_missing_forwarded_for_leaves_remote_address_absent(self):
        """Test that no synthetic remote address is produced."""
        event = make_event(headers={"host": "example.com"})

        request = HttpFunctionAdapter().get_request(event)

        assert request.remote_address is None

    def test_multi_value_forwarded_for_uses_first_value(self):
        """Test remote address when x-forwarded-for is a list."""
        event = make_event(headers={"x-forwarded-for": ["198.51.100.1", "10.0.0.1"]})

        request = HttpFunctionAdapter().get_request(event)

        assert request.remote_address == "198.51.100.1"

    def test_query_params_are_appended(self):
        """Test that __ow_query mappings are merged into the path."""
        event = make_event(query={"id": "1", "tag": ["a", "b"]})

        request = HttpFunctionAdapter().get_request(event)

        assert request.path == "/users?id=1&tag=a&tag=b"

    def test_raw_query_string_is_appended(self):
        """Test that a raw __ow_query string is appended verbatim."""
        event = make_event(query="page=2&sort=name")

        request = HttpFunctionAdapter().get_request(event)

        assert request.path == "/users?page=2&sort=name"

    def test_malformed_query_is_ignored(self):
        """Test that an unusable __ow_query degrades to no query."""
        event = make_event(query=12)

        request = HttpFunctionAdapter().get_request(event)

        assert request.path == "/users"

    def test_malformed_headers_degrade_to_empty(self):
        """Test that non-mapping headers become an empty mapping."""
        event = make_event(headers="not-a-mapping")

        request = HttpFunctionAdapter().get_request(event)

        assert request.headers == {}
        assert request.remote_address is None

    def test_empty_path_becomes_root(self):
        """Test that an empty recognized path yields '/'."""
        request = HttpFunctionAdapter().get_request(make_event(path=""))

        assert request.path == "/"


class TestStripBasePath:
    """Test base path stripping."""

    def test_default_does_not_strip(self):
        """Test that no options means no stripping."""
        request = HttpFunctionAdapter().get_request(make_event(path="/api/users"))

        assert request.path == "/api/users"

    def test_strips_anchored_prefix(self):
        """Test that a configured prefix at position 0 is removed."""
        adapter = HttpFunctionAdapter(HttpFunctionAdapterOptions(strip_base_path="/api"))

        request = adapter.get_request(make_event(path="/api/users"))

        assert request.path == "/users"

    def test_does_not_strip_mid_path(self):
        """Test that the prefix is not removed from the middle of the path."""
        adapter = HttpFunctionAdapter(HttpFunctionAdapterOptions(strip_base_path="/api"))

        request = adapter.get_request(make_event(path="/other/api/x"))

        assert request.path == "/other/api/x"

    def test_does_not_strip_partial_segment(self):
        """Test that '/api' leaves '/apiv2/users' intact."""
        adapter = HttpFunctionAdapter(HttpFunctionAdapterOptions(strip_base_path="/api"))

        request = adapter.get_request(make_event(path="/apiv2/users"))

        assert request.path == "/apiv2/users"

    def test_path_equal_to_base_path_becomes_root(self):
        """Test that stripping the whole path yields '/'."""
        adapter = HttpFunctionAdapter(HttpFunctionAdapterOptions(strip_base_path="/api"))

        request = adapter.get_request(make_event(path="/api", query={"id": "1"}))

        assert request.path == "/?id=1"

    def test_strip_happens_before_query_is_appended(self):
        """Test stripping combined with query reconstruction."""
        adapter = HttpFunctionAdapter(HttpFunctionAdapterOptions(strip_base_path="/api"))
        event = make_event(path="/api/users", query={"id": "1"})

        request = adapter.get_request(event)

        assert request.path == "/users?id=1"

    def test_none_strip_base_path_means_no_stripping(self):
        """Test that an explicit None falls back to the empty default."""
        adapter = HttpFunctionAdapter(HttpFunctionAdapterOptions(strip_base_path=None))

        request = adapter.get_request(make_event(path="/api/users"))

        assert request.path == "/api/users"

    def test_options_are_immutable(self):
        """Test that options cannot be changed after construction."""
        options = HttpFunctionAdapterOptions(strip_base_path="/api")

        with pytest.raises(ValidationError):
            options.strip_base_path = "/other"


class TestRequestBody:
    """Test request body decoding."""

    def test_base64_body_is_decoded_and_content_length_set(self):
        """Test that base64 bodies become raw bytes with decoded length."""
        raw = b"\x00\x01binary\xff"
        event = make_event(
            body=base64.b64encode(raw).decode("ascii"),
            isBase64Encoded=True,
        )

        request = HttpFunctionAdapter().get_request(event)

        assert request.body == raw
        assert request.headers["content-length"] == str(len(raw))

    def test_text_body_is_utf8_encoded(self):
        """Test that plain bodies are UTF-8 encoded."""
        event = make_event(body='{"name": "café"}')

        request = HttpFunctionAdapter().get_request(event)

        assert request.body == '{"name": "café"}'.encode("utf-8")
        assert request.headers["content-length"] == "17"

    def test_content_length_is_overwritten(self):
        """Test that a stale content-length header is replaced."""
        event = make_event(
            headers={"Content-Length": "999"},
            body="hello",
        )

        request = HttpFunctionAdapter().get_request(event)

        assert request.headers["content-length"] == "5"

    def test_no_body_leaves_headers_untouched(self):
        """Test that no content-length is added without a body."""
        request = HttpFunctionAdapter().get_request(make_event(body=""))

        assert request.body is None
        assert "content-length" not in request.headers

    def test_dict_body_is_serialized(self):
        """Test that a mapping body is JSON encoded."""
        event = make_event(body={"jsonrpc": "2.0", "id": 1})

        request = HttpFunctionAdapter().get_request(event)

        assert json.loads(request.body) == {"jsonrpc": "2.0", "id": 1}

    @pytest.mark.parametrize("body", ["a", "@@@@", "aGVsbG8=!!!!", "aGk=aGk="])
    def test_invalid_base64_body_degrades_to_no_body(self, body):
        """Test that an undecodable body is dropped, never cut short."""
        event = make_event(body=body, isBase64Encoded=True)

        request = HttpFunctionAdapter().get_request(event)

        assert request.body is None
        assert "content-length" not in request.headers

    def test_event_is_not_mutated(self):
        """Test that the event headers are left unchanged."""
        event = make_event(body="hello")

        HttpFunctionAdapter().get_request(event)

        assert "content-length" not in event["__ow_headers"]


class TestGetResponse:
    """Test canonical response to DigitalOcean response transformation."""

    def test_headers_are_flattened(self):
        """Test that multi-value headers are joined."""
        response = HttpFunctionAdapter().get_response(
            headers={"set-cookie": ["a=1", "b=2"], "content-type": "text/plain"},
            body="ok",
            status_code=201,
            event=make_event(),
        )

        assert response == {
            "statusCode": 201,
            "body": "ok",
            "headers": {"set-cookie": "a=1,b=2", "content-type": "text/plain"},
        }

    def test_body_passes_through_unchanged(self):
        """Test that bytes bodies are not re-encoded."""
        response = HttpFunctionAdapter().get_response(
            headers={}, body=b"\x00\x01", status_code=200, event=make_event()
        )

        assert response["body"] == b"\x00\x01"

    def test_none_body_becomes_empty_string(self):
        """Test that a missing body is returned as an empty string."""
        response = HttpFunctionAdapter().get_response(
            headers={}, body=None, status_code=204, event=make_event()
        )

        assert response["body"] == ""


class TestOnErrorWhileForwarding:
    """Test the 500 fallback."""

    def test_hides_error_details_by_default(self):
        """Test that the body is empty without respond_with_errors."""
        resolver = Mock(spec=DelegatedResolver)
        error = raise_and_catch(ValueError("secret database password"))

        HttpFunctionAdapter().on_error_while_forwarding(
            error=error,
            delegated_resolver=resolver,
            respond_with_errors=False,
            event=make_event(),
        )

        resolver.succeed.assert_called_once_with(
            {"statusCode": 500, "body": "", "headers": {}}
        )

    def test_includes_traceback_when_requested(self):
        """Test that respond_with_errors exposes the traceback."""
        resolver = Mock(spec=DelegatedResolver)
        error = raise_and_catch(ValueError("boom"))

        HttpFunctionAdapter().on_error_while_forwarding(
            error=error,
            delegated_resolver=resolver,
            respond_with_errors=True,
            event=make_event(),
        )

        resolver.succeed.assert_called_once()
        response = resolver.succeed.call_args[0][0]
        assert response["statusCode"] == 500
        assert "Traceback" in response["body"]
        assert "ValueError: boom" in response["body"]

    def test_error_without_traceback(self):
        """Test an error that was never raised."""
        resolver = DelegatedResolver()

        HttpFunctionAdapter().on_error_while_forwarding(
            error=RuntimeError("not raised"),
            delegated_resolver=resolver,
            respond_with_errors=True,
            event=make_event(),
        )

        assert "RuntimeError: not raised" in resolver.result()["body"]

    def test_resolves_even_if_response_building_fails(self):
        """Test that a failing get_response still resolves exactly once."""
        adapter = HttpFunctionAdapter()
        resolver = Mock(spec=DelegatedResolver)
        log = Mock()

        with patch.object(adapter, "get_response", side_effect=RuntimeError("broken")):
            adapter.on_error_while_forwarding(
                error=ValueError("boom"),
                delegated_resolver=resolver,
                respond_with_errors=True,
                event=make_event(),
                log=log,
            )

        resolver.succeed.assert_called_once_with(
            {"statusCode": 500, "body": "", "headers": {}}
        )
        log.error.assert_called_once()
