"""
Unit tests for HTTPError.
"""

import json

import pytest

from microserve.http.errors import HTTPError
from microserve.http.response import HTTPResponse


class TestHTTPError:
    """Tests for HTTPError construction and rendering."""

    def test_fields(self):
        """code and message are stored as given."""
        error = HTTPError(400, "bad input")

        assert error.code == 400
        assert error.message == "bad input"
        assert error.headers == {}

    def test_str(self):
        assert str(HTTPError(404, "missing")) == "404: missing"

    def test_is_exception(self):
        """HTTPError can be raised and caught."""
        with pytest.raises(HTTPError) as exc_info:
            raise HTTPError(403, "forbidden")

        assert exc_info.value.code == 403

    def test_to_response(self):
        """Status equals code; body embeds the message."""
        response = HTTPError(400, "bad input").to_response()

        assert isinstance(response, HTTPResponse)
        assert response.status == 400
        assert json.loads(response.body) == {"error": "bad input"}
        assert response.headers["Content-Type"].startswith("application/json")

    def test_headers_copied_into_response(self):
        """Extra headers travel with the response."""
        source = {"Retry-After": "5"}
        error = HTTPError(429, "slow down", headers=source)
        source["Retry-After"] = "99"

        response = error.to_response()

        assert response.headers["Retry-After"] == "5"

    def test_out_of_range_code_not_validated(self):
        """Codes outside 100-599 are accepted and rendered unchanged."""
        error = HTTPError(700, "odd")
        response = error.to_response()

        assert response.status == 700
        assert response.status_line == "HTTP/1.1 700 Unknown"
        assert response.to_bytes().startswith(b"HTTP/1.1 700 Unknown\r\n")

    def test_zero_code_not_validated(self):
        assert HTTPError(0, "zero").to_response().status == 0

    def test_empty_message_still_has_body(self):
        """The JSON body is never empty."""
        response = HTTPError(400, "").to_response()

        assert response.body == b'{"error": ""}'
