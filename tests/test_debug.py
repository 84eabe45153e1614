"""Tests for verbose debug output."""

import io
from datetime import datetime

from http_engine import BasicAuth, Request, Response
from http_engine._debug import DebugInfo, DebugOutput


class TestDebugInfo:
    """Tests for DebugInfo.capture."""

    def test_request_only(self):
        """Test capture before any response exists."""
        request = Request("GET", "https://example.com/", auth=BasicAuth("user", "secret"))
        info = DebugInfo.capture(request, {"Accept": "*/*"})

        assert info.method == "GET"
        assert info.url == "https://example.com/"
        assert info.timeout_ms == 30000
        assert info.request_headers["Authorization"] == "Basic ****"
        assert info.request_headers["Accept"] == "*/*"
        assert info.status_code is None

    def test_suppressed_headers_left_out(self):
        """Test None-valued headers are not reported."""
        request = Request("GET", "https://example.com", headers={"Accept": None})

        assert "Accept" not in DebugInfo.capture(request, {"Accept": "*/*"}).request_headers

    def test_unopened_response_not_touched(self, routes_transport, recorded):
        """Test capturing never connects."""
        request = Request("GET", "https://example.com")
        response = Response(request, transport=routes_transport, trust_env=False)
        info = DebugInfo.capture(request, response=response)

        assert info.status_code is None
        assert recorded == []

    def test_redirect_chain(self, routes_transport):
        """Test the chain and final response are recorded."""
        request = Request("GET", "https://example.com/start")
        response = Response(request, transport=routes_transport, trust_env=False).open()
        info = DebugInfo.capture(request, response=response)

        assert info.status_code == 200
        assert info.final_url == "https://example.com/final"
        assert info.redirects == [
            (302, "https://example.com/start"),
            (302, "https://example.com/next"),
        ]
        assert info.content_length == 4
        assert info.content_preview == "done"

    def test_error(self):
        """Test errors are recorded with their type."""
        request = Request("GET", "https://example.com")
        info = DebugInfo.capture(request, error=ValueError("bad"))

        assert info.error == "ValueError: bad"


class TestDebugOutput:
    """Tests for DebugOutput."""

    def _info(self, **kwargs) -> DebugInfo:
        defaults = dict(
            timestamp=datetime(2024, 1, 2, 3, 4, 5),
            method="GET",
            url="https://example.com",
            request_headers={"Accept": "*/*"},
        )
        defaults.update(kwargs)
        return DebugInfo(**defaults)

    def test_inactive_by_default(self):
        """Test nothing is active without output or callback."""
        assert not DebugOutput().active

    def test_callback_without_printing(self):
        """Test the callback runs even when printing is disabled."""
        received = []
        output = io.StringIO()
        debug = DebugOutput(enabled=False, output=output, callback=received.append)
        info = self._info()

        assert debug.active
        debug.log_request(info)

        assert received == [info]
        assert output.getvalue() == ""

    def test_formatted_output(self):
        """Test the printed block."""
        output = io.StringIO()
        debug = DebugOutput(enabled=True, output=output)
        debug.log_request(self._info(
            status_code=200,
            final_url="https://example.com/final",
            redirects=[(302, "https://example.com")],
            content_length=2048,
            content_preview="line\nnext",
            elapsed=0.25,
        ))
        text = output.getvalue()

        assert "[2024-01-02 03:04:05] GET https://example.com" in text
        assert "Stream: OFF | Redirects: ON | Timeout: 0ms" in text
        assert "  Accept: */*" in text
        assert "< 302 https://example.com" in text
        assert "< HTTP 200  [0.250s]" in text
        assert "< Redirected to: https://example.com/final" in text
        assert "< Content Length: 2,048 bytes" in text
        assert "< Body Preview: line\\nnext" in text

    def test_formatted_error(self):
        """Test errors are printed instead of a status."""
        output = io.StringIO()
        DebugOutput(enabled=True, output=output).log_request(self._info(error="NetworkError: Failed"))

        assert "< ERROR: NetworkError: Failed" in output.getvalue()
