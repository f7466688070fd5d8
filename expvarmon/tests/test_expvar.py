"""
Expvar Monitor - Expvar Tests

Tests for document parsing, path extraction and HTTP fetching.
"""

import asyncio
import socket

import pytest
from aiohttp import web
from aiohttp import test_utils

from expvarmon.errors import (
    EndpointNotFoundError,
    FetchTimeoutError,
    MalformedDocumentError,
    NetworkError,
    PathNotFoundError,
    TypeMismatchError,
    UnexpectedStatusError,
)
from expvarmon.expvar import ExpvarFetcher, extract_value, parse_expvar, resolve_path


SAMPLE = {
    "cmdline": ["/usr/local/bin/app", "-port", "8080"],
    "memstats": {
        "Alloc": 1048576,
        "PauseNs": [100, 200, 300],
        "BySize": [{"Size": 8, "Mallocs": 42}],
    },
    "Goroutines": 12,
    "Ratio": "0.75",
    "Enabled": True,
    "Name": "worker",
}


class TestResolvePath:
    """Test walking the document tree."""

    def test_object_and_array(self):
        """Test mixed object and array access."""
        assert resolve_path({"a": [{"b": 7}]}, ["a", "0", "b"]) == 7

    def test_index_out_of_range(self):
        with pytest.raises(PathNotFoundError):
            resolve_path({"a": []}, ["a", "0", "b"])

    def test_missing_field(self):
        with pytest.raises(PathNotFoundError):
            resolve_path(SAMPLE, ["memstats", "Sys"])

    @pytest.mark.parametrize("segment", ["-1", "x", "1.0", ""])
    def test_invalid_index(self, segment):
        """Test that non-integer segments against arrays are not found."""
        with pytest.raises(PathNotFoundError):
            resolve_path(SAMPLE, ["memstats", "PauseNs", segment])

    def test_lookup_on_scalar(self):
        """Test descending into a scalar."""
        with pytest.raises(TypeMismatchError):
            resolve_path(SAMPLE, ["Goroutines", "count"])

    def test_returns_containers(self):
        assert resolve_path(SAMPLE, ["memstats", "PauseNs"]) == [100, 200, 300]


class TestExtractValue:
    """Test numeric extraction."""

    def test_integer(self):
        assert extract_value(SAMPLE, ("memstats", "Alloc")) == 1048576

    def test_array_element(self):
        assert extract_value(SAMPLE, ("memstats", "PauseNs", "2")) == 300

    def test_nested_array_object(self):
        assert extract_value(SAMPLE, ("memstats", "BySize", "0", "Mallocs")) == 42

    def test_numeric_string(self):
        """Test that numeric strings are converted."""
        assert extract_value(SAMPLE, ("Ratio",)) == 0.75
        assert extract_value({"n": "17"}, ("n",)) == 17

    @pytest.mark.parametrize("path", [("Enabled",), ("Name",), ("memstats",), ("memstats", "PauseNs")])
    def test_non_numeric(self, path):
        """Test that booleans, text and containers are rejected."""
        with pytest.raises(TypeMismatchError):
            extract_value(SAMPLE, path)

    def test_null(self):
        with pytest.raises(TypeMismatchError):
            extract_value({"a": None}, ("a",))

    @pytest.mark.parametrize("value", ["NaN", "inf", "-Infinity", float("nan"), float("inf")])
    def test_non_finite(self, value):
        """Test that NaN and infinities never reach a series."""
        with pytest.raises(TypeMismatchError):
            extract_value({"a": value}, ("a",))

    def test_non_finite_from_document(self):
        document = parse_expvar('{"a": NaN, "b": Infinity}')

        for path in [("a",), ("b",)]:
            with pytest.raises(TypeMismatchError):
                extract_value(document, path)


class TestParseExpvar:
    """Test document parsing."""

    def test_valid_document(self):
        assert parse_expvar('{"a": {"b": 1}}') == {"a": {"b": 1}}

    def test_bytes(self):
        assert parse_expvar(b'{"a": 1}') == {"a": 1}

    def test_invalid_json(self):
        with pytest.raises(MalformedDocumentError):
            parse_expvar("<html>not json</html>")

    def test_not_an_object(self):
        """Test that top-level arrays are rejected."""
        with pytest.raises(MalformedDocumentError):
            parse_expvar("[1, 2, 3]")


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


async def _fetch_from(app: web.Application, path: str, timeout: float = 2.0):
    async with test_utils.TestServer(app) as server:
        async with ExpvarFetcher(timeout=timeout) as fetcher:
            return await fetcher.fetch(str(server.make_url(path)))


class TestExpvarFetcher:
    """Test fetching over HTTP against a local server."""

    def test_fetch_document(self):
        """Test a successful fetch."""
        async def handler(request):
            return web.json_response(SAMPLE)

        app = web.Application()
        app.router.add_get("/debug/vars", handler)

        document = asyncio.run(_fetch_from(app, "/debug/vars"))

        assert document["Goroutines"] == 12
        assert document["memstats"]["Alloc"] == 1048576

    def test_not_found(self):
        """Test that a missing endpoint is reported distinctly."""
        app = web.Application()

        with pytest.raises(EndpointNotFoundError) as exc_info:
            asyncio.run(_fetch_from(app, "/debug/vars"))

        assert "expvars" in exc_info.value.message

    def test_server_error(self):
        async def handler(request):
            return web.Response(status=500, text="boom")

        app = web.Application()
        app.router.add_get("/debug/vars", handler)

        with pytest.raises(UnexpectedStatusError) as exc_info:
            asyncio.run(_fetch_from(app, "/debug/vars"))

        assert exc_info.value.status == 500

    def test_malformed_body(self):
        async def handler(request):
            return web.Response(text="definitely not json")

        app = web.Application()
        app.router.add_get("/debug/vars", handler)

        with pytest.raises(MalformedDocumentError):
            asyncio.run(_fetch_from(app, "/debug/vars"))

    def test_timeout(self):
        """Test that a slow target fails with a timeout, not a hang."""
        async def handler(request):
            await asyncio.sleep(1.0)
            return web.json_response(SAMPLE)

        app = web.Application()
        app.router.add_get("/debug/vars", handler)

        with pytest.raises(FetchTimeoutError) as exc_info:
            asyncio.run(_fetch_from(app, "/debug/vars", timeout=0.1))

        assert isinstance(exc_info.value, NetworkError)

    def test_connection_refused(self):
        """Test that an unreachable target raises NetworkError."""
        async def fetch():
            async with ExpvarFetcher(timeout=1.0) as fetcher:
                return await fetcher.fetch(f"http://127.0.0.1:{_free_port()}/debug/vars")

        with pytest.raises(NetworkError):
            asyncio.run(fetch())

    def test_injected_session_not_closed(self):
        """Test that a caller-provided session is left open."""
        import aiohttp

        async def run():
            async with aiohttp.ClientSession() as session:
                fetcher = ExpvarFetcher(timeout=1.0, session=session)
                await fetcher.close()
                return session.closed

        assert asyncio.run(run()) is False
