import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError

from associate_eip.aws.imds import (
    ENDPOINT_ENV,
    INSTANCE_ID_PATH,
    INTERFACE_ID_PATH,
    MAC_PATH,
    REGION_PATH,
    TOKEN_HEADER,
    TOKEN_PATH,
)

REGION = "us-west-2"
INSTANCE_ID = "i-01234567890abcdef"
MAC = "02:b2:0b:a9:64:5b"
INTERFACE_ID = "eni-01234567a8e25de7c"
IMDS_TOKEN = "fakeimdstoken"


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "uses_moto: test uses moto @mock_aws (allows boto3 calls)"
    )


@pytest.fixture(autouse=True)
def _block_real_aws(request, monkeypatch):
    """Prevent any test from making real AWS API calls."""
    if request.node.get_closest_marker("uses_moto"):
        return

    def _blocked_client(service, *a, **kw):
        raise RuntimeError(
            f"Unmocked boto3.client('{service}') call! "
            f"Add a @patch or fixture mock for this AWS call."
        )

    monkeypatch.setattr(boto3, "client", _blocked_client)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep endpoint overrides from the developer's shell out of tests."""
    monkeypatch.delenv(ENDPOINT_ENV, raising=False)
    monkeypatch.delenv("AWS_EC2_ENDPOINT", raising=False)
    monkeypatch.delenv("USER_DATA_PATH", raising=False)


def default_metadata(**overrides) -> dict[str, str]:
    values = {
        REGION_PATH: REGION,
        INSTANCE_ID_PATH: INSTANCE_ID,
        MAC_PATH: MAC,
        INTERFACE_ID_PATH.format(mac=MAC): INTERFACE_ID,
    }
    values.update(overrides)
    return values


# ── Capability fakes ──


@pytest.fixture
def make_imds():
    """Factory for an in-memory IMDS. Override any path via a dict."""
    def _make(values: dict[str, str] | None = None):
        metadata = default_metadata()
        metadata.update(values or {})
        imds = MagicMock()
        imds.get.side_effect = lambda path: metadata[path]
        return imds
    return _make


@pytest.fixture
def make_client_error():
    """Factory for botocore ClientError."""
    def _make(code: str, message: str = "error"):
        return ClientError({"Error": {"Code": code, "Message": message}}, "TestOp")
    return _make


# ── Local IMDS server ──


class _ImdsHandler(BaseHTTPRequestHandler):
    def _reply(self, status: int, body: str = "") -> None:
        data = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def do_PUT(self):
        self.server.requests.append(("PUT", self.path))
        if self.path == TOKEN_PATH:
            self._reply(200, IMDS_TOKEN)
        else:
            self._reply(404)

    def do_GET(self):
        self.server.requests.append(("GET", self.path))
        if self.headers.get(TOKEN_HEADER) != IMDS_TOKEN:
            self._reply(401)
        elif self.path in self.server.values:
            self._reply(200, self.server.values[self.path])
        else:
            self._reply(404)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def imds_server(monkeypatch):
    """A local IMDSv2 endpoint. Edit ``.values`` to change what it serves;
    ``.requests`` records (method, path) for every request."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _ImdsHandler)
    server.values = default_metadata()
    server.requests = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    server.endpoint = f"http://{host}:{port}"
    monkeypatch.setenv(ENDPOINT_ENV, server.endpoint)
    yield server
    server.shutdown()
    server.server_close()
