import os
from urllib.error import URLError
from urllib.request import Request, urlopen

from associate_eip.control.errors import MetadataUnavailable


DEFAULT_ENDPOINT = "http://169.254.169.254"
ENDPOINT_ENV = "AWS_EC2_METADATA_SERVICE_ENDPOINT"
TOKEN_PATH = "/latest/api/token"
TOKEN_TTL_HEADER = "X-aws-ec2-metadata-token-ttl-seconds"
TOKEN_HEADER = "X-aws-ec2-metadata-token"

REGION_PATH = "/latest/meta-data/placement/region"
INSTANCE_ID_PATH = "/latest/meta-data/instance-id"
MAC_PATH = "/latest/meta-data/mac"
INTERFACE_ID_PATH = "/latest/meta-data/network/interfaces/macs/{mac}/interface-id"


class Imds:
    """IMDSv2 client: one session token, then plain GETs."""

    def __init__(self, endpoint: str | None = None, timeout: float = 2.0,
                 token_ttl: int = 21600, on_debug=None):
        self.endpoint = (endpoint or os.environ.get(ENDPOINT_ENV) or DEFAULT_ENDPOINT).rstrip("/")
        self.timeout = timeout
        self.token_ttl = token_ttl
        self.on_debug = on_debug
        self._token: str | None = None

    def _debug(self, message: str) -> None:
        if self.on_debug:
            self.on_debug(message)

    def _request(self, request: Request) -> str:
        try:
            with urlopen(request, timeout=self.timeout) as resp:
                return resp.read().decode("utf-8").strip()
        except (URLError, TimeoutError, ConnectionError, UnicodeDecodeError) as e:
            raise MetadataUnavailable(
                f"IMDS {request.get_method()} {request.full_url} failed: {e}"
            ) from e

    def _fetch_token(self) -> str:
        if self._token is None:
            self._debug(f"Requesting IMDS token from {self.endpoint}")
            request = Request(
                self.endpoint + TOKEN_PATH,
                method="PUT",
                headers={TOKEN_TTL_HEADER: str(self.token_ttl)},
            )
            token = self._request(request)
            if not token:
                raise MetadataUnavailable("IMDS returned an empty session token")
            self._token = token
        return self._token

    def get(self, path: str) -> str:
        """Fetch a metadata value. Empty values count as unavailable."""
        token = self._fetch_token()
        self._debug(f"GET {path}")
        request = Request(self.endpoint + path, headers={TOKEN_HEADER: token})
        value = self._request(request)
        if not value:
            raise MetadataUnavailable(f"IMDS returned an empty value for {path}")
        return value
