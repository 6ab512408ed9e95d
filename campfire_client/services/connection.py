import threading
from typing import Any, Tuple

import httpx

from campfire_client.config import Settings, get_settings
from campfire_client.core.exceptions import (
    AuthResolutionError,
    AuthenticationFailure,
    CampfireConnectionError,
    CampfireError,
    HTTPRequestError,
)
from campfire_client.core.logging import get_logger

logger = get_logger("Connection")

# Campfire ignores the password when authenticating with an API token
TOKEN_PASSWORD = "X"


class TokenAuth(httpx.Auth):
    """Basic auth with the connection's API token, resolved on first request"""

    def __init__(self, connection: "Connection"):
        self.connection = connection

    def auth_flow(self, request: httpx.Request):
        yield from httpx.BasicAuth(self.connection.token, TOKEN_PASSWORD).auth_flow(request)


class Connection:
    """
    Authenticated session against one Campfire account.

    Holds the credential for a subdomain and performs every REST call of the
    rooms built on top of it. Exactly one credential mode is used for the
    lifetime of the connection: a static API token, an OAuth bearer token, or
    a username/password pair exchanged once for the account's API token.
    """

    def __init__(
        self,
        subdomain: str,
        token: str | None = None,
        oauth_token: str | None = None,
        username: str | None = None,
        password: str | None = None,
        settings: Settings | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        if token and oauth_token:
            raise ValueError("Pass either token or oauth_token, not both")

        self.subdomain = subdomain
        self.settings = settings or get_settings()
        self.uri = f"{self.settings.scheme}://{subdomain}.{self.settings.host}"
        self.username = username
        self.password = password
        self.oauth_token = oauth_token

        self._token = token
        self._token_error: AuthResolutionError | None = None
        self._token_lock = threading.Lock()

        if oauth_token:
            auth = None
            headers = {"Authorization": f"Bearer {oauth_token}"}
        else:
            auth = TokenAuth(self)
            headers = {}

        self.client = httpx.Client(
            base_url=self.uri,
            auth=auth,
            headers=headers,
            timeout=self.settings.request_timeout,
            verify=self.settings.ssl_verify,
            proxy=self.settings.proxy,
            transport=transport,
        )

    @property
    def ssl(self) -> bool:
        """Is the connection to Campfire using ssl?"""
        return self.uri.startswith("https")

    @property
    def uses_oauth(self) -> bool:
        return self.oauth_token is not None

    # ==================== CREDENTIALS ====================

    @property
    def token(self) -> str:
        return self.resolve_credential()

    def resolve_credential(self) -> str:
        """
        Return the API token, looking it up once if it wasn't supplied.

        The lookup is a single GET /users/me.json, authenticated with the
        username/password pair (or the bearer token in OAuth mode). Concurrent
        first callers wait on the same lookup. A failed lookup is not retried;
        later calls raise the same error.

        Raises:
            AuthResolutionError: the lookup failed or returned no token
        """
        if self._token is not None:
            return self._token

        with self._token_lock:
            if self._token_error is not None:
                raise self._token_error
            if self._token is None:
                try:
                    self._token = self._fetch_api_token()
                except AuthResolutionError as e:
                    self._token_error = e
                    raise
        return self._token

    def _fetch_api_token(self) -> str:
        if self.uses_oauth:
            auth = httpx.USE_CLIENT_DEFAULT
        elif self.username is not None and self.password is not None:
            auth = httpx.BasicAuth(self.username, self.password)
        else:
            raise AuthResolutionError("No token or username/password to authenticate with")

        logger.debug(f"Resolving API token for {self.subdomain}")
        try:
            data = self._request("GET", "/users/me.json", auth=auth)
        except CampfireError as e:
            logger.error(f"API token lookup failed for {self.subdomain}: {e}")
            raise AuthResolutionError(f"Could not resolve API token: {e}") from e

        try:
            return data["user"]["api_auth_token"]
        except (KeyError, TypeError):
            raise AuthResolutionError("Response to /users/me.json carried no api_auth_token") from None

    def basic_auth_material(self) -> Tuple[str, str]:
        """(username, password) for transports that only speak basic auth"""
        return self.token, TOKEN_PASSWORD

    # ==================== REQUESTS ====================

    def get(self, path: str, params: dict | None = None) -> Any:
        return self._request("GET", path, params=params)

    def post(self, path: str, body: Any = None) -> Any:
        return self._request("POST", path, json=body)

    def put(self, path: str, body: Any = None) -> Any:
        return self._request("PUT", path, json=body)

    def raw_post(self, path: str, files: dict) -> Any:
        """Multipart POST, used for uploads"""
        return self._request("POST", path, files=files)

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise CampfireConnectionError(f"{method} {path} failed: {e}") from e

        if response.status_code == 401:
            logger.warning(f"{method} {path} rejected: HTTP 401")
            raise AuthenticationFailure(
                f"Authentication failed for {method} {path}",
                status_code=401,
                body=response.text,
            )

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"{method} {path} failed: HTTP {e.response.status_code}")
            raise HTTPRequestError(
                f"HTTP {e.response.status_code} for {method} {path}",
                status_code=e.response.status_code,
                body=e.response.text,
            ) from e

        return self._decode(response)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        text = response.text.strip()
        if not text:
            return None
        if "json" in response.headers.get("Content-Type", "") or text[0] in "{[":
            try:
                return response.json()
            except ValueError as e:
                raise HTTPRequestError(
                    f"Malformed JSON in response to {response.request.method} {response.request.url.path}",
                    status_code=response.status_code,
                    body=text,
                ) from e
        return text

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
