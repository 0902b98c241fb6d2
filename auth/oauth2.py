"""
auth/oauth2.py -- OAuth2 client-credentials authentication for requests.

Oauth2Authenticator is a requests AuthBase: install it as `session.auth` and
every request the session prepares gets a bearer token, plus a response hook
that re-authenticates once when the provider rejects the token.

Token lifecycle:
  The access token is cached on the authenticator instance (one slot, process
  memory only). It is never expired proactively -- the provider does not
  reliably tell us the lifetime, so staleness is only detected when a request
  is rejected. One authenticator belongs to one client; concurrent decoration
  runs must each build their own.

Re-authentication:
  401 is the standard challenge. Bitbucket Cloud also answers 403 or 404 for a
  stale token on repository endpoints, so those trigger the same single
  forced refresh. This means a genuinely missing resource costs one extra
  token exchange and one extra request before the caller sees the 404.
  At most one retry per originating request, no backoff.

Token exchange uses authlib's requests integration with client_secret_basic,
which sends `Authorization: Basic base64(key:secret)` and the form body
`grant_type=client_credentials`.
"""

from __future__ import annotations

import logging

import requests
from authlib.integrations.base_client import OAuthError
from authlib.integrations.requests_client import OAuth2Session
from requests.auth import AuthBase

from core.models import BitbucketConfiguration

logger = logging.getLogger("insights.auth")

TOKEN_URL = "https://bitbucket.org/site/oauth2/access_token"

# 401 is the regular challenge; 403/404 are how a stale token shows up on
# repository endpoints.
REAUTHENTICATE_STATUSES = frozenset({401, 403, 404})


class AuthError(Exception):
    """The token endpoint could not be reached or returned no usable token."""


class Oauth2Authenticator(AuthBase):
    def __init__(self, configuration: BitbucketConfiguration, timeout: float = 10.0) -> None:
        self._configuration = configuration
        self._timeout = timeout
        self._cached_token = ""

    # ------------------------------------------------------------------
    # Token acquisition
    # ------------------------------------------------------------------

    def _token_session(self) -> OAuth2Session:
        return OAuth2Session(
            client_id=self._configuration.oauth2_key,
            client_secret=self._configuration.token,
            token_endpoint_auth_method="client_secret_basic",
        )

    def get_fresh_token(self) -> str:
        """Exchange the client credentials for a new access token.

        Always performs one round trip. Replaces the cached token on success.

        Raises:
            AuthError: transport failure, non-JSON body, OAuth error body,
                or a response without an access_token.
        """
        session = self._token_session()
        try:
            token = session.fetch_token(TOKEN_URL, grant_type="client_credentials", timeout=self._timeout)
        except (requests.RequestException, OAuthError, ValueError) as e:
            raise AuthError(f"Could not obtain an OAuth2 access token: {e}") from e
        finally:
            session.close()

        access_token = token.get("access_token") if isinstance(token, dict) else None
        if not access_token:
            raise AuthError("OAuth2 token response did not contain an access_token")

        logger.debug("Obtained a new OAuth2 access token")
        self._cached_token = access_token
        return access_token

    def get_cached_token(self) -> str:
        """Return the cached token, fetching one first if none has been obtained yet."""
        if not self._cached_token:
            return self.get_fresh_token()
        return self._cached_token

    # ------------------------------------------------------------------
    # Request decoration
    # ------------------------------------------------------------------

    def attach_authentication(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        request.headers["Authorization"] = f"Bearer {self.get_cached_token()}"
        return request

    def reauthenticate_on_challenge(
        self, request: requests.PreparedRequest, response: requests.Response
    ) -> requests.PreparedRequest:
        """Return a copy of `request` carrying a freshly fetched bearer token."""
        logger.info("Provider answered %s for %s, refreshing the access token", response.status_code, request.url)
        retry = request.copy()
        retry.headers["Authorization"] = f"Bearer {self.get_fresh_token()}"
        return retry

    def handle_response(self, response: requests.Response, **kwargs) -> requests.Response:
        """Response hook: resend once with a fresh token when the token looks stale.

        The retried request is sent straight through the adapter, so hooks do
        not run for it again -- this is what bounds the retry to one.
        """
        if response.status_code not in REAUTHENTICATE_STATUSES:
            return response

        # Drain and release the connection before reusing the pool.
        response.content
        response.close()

        retry = self.reauthenticate_on_challenge(response.request, response)
        retried = response.connection.send(retry, **kwargs)
        retried.history.append(response)
        retried.request = retry
        return retried

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        self.attach_authentication(request)
        request.register_hook("response", self.handle_response)
        return request
