"""
core/config.py -- Centralized configuration via pydantic-settings.

All environment variable reads happen here. No module should call os.getenv()
or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. bitbucket_token -> BITBUCKET_TOKEN). Type coercion and validation
      are built in.

  @model_validator(mode="after"): Cross-field validation once every field is
      resolved. A decoration run cannot address a repository without a token,
      project key and repository slug, so those fail at startup rather than
      as a 404 from the provider halfway through a run.

Layer rule: core/ is the kernel. This module may not import from auth/ or
bitbucket/.
"""

import logging
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.models import BitbucketConfiguration

logger = logging.getLogger("insights.config")

DEFAULT_BITBUCKET_URL = "https://api.bitbucket.org"


class Settings(BaseSettings):
    """Decoration settings loaded from environment variables and .env file.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `bitbucket_oauth2_key` reads from BITBUCKET_OAUTH2_KEY.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Provider
    # ------------------------------------------------------------------

    bitbucket_url: str = DEFAULT_BITBUCKET_URL
    # Basic credential, or the OAuth2 consumer secret when the key is set.
    bitbucket_token: str = ""
    # Empty string means OAuth2 is disabled and the token is sent as Basic auth.
    bitbucket_oauth2_key: str = ""
    bitbucket_project_key: str = ""
    bitbucket_repository_slug: str = ""

    # ------------------------------------------------------------------
    # Behaviour
    # ------------------------------------------------------------------

    pull_request_approval_enabled: bool = False
    # Seconds, applied per request (connect and read).
    http_timeout: float = 10.0
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_provider(self) -> "Settings":
        """Normalize the base URL and require the repository coordinates."""
        self.bitbucket_url = self.bitbucket_url.rstrip("/")
        missing = [
            name.upper()
            for name in ("bitbucket_token", "bitbucket_project_key", "bitbucket_repository_slug")
            if not getattr(self, name)
        ]
        if missing:
            raise ValueError(f"Missing required setting(s): {', '.join(missing)}")
        if self.http_timeout <= 0:
            raise ValueError("HTTP_TIMEOUT must be a positive number of seconds.")
        if self.bitbucket_oauth2_key:
            logger.debug("OAuth2 client credentials enabled for %s", self.bitbucket_url)
        return self

    def to_configuration(self) -> BitbucketConfiguration:
        return BitbucketConfiguration(
            url=self.bitbucket_url,
            token=self.bitbucket_token,
            oauth2_key=self.bitbucket_oauth2_key,
            repository=self.bitbucket_repository_slug,
            project=self.bitbucket_project_key,
        )


@lru_cache
def get_settings() -> Settings:
    """Return the Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
