"""Credential checks for admin and cron endpoints.

Admin endpoints take an X-API-Key matched against a configured set of keys.
The cron endpoint takes ``Authorization: Bearer <secret>`` and is open when no
secret is configured (local development).
"""

import hmac


class APIKeyValidator:
    """Validates API keys for admin endpoint authentication."""

    def __init__(self, api_keys: list[str]) -> None:
        """Initialize validator with list of valid API keys.

        Args:
            api_keys: List of valid API key strings

        Raises:
            ValueError: If api_keys list is empty
        """
        if not api_keys:
            raise ValueError("At least one API key must be provided")

        self.api_keys = set(api_keys)

    def validate(self, api_key: str) -> bool:
        """Return True if the API key is one of the configured keys."""
        return api_key in self.api_keys


class CronSecretValidator:
    """Validates the bearer token sent by the scheduler."""

    BEARER_PREFIX = "Bearer "

    def __init__(self, secret: str | None) -> None:
        """Initialize validator with the shared cron secret.

        Args:
            secret: Expected bearer token; None or empty disables the check
        """
        self.secret = secret or None

    @property
    def enabled(self) -> bool:
        return self.secret is not None

    def validate(self, authorization: str | None) -> bool:
        """Check an Authorization header value.

        Args:
            authorization: Raw header value, e.g. "Bearer abc123"

        Returns:
            bool: True if access is allowed
        """
        if self.secret is None:
            return True

        if not authorization or not authorization.startswith(self.BEARER_PREFIX):
            return False

        token = authorization[len(self.BEARER_PREFIX) :]
        return hmac.compare_digest(token.encode(), self.secret.encode())
