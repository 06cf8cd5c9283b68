"""FastAPI dependencies for API authentication."""

from typing import Annotated

from fastapi import Header, HTTPException

from kitchen_ops_service.auth.api_key_validator import APIKeyValidator, CronSecretValidator


def get_api_key_from_header(
    x_api_key: Annotated[str | None, Header()] = None,
    validator: APIKeyValidator | None = None,
) -> str:
    """FastAPI dependency to extract and validate API key from X-API-Key header.

    Args:
        x_api_key: API key from X-API-Key header (injected by FastAPI)
        validator: APIKeyValidator instance (injected as dependency)

    Returns:
        str: The validated API key

    Raises:
        HTTPException: 401 if API key is missing or invalid
    """
    if not x_api_key:
        raise HTTPException(status_code=401, detail="Missing API key")

    if validator and not validator.validate(x_api_key):
        raise HTTPException(status_code=401, detail="Invalid API key")

    return x_api_key


def verify_cron_authorization(
    authorization: Annotated[str | None, Header()] = None,
    validator: CronSecretValidator | None = None,
) -> None:
    """FastAPI dependency guarding the scheduler endpoint.

    Args:
        authorization: Authorization header (injected by FastAPI)
        validator: CronSecretValidator holding the configured secret

    Raises:
        HTTPException: 401 if a secret is configured and the bearer token does not match
    """
    if validator is not None and not validator.validate(authorization):
        raise HTTPException(status_code=401, detail="Unauthorized")
