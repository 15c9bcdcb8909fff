"""HTTP transport shared by the remote signers.

Applies one failure classification to every backend call:
- transport failure (DNS, connect, timeout)       -> HttpError
- non-2xx status                                  -> RemoteApiError
- 2xx body that is not JSON / wrong shape         -> ParsingError

A fresh httpx.AsyncClient is opened per request; no session state survives
between calls. Nothing here retries.
"""

import logging
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from custody_signers.signing.base import HttpError, ParsingError, RemoteApiError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
MAX_ERROR_BODY_LENGTH = 512

M = TypeVar("M", bound=BaseModel)


def truncate(text: str, limit: int = MAX_ERROR_BODY_LENGTH) -> str:
    """Truncate a response body for error context."""
    if len(text) <= limit:
        return text
    return text[:limit] + "...(truncated)"


def _error_detail(response: httpx.Response) -> Optional[str]:
    """Pull a readable detail out of an error body, if there is one."""
    try:
        data = response.json()
    except ValueError:
        return None

    if not isinstance(data, dict):
        return None

    # Vault: {"errors": ["..."]}
    errors = data.get("errors")
    if isinstance(errors, list) and errors:
        return ", ".join(str(e) for e in errors)

    for key in ("message", "error", "detail"):
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
    return None


async def request_json(
    method: str,
    url: str,
    *,
    backend: str,
    headers: Optional[dict[str, str]] = None,
    json_body: Any = None,
    content: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
    unsafe_debug: bool = False,
) -> Any:
    """Perform one backend request and return the decoded JSON body.

    Args:
        method: HTTP method
        url: Full request URL
        backend: Backend name used in error messages ("Vault", "Privy", ...)
        headers: Request headers
        json_body: Body to serialize as JSON
        content: Pre-serialized body (used when the body is signed)
        timeout: Request timeout in seconds
        unsafe_debug: Log raw error bodies (may contain sensitive data)

    Returns:
        Decoded JSON value

    Raises:
        HttpError: If the backend cannot be reached
        RemoteApiError: If the backend returns a non-success status
        ParsingError: If the success body is not JSON
    """
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.request(
                method,
                url,
                headers=headers,
                json=json_body,
                content=content,
            )
    except httpx.HTTPError as e:
        logger.error(f"{backend} network request failed: {type(e).__name__}")
        raise HttpError(f"{backend} network request failed: {e}", url=url) from e

    if not response.is_success:
        status = response.status_code
        body = response.text

        if unsafe_debug:
            logger.error(f"{backend} API error - status: {status}, response: {body}")
        else:
            logger.error(f"{backend} API error - status: {status}")

        detail = _error_detail(response)
        message = f"{backend} API error: {status}"
        if detail:
            message = f"{message} ({detail})"
        raise RemoteApiError(message, status=status, body=truncate(body))

    try:
        return response.json()
    except ValueError as e:
        raise ParsingError(
            f"Failed to parse {backend} response",
            {"body": truncate(response.text)},
        ) from e


def parse_model(model: type[M], data: Any, backend: str) -> M:
    """Validate decoded JSON against a wire model.

    Raises:
        ParsingError: If the data does not match the model
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ParsingError(
            f"Unexpected {backend} response shape: {e.error_count()} validation error(s)"
        ) from e
