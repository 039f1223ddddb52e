from __future__ import annotations

from http.client import HTTPException as HTTPClientError
from typing import Any, Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

import structlog
from pydantic import BaseModel, Field, ValidationError

from app.errors import BackendError

logger = structlog.get_logger()

INVALID_RESPONSE_MESSAGE = 'Received an invalid response from the server.'
UNKNOWN_FAILURE_MESSAGE = 'Unknown error reported by the server.'


class ActionRequest(BaseModel):
    action: str
    payload: dict[str, Any] = Field(default_factory=dict)


class ActionResponse(BaseModel):
    success: bool
    data: Any = None
    message: str | None = None


class BackendClient(Protocol):
    def call(self, action: str, payload: dict[str, Any] | None = None) -> ActionResponse: ...


def unwrap_response(action: str, response: ActionResponse) -> ActionResponse:
    if not response.success:
        raise BackendError(response.message or UNKNOWN_FAILURE_MESSAGE, action=action)
    return response


class ScriptBackendClient:
    """Posts ``{action, payload}`` envelopes to a remote action endpoint."""

    def __init__(self, *, url: str, timeout_seconds: int) -> None:
        if not url:
            raise ValueError('BACKEND_URL is required when BACKEND_MODE=script')
        self.url = url
        self.timeout_seconds = timeout_seconds
        # The endpoint only accepts simple requests; JSON is sent as plain text.
        self.headers = {'Content-Type': 'text/plain;charset=utf-8'}

    def call(self, action: str, payload: dict[str, Any] | None = None) -> ActionResponse:
        envelope = ActionRequest(action=action, payload=payload or {})
        req = Request(
            url=self.url,
            data=envelope.model_dump_json().encode('utf-8'),
            headers=self.headers,
            method='POST',
        )
        try:
            with urlopen(req, timeout=self.timeout_seconds) as response:
                body = response.read().decode('utf-8', errors='replace')
        except HTTPError as exc:
            body = exc.read().decode('utf-8', errors='ignore') if exc.fp else ''
            logger.error('backend_call_failed', action=action, status=exc.code)
            raise BackendError(f'Server error ({exc.code}): {body}', action=action) from exc
        except (URLError, HTTPClientError, TimeoutError, OSError) as exc:
            reason = getattr(exc, 'reason', exc)
            logger.error('backend_call_failed', action=action, error=str(reason))
            raise BackendError(f'Backend network error: {reason}', action=action) from exc

        try:
            result = ActionResponse.model_validate_json(body)
        except ValidationError as exc:
            logger.error('backend_call_failed', action=action, error='malformed response body')
            raise BackendError(INVALID_RESPONSE_MESSAGE, action=action) from exc
        return unwrap_response(action, result)
