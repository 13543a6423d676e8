"""
Typed outcome of an API call.

Every call made through the client returns one of:

- ``Success``: a 2xx response and its decoded JSON body;
- ``ApiError``: a non-2xx response carrying the server's error envelope
  (``{"error", "message", "status", "details"?}``);
- ``NoStructuredError``: a failure with nothing structured to report, either a
  non-2xx response whose body is not the envelope, or no response at all
  (``status is None``: connection refused, timeout, ...).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

import httpx


@dataclass(frozen=True)
class Success:
    status: int
    data: Any = None

    ok = True


@dataclass(frozen=True)
class ApiError:
    status: int
    code: str
    message: str
    details: Optional[dict] = field(default=None)

    ok = False


@dataclass(frozen=True)
class NoStructuredError:
    status: Optional[int]
    reason: str

    ok = False


ApiResult = Union[Success, ApiError, NoStructuredError]


class ApiCallFailed(Exception):
    """Raised by unwrap() for a failed result; the result is kept on .result"""

    def __init__(self, result: Union[ApiError, NoStructuredError]):
        self.result = result
        text = result.message if isinstance(result, ApiError) else result.reason
        super().__init__(f"{result.status}: {text}")


def unwrap(result: ApiResult) -> Any:
    if isinstance(result, Success):
        return result.data
    raise ApiCallFailed(result)


def result_from_response(response: httpx.Response) -> ApiResult:
    try:
        body = response.json()
    except ValueError:
        body = None

    if response.is_success:
        return Success(response.status_code, body)

    if isinstance(body, dict) and isinstance(body.get("message"), str):
        details = body.get("details")
        return ApiError(
            status=response.status_code,
            code=str(body.get("error") or "ERROR"),
            message=body["message"],
            details=details if isinstance(details, dict) else None,
        )
    return NoStructuredError(response.status_code, response.reason_phrase or "no error body")


def transport_failure(exc: Exception) -> NoStructuredError:
    return NoStructuredError(None, f"{exc.__class__.__name__}: {exc}")
