# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_universal_auth

"""
Classification of API response bodies into the closed set of error shapes.

The service does not tag its error bodies, so the shape is recovered from the
fields present, in this fixed order:

1. ``null`` or an empty object is ``ApiOk``.
2. ``reqId``, ``statusCode``, ``message``, ``error`` and ``details`` is ``Forbidden``.
3. ``statusCode``, ``message`` and ``error`` without ``reqId`` is ``NotFound``.
4. ``reqId``, ``statusCode``, ``message`` and ``error`` is one of the four variants
   sharing that shape, selected by ``statusCode``: 401 ``Unauthorized``,
   422 ``UnprocessableContent``, 5xx ``InternalServerError``, otherwise ``BadRequest``.
5. Anything else raises ``UnclassifiableResponseError``.
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from coreason_universal_auth.exceptions import UnclassifiableResponseError

_EXCERPT_LIMIT = 200


class ApiOk(BaseModel):
    """An empty success body."""

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return "ok"


class ApiErrorResponse(BaseModel):
    """
    Fields shared by every non-Ok API error body.

    Attributes:
        request_id (str | None): The service-side request id (absent on NotFound).
        status_code (int): The status code echoed in the body.
        message (str | list[Any]): Human-readable description; validation errors send a list.
        error (str): Short error name.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    request_id: str | None = Field(default=None, alias="reqId")
    status_code: int = Field(..., alias="statusCode")
    message: str | list[Any]
    error: str

    def __str__(self) -> str:
        return (
            f"{type(self).__name__}(request_id={self.request_id}, status_code={self.status_code}, "
            f"error={self.error}, message={self.message})"
        )


class BadRequest(ApiErrorResponse):
    pass


class Unauthorized(ApiErrorResponse):
    pass


class Forbidden(ApiErrorResponse):
    details: Any = None


class NotFound(ApiErrorResponse):
    pass


class UnprocessableContent(ApiErrorResponse):
    pass


class InternalServerError(ApiErrorResponse):
    pass


ApiErrorPayload = ApiOk | BadRequest | Unauthorized | Forbidden | NotFound | UnprocessableContent | InternalServerError

_SHARED_SHAPE = ("reqId", "statusCode", "message", "error")


def _excerpt(body: Any) -> str:
    text = body if isinstance(body, str) else json.dumps(body, default=str)
    return text[:_EXCERPT_LIMIT]


def _shared_shape_variant(status_code: Any) -> type[ApiErrorResponse]:
    if status_code == 401:
        return Unauthorized
    if status_code == 422:
        return UnprocessableContent
    if isinstance(status_code, int) and status_code >= 500:
        return InternalServerError
    return BadRequest


def indicates_nothing_to_revoke(payload: ApiErrorPayload, status_code: int) -> bool:
    """
    True when a revoke rejection means the target is unknown or already revoked.

    Only ``NotFound`` and a plain HTTP 400 ``BadRequest`` qualify; the ``BadRequest``
    variant also covers statuses such as 403, 409 or 429, which must surface as errors.
    """
    if isinstance(payload, NotFound):
        return True
    return isinstance(payload, BadRequest) and status_code == 400


def classify_response(body: Any, status_code: int = 0, operation: str = "request") -> ApiErrorPayload:
    """
    Determines which API response variant a decoded JSON body matches.

    Args:
        body: The decoded JSON body (any JSON value).
        status_code: HTTP status of the response, used only for error context.
        operation: Name of the calling operation, used only for error context.

    Returns:
        ApiErrorPayload: The matched variant.

    Raises:
        UnclassifiableResponseError: If no variant's required fields are all present.
    """
    if body is None or body == {}:
        return ApiOk()

    if not isinstance(body, dict):
        raise UnclassifiableResponseError(operation, status_code, _excerpt(body))

    # A present-but-wrongly-typed field is still a contract violation
    try:
        if all(key in body for key in (*_SHARED_SHAPE, "details")):
            return Forbidden.model_validate(body)

        if "reqId" not in body and all(key in body for key in ("statusCode", "message", "error")):
            return NotFound.model_validate(body)

        if all(key in body for key in _SHARED_SHAPE):
            return _shared_shape_variant(body["statusCode"]).model_validate(body)
    except ValueError as e:
        raise UnclassifiableResponseError(operation, status_code, _excerpt(body)) from e

    raise UnclassifiableResponseError(operation, status_code, _excerpt(body))


def classify_response_bytes(content: bytes, status_code: int, operation: str) -> ApiErrorPayload:
    """
    Decodes a raw response body and classifies it.

    Raises:
        UnclassifiableResponseError: If the body is not JSON or matches no variant.
    """
    try:
        body = json.loads(content) if content else None
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise UnclassifiableResponseError(
            operation, status_code, content[:_EXCERPT_LIMIT].decode("utf-8", errors="replace")
        ) from e
    return classify_response(body, status_code=status_code, operation=operation)
