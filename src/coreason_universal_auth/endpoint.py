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
Shared plumbing for the Universal Auth endpoints: URL construction, bounded requests,
schema validation of success bodies and classification of rejections.
"""

from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from coreason_universal_auth.api_response import ApiErrorResponse, ApiOk, classify_response_bytes
from coreason_universal_auth.exceptions import MalformedResponseError, UnclassifiableResponseError
from coreason_universal_auth.models import AccessTokenSession
from coreason_universal_auth.transport import DEFAULT_MAX_RESPONSE_BYTES, send_json_request

M = TypeVar("M", bound=BaseModel)


def summarize_validation_error(error: ValidationError) -> str:
    """Renders a ValidationError without echoing input values (which may hold secrets)."""
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or '<body>'}: {err['msg']}"
        for err in error.errors(include_url=False, include_input=False)
    )


def decode_success(
    model: type[M], content: bytes, operation: str, identity_id: str | None = None
) -> M:
    """
    Validates a 200 response body against its expected schema.

    Raises:
        MalformedResponseError: If the body is not JSON or does not match the schema.
    """
    try:
        return model.model_validate_json(content)
    except ValidationError as e:
        # Chaining would carry the raw input values, which may hold secrets
        raise MalformedResponseError(operation, summarize_validation_error(e), identity_id) from None


def classify_rejection(status_code: int, content: bytes, operation: str) -> ApiErrorResponse:
    """
    Classifies a non-200 response body.

    Raises:
        UnclassifiableResponseError: If the body matches no error shape, or is empty.
    """
    payload = classify_response_bytes(content, status_code, operation)
    if isinstance(payload, ApiOk):
        raise UnclassifiableResponseError(operation, status_code, "<empty body>")
    return payload


class UniversalAuthEndpoint:
    """
    Base for components issuing requests against the Universal Auth API.

    Attributes:
        client (httpx.AsyncClient): Shared HTTP client. Only read, never mutated.
        host (str): Base URL of the service, without trailing slash.
        max_response_bytes (int): Largest accepted response body.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        host: str,
        max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES,
    ) -> None:
        self.client = client
        self.host = host.rstrip("/")
        self.max_response_bytes = max_response_bytes

    def identity_url(self, api_version: str, identity_id: str) -> str:
        return f"{self.host}/api/{api_version}/auth/universal-auth/identities/{quote(identity_id, safe='')}"

    def client_secrets_url(self, api_version: str, identity_id: str, client_secret_id: str | None = None) -> str:
        url = f"{self.identity_url(api_version, identity_id)}/client-secrets"
        if client_secret_id is not None:
            url = f"{url}/{quote(client_secret_id, safe='')}"
        return url

    async def _send(
        self,
        operation: str,
        method: str,
        url: str,
        session: AccessTokenSession | None = None,
        json: Any | None = None,
    ) -> tuple[int, bytes]:
        headers = session.bearer_headers() if session is not None else None
        return await send_json_request(
            self.client,
            method,
            url,
            json=json,
            headers=headers,
            max_bytes=self.max_response_bytes,
            operation=operation,
        )
