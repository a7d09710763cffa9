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
Universal Auth login: exchanges a client id / client secret pair for an access token.
"""

import httpx
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from coreason_universal_auth.endpoint import classify_rejection, decode_success
from coreason_universal_auth.exceptions import (
    LoginError,
    MalformedLoginResponseError,
    MalformedResponseError,
    MissingCredentialFieldError,
)
from coreason_universal_auth.models import AccessTokenData, AccessTokenSession, CredentialSet
from coreason_universal_auth.transport import DEFAULT_MAX_RESPONSE_BYTES, send_json_request
from coreason_universal_auth.utils.logger import logger

tracer = trace.get_tracer(__name__)


def login_url(host: str, api_version: str) -> str:
    return f"{host.rstrip('/')}/api/{api_version}/auth/universal-auth/login"


async def login(
    credentials: CredentialSet,
    client: httpx.AsyncClient,
    host: str,
    max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES,
) -> AccessTokenSession:
    """
    Exchanges the credentials for a Universal Auth access token.

    Emits an OpenTelemetry span `universal_auth.login`.

    Args:
        credentials: The identity's client id, client secret, identity id and API version.
        client: The shared async HTTP client.
        host: Base URL of the service (e.g. https://app.infisical.com).
        max_response_bytes: Largest accepted response body.

    Returns:
        AccessTokenSession: The access token, guarded.

    Raises:
        MissingCredentialFieldError: If a credential field is empty. No request is sent.
        LoginError: If the service rejects the credentials.
        MalformedLoginResponseError: If the service answers 200 with an unexpected body.
        UnclassifiableResponseError: If a rejection body matches no known error shape.
        TransportError: If the request fails at the network level.
    """
    with tracer.start_as_current_span("universal_auth.login") as span:
        span.set_attribute("identity.id", credentials.identity_id)

        missing = credentials.missing_field()
        if missing:
            logger.warning(f"Login aborted: {missing} is empty")
            span.set_status(Status(StatusCode.ERROR, f"missing {missing}"))
            raise MissingCredentialFieldError(missing)

        status_code, content = await send_json_request(
            client,
            "POST",
            login_url(host, credentials.api_version),
            json={
                "clientId": credentials.client_id,
                "clientSecret": credentials.client_secret.get_secret_value(),
            },
            max_bytes=max_response_bytes,
            operation="login",
        )
        span.set_attribute("http.status_code", status_code)
        logger.info(f"Universal Auth login for identity {credentials.identity_id}: HTTP {status_code}")

        if status_code != 200:
            payload = classify_rejection(status_code, content, "login")
            span.set_status(Status(StatusCode.ERROR, f"HTTP {status_code}"))
            raise LoginError(
                status_code,
                payload,
                client_id=credentials.client_id,
                identity_id=credentials.identity_id,
                api_version=credentials.api_version,
            )

        try:
            data = decode_success(AccessTokenData, content, "login", credentials.identity_id)
        except MalformedResponseError as e:
            logger.error(f"Login response for identity {credentials.identity_id} is malformed: {e.detail}")
            span.set_status(Status(StatusCode.ERROR, "malformed response"))
            raise MalformedLoginResponseError("login", e.detail, credentials.identity_id) from e

        span.set_status(Status(StatusCode.OK))
        return AccessTokenSession(data, api_version=credentials.api_version)
