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
ClientSecretManager component: create / revoke / fetch the rotating client secrets of
an identity.
"""

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from coreason_universal_auth.api_response import indicates_nothing_to_revoke
from coreason_universal_auth.endpoint import UniversalAuthEndpoint, classify_rejection, decode_success
from coreason_universal_auth.exceptions import (
    CreateClientSecretError,
    GetClientSecretError,
    ListClientSecretsError,
    RevokeClientSecretError,
)
from coreason_universal_auth.models import AccessTokenSession, ClientSecret
from coreason_universal_auth.models_internal import (
    ClientSecretCreatedEnvelope,
    ClientSecretEnvelope,
    ClientSecretListEnvelope,
    CreateClientSecretRequest,
)
from coreason_universal_auth.utils.logger import logger

tracer = trace.get_tracer(__name__)


class ClientSecretManager(UniversalAuthEndpoint):
    """
    Manages the client secrets of an identity's Universal Auth configuration.

    The plaintext of a client secret is returned once, by `create`. Every other call
    returns metadata only.
    """

    async def create(
        self,
        session: AccessTokenSession,
        identity_id: str,
        description: str = "",
        num_uses_limit: int = 0,
        ttl: int = 0,
    ) -> ClientSecret:
        """
        Creates a client secret for an identity.

        Args:
            session: Access token used to authorize the call.
            identity_id: The identity owning the secret.
            description: Human-readable description.
            num_uses_limit: Maximum number of logins with this secret (0 = unlimited).
            ttl: Lifetime in seconds (0 = no expiry).

        Returns:
            ClientSecret: The new secret, including its one-time plaintext value.

        Raises:
            ValueError: If a limit is negative. No request is sent.
            CreateClientSecretError: If the service rejects the request.
            MalformedResponseError: If the success body does not match the schema.
            UnclassifiableResponseError: If a rejection body matches no known error shape.
            TransportError: If the request fails at the network level.
        """
        request = CreateClientSecretRequest(description=description, num_uses_limit=num_uses_limit, ttl=ttl)

        with tracer.start_as_current_span("universal_auth.create_client_secret") as span:
            span.set_attribute("identity.id", identity_id)

            status_code, content = await self._send(
                "create_client_secret",
                "POST",
                self.client_secrets_url(session.api_version, identity_id),
                session=session,
                json=request.model_dump(by_alias=True),
            )
            span.set_attribute("http.status_code", status_code)
            logger.info(f"Universal Auth create_client_secret for identity {identity_id}: HTTP {status_code}")

            if status_code != 200:
                payload = classify_rejection(status_code, content, "create_client_secret")
                span.set_status(Status(StatusCode.ERROR, f"HTTP {status_code}"))
                raise CreateClientSecretError(
                    status_code, payload, identity_id=identity_id, api_version=session.api_version
                )

            envelope = decode_success(ClientSecretCreatedEnvelope, content, "create_client_secret", identity_id)
            span.set_status(Status(StatusCode.OK))
            return ClientSecret(envelope.client_secret_data, secret_value=envelope.client_secret)

    async def revoke(
        self, session: AccessTokenSession, identity_id: str, client_secret_id: str
    ) -> ClientSecret | None:
        """
        Revokes a client secret; it can no longer be used to log in.

        Idempotent: if the service reports the secret as unknown or already revoked the
        call succeeds and returns None.

        Returns:
            ClientSecret | None: Metadata of the revoked secret, or None.

        Raises:
            RevokeClientSecretError: If the service rejects the request for another reason.
            MalformedResponseError: If the success body does not match the schema.
            UnclassifiableResponseError: If a rejection body matches no known error shape.
            TransportError: If the request fails at the network level.
        """
        with tracer.start_as_current_span("universal_auth.revoke_client_secret") as span:
            span.set_attribute("identity.id", identity_id)
            span.set_attribute("client_secret.id", client_secret_id)

            url = f"{self.client_secrets_url(session.api_version, identity_id, client_secret_id)}/revoke"
            status_code, content = await self._send("revoke_client_secret", "POST", url, session=session)
            span.set_attribute("http.status_code", status_code)
            logger.info(
                f"Universal Auth revoke_client_secret {client_secret_id} for identity {identity_id}: HTTP {status_code}"
            )

            if status_code != 200:
                payload = classify_rejection(status_code, content, "revoke_client_secret")
                if indicates_nothing_to_revoke(payload, status_code):
                    logger.info(f"Client secret {client_secret_id} is already revoked or unknown; nothing to revoke")
                    span.set_attribute("universal_auth.already_revoked", True)
                    return None
                span.set_status(Status(StatusCode.ERROR, f"HTTP {status_code}"))
                raise RevokeClientSecretError(
                    status_code, payload, identity_id=identity_id, api_version=session.api_version
                )

            envelope = decode_success(ClientSecretEnvelope, content, "revoke_client_secret", identity_id)
            span.set_status(Status(StatusCode.OK))
            return ClientSecret(envelope.client_secret_data)

    async def get_by_id(self, session: AccessTokenSession, identity_id: str, client_secret_id: str) -> ClientSecret:
        """
        Fetches the metadata of a client secret. The plaintext value is never returned.

        Raises:
            GetClientSecretError: If the service rejects the request.
            MalformedResponseError: If the success body does not match the schema.
            UnclassifiableResponseError: If a rejection body matches no known error shape.
            TransportError: If the request fails at the network level.
        """
        with tracer.start_as_current_span("universal_auth.get_client_secret") as span:
            span.set_attribute("identity.id", identity_id)
            span.set_attribute("client_secret.id", client_secret_id)

            status_code, content = await self._send(
                "get_client_secret",
                "GET",
                self.client_secrets_url(session.api_version, identity_id, client_secret_id),
                session=session,
            )
            span.set_attribute("http.status_code", status_code)
            logger.info(
                f"Universal Auth get_client_secret {client_secret_id} for identity {identity_id}: HTTP {status_code}"
            )

            if status_code != 200:
                payload = classify_rejection(status_code, content, "get_client_secret")
                span.set_status(Status(StatusCode.ERROR, f"HTTP {status_code}"))
                raise GetClientSecretError(
                    status_code, payload, identity_id=identity_id, api_version=session.api_version
                )

            envelope = decode_success(ClientSecretEnvelope, content, "get_client_secret", identity_id)
            span.set_status(Status(StatusCode.OK))
            return ClientSecret(envelope.client_secret_data)

    async def list_client_secrets(self, session: AccessTokenSession, identity_id: str) -> list[ClientSecret]:
        """
        Lists the client secrets of an identity (metadata only).

        Raises:
            ListClientSecretsError: If the service rejects the request.
            MalformedResponseError: If the success body does not match the schema.
            UnclassifiableResponseError: If a rejection body matches no known error shape.
            TransportError: If the request fails at the network level.
        """
        with tracer.start_as_current_span("universal_auth.list_client_secrets") as span:
            span.set_attribute("identity.id", identity_id)

            status_code, content = await self._send(
                "list_client_secrets",
                "GET",
                self.client_secrets_url(session.api_version, identity_id),
                session=session,
            )
            span.set_attribute("http.status_code", status_code)
            logger.info(f"Universal Auth list_client_secrets for identity {identity_id}: HTTP {status_code}")

            if status_code != 200:
                payload = classify_rejection(status_code, content, "list_client_secrets")
                span.set_status(Status(StatusCode.ERROR, f"HTTP {status_code}"))
                raise ListClientSecretsError(
                    status_code, payload, identity_id=identity_id, api_version=session.api_version
                )

            envelope = decode_success(ClientSecretListEnvelope, content, "list_client_secrets", identity_id)
            span.set_status(Status(StatusCode.OK))
            return [ClientSecret(data) for data in envelope.client_secret_data]
