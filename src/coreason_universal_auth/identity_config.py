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
IdentityConfigManager component: attach / retrieve / update / revoke the Universal Auth
configuration of an identity.
"""

from collections.abc import Sequence

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from coreason_universal_auth.api_response import indicates_nothing_to_revoke
from coreason_universal_auth.endpoint import UniversalAuthEndpoint, classify_rejection, decode_success
from coreason_universal_auth.exceptions import (
    ApiRejectionError,
    AttachConfigurationError,
    RetrieveIdentityError,
    RevokeConfigurationError,
    UpdateIdentityError,
)
from coreason_universal_auth.models import (
    DEFAULT_ACCESS_TOKEN_NUM_USES_LIMIT,
    DEFAULT_ACCESS_TOKEN_TTL,
    AccessTokenSession,
    IdentityUniversalAuthConfig,
    TrustedIp,
    default_trusted_ips,
)
from coreason_universal_auth.models_internal import IdentityConfigRequest, IdentityUniversalAuthEnvelope
from coreason_universal_auth.utils.logger import logger

tracer = trace.get_tracer(__name__)


def build_identity_config_request(
    client_secret_trusted_ips: Sequence[TrustedIp] | None = None,
    access_token_trusted_ips: Sequence[TrustedIp] | None = None,
    access_token_ttl: int | None = None,
    access_token_max_ttl: int | None = None,
    access_token_num_uses_limit: int | None = None,
) -> IdentityConfigRequest:
    """
    Builds the attach / update request body, substituting defaults for omitted values.

    Each omitted trusted IP list is replaced, independently, by 0.0.0.0/0 and ::/0.
    Omitted TTL and max TTL become the platform default (30 days); an omitted use-limit
    becomes 0 (unlimited).

    Raises:
        ValueError: If a value is negative or the TTL exceeds a non-zero max TTL.
    """
    return IdentityConfigRequest(
        client_secret_trusted_ips=(
            list(client_secret_trusted_ips) if client_secret_trusted_ips is not None else default_trusted_ips()
        ),
        access_token_trusted_ips=(
            list(access_token_trusted_ips) if access_token_trusted_ips is not None else default_trusted_ips()
        ),
        access_token_ttl=DEFAULT_ACCESS_TOKEN_TTL if access_token_ttl is None else access_token_ttl,
        access_token_max_ttl=DEFAULT_ACCESS_TOKEN_TTL if access_token_max_ttl is None else access_token_max_ttl,
        access_token_num_uses_limit=(
            DEFAULT_ACCESS_TOKEN_NUM_USES_LIMIT if access_token_num_uses_limit is None else access_token_num_uses_limit
        ),
    )


class IdentityConfigManager(UniversalAuthEndpoint):
    """
    Manages the Universal Auth configuration attached to identities.

    All calls are single-shot: nothing is retried, cached or locked. Conflicting calls
    for the same identity are serialized by the service, and their failures surface as
    ordinary classified errors.
    """

    async def _write_config(
        self,
        operation: str,
        method: str,
        error_cls: type[ApiRejectionError],
        session: AccessTokenSession,
        identity_id: str,
        request: IdentityConfigRequest,
    ) -> IdentityUniversalAuthConfig:
        with tracer.start_as_current_span(f"universal_auth.{operation}") as span:
            span.set_attribute("identity.id", identity_id)

            status_code, content = await self._send(
                operation,
                method,
                self.identity_url(session.api_version, identity_id),
                session=session,
                json=request.to_body(),
            )
            span.set_attribute("http.status_code", status_code)
            logger.info(f"Universal Auth {operation} for identity {identity_id}: HTTP {status_code}")

            if status_code != 200:
                payload = classify_rejection(status_code, content, operation)
                span.set_status(Status(StatusCode.ERROR, f"HTTP {status_code}"))
                raise error_cls(status_code, payload, identity_id=identity_id, api_version=session.api_version)

            envelope = decode_success(IdentityUniversalAuthEnvelope, content, operation, identity_id)
            span.set_status(Status(StatusCode.OK))
            return IdentityUniversalAuthConfig(envelope.identity_universal_auth)

    async def attach(
        self,
        session: AccessTokenSession,
        identity_id: str,
        client_secret_trusted_ips: Sequence[TrustedIp] | None = None,
        access_token_trusted_ips: Sequence[TrustedIp] | None = None,
        access_token_ttl: int | None = None,
        access_token_max_ttl: int | None = None,
        access_token_num_uses_limit: int | None = None,
    ) -> IdentityUniversalAuthConfig:
        """
        Attaches a Universal Auth configuration to an identity.

        Not idempotent: attaching to an identity that is already configured fails with
        an `AttachConfigurationError` whose `already_attached` is True.

        Args:
            session: Access token used to authorize the call.
            identity_id: The identity to configure.
            client_secret_trusted_ips: Where client secrets may be used from (default: anywhere).
            access_token_trusted_ips: Where access tokens may be used from (default: anywhere).
            access_token_ttl: Access token lifetime in seconds (default: 30 days).
            access_token_max_ttl: Access token lifetime upper bound in seconds (default: 30 days).
            access_token_num_uses_limit: Access token use-limit (default: 0, unlimited).

        Returns:
            IdentityUniversalAuthConfig: The configuration as stored by the service.

        Raises:
            ValueError: If the requested limits are invalid. No request is sent.
            AttachConfigurationError: If the service rejects the request.
            MalformedResponseError: If the success body does not match the schema.
            UnclassifiableResponseError: If a rejection body matches no known error shape.
            TransportError: If the request fails at the network level.
        """
        request = build_identity_config_request(
            client_secret_trusted_ips,
            access_token_trusted_ips,
            access_token_ttl,
            access_token_max_ttl,
            access_token_num_uses_limit,
        )
        return await self._write_config("attach", "POST", AttachConfigurationError, session, identity_id, request)

    async def update(
        self,
        session: AccessTokenSession,
        identity_id: str,
        client_secret_trusted_ips: Sequence[TrustedIp] | None = None,
        access_token_trusted_ips: Sequence[TrustedIp] | None = None,
        access_token_ttl: int | None = None,
        access_token_max_ttl: int | None = None,
        access_token_num_uses_limit: int | None = None,
    ) -> IdentityUniversalAuthConfig:
        """
        Updates the Universal Auth configuration of an already configured identity.

        Takes the same arguments, with the same defaults, as `attach`.

        Raises:
            ValueError: If the requested limits are invalid. No request is sent.
            UpdateIdentityError: If the service rejects the request.
            MalformedResponseError: If the success body does not match the schema.
            UnclassifiableResponseError: If a rejection body matches no known error shape.
            TransportError: If the request fails at the network level.
        """
        request = build_identity_config_request(
            client_secret_trusted_ips,
            access_token_trusted_ips,
            access_token_ttl,
            access_token_max_ttl,
            access_token_num_uses_limit,
        )
        return await self._write_config("update", "PATCH", UpdateIdentityError, session, identity_id, request)

    async def retrieve(self, session: AccessTokenSession, identity_id: str) -> IdentityUniversalAuthConfig:
        """
        Retrieves the Universal Auth configuration of an identity.

        Any valid access token may be used; it need not be the one that attached the
        configuration.

        Raises:
            RetrieveIdentityError: If the service rejects the request (e.g. not configured).
            MalformedResponseError: If the success body does not match the schema.
            UnclassifiableResponseError: If a rejection body matches no known error shape.
            TransportError: If the request fails at the network level.
        """
        with tracer.start_as_current_span("universal_auth.retrieve") as span:
            span.set_attribute("identity.id", identity_id)

            status_code, content = await self._send(
                "retrieve", "GET", self.identity_url(session.api_version, identity_id), session=session
            )
            span.set_attribute("http.status_code", status_code)
            logger.info(f"Universal Auth retrieve for identity {identity_id}: HTTP {status_code}")

            if status_code != 200:
                payload = classify_rejection(status_code, content, "retrieve")
                span.set_status(Status(StatusCode.ERROR, f"HTTP {status_code}"))
                raise RetrieveIdentityError(
                    status_code, payload, identity_id=identity_id, api_version=session.api_version
                )

            envelope = decode_success(IdentityUniversalAuthEnvelope, content, "retrieve", identity_id)
            span.set_status(Status(StatusCode.OK))
            return IdentityUniversalAuthConfig(envelope.identity_universal_auth)

    async def revoke(self, session: AccessTokenSession, identity_id: str) -> IdentityUniversalAuthConfig | None:
        """
        Revokes (removes) the Universal Auth configuration of an identity.

        Idempotent: when the identity has no configuration attached the call succeeds and
        returns None.

        Returns:
            IdentityUniversalAuthConfig | None: The final snapshot of the removed
            configuration, or None if nothing was attached.

        Raises:
            RevokeConfigurationError: If the service rejects the request for another reason.
            MalformedResponseError: If the success body does not match the schema.
            UnclassifiableResponseError: If a rejection body matches no known error shape.
            TransportError: If the request fails at the network level.
        """
        with tracer.start_as_current_span("universal_auth.revoke") as span:
            span.set_attribute("identity.id", identity_id)

            status_code, content = await self._send(
                "revoke", "DELETE", self.identity_url(session.api_version, identity_id), session=session
            )
            span.set_attribute("http.status_code", status_code)
            logger.info(f"Universal Auth revoke for identity {identity_id}: HTTP {status_code}")

            if status_code != 200:
                payload = classify_rejection(status_code, content, "revoke")
                if indicates_nothing_to_revoke(payload, status_code):
                    logger.info(f"Identity {identity_id} has no Universal Auth configuration; nothing to revoke")
                    span.set_attribute("universal_auth.already_revoked", True)
                    return None
                span.set_status(Status(StatusCode.ERROR, f"HTTP {status_code}"))
                raise RevokeConfigurationError(
                    status_code, payload, identity_id=identity_id, api_version=session.api_version
                )

            envelope = decode_success(IdentityUniversalAuthEnvelope, content, "revoke", identity_id)
            span.set_status(Status(StatusCode.OK))
            return IdentityUniversalAuthConfig(envelope.identity_universal_auth)
