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
UniversalAuthManager component for orchestrating login, identity configuration and
client secret operations.
"""

from collections.abc import Sequence
from functools import partial
from typing import Any

import httpx
from anyio.from_thread import start_blocking_portal
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from coreason_universal_auth.client_secrets import ClientSecretManager
from coreason_universal_auth.config import UniversalAuthConfig
from coreason_universal_auth.identity_config import IdentityConfigManager
from coreason_universal_auth.login import login
from coreason_universal_auth.models import (
    AccessTokenSession,
    ClientSecret,
    CredentialSet,
    IdentityUniversalAuthConfig,
    TrustedIp,
)
from coreason_universal_auth.transport import SafeAsyncTransport


class UniversalAuthManagerAsync:
    """
    Async implementation of UniversalAuthManager (The Core).
    Handles resources via async context manager.

    Attributes:
        config (UniversalAuthConfig): The configuration object.
        identities (IdentityConfigManager): Identity configuration operations.
        client_secrets (ClientSecretManager): Client secret operations.
    """

    def __init__(self, config: UniversalAuthConfig, client: httpx.AsyncClient | None = None) -> None:
        """
        Initialize the UniversalAuthManagerAsync.

        Args:
            config: The configuration object.
            client: External async client (optional). If not provided, one is created with the
                configured timeout, pinned to public IPs when `enforce_public_host` is set.
        """
        self.config = config
        self._internal_client = client is None

        if client:
            self._client = client
        else:
            transport = SafeAsyncTransport() if config.enforce_public_host else None
            self._client = httpx.AsyncClient(transport=transport, timeout=config.http_timeout)

        HTTPXClientInstrumentor().instrument_client(self._client)

        self.identities = IdentityConfigManager(self._client, config.host, config.max_response_bytes)
        self.client_secrets = ClientSecretManager(self._client, config.host, config.max_response_bytes)

    async def __aenter__(self) -> "UniversalAuthManagerAsync":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._internal_client:
            await self._client.aclose()

    async def login(self, credentials: CredentialSet | None = None) -> AccessTokenSession:
        """
        Exchanges credentials for an access token.

        Args:
            credentials: The credentials to use. Defaults to the ones in the configuration.

        Returns:
            AccessTokenSession: The access token, guarded.

        Raises:
            MissingCredentialFieldError: If a credential field is missing or empty.
            LoginError: If the service rejects the credentials.
            MalformedLoginResponseError: If the service answers 200 with an unexpected body.
        """
        if credentials is None:
            credentials = self.config.to_credentials()
        return await login(credentials, self._client, self.config.host, self.config.max_response_bytes)

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
        """Attaches a Universal Auth configuration. See `IdentityConfigManager.attach`."""
        return await self.identities.attach(
            session,
            identity_id,
            client_secret_trusted_ips=client_secret_trusted_ips,
            access_token_trusted_ips=access_token_trusted_ips,
            access_token_ttl=access_token_ttl,
            access_token_max_ttl=access_token_max_ttl,
            access_token_num_uses_limit=access_token_num_uses_limit,
        )

    async def retrieve(self, session: AccessTokenSession, identity_id: str) -> IdentityUniversalAuthConfig:
        return await self.identities.retrieve(session, identity_id)

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
        """Updates a Universal Auth configuration. See `IdentityConfigManager.update`."""
        return await self.identities.update(
            session,
            identity_id,
            client_secret_trusted_ips=client_secret_trusted_ips,
            access_token_trusted_ips=access_token_trusted_ips,
            access_token_ttl=access_token_ttl,
            access_token_max_ttl=access_token_max_ttl,
            access_token_num_uses_limit=access_token_num_uses_limit,
        )

    async def revoke(self, session: AccessTokenSession, identity_id: str) -> IdentityUniversalAuthConfig | None:
        return await self.identities.revoke(session, identity_id)

    async def create_client_secret(
        self,
        session: AccessTokenSession,
        identity_id: str,
        description: str = "",
        num_uses_limit: int = 0,
        ttl: int = 0,
    ) -> ClientSecret:
        return await self.client_secrets.create(session, identity_id, description, num_uses_limit, ttl)

    async def revoke_client_secret(
        self, session: AccessTokenSession, identity_id: str, client_secret_id: str
    ) -> ClientSecret | None:
        return await self.client_secrets.revoke(session, identity_id, client_secret_id)

    async def get_client_secret(
        self, session: AccessTokenSession, identity_id: str, client_secret_id: str
    ) -> ClientSecret:
        return await self.client_secrets.get_by_id(session, identity_id, client_secret_id)

    async def list_client_secrets(self, session: AccessTokenSession, identity_id: str) -> list[ClientSecret]:
        return await self.client_secrets.list_client_secrets(session, identity_id)


class UniversalAuthManager:
    """
    Blocking facade over UniversalAuthManagerAsync.

    Runs the async manager on an anyio blocking portal (an event loop in a worker
    thread). Use as a context manager, or call `close()` when done.
    """

    def __init__(self, config: UniversalAuthConfig, client: httpx.AsyncClient | None = None) -> None:
        self._portal_cm = start_blocking_portal()
        self._portal = self._portal_cm.__enter__()
        try:
            self._async = UniversalAuthManagerAsync(config, client)
        except BaseException:
            self._portal_cm.__exit__(None, None, None)
            raise
        self._closed = False

    def __enter__(self) -> "UniversalAuthManager":
        self._portal.call(self._async.__aenter__)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close(exc_type, exc_val, exc_tb)

    def close(self, exc_type: Any = None, exc_val: Any = None, exc_tb: Any = None) -> None:
        """Closes the internal HTTP client (if owned) and stops the portal."""
        if self._closed:
            return
        self._closed = True
        try:
            self._portal.call(self._async.__aexit__, exc_type, exc_val, exc_tb)
        finally:
            self._portal_cm.__exit__(None, None, None)

    def login(self, credentials: CredentialSet | None = None) -> AccessTokenSession:
        return self._portal.call(self._async.login, credentials)

    def attach(
        self,
        session: AccessTokenSession,
        identity_id: str,
        client_secret_trusted_ips: Sequence[TrustedIp] | None = None,
        access_token_trusted_ips: Sequence[TrustedIp] | None = None,
        access_token_ttl: int | None = None,
        access_token_max_ttl: int | None = None,
        access_token_num_uses_limit: int | None = None,
    ) -> IdentityUniversalAuthConfig:
        return self._portal.call(
            partial(
                self._async.attach,
                session,
                identity_id,
                client_secret_trusted_ips=client_secret_trusted_ips,
                access_token_trusted_ips=access_token_trusted_ips,
                access_token_ttl=access_token_ttl,
                access_token_max_ttl=access_token_max_ttl,
                access_token_num_uses_limit=access_token_num_uses_limit,
            )
        )

    def retrieve(self, session: AccessTokenSession, identity_id: str) -> IdentityUniversalAuthConfig:
        return self._portal.call(self._async.retrieve, session, identity_id)

    def update(
        self,
        session: AccessTokenSession,
        identity_id: str,
        client_secret_trusted_ips: Sequence[TrustedIp] | None = None,
        access_token_trusted_ips: Sequence[TrustedIp] | None = None,
        access_token_ttl: int | None = None,
        access_token_max_ttl: int | None = None,
        access_token_num_uses_limit: int | None = None,
    ) -> IdentityUniversalAuthConfig:
        return self._portal.call(
            partial(
                self._async.update,
                session,
                identity_id,
                client_secret_trusted_ips=client_secret_trusted_ips,
                access_token_trusted_ips=access_token_trusted_ips,
                access_token_ttl=access_token_ttl,
                access_token_max_ttl=access_token_max_ttl,
                access_token_num_uses_limit=access_token_num_uses_limit,
            )
        )

    def revoke(self, session: AccessTokenSession, identity_id: str) -> IdentityUniversalAuthConfig | None:
        return self._portal.call(self._async.revoke, session, identity_id)

    def create_client_secret(
        self,
        session: AccessTokenSession,
        identity_id: str,
        description: str = "",
        num_uses_limit: int = 0,
        ttl: int = 0,
    ) -> ClientSecret:
        return self._portal.call(self._async.create_client_secret, session, identity_id, description, num_uses_limit, ttl)

    def revoke_client_secret(
        self, session: AccessTokenSession, identity_id: str, client_secret_id: str
    ) -> ClientSecret | None:
        return self._portal.call(self._async.revoke_client_secret, session, identity_id, client_secret_id)

    def get_client_secret(self, session: AccessTokenSession, identity_id: str, client_secret_id: str) -> ClientSecret:
        return self._portal.call(self._async.get_client_secret, session, identity_id, client_secret_id)

    def list_client_secrets(self, session: AccessTokenSession, identity_id: str) -> list[ClientSecret]:
        return self._portal.call(self._async.list_client_secrets, session, identity_id)
