# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_universal_auth

import gc
import json

import httpx
import pytest

from coreason_universal_auth.api_response import BadRequest, Forbidden, NotFound, Unauthorized
from coreason_universal_auth.exceptions import (
    AttachConfigurationError,
    MalformedResponseError,
    RetrieveIdentityError,
    RevokeConfigurationError,
    UpdateIdentityError,
)
from coreason_universal_auth.identity_config import IdentityConfigManager, build_identity_config_request
from coreason_universal_auth.login import login
from coreason_universal_auth.models import (
    DEFAULT_ACCESS_TOKEN_TTL,
    AccessTokenData,
    AccessTokenSession,
    CredentialSet,
    TrustedIp,
    TrustedIpType,
)

from conftest import HOST, IDENTITY_ID, FakeUniversalAuthService, json_response, rejection

DEFAULT_IPS = [("0.0.0.0", 0, TrustedIpType.IPV4), ("::", 0, TrustedIpType.IPV6)]


def _ips(ips: list[TrustedIp]) -> list[tuple[str, int | None, TrustedIpType]]:
    return [(ip.ip_address, ip.prefix, ip.kind) for ip in ips]


@pytest.fixture
def identities(http_client: httpx.AsyncClient) -> IdentityConfigManager:
    return IdentityConfigManager(http_client, HOST)


class TestBuildRequest:
    def test_defaults(self) -> None:
        body = build_identity_config_request().to_body()
        assert body == {
            "clientSecretTrustedIps": [{"ipAddress": "0.0.0.0/0"}, {"ipAddress": "::/0"}],
            "accessTokenTrustedIps": [{"ipAddress": "0.0.0.0/0"}, {"ipAddress": "::/0"}],
            "accessTokenTTL": DEFAULT_ACCESS_TOKEN_TTL,
            "accessTokenMaxTTL": DEFAULT_ACCESS_TOKEN_TTL,
            "accessTokenNumUsesLimit": 0,
        }

    def test_trusted_ips_substituted_independently(self) -> None:
        office = [TrustedIp.from_cidr("203.0.113.0/24")]
        body = build_identity_config_request(client_secret_trusted_ips=office).to_body()
        assert body["clientSecretTrustedIps"] == [{"ipAddress": "203.0.113.0/24"}]
        assert body["accessTokenTrustedIps"] == [{"ipAddress": "0.0.0.0/0"}, {"ipAddress": "::/0"}]

    def test_empty_list_is_kept(self) -> None:
        body = build_identity_config_request(access_token_trusted_ips=[]).to_body()
        assert body["accessTokenTrustedIps"] == []

    def test_zero_is_sent_as_is(self) -> None:
        body = build_identity_config_request(access_token_ttl=0, access_token_max_ttl=0).to_body()
        assert body["accessTokenTTL"] == 0
        assert body["accessTokenMaxTTL"] == 0

    def test_ttl_above_max_rejected(self) -> None:
        with pytest.raises(ValueError, match="cannot exceed"):
            build_identity_config_request(access_token_ttl=7200, access_token_max_ttl=3600)

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError):
            build_identity_config_request(access_token_num_uses_limit=-1)


@pytest.mark.asyncio
async def test_attach_round_trip(
    identities: IdentityConfigManager, session: AccessTokenSession, service: FakeUniversalAuthService
) -> None:
    attached = await identities.attach(
        session, IDENTITY_ID, access_token_ttl=3600, access_token_max_ttl=7200, access_token_num_uses_limit=5
    )
    data = attached.expose_secret()
    assert data.access_token_ttl == 3600
    assert data.access_token_max_ttl == 7200
    assert data.access_token_num_uses_limit == 5
    assert data.identity_id == IDENTITY_ID

    retrieved_config = await identities.retrieve(session, IDENTITY_ID)
    retrieved = retrieved_config.expose_secret()
    assert retrieved.access_token_ttl == 3600
    assert retrieved.access_token_max_ttl == 7200
    assert retrieved.access_token_num_uses_limit == 5
    assert retrieved.record_id == data.record_id


@pytest.mark.asyncio
async def test_exposed_data_outlives_wrapper(identities: IdentityConfigManager, session: AccessTokenSession) -> None:
    await identities.attach(
        session, IDENTITY_ID, access_token_ttl=3600, access_token_max_ttl=7200, access_token_num_uses_limit=5
    )

    data = (await identities.retrieve(session, IDENTITY_ID)).expose_secret()
    gc.collect()

    assert data.access_token_ttl == 3600
    assert data.access_token_max_ttl == 7200
    assert data.access_token_num_uses_limit == 5
    assert data.identity_id == IDENTITY_ID
    assert (await identities.retrieve(session, IDENTITY_ID)).expose_secret().access_token_ttl == 3600


@pytest.mark.asyncio
async def test_attach_request_shape(
    identities: IdentityConfigManager, session: AccessTokenSession, service: FakeUniversalAuthService
) -> None:
    await identities.attach(session, IDENTITY_ID, access_token_ttl=60, access_token_max_ttl=120)

    request = service.requests[-1]
    assert request.method == "POST"
    assert str(request.url) == f"{HOST}/api/v1/auth/universal-auth/identities/{IDENTITY_ID}"
    assert request.headers["Authorization"] == f"Bearer {session.expose_access_token()}"
    assert request.headers["Accept"] == "application/json"
    body = json.loads(request.content)
    assert set(body) == {
        "clientSecretTrustedIps",
        "accessTokenTrustedIps",
        "accessTokenTTL",
        "accessTokenMaxTTL",
        "accessTokenNumUsesLimit",
    }


@pytest.mark.asyncio
async def test_attach_defaults_reported(identities: IdentityConfigManager, session: AccessTokenSession) -> None:
    config = await identities.attach(session, IDENTITY_ID)
    data = config.expose_secret()

    assert data.access_token_ttl == DEFAULT_ACCESS_TOKEN_TTL
    assert data.access_token_max_ttl == DEFAULT_ACCESS_TOKEN_TTL
    assert data.access_token_num_uses_limit == 0
    assert _ips(data.access_token_trusted_ips) == DEFAULT_IPS
    assert _ips(data.client_secret_trusted_ips) == DEFAULT_IPS


@pytest.mark.asyncio
async def test_trusted_ips_reported_on_premium_tier(
    http_client: httpx.AsyncClient, service: FakeUniversalAuthService, session: AccessTokenSession
) -> None:
    service.premium = True
    identities = IdentityConfigManager(http_client, HOST)

    config = await identities.attach(
        session, IDENTITY_ID, access_token_trusted_ips=[TrustedIp.from_cidr("10.0.0.0/8")]
    )
    data = config.expose_secret()

    assert _ips(data.access_token_trusted_ips) == [("10.0.0.0", 8, TrustedIpType.IPV4)]
    assert _ips(data.client_secret_trusted_ips) == DEFAULT_IPS


@pytest.mark.asyncio
async def test_attach_twice_reports_already_attached(
    identities: IdentityConfigManager, session: AccessTokenSession
) -> None:
    await identities.attach(session, IDENTITY_ID)

    with pytest.raises(AttachConfigurationError) as exc_info:
        await identities.attach(session, IDENTITY_ID)

    error = exc_info.value
    assert error.already_attached
    assert isinstance(error.payload, BadRequest)
    assert error.identity_id == IDENTITY_ID
    assert error.api_version == "v1"


@pytest.mark.asyncio
async def test_attach_rejected_by_permissions(session: AccessTokenSession) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return json_response(403, {**rejection(403, "Permission denied", "PermissionDenied"), "details": None})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(AttachConfigurationError) as exc_info:
            await IdentityConfigManager(client, HOST).attach(session, IDENTITY_ID)

    assert isinstance(exc_info.value.payload, Forbidden)
    assert not exc_info.value.already_attached


@pytest.mark.asyncio
async def test_attach_invalid_limits_send_nothing(
    identities: IdentityConfigManager, session: AccessTokenSession, service: FakeUniversalAuthService
) -> None:
    with pytest.raises(ValueError):
        await identities.attach(session, IDENTITY_ID, access_token_ttl=10, access_token_max_ttl=5)
    assert service.requests == []


@pytest.mark.asyncio
async def test_retrieve_unconfigured_is_not_found(
    identities: IdentityConfigManager, session: AccessTokenSession
) -> None:
    with pytest.raises(RetrieveIdentityError) as exc_info:
        await identities.retrieve(session, "never-configured")

    assert isinstance(exc_info.value.payload, NotFound)
    assert exc_info.value.status_code == 404
    assert exc_info.value.identity_id == "never-configured"


@pytest.mark.asyncio
async def test_retrieve_with_another_token(
    identities: IdentityConfigManager,
    session: AccessTokenSession,
    http_client: httpx.AsyncClient,
    credentials: CredentialSet,
) -> None:
    await identities.attach(session, IDENTITY_ID, access_token_ttl=3600, access_token_max_ttl=7200)

    other_session = await login(credentials, http_client, HOST)
    config = await identities.retrieve(other_session, IDENTITY_ID)
    data = config.expose_secret()
    assert data.access_token_ttl == 3600


@pytest.mark.asyncio
async def test_retrieve_with_invalid_token_is_unauthorized(identities: IdentityConfigManager) -> None:
    bogus = AccessTokenSession(
        AccessTokenData(access_token="expired", access_token_max_ttl=0, expires_in=0, token_type="Bearer"), "v1"
    )

    with pytest.raises(RetrieveIdentityError) as exc_info:
        await identities.retrieve(bogus, IDENTITY_ID)

    assert isinstance(exc_info.value.payload, Unauthorized)


@pytest.mark.asyncio
async def test_retrieve_malformed_body(session: AccessTokenSession) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return json_response(200, {"identityUniversalAuth": {"accessTokenTTL": "soon"}})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(MalformedResponseError) as exc_info:
            await IdentityConfigManager(client, HOST).retrieve(session, IDENTITY_ID)

    assert exc_info.value.operation == "retrieve"
    assert exc_info.value.identity_id == IDENTITY_ID


@pytest.mark.asyncio
async def test_update(
    identities: IdentityConfigManager, session: AccessTokenSession, service: FakeUniversalAuthService
) -> None:
    created_config = await identities.attach(session, IDENTITY_ID)
    created = created_config.expose_secret()

    updated_config = await identities.update(session, IDENTITY_ID, access_token_ttl=600, access_token_max_ttl=1200)
    updated = updated_config.expose_secret()

    assert service.requests[-1].method == "PATCH"
    assert updated.access_token_ttl == 600
    assert updated.access_token_max_ttl == 1200
    assert updated.record_id == created.record_id
    assert updated.client_id == created.client_id


@pytest.mark.asyncio
async def test_update_unconfigured(identities: IdentityConfigManager, session: AccessTokenSession) -> None:
    with pytest.raises(UpdateIdentityError) as exc_info:
        await identities.update(session, "never-configured")
    assert isinstance(exc_info.value.payload, NotFound)


@pytest.mark.asyncio
async def test_revoke_then_retrieve_fails(identities: IdentityConfigManager, session: AccessTokenSession) -> None:
    await identities.attach(session, IDENTITY_ID, access_token_ttl=3600, access_token_max_ttl=7200)

    revoked = await identities.revoke(session, IDENTITY_ID)
    assert revoked is not None
    assert revoked.expose_secret().access_token_ttl == 3600

    with pytest.raises(RetrieveIdentityError):
        await identities.retrieve(session, IDENTITY_ID)


@pytest.mark.asyncio
async def test_revoke_twice_is_noop(identities: IdentityConfigManager, session: AccessTokenSession) -> None:
    await identities.attach(session, IDENTITY_ID)

    assert await identities.revoke(session, IDENTITY_ID) is not None
    assert await identities.revoke(session, IDENTITY_ID) is None


@pytest.mark.asyncio
async def test_revoke_other_rejection_raises(session: AccessTokenSession) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return json_response(500, rejection(500, "Something broke", "InternalServerError"))

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(RevokeConfigurationError) as exc_info:
            await IdentityConfigManager(client, HOST).revoke(session, IDENTITY_ID)

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "message", "error"),
    [
        (403, "You are not allowed to revoke", "PermissionDenied"),
        (409, "Configuration is locked", "Conflict"),
        (429, "Too many requests", "RateLimitExceeded"),
    ],
)
async def test_revoke_rejection_without_absence_raises(
    session: AccessTokenSession, status: int, message: str, error: str
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return json_response(status, rejection(status, message, error))

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(RevokeConfigurationError) as exc_info:
            await IdentityConfigManager(client, HOST).revoke(session, IDENTITY_ID)

    assert isinstance(exc_info.value.payload, BadRequest)
    assert exc_info.value.status_code == status


@pytest.mark.asyncio
async def test_attach_after_revoke(identities: IdentityConfigManager, session: AccessTokenSession) -> None:
    await identities.attach(session, IDENTITY_ID)
    await identities.revoke(session, IDENTITY_ID)

    config = await identities.attach(session, IDENTITY_ID, access_token_ttl=30, access_token_max_ttl=60)
    assert config.expose_secret().access_token_ttl == 30


async def test_identity_id_is_url_encoded(http_client: httpx.AsyncClient) -> None:
    manager = IdentityConfigManager(http_client, f"{HOST}/")
    assert manager.identity_url("v1", "a/b c") == f"{HOST}/api/v1/auth/universal-auth/identities/a%2Fb%20c"
    assert manager.client_secrets_url("v1", "id", "cs/1").endswith("/identities/id/client-secrets/cs%2F1")
