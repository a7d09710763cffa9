# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_universal_auth

import json
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import pytest
from pydantic import SecretStr

from coreason_universal_auth.models import AccessTokenData, AccessTokenSession, CredentialSet

HOST = "https://secrets.example.com"
CLIENT_ID = "client-id-123"
CLIENT_SECRET = "super-secret-client-secret"
IDENTITY_ID = "identity-abc"
VALID_TOKEN = "valid-access-token"
TIMESTAMP = "2025-01-01T00:00:00.000Z"

DEFAULT_IPS_WIRE = [
    {"ipAddress": "0.0.0.0", "prefix": 0, "type": "ipv4"},
    {"ipAddress": "::", "prefix": 0, "type": "ipv6"},
]


def json_response(status_code: int, body: Any) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(body).encode("utf-8"))


def rejection(status_code: int, message: str, error: str, req_id: str | None = "req-1") -> dict[str, Any]:
    body: dict[str, Any] = {"statusCode": status_code, "message": message, "error": error}
    if req_id is not None:
        body["reqId"] = req_id
    return body


def _parse_ip(entry: dict[str, str]) -> dict[str, Any]:
    address, _, prefix = entry["ipAddress"].partition("/")
    return {
        "ipAddress": address,
        "prefix": int(prefix) if prefix else None,
        "type": "ipv6" if ":" in address else "ipv4",
    }


class FakeUniversalAuthService:
    """
    In-memory stand-in for the Universal Auth API, served through httpx.MockTransport.

    On the non-premium tier (the default) trusted IPs in requests are ignored and the
    defaults are always reported, as the real service does.
    """

    def __init__(self, premium: bool = False) -> None:
        self.premium = premium
        self.configs: dict[str, dict[str, Any]] = {}
        self.secrets: dict[str, dict[str, dict[str, Any]]] = {}
        self.logins: dict[str, str] = {CLIENT_ID: CLIENT_SECRET}
        self.requests: list[httpx.Request] = []
        self._counter = 0

    # --- helpers -------------------------------------------------------------

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}"

    def _config_from_body(self, identity_id: str, body: dict[str, Any], existing: dict[str, Any] | None) -> dict[str, Any]:
        if self.premium:
            access_ips = [_parse_ip(e) for e in body["accessTokenTrustedIps"]]
            secret_ips = [_parse_ip(e) for e in body["clientSecretTrustedIps"]]
        else:
            access_ips = list(DEFAULT_IPS_WIRE)
            secret_ips = list(DEFAULT_IPS_WIRE)
        return {
            "id": existing["id"] if existing else self._next_id("ua"),
            "identityId": identity_id,
            "clientId": existing["clientId"] if existing else f"client-of-{identity_id}",
            "accessTokenTTL": body["accessTokenTTL"],
            "accessTokenMaxTTL": body["accessTokenMaxTTL"],
            "accessTokenNumUsesLimit": body["accessTokenNumUsesLimit"],
            "accessTokenTrustedIps": access_ips,
            "clientSecretTrustedIps": secret_ips,
            "createdAt": existing["createdAt"] if existing else TIMESTAMP,
            "updatedAt": TIMESTAMP,
        }

    # --- dispatch ------------------------------------------------------------

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path.strip("/").split("/")
        # api / {version} / auth / universal-auth / ...
        if parts[:2] != ["api", "v1"] or parts[2:4] != ["auth", "universal-auth"]:
            return json_response(404, rejection(404, "Route not found", "NotFound", req_id=None))

        rest = parts[4:]
        if rest == ["login"] and request.method == "POST":
            return self._login(json.loads(request.content))

        if request.headers.get("Authorization") != f"Bearer {VALID_TOKEN}":
            return json_response(401, rejection(401, "Token missing", "UnauthorizedError"))

        if rest[0] != "identities" or len(rest) < 2:
            return json_response(404, rejection(404, "Route not found", "NotFound", req_id=None))

        identity_id = rest[1]
        if len(rest) == 2:
            return self._identity(request, identity_id)
        return self._client_secrets(request, identity_id, rest[3:])

    def _login(self, body: dict[str, Any]) -> httpx.Response:
        if self.logins.get(body.get("clientId", "")) != body.get("clientSecret") or not body.get("clientSecret"):
            return json_response(401, rejection(401, "Invalid credentials", "UnauthorizedError"))
        return json_response(
            200,
            {
                "accessToken": VALID_TOKEN,
                "expiresIn": 2592000,
                "accessTokenMaxTTL": 2592000,
                "tokenType": "Bearer",
            },
        )

    def _identity(self, request: httpx.Request, identity_id: str) -> httpx.Response:
        existing = self.configs.get(identity_id)
        if request.method == "POST":
            if existing:
                return json_response(
                    400, rejection(400, "Failed to add universal auth to already-configured identity", "BadRequest")
                )
            self.configs[identity_id] = self._config_from_body(identity_id, json.loads(request.content), None)
            return json_response(200, {"identityUniversalAuth": self.configs[identity_id]})

        if existing is None:
            return json_response(
                404, rejection(404, f"Failed to find universal auth for identity {identity_id}", "NotFound", req_id=None)
            )

        if request.method == "GET":
            return json_response(200, {"identityUniversalAuth": existing})
        if request.method == "PATCH":
            self.configs[identity_id] = self._config_from_body(identity_id, json.loads(request.content), existing)
            return json_response(200, {"identityUniversalAuth": self.configs[identity_id]})
        if request.method == "DELETE":
            del self.configs[identity_id]
            self.secrets.pop(identity_id, None)
            return json_response(200, {"identityUniversalAuth": existing})
        return json_response(405, rejection(405, "Method not allowed", "BadRequest"))

    def _client_secrets(self, request: httpx.Request, identity_id: str, rest: list[str]) -> httpx.Response:
        config = self.configs.get(identity_id)
        if config is None:
            return json_response(
                404, rejection(404, f"Failed to find universal auth for identity {identity_id}", "NotFound", req_id=None)
            )
        secrets = self.secrets.setdefault(identity_id, {})

        if not rest and request.method == "POST":
            body = json.loads(request.content)
            secret_id = self._next_id("cs")
            plaintext = f"{secret_id}-plaintext-value"
            secrets[secret_id] = {
                "id": secret_id,
                "identityUAId": config["id"],
                "description": body["description"],
                "clientSecretPrefix": plaintext[:4],
                "clientSecretNumUses": 0,
                "clientSecretNumUsesLimit": body["numUsesLimit"],
                "clientSecretTTL": body["ttl"],
                "isClientSecretRevoked": False,
                "createdAt": TIMESTAMP,
                "updatedAt": TIMESTAMP,
            }
            self.logins[config["clientId"]] = plaintext
            return json_response(200, {"clientSecret": plaintext, "clientSecretData": secrets[secret_id]})

        if not rest and request.method == "GET":
            return json_response(200, {"clientSecretData": list(secrets.values())})

        secret = secrets.get(rest[0])
        if secret is None:
            return json_response(
                404, rejection(404, f"Failed to find client secret {rest[0]}", "NotFound", req_id=None)
            )

        if len(rest) == 1 and request.method == "GET":
            return json_response(200, {"clientSecretData": secret})
        if rest[1:] == ["revoke"] and request.method == "POST":
            if secret["isClientSecretRevoked"]:
                return json_response(400, rejection(400, "Client secret is already revoked", "BadRequest"))
            secret["isClientSecretRevoked"] = True
            if self.logins.get(config["clientId"], "").startswith(secret["id"]):
                del self.logins[config["clientId"]]
            return json_response(200, {"clientSecretData": secret})
        return json_response(405, rejection(405, "Method not allowed", "BadRequest"))


@pytest.fixture
def service() -> FakeUniversalAuthService:
    return FakeUniversalAuthService()


@pytest.fixture
async def http_client(service: FakeUniversalAuthService) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(service)) as client:
        yield client


@pytest.fixture
def credentials() -> CredentialSet:
    return CredentialSet(
        client_id=CLIENT_ID,
        client_secret=SecretStr(CLIENT_SECRET),
        identity_id=IDENTITY_ID,
        api_version="v1",
    )


@pytest.fixture
def session() -> AccessTokenSession:
    data = AccessTokenData(
        access_token=VALID_TOKEN,
        access_token_max_ttl=2592000,
        expires_in=2592000,
        token_type="Bearer",
    )
    return AccessTokenSession(data, api_version="v1")
