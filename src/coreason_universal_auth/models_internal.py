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
Internal request and response envelopes for the coreason-universal-auth package.
These are not exposed in the public API.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from coreason_universal_auth.models import ClientSecretData, IdentityUniversalAuthData, TrustedIp


class IdentityConfigRequest(BaseModel):
    """Combined trusted-IP and token-limits form sent by attach and update."""

    model_config = ConfigDict(populate_by_name=True)

    client_secret_trusted_ips: list[TrustedIp] = Field(..., alias="clientSecretTrustedIps")
    access_token_trusted_ips: list[TrustedIp] = Field(..., alias="accessTokenTrustedIps")
    access_token_ttl: int = Field(..., alias="accessTokenTTL", ge=0)
    access_token_max_ttl: int = Field(..., alias="accessTokenMaxTTL", ge=0)
    access_token_num_uses_limit: int = Field(..., alias="accessTokenNumUsesLimit", ge=0)

    @model_validator(mode="after")
    def check_ttl_bounds(self) -> "IdentityConfigRequest":
        # A max TTL of 0 leaves the bound to the service
        if self.access_token_max_ttl and self.access_token_ttl > self.access_token_max_ttl:
            raise ValueError(
                f"accessTokenTTL ({self.access_token_ttl}) cannot exceed accessTokenMaxTTL ({self.access_token_max_ttl})"
            )
        return self

    def to_body(self) -> dict[str, Any]:
        return {
            "clientSecretTrustedIps": [ip.to_request() for ip in self.client_secret_trusted_ips],
            "accessTokenTrustedIps": [ip.to_request() for ip in self.access_token_trusted_ips],
            "accessTokenTTL": self.access_token_ttl,
            "accessTokenMaxTTL": self.access_token_max_ttl,
            "accessTokenNumUsesLimit": self.access_token_num_uses_limit,
        }


class CreateClientSecretRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: str = ""
    num_uses_limit: int = Field(default=0, alias="numUsesLimit", ge=0)
    ttl: int = Field(default=0, ge=0)


class IdentityUniversalAuthEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    identity_universal_auth: IdentityUniversalAuthData = Field(..., alias="identityUniversalAuth")


class ClientSecretCreatedEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    client_secret: str = Field(..., alias="clientSecret", min_length=1)
    client_secret_data: ClientSecretData = Field(..., alias="clientSecretData")


class ClientSecretEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    client_secret_data: ClientSecretData = Field(..., alias="clientSecretData")


class ClientSecretListEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    client_secret_data: list[ClientSecretData] = Field(default_factory=list, alias="clientSecretData")
