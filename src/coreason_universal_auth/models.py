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
Data models for the coreason-universal-auth package.

Wire payloads use camelCase; the in-memory models use snake_case. Every field that
differs is mapped with an explicit alias, so ``model_validate`` reads the wire form and
``model_dump(by_alias=True)`` writes it back.
"""

import ipaddress
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

from coreason_universal_auth.secret_guard import REDACTION_MARKER, SecretGuard

# Platform default for access token TTL and max TTL (30 days).
DEFAULT_ACCESS_TOKEN_TTL = 2_592_000
# 0 means unlimited uses.
DEFAULT_ACCESS_TOKEN_NUM_USES_LIMIT = 0


class TrustedIpType(StrEnum):
    IPV4 = "ipv4"
    IPV6 = "ipv6"


class TrustedIp(BaseModel):
    """
    An IP address or network a credential may be used from.

    Attributes:
        ip_address (str): The address, without prefix (e.g. "10.0.0.0").
        prefix (int | None): The network prefix length. None means a single host.
        kind (TrustedIpType): ipv4 or ipv6 (wire name "type").
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    ip_address: str = Field(..., alias="ipAddress")
    prefix: int | None = Field(default=None, ge=0, le=128)
    kind: TrustedIpType = Field(..., alias="type")

    @model_validator(mode="after")
    def check_address_family(self) -> "TrustedIp":
        try:
            address = ipaddress.ip_address(self.ip_address)
        except ValueError as e:
            raise ValueError(f"Invalid trusted IP address '{self.ip_address}'") from e

        expected = TrustedIpType.IPV4 if address.version == 4 else TrustedIpType.IPV6
        if self.kind != expected:
            raise ValueError(f"Trusted IP '{self.ip_address}' is not of type {self.kind}")
        if self.prefix is not None and self.prefix > address.max_prefixlen:
            raise ValueError(f"Prefix /{self.prefix} is too long for '{self.ip_address}'")
        return self

    @classmethod
    def from_cidr(cls, cidr: str) -> "TrustedIp":
        """
        Builds a TrustedIp from CIDR notation ("10.0.0.0/8") or a bare address.

        Raises:
            ValueError: If the value is not a valid address or network.
        """
        if "/" in cidr:
            network = ipaddress.ip_network(cidr, strict=False)
            address, prefix = network.network_address, network.prefixlen
        else:
            address, prefix = ipaddress.ip_address(cidr), None
        kind = TrustedIpType.IPV4 if address.version == 4 else TrustedIpType.IPV6
        return cls(ip_address=str(address), prefix=prefix, kind=kind)

    def to_request(self) -> dict[str, str]:
        """Returns the request form of this entry: ``{"ipAddress": "<address>[/<prefix>]"}``."""
        if self.prefix is None:
            return {"ipAddress": self.ip_address}
        return {"ipAddress": f"{self.ip_address}/{self.prefix}"}


DEFAULT_IPV4_TRUSTED_IP = TrustedIp(ip_address="0.0.0.0", prefix=0, kind=TrustedIpType.IPV4)
DEFAULT_IPV6_TRUSTED_IP = TrustedIp(ip_address="::", prefix=0, kind=TrustedIpType.IPV6)


def default_trusted_ips() -> list[TrustedIp]:
    """Returns the canonical "anywhere" trusted IP list (0.0.0.0/0 and ::/0)."""
    # Copies, so zeroizing a structure built from them never touches the module defaults
    return [DEFAULT_IPV4_TRUSTED_IP.model_copy(), DEFAULT_IPV6_TRUSTED_IP.model_copy()]


class CredentialSet(BaseModel):
    """
    The Universal Auth "username and password" of a machine identity.

    This model is frozen. The client secret is a ``SecretStr`` and never appears in
    ``repr``/``str``. Empty values are accepted here and rejected by login.

    Attributes:
        client_id (str): The identity's client id.
        client_secret (SecretStr): The identity's client secret.
        identity_id (str): The identity id.
        api_version (str): The Universal Auth API version path segment (e.g. "v1").
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    client_id: str
    client_secret: SecretStr
    identity_id: str
    api_version: str = "v1"

    def missing_field(self) -> str | None:
        """Returns the name of the first empty required field, or None."""
        if not self.client_id.strip():
            return "client_id"
        if not self.client_secret.get_secret_value():
            return "client_secret"
        if not self.identity_id.strip():
            return "identity_id"
        if not self.api_version.strip():
            return "api_version"
        return None

    def __repr__(self) -> str:
        return (
            f"CredentialSet(client_id={self.client_id!r}, "
            f"client_secret='{REDACTION_MARKER}', "
            f"identity_id={self.identity_id!r}, "
            f"api_version={self.api_version!r})"
        )

    def __str__(self) -> str:
        return self.__repr__()


class AccessTokenData(BaseModel):
    """Body of a successful login response."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    access_token: str = Field(..., alias="accessToken", min_length=1)
    access_token_max_ttl: int = Field(..., alias="accessTokenMaxTTL", ge=0)
    expires_in: int = Field(..., alias="expiresIn", ge=0)
    token_type: str = Field(..., alias="tokenType")


class AccessTokenSession:
    """
    A live Universal Auth access token returned by a successful login.

    Every field except ``api_version`` lives behind a ``SecretGuard`` and is read through
    the ``expose_*`` accessors. The token is zeroed by :meth:`zeroize` or when a ``with``
    block over the session exits.
    """

    __slots__ = ("_data", "_api_version")

    def __init__(self, data: AccessTokenData, api_version: str) -> None:
        self._data = SecretGuard(data)
        self._api_version = api_version

    @property
    def api_version(self) -> str:
        return self._api_version

    @property
    def data(self) -> SecretGuard[AccessTokenData]:
        return self._data

    def expose_secret(self) -> AccessTokenData:
        return self._data.expose_secret()

    def expose_access_token(self) -> str:
        return self._data.expose_secret().access_token

    def expose_access_token_max_ttl(self) -> int:
        """Returns the max TTL exactly as reported (0 means the service default)."""
        return self._data.expose_secret().access_token_max_ttl

    def expose_effective_max_ttl(self) -> int:
        """Returns the max TTL with the 0 sentinel resolved to the platform default."""
        max_ttl = self._data.expose_secret().access_token_max_ttl
        return max_ttl or DEFAULT_ACCESS_TOKEN_TTL

    def expose_expires_in(self) -> int:
        return self._data.expose_secret().expires_in

    def expose_token_type(self) -> str:
        return self._data.expose_secret().token_type

    def bearer_headers(self) -> dict[str, str]:
        """Returns the Authorization header for this token."""
        return {"Authorization": f"Bearer {self.expose_access_token()}"}

    def zeroize(self) -> None:
        self._data.zeroize()

    def __enter__(self) -> "AccessTokenSession":
        return self

    def __exit__(self, *exc: object) -> None:
        self.zeroize()

    def __repr__(self) -> str:
        return f"AccessTokenSession(data={self._data!r}, api_version={self._api_version!r})"

    def __str__(self) -> str:
        return self.__repr__()


class IdentityUniversalAuthData(BaseModel):
    """
    The Universal Auth configuration attached to an identity.

    Attributes:
        access_token_ttl (int): Lifetime of issued access tokens in seconds.
        access_token_max_ttl (int): Upper bound for access token lifetime in seconds.
        access_token_num_uses_limit (int): Maximum uses of an access token (0 = unlimited).
        access_token_trusted_ips (list[TrustedIp]): Where access tokens may be used from.
        client_secret_trusted_ips (list[TrustedIp]): Where client secrets may be used from.
        client_id (str): The client id of this configuration.
        identity_id (str): The identity owning the configuration.
        created_at (str): Creation timestamp.
        updated_at (str): Last update timestamp.
        record_id (str): Id of the configuration record (wire name "id").
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    access_token_ttl: int = Field(..., alias="accessTokenTTL", ge=0)
    access_token_max_ttl: int = Field(..., alias="accessTokenMaxTTL", ge=0)
    access_token_num_uses_limit: int = Field(..., alias="accessTokenNumUsesLimit", ge=0)
    access_token_trusted_ips: list[TrustedIp] = Field(default_factory=list, alias="accessTokenTrustedIps")
    client_secret_trusted_ips: list[TrustedIp] = Field(default_factory=list, alias="clientSecretTrustedIps")
    client_id: str = Field(..., alias="clientId")
    identity_id: str = Field(..., alias="identityId")
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")
    record_id: str = Field(..., alias="id")


class IdentityUniversalAuthConfig:
    """An identity's Universal Auth configuration, guarded because it embeds the client id."""

    __slots__ = ("_data",)

    def __init__(self, data: IdentityUniversalAuthData) -> None:
        self._data = SecretGuard(data)

    @property
    def data(self) -> SecretGuard[IdentityUniversalAuthData]:
        return self._data

    def expose_secret(self) -> IdentityUniversalAuthData:
        return self._data.expose_secret()

    def zeroize(self) -> None:
        self._data.zeroize()

    def __enter__(self) -> "IdentityUniversalAuthConfig":
        return self

    def __exit__(self, *exc: object) -> None:
        self.zeroize()

    def __repr__(self) -> str:
        return f"IdentityUniversalAuthConfig(data={self._data!r})"

    def __str__(self) -> str:
        return self.__repr__()


class ClientSecretData(BaseModel):
    """
    Metadata of a client secret. Never contains the secret value itself.

    Attributes:
        num_uses (int): How many times the secret has been used.
        num_uses_limit (int): Maximum number of uses (0 = unlimited).
        prefix (str): The first characters of the secret, for identification.
        ttl (int): Lifetime in seconds (0 = no expiry).
        description (str): Human-readable description.
        record_id (str): The client secret id.
        owning_identity_auth_id (str): Id of the owning Universal Auth configuration.
        is_revoked (bool): Whether the secret has been revoked.
        created_at (str): Creation timestamp.
        updated_at (str): Last update timestamp.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    num_uses: int = Field(..., alias="clientSecretNumUses", ge=0)
    num_uses_limit: int = Field(..., alias="clientSecretNumUsesLimit", ge=0)
    prefix: str = Field(..., alias="clientSecretPrefix")
    ttl: int = Field(..., alias="clientSecretTTL", ge=0)
    description: str = ""
    record_id: str = Field(..., alias="id")
    owning_identity_auth_id: str = Field(..., alias="identityUAId")
    is_revoked: bool = Field(..., alias="isClientSecretRevoked")
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")


class ClientSecret:
    """
    A client secret of an identity.

    The plaintext value is only present on the object returned by creation; the
    service never returns it again, so callers must persist or use it immediately.
    """

    __slots__ = ("_secret_value", "_data")

    def __init__(self, data: ClientSecretData, secret_value: str | None = None) -> None:
        self._data = SecretGuard(data)
        self._secret_value = SecretGuard(secret_value) if secret_value is not None else None

    @property
    def has_secret_value(self) -> bool:
        return self._secret_value is not None

    @property
    def secret_value(self) -> SecretGuard[str] | None:
        return self._secret_value

    @property
    def data(self) -> SecretGuard[ClientSecretData]:
        return self._data

    def expose_secret_value(self) -> str | None:
        if self._secret_value is None:
            return None
        return self._secret_value.expose_secret()

    def expose_metadata(self) -> ClientSecretData:
        return self._data.expose_secret()

    def zeroize(self) -> None:
        self._data.zeroize()
        if self._secret_value is not None:
            self._secret_value.zeroize()

    def __enter__(self) -> "ClientSecret":
        return self

    def __exit__(self, *exc: object) -> None:
        self.zeroize()

    def __repr__(self) -> str:
        return f"ClientSecret(secret_value={self._secret_value!r}, data={self._data!r})"

    def __str__(self) -> str:
        return self.__repr__()
