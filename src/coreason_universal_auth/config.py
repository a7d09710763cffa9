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
Configuration for the coreason-universal-auth package.
"""

from urllib.parse import urlparse

from pydantic import Field, SecretStr, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from coreason_universal_auth.exceptions import MissingCredentialFieldError
from coreason_universal_auth.models import CredentialSet


class UniversalAuthConfig(BaseSettings):
    """
    Configuration settings for coreason-universal-auth.

    Attributes:
        host (str): Base URL of the secrets service (e.g. https://app.infisical.com).
        api_version (str): Universal Auth API version path segment.
        http_timeout (float): Timeout in seconds for every request.
        max_response_bytes (int): Largest response body accepted.
        unsafe_local_dev (bool): Allow plain http:// hosts (local testing only).
        enforce_public_host (bool): Pin connections to vetted public IPs (SSRF protection).
        client_id (str | None): Optional client id for `to_credentials`.
        client_secret (SecretStr | None): Optional client secret for `to_credentials`.
        identity_id (str | None): Optional identity id for `to_credentials`.
    """

    model_config = SettingsConfigDict(
        env_prefix="COREASON_UA_",
        case_sensitive=False,
    )

    unsafe_local_dev: bool = False
    host: str = "https://app.infisical.com"
    api_version: str = Field(default="v1", pattern=r"^v\d+$")
    http_timeout: float = Field(default=10.0, gt=0, description="Timeout in seconds for all service requests.")
    max_response_bytes: int = Field(default=1_000_000, gt=0)
    enforce_public_host: bool = False
    client_id: str | None = None
    client_secret: SecretStr | None = None
    identity_id: str | None = None

    @field_validator("host")
    @classmethod
    def normalize_host(cls, v: str, info: ValidationInfo) -> str:
        """
        Normalizes the host to "scheme://netloc[/path]" without a trailing slash, and
        ensures it uses HTTPS unless local dev mode is enabled.

        Raises:
            ValueError: If the host is empty or uses plain HTTP outside local dev mode.
        """
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("host must not be empty")
        if "://" not in v:
            v = f"https://{v}"

        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid host '{v}'")
        if parsed.scheme == "http" and not info.data.get("unsafe_local_dev", False):
            raise ValueError("HTTPS is required for production. Set 'unsafe_local_dev=True' only for local testing.")
        return v

    def to_credentials(self) -> CredentialSet:
        """
        Builds a CredentialSet from the configured credential fields.

        Raises:
            MissingCredentialFieldError: If client id, client secret or identity id is not set.
        """
        if not self.client_id:
            raise MissingCredentialFieldError("client_id")
        if self.client_secret is None or not self.client_secret.get_secret_value():
            raise MissingCredentialFieldError("client_secret")
        if not self.identity_id:
            raise MissingCredentialFieldError("identity_id")
        return CredentialSet(
            client_id=self.client_id,
            client_secret=self.client_secret,
            identity_id=self.identity_id,
            api_version=self.api_version,
        )
