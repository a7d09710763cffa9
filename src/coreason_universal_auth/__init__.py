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
Universal Auth client: exchanges machine-identity credentials for access tokens and
administers identity configurations and client secrets.
"""

__version__ = "0.1.0"
__author__ = "Gowtham A Rao"
__email__ = "gowtham.rao@coreason.ai"

from .api_response import ApiErrorPayload, classify_response
from .client_secrets import ClientSecretManager
from .config import UniversalAuthConfig
from .exceptions import (
    ApiRejectionError,
    AttachConfigurationError,
    LoginError,
    MalformedLoginResponseError,
    MalformedResponseError,
    MissingCredentialFieldError,
    TransportError,
    UnclassifiableResponseError,
    UniversalAuthError,
)
from .identity_config import IdentityConfigManager
from .manager import UniversalAuthManager, UniversalAuthManagerAsync
from .models import (
    DEFAULT_ACCESS_TOKEN_TTL,
    AccessTokenSession,
    ClientSecret,
    CredentialSet,
    IdentityUniversalAuthConfig,
    TrustedIp,
)
from .secret_guard import SecretGuard

__all__ = [
    "DEFAULT_ACCESS_TOKEN_TTL",
    "AccessTokenSession",
    "ApiErrorPayload",
    "ApiRejectionError",
    "AttachConfigurationError",
    "ClientSecret",
    "ClientSecretManager",
    "CredentialSet",
    "IdentityConfigManager",
    "IdentityUniversalAuthConfig",
    "LoginError",
    "MalformedLoginResponseError",
    "MalformedResponseError",
    "MissingCredentialFieldError",
    "SecretGuard",
    "TransportError",
    "TrustedIp",
    "UnclassifiableResponseError",
    "UniversalAuthConfig",
    "UniversalAuthError",
    "UniversalAuthManager",
    "UniversalAuthManagerAsync",
    "classify_response",
]
