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
Custom exceptions for the coreason-universal-auth package.

None of these exceptions ever carry a client secret or an access token.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from coreason_universal_auth.api_response import ApiErrorPayload


class UniversalAuthError(Exception):
    """Base exception for all coreason-universal-auth errors."""


class TransportError(UniversalAuthError):
    """Raised when the request never produced a usable HTTP response (network, IO, blocked host)."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class OversizedResponseError(TransportError):
    """Raised when an HTTP response is too large."""


class MissingCredentialFieldError(UniversalAuthError):
    """Raised when a required credential field (client id, secret, identity id, version) is empty."""

    def __init__(self, field: str) -> None:
        super().__init__(f"No Universal Auth {field} specified.")
        self.field = field


class MalformedResponseError(UniversalAuthError):
    """
    Raised when the service answered 200 but the body does not match the expected schema.
    Signals contract drift rather than a rejected request.
    """

    def __init__(self, operation: str, detail: str, identity_id: str | None = None) -> None:
        super().__init__(f"{operation}: malformed response from service: {detail}")
        self.operation = operation
        self.detail = detail
        self.identity_id = identity_id


class MalformedLoginResponseError(MalformedResponseError):
    """Raised when login returned 200 with a body that is not an access token."""


class UnclassifiableResponseError(UniversalAuthError):
    """Raised when a non-200 body matches none of the known API error shapes."""

    def __init__(self, operation: str, status_code: int, body_excerpt: str) -> None:
        super().__init__(
            f"{operation}: HTTP {status_code} response body matches no known error shape: {body_excerpt!r}"
        )
        self.operation = operation
        self.status_code = status_code
        self.body_excerpt = body_excerpt


class ApiRejectionError(UniversalAuthError):
    """
    Raised when the service responded but rejected the request.

    Attributes:
        operation (str): The operation that was rejected (e.g. "attach").
        status_code (int): The HTTP status code of the response.
        payload (ApiErrorPayload): The classified error body.
        identity_id (str | None): The identity the operation targeted.
        api_version (str | None): The API version used.
    """

    operation = "request"

    def __init__(
        self,
        status_code: int,
        payload: "ApiErrorPayload",
        identity_id: str | None = None,
        api_version: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.payload = payload
        self.identity_id = identity_id
        self.api_version = api_version
        super().__init__(self._format())

    def _format(self) -> str:
        return (
            f"{self.operation} failed for identity {self.identity_id} "
            f"(API version {self.api_version}): HTTP {self.status_code}: {self.payload}"
        )


class LoginError(ApiRejectionError):
    """
    Raised when the credential exchange is rejected.

    The possible causes are incorrect credentials, an exceeded client secret
    use-limit, or an identity configuration that does not allow logging in.
    """

    operation = "login"

    def __init__(
        self,
        status_code: int,
        payload: "ApiErrorPayload",
        client_id: str,
        identity_id: str,
        api_version: str,
    ) -> None:
        self.client_id = client_id
        super().__init__(status_code, payload, identity_id=identity_id, api_version=api_version)

    def _format(self) -> str:
        return (
            "Could not retrieve an access token with the given credentials "
            f"(client id {self.client_id}, client secret **********, identity {self.identity_id}, "
            f"API version {self.api_version}): HTTP {self.status_code}: {self.payload}"
        )


class AttachConfigurationError(ApiRejectionError):
    """Raised when attaching a Universal Auth configuration to an identity fails."""

    operation = "attach"

    @property
    def already_attached(self) -> bool:
        """True when the service reports the identity is already configured."""
        if self.status_code == 409:
            return True
        message = getattr(self.payload, "message", None)
        return self.status_code == 400 and "already" in str(message or "").lower()


class RetrieveIdentityError(ApiRejectionError):
    """Raised when the identity configuration cannot be retrieved (usually it does not exist)."""

    operation = "retrieve"


class UpdateIdentityError(ApiRejectionError):
    """Raised when updating an identity configuration fails."""

    operation = "update"


class RevokeConfigurationError(ApiRejectionError):
    """Raised when revoking an identity configuration fails for a reason other than 'already revoked'."""

    operation = "revoke"


class CreateClientSecretError(ApiRejectionError):
    """Raised when a client secret cannot be created."""

    operation = "create_client_secret"


class RevokeClientSecretError(ApiRejectionError):
    """Raised when a client secret cannot be revoked."""

    operation = "revoke_client_secret"


class GetClientSecretError(ApiRejectionError):
    """Raised when a client secret cannot be fetched by id."""

    operation = "get_client_secret"


class ListClientSecretsError(ApiRejectionError):
    """Raised when the client secrets of an identity cannot be listed."""

    operation = "list_client_secrets"
