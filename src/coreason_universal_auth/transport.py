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
HTTP transport helpers: bounded JSON requests and an SSRF-pinning transport.
"""

import ipaddress
import socket
from typing import Any

import anyio
import httpx

from coreason_universal_auth.exceptions import OversizedResponseError, TransportError
from coreason_universal_auth.utils.logger import logger

DEFAULT_MAX_RESPONSE_BYTES = 1_000_000


class SafeAsyncTransport(httpx.AsyncHTTPTransport):
    """
    An HTTP transport that pins every connection to a vetted public IP address.

    The hostname is resolved once, private / loopback / link-local / reserved / multicast
    addresses are rejected, and the request is sent to the chosen IP while the original
    Host header and SNI are preserved for TLS verification. This closes the DNS
    rebinding window between validation and connection.
    """

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        hostname = request.url.host

        try:
            literal_ip = ipaddress.ip_address(hostname)
        except ValueError:
            literal_ip = None

        if literal_ip is not None:
            self._validate_ip(literal_ip, hostname)
            return await super().handle_async_request(request)

        try:
            addr_infos = await anyio.to_thread.run_sync(socket.getaddrinfo, hostname, None, 0, socket.SOCK_STREAM)
        except socket.gaierror as e:
            logger.error(f"DNS resolution failed for {hostname}: {e}")
            raise TransportError(f"DNS resolution failed for {hostname}") from e

        target_ip: str | None = None
        for _, _, _, _, sockaddr in addr_infos:
            try:
                ip_obj = ipaddress.ip_address(sockaddr[0])
                self._validate_ip(ip_obj, hostname)
            except (TransportError, ValueError):
                continue
            target_ip = str(ip_obj)
            break

        if not target_ip:
            logger.error(f"Security violation: No valid public IP found for {hostname}")
            raise TransportError(f"Security violation: No valid public IP found for {hostname}")

        request.extensions["sni_hostname"] = hostname
        if "Host" not in request.headers:
            request.headers["Host"] = request.url.netloc.decode("ascii")
        request.url = request.url.copy_with(host=target_ip)

        logger.debug(f"DNS Pinned: {hostname} -> {target_ip}")
        return await super().handle_async_request(request)

    def _validate_ip(self, ip_obj: ipaddress.IPv4Address | ipaddress.IPv6Address, hostname: str) -> None:
        if (
            ip_obj.is_private
            or ip_obj.is_loopback
            or ip_obj.is_link_local
            or ip_obj.is_reserved
            or ip_obj.is_multicast
        ):
            logger.warning(f"Security violation: Blocked access to {hostname} ({ip_obj})")
            raise TransportError(f"SSRF Protection: Blocked access to {hostname} ({ip_obj})")


async def send_json_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    json: Any | None = None,
    headers: dict[str, str] | None = None,
    max_bytes: int = DEFAULT_MAX_RESPONSE_BYTES,
    operation: str | None = None,
) -> tuple[int, bytes]:
    """
    Sends a JSON request and reads the response body with a size limit.

    The body is streamed so an oversized response is rejected without being buffered.
    No status code is treated as an error here; classification is left to the caller.

    Args:
        client: The shared async HTTP client.
        method: HTTP method (GET, POST, PATCH, DELETE).
        url: Absolute request URL.
        json: JSON-serializable request body, if any.
        headers: Extra request headers.
        max_bytes: Largest accepted response body.
        operation: Operation name for error context.

    Returns:
        tuple[int, bytes]: The status code and the raw response body.

    Raises:
        OversizedResponseError: If the response exceeds `max_bytes`.
        TransportError: For any network or protocol failure.
    """
    request_headers = {"Accept": "application/json"}
    if headers:
        request_headers.update(headers)

    try:
        async with client.stream(method, url, json=json, headers=request_headers) as response:
            content_length = response.headers.get("Content-Length")
            if content_length and content_length.isdigit() and int(content_length) > max_bytes:
                raise OversizedResponseError(f"Response too large from {url}", operation=operation)

            content = bytearray()
            async for chunk in response.aiter_bytes():
                content.extend(chunk)
                if len(content) > max_bytes:
                    raise OversizedResponseError(f"Response too large from {url}", operation=operation)

            return response.status_code, bytes(content)
    except httpx.HTTPError as e:
        logger.error(f"{operation or method}: request to {url} failed: {type(e).__name__}")
        raise TransportError(f"{operation or method}: request to {url} failed: {e}", operation=operation) from e
