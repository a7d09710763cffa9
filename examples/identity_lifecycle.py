import asyncio
import os
import sys

# Add src to path for running directly
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))

from coreason_universal_auth.config import UniversalAuthConfig
from coreason_universal_auth.exceptions import AttachConfigurationError, UniversalAuthError
from coreason_universal_auth.manager import UniversalAuthManagerAsync
from coreason_universal_auth.models import TrustedIp


async def main() -> None:
    """
    Walks an identity through its Universal Auth lifecycle:
    login, attach, rotate a client secret, revoke.

    Credentials are read from COREASON_UA_CLIENT_ID, COREASON_UA_CLIENT_SECRET,
    COREASON_UA_IDENTITY_ID (and optionally COREASON_UA_HOST). The target identity is
    taken from TARGET_IDENTITY_ID.
    """
    print(">>> Starting Universal Auth lifecycle example")

    config = UniversalAuthConfig()
    target = os.environ.get("TARGET_IDENTITY_ID", "")
    if not target:
        print(">>> Set TARGET_IDENTITY_ID to the identity to configure")
        return

    async with UniversalAuthManagerAsync(config) as manager:
        try:
            session = await manager.login()
            print(f">>> Logged in: {session}")

            try:
                attached = await manager.attach(
                    session,
                    target,
                    client_secret_trusted_ips=[TrustedIp.from_cidr("203.0.113.0/24")],
                    access_token_ttl=3600,
                    access_token_max_ttl=7200,
                )
                print(f">>> Attached, TTL {attached.expose_secret().access_token_ttl}s")
            except AttachConfigurationError as e:
                if not e.already_attached:
                    raise
                print(">>> Identity already configured, continuing")

            secret = await manager.create_client_secret(session, target, description="example rotation")
            secret_id = secret.expose_metadata().record_id
            print(f">>> Created client secret {secret_id} (value shown once, not printed here)")

            for listed in await manager.list_client_secrets(session, target):
                metadata = listed.expose_metadata()
                print(f"    - {metadata.record_id} prefix={metadata.prefix} revoked={metadata.is_revoked}")

            await manager.revoke_client_secret(session, target, secret_id)
            await manager.revoke(session, target)
            print(">>> Client secret and configuration revoked")

        except UniversalAuthError as e:
            print(f">>> Universal Auth call failed: {e}")


if __name__ == "__main__":
    asyncio.run(main())
