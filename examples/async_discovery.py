import asyncio
import contextlib
import sys

from anyio import create_task_group

from coreason_discovery import DiscoveryClientAsync, DiscoveryConfig, DiscoveryPolicy

# Google serves its endpoints and keys from googleapis.com hosts, not from the issuer host
PROVIDER_POLICIES: dict[str, DiscoveryPolicy] = {
    "https://accounts.google.com": DiscoveryPolicy(
        additional_endpoint_base_addresses=(
            "https://oauth2.googleapis.com",
            "https://openidconnect.googleapis.com",
            "https://www.googleapis.com",
        ),
    ),
}


async def main(authorities: list[str]) -> None:
    """
    Discovers several providers concurrently.
    Each call is independent; failures come back as error responses instead of exceptions.
    """
    print(">>> Starting Async OIDC Discovery Example")

    config = DiscoveryConfig(http_timeout=5.0)

    async with DiscoveryClientAsync(config) as client:

        async def discover(authority: str) -> None:
            policy = PROVIDER_POLICIES.get(authority, DiscoveryPolicy())
            response = await client.get_discovery_document(authority, policy=policy)
            if response.is_error:
                print(f"    - {authority}: {response.error_kind} {response.error}")
                return
            keys = response.key_set.keys if response.key_set else []
            print(f"    - {authority}: issuer={response.issuer} keys={[key.kid for key in keys]}")

        async with create_task_group() as tg:
            for authority in authorities:
                tg.start_soon(discover, authority)

    print(">>> Discovery finished.")


if __name__ == "__main__":
    # The second target shows the HTTPS gate refusing a plain http authority
    targets = sys.argv[1:] or ["https://accounts.google.com", "http://idp.example.com"]
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main(targets))
