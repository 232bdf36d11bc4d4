#!/usr/bin/env python3
"""
Realtime example for BosBase Python SDK.

Listens to record changes of a collection over Server-Sent Events.
"""

import asyncio
import os
from typing import Any

from bosbase import AsyncBosBase


async def main() -> None:
    """Run realtime example."""
    base_url = os.environ.get("BOSBASE_URL", "http://127.0.0.1:8090")
    collection = os.environ.get("BOSBASE_COLLECTION", "posts")

    async with AsyncBosBase(base_url) as client:
        client.realtime.channel.on_disconnect = lambda topics: print(f"  Lost: {topics}")

        async def on_change(event: dict[str, Any]) -> None:
            record = event.get("record", {})
            print(f"  {event.get('action')}: {record.get('id')}")

        print(f"Watching {collection}/* for 30 seconds...")
        await client.collection(collection).subscribe("*", on_change)

        if await client.realtime.wait_for_client_id(10):
            print(f"  Connected as {client.realtime.client_id}")

        await asyncio.sleep(30)
        await client.collection(collection).unsubscribe()
        print("\nDone!")


if __name__ == "__main__":
    asyncio.run(main())
