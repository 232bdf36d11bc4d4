#!/usr/bin/env python3
"""
Pub/sub example for BosBase Python SDK.

Subscribes to a topic over the WebSocket channel and publishes to it.
"""

import os
import time

from bosbase import BosBase, PubSubMessage


def main() -> None:
    """Run pub/sub example."""
    base_url = os.environ.get("BOSBASE_URL", "http://127.0.0.1:8090")

    with BosBase(base_url, debug=True) as client:
        token = os.environ.get("BOSBASE_TOKEN")
        if token:
            client.auth_store.save(token)

        def on_message(message: PubSubMessage) -> None:
            print(f"  [{message.topic}] {message.data} (id: {message.id})")

        print("Subscribing to chat/general...")
        unsubscribe = client.pubsub.subscribe("chat/general", on_message)

        print("\nPublishing...")
        for i in range(3):
            ack = client.pubsub.publish("chat/general", {"text": f"hello #{i}"})
            print(f"  Published {ack.id} at {ack.created}")

        time.sleep(1)
        unsubscribe()
        print("\nDone!")


if __name__ == "__main__":
    main()
