"""
Real-time Push
Publishes events on Redis pub/sub channels per account and per project
"""

import json
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


def account_channel(account_id) -> str:
    return f"user:{account_id}"


def project_channel(project_id) -> str:
    return f"project:{project_id}"


class RealtimePublisher:
    """
    Fire-and-forget publisher. Delivery is at-most-once and a failed publish
    is logged, never raised.
    """

    def __init__(self, client_factory: Optional[Callable[[], Awaitable[Any]]] = None, prefix: str = "npip"):
        if client_factory is None:
            from npip.utils.cache import get_redis
            client_factory = get_redis
        self._client_factory = client_factory
        self.prefix = prefix

    def _channel(self, channel: str) -> str:
        return f"{self.prefix}:{channel}"

    async def publish(self, channel: str, event: str, data: dict) -> bool:
        message = json.dumps({"event": event, "data": data}, default=str)
        try:
            client = await self._client_factory()
            await client.publish(self._channel(channel), message)
            return True
        except Exception as e:
            logger.warning(f"Real-time publish to {channel} failed: {e}")
            return False
