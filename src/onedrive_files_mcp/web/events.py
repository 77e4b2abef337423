"""Server-Sent Events push channels.

Each connected client owns a PushChannel backed by a bounded queue. The
EventBroadcaster is the registry of open channels; it is created by whoever
assembles the process and handed to every component that broadcasts.
"""

import asyncio
import json
import logging
import uuid
from collections.abc import AsyncIterator
from typing import Any

from onedrive_files_mcp.models import PushEvent, utc_timestamp

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100
CONNECTED_MESSAGE = "Connected to files server"


class ChannelClosedError(Exception):
    """Raised when writing to a channel that has been closed."""


def format_sse(data: dict[str, Any], event: str | None = None) -> str:
    """Encode one SSE frame: an optional ``event:`` line and one ``data:`` line."""
    frame = f"event: {event}\n" if event else ""
    return frame + f"data: {json.dumps(data)}\n\n"


class PushChannel:
    """Outbound side of one SSE connection.

    Frames are queued by ``send`` and drained by ``frames``. A None
    sentinel in the queue ends the stream.
    """

    def __init__(self, client_id: str, max_queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self.client_id = client_id
        self.closed = False
        self._queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=max_queue_size)

    def send(self, frame: str) -> None:
        """Queue a frame without waiting.

        Raises:
            ChannelClosedError: If the channel is closed.
            asyncio.QueueFull: If the client is not keeping up.
        """
        if self.closed:
            raise ChannelClosedError(f"Channel {self.client_id} is closed")
        self._queue.put_nowait(frame)

    def close(self) -> None:
        """Close the channel after its queued frames. Idempotent.

        A full queue belongs to a client that stopped reading; its backlog
        is dropped so the stream can end.
        """
        if self.closed:
            return
        self.closed = True
        if self._queue.full():
            while not self._queue.empty():
                self._queue.get_nowait()
        self._queue.put_nowait(None)

    async def frames(self) -> AsyncIterator[str]:
        """Yield queued frames until the channel is closed."""
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame


class EventBroadcaster:
    """Registry of open push channels with best-effort fan-out.

    Registration is a single insertion; removal is idempotent. A channel
    that cannot accept a frame is evicted without affecting the caller or
    the other channels.
    """

    def __init__(self, max_queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self.max_queue_size = max_queue_size
        self._channels: dict[str, PushChannel] = {}

    def __len__(self) -> int:
        return len(self._channels)

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._channels

    def register(self) -> PushChannel:
        """Open a channel under a fresh client id."""
        channel = PushChannel(uuid.uuid4().hex, self.max_queue_size)
        self._channels[channel.client_id] = channel
        logger.info(f"Client {channel.client_id} connected ({len(self)} open)")
        return channel

    def unregister(self, client_id: str) -> bool:
        """Remove and close a channel.

        Returns:
            True if the channel was registered, False if it was already gone.
        """
        channel = self._channels.pop(client_id, None)
        if channel is None:
            return False
        channel.close()
        logger.info(f"Client {client_id} disconnected ({len(self)} open)")
        return True

    def broadcast(self, event: PushEvent) -> int:
        """Send one event to every open channel.

        Args:
            event: Event to deliver; every channel receives the same timestamp.

        Returns:
            Number of channels the event was queued on.
        """
        frame = format_sse(event.model_dump())
        delivered = 0
        for client_id, channel in list(self._channels.items()):
            try:
                channel.send(frame)
            except (asyncio.QueueFull, ChannelClosedError) as e:
                logger.warning(f"Evicting client {client_id}: {type(e).__name__}")
                self.unregister(client_id)
                continue
            delivered += 1

        logger.debug(f"Broadcast {event.type} to {delivered} client(s)")
        return delivered

    async def stream(self, channel: PushChannel) -> AsyncIterator[str]:
        """Frames for one connection: the ``connected`` acknowledgment, then broadcasts.

        The channel is unregistered when the stream ends for any reason,
        including the peer going away.
        """
        try:
            yield format_sse(
                {
                    "clientId": channel.client_id,
                    "message": CONNECTED_MESSAGE,
                    "timestamp": utc_timestamp(),
                },
                event="connected",
            )
            async for frame in channel.frames():
                yield frame
        finally:
            self.unregister(channel.client_id)

    def close_all(self) -> None:
        """Close every channel, ending their streams."""
        for client_id in list(self._channels):
            self.unregister(client_id)
