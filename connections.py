import asyncio
import json
from typing import Any, Dict, Iterable, Optional

from fastapi import WebSocket

from constants import MAX_OUTBOUND_QUEUE
from logging_config import get_logger

logger = get_logger(__name__)


class ConnectionManager:
    """Maps session ids to their live websocket.

    Every session gets an outbound queue drained by its own writer task, so
    send/broadcast only enqueue and never wait on a peer's socket. Frames keep
    their per-connection order. Sends are fire-and-forget: a frame that cannot
    be queued or written is logged and dropped, never retried.
    """

    def __init__(self, max_queue: int = MAX_OUTBOUND_QUEUE):
        self.connections: Dict[str, WebSocket] = {}
        self.max_queue = max_queue
        self._queues: Dict[str, asyncio.Queue] = {}
        self._writers: Dict[str, asyncio.Task] = {}

    def connect(self, session_id: str, websocket: WebSocket):
        queue = asyncio.Queue(maxsize=self.max_queue)
        self.connections[session_id] = websocket
        self._queues[session_id] = queue
        self._writers[session_id] = asyncio.create_task(self._writer(session_id, websocket, queue))
        logger.debug(f"Registered connection {session_id} (total connections: {len(self.connections)})")

    def disconnect(self, session_id: str):
        if self.connections.pop(session_id, None) is None:
            return
        writer = self._writers.pop(session_id)
        writer.cancel()
        queue = self._queues.pop(session_id)
        # Release anyone waiting in flush() on frames that will never be written
        while not queue.empty():
            queue.get_nowait()
            queue.task_done()
        logger.debug(f"Unregistered connection {session_id} (total connections: {len(self.connections)})")

    async def _writer(self, session_id: str, websocket: WebSocket, queue: asyncio.Queue):
        while True:
            frame = await queue.get()
            try:
                await websocket.send_text(frame)
            except Exception as e:
                logger.warning(f"Error sending to connection {session_id}: {e}")
            finally:
                queue.task_done()

    async def send(self, session_id: str, event: str, data: Any) -> bool:
        queue = self._queues.get(session_id)
        if queue is None:
            logger.debug(f"Dropping {event} for {session_id}: no live connection")
            return False
        try:
            queue.put_nowait(json.dumps({"event": event, "data": data}))
            return True
        except asyncio.QueueFull:
            logger.warning(f"Dropping {event} for {session_id}: outbound queue full ({self.max_queue})")
            return False

    async def broadcast(self, session_ids: Iterable[str], event: str, data: Any):
        session_ids = list(session_ids)
        for session_id in session_ids:
            await self.send(session_id, event, data)
        if session_ids:
            logger.debug(f"Broadcasted {event} to {len(session_ids)} connections")

    async def flush(self, session_ids: Optional[Iterable[str]] = None, timeout: Optional[float] = None) -> bool:
        """Wait until queued frames are written. Returns False on timeout."""
        if session_ids is None:
            session_ids = list(self._queues)
        queues = [self._queues[session_id] for session_id in session_ids if session_id in self._queues]
        if not queues:
            return True
        try:
            await asyncio.wait_for(asyncio.gather(*(queue.join() for queue in queues)), timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Gave up flushing {len(queues)} connection(s) after {timeout}s")
            return False

    async def close(self, grace: float = 1.0):
        """Give pending frames a short grace period, then stop every writer."""
        await self.flush(timeout=grace)
        for session_id in list(self.connections):
            self.disconnect(session_id)
