import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

import socketio


logger = logging.getLogger(__name__)

Handler = Callable[[Any], Union[Awaitable[None], None]]


class Subscription:
    """Cancellation handle for one registered listener."""

    def __init__(self, transport: "SocketTransport", event: str, handler: Handler) -> None:
        self.event = event
        self.handler = handler
        self._transport = transport
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._transport._remove(self.event, self.handler)


class SocketTransport:
    """Socket.IO client with explicit connect/disconnect and cancellable listeners.

    ``socketio.AsyncClient`` keeps a single handler per event name, so the
    transport binds one dispatcher per name and fans out to its own listener
    lists in registration order.
    """

    def __init__(
        self,
        url: str,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        client: Optional[socketio.AsyncClient] = None,
        socketio_path: str = "socket.io",
    ) -> None:
        self.url = url
        self.socketio_path = socketio_path
        self._token_provider = token_provider
        self._client = client or socketio.AsyncClient(reconnection=True, logger=False, engineio_logger=False)
        self._listeners: Dict[str, List[Handler]] = {}
        self._bound: Set[str] = set()

    @property
    def connected(self) -> bool:
        return bool(self._client.connected)

    async def connect(self) -> None:
        if self.connected:
            return
        token = self._token_provider() if self._token_provider else None
        await self._client.connect(
            self.url,
            auth={"token": token} if token else None,
            transports=["websocket"],
            socketio_path=self.socketio_path,
        )
        logger.info("Realtime transport connected to %s", self.url)

    async def disconnect(self) -> None:
        if not self.connected:
            return
        await self._client.disconnect()
        logger.info("Realtime transport disconnected")

    async def emit(self, event: str, data: Any = None) -> None:
        await self._client.emit(event, data)

    def on(self, event: str, handler: Handler) -> Subscription:
        if event not in self._bound:
            self._client.on(event, self._dispatcher(event))
            self._bound.add(event)
        self._listeners.setdefault(event, []).append(handler)
        return Subscription(self, event, handler)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    async def dispatch(self, event: str, data: Any = None) -> None:
        for handler in list(self._listeners.get(event, ())):
            result = handler(data)
            if inspect.isawaitable(result):
                await result

    def _dispatcher(self, event: str):
        async def handle(*args):
            await self.dispatch(event, args[0] if args else None)
        return handle

    def _remove(self, event: str, handler: Handler) -> None:
        handlers = self._listeners.get(event)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            pass
