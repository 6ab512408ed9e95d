import asyncio
import threading
from typing import Any, Callable, Tuple

import httpx

from campfire_client.core.logging import get_logger

logger = get_logger("JSONStream")

ItemCallback = Callable[[str], None]
ErrorCallback = Callable[[Any], None]
MaxReconnectsCallback = Callable[[float, int], None]


class JSONStream:
    """
    Long-lived HTTP stream of line-delimited JSON frames.

    run() drives the connection on its own asyncio loop and blocks the thread
    it is called from. Every non-blank line is handed to the item callback on
    that loop, one at a time. Dropped connections are retried with
    exponential backoff until max_reconnects attempts in a row have failed.
    """

    def __init__(
        self,
        host: str,
        path: str,
        auth: str | Tuple[str, str],
        timeout: float = 6.0,
        ssl: bool = True,
        ssl_verify: bool = True,
        max_reconnects: int = 6,
        reconnect_delay: float = 1.0,
        reconnect_max_delay: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if isinstance(auth, str):
            username, _, password = auth.partition(":")
            auth = (username, password)

        self.url = f"{'https' if ssl else 'http'}://{host}{path}"
        self.auth = auth
        self.timeout = timeout
        self.ssl_verify = ssl_verify
        self.max_reconnects = max_reconnects
        self.reconnect_delay = reconnect_delay
        self.reconnect_max_delay = reconnect_max_delay
        self.transport = transport

        self._item_callback: ItemCallback | None = None
        self._error_callback: ErrorCallback | None = None
        self._max_reconnects_callback: MaxReconnectsCallback | None = None

        self._stopped = threading.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task | None = None

    @classmethod
    def connect(cls, **options) -> "JSONStream":
        return cls(**options)

    # ==================== EVENTS ====================

    def each_item(self, callback: ItemCallback):
        self._item_callback = callback

    def on_error(self, callback: ErrorCallback):
        self._error_callback = callback

    def on_max_reconnects(self, callback: MaxReconnectsCallback):
        self._max_reconnects_callback = callback

    # ==================== LIFECYCLE ====================

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def run(self):
        """Stream until stopped, a terminal event fires, or an item callback raises"""
        asyncio.run(self._main())

    def stop(self):
        """Close the stream. Safe to call from any thread, more than once."""
        self._stopped.set()
        loop, task = self._loop, self._task
        if loop is None or task is None:
            return
        try:
            loop.call_soon_threadsafe(task.cancel)
        except RuntimeError:
            # loop already closed
            pass

    async def _main(self):
        self._loop = asyncio.get_running_loop()
        self._task = asyncio.current_task()
        if self.stopped:
            return

        try:
            await self._stream()
        except asyncio.CancelledError:
            if not self.stopped:
                raise
        finally:
            self._task = None

    async def _stream(self):
        retries = 0
        timeout = httpx.Timeout(None, connect=self.timeout)

        async with httpx.AsyncClient(
            auth=self.auth,
            timeout=timeout,
            verify=self.ssl_verify,
            transport=self.transport,
        ) as client:
            while not self.stopped:
                try:
                    async with client.stream("GET", self.url) as response:
                        if response.status_code >= 400:
                            body = (await response.aread()).decode("utf-8", "replace")
                            self._emit_error(f"invalid status code: {response.status_code}. {body}")
                            return

                        retries = 0
                        logger.debug(f"Connected to {self.url}")
                        async for line in response.aiter_lines():
                            line = line.strip()
                            if line and self._item_callback is not None:
                                self._item_callback(line)
                            if self.stopped:
                                return
                except httpx.TransportError as e:
                    logger.warning(f"Stream connection to {self.url} dropped: {e}")

                if self.stopped:
                    return

                retries += 1
                if retries > self.max_reconnects:
                    self._emit_max_reconnects(retries - 1)
                    return

                delay = min(self.reconnect_delay * (2 ** (retries - 1)), self.reconnect_max_delay)
                logger.info(f"Reconnecting to {self.url} in {delay:.1f}s (attempt {retries})")
                await asyncio.sleep(delay)

    def _emit_error(self, payload: Any):
        logger.error(f"Stream error from {self.url}: {payload}")
        if self._error_callback is not None:
            self._error_callback(payload)

    def _emit_max_reconnects(self, retries: int):
        logger.error(f"Gave up on {self.url} after {retries} reconnects")
        if self._max_reconnects_callback is not None:
            self._max_reconnects_callback(self.timeout, retries)
