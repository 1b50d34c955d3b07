"""Connectivity monitoring.

A monitor exposes the last known reachability through ``is_connected()`` and
pushes changes to subscribers. Reading the state never suspends.
"""

import asyncio
from typing import Callable, List, Optional

import httpx

from news_cache.config import ReaderConfig, get_config
from news_cache.log_system.unified_logger import UnifiedLogger

ConnectivityListener = Callable[[bool], None]


class ConnectivityMonitor:
    """Holds the current connectivity state and notifies listeners on change.

    Used directly, the state is driven by whoever calls ``set_connected``
    (a platform callback, or a test).
    """

    def __init__(self, connected: bool = True):
        self._connected = connected
        self._listeners: List[ConnectivityListener] = []

    def is_connected(self) -> bool:
        return self._connected

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """Register a listener called with the new state on every change.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_connected(self, connected: bool) -> None:
        if connected == self._connected:
            return

        logger = UnifiedLogger.get_logger(__name__)
        logger.info(f"Connectivity changed: {'online' if connected else 'offline'}")
        self._connected = connected

        for listener in list(self._listeners):
            try:
                listener(connected)
            except Exception as e:
                logger.error(f"Connectivity listener failed: {e}")


class HttpConnectivityMonitor(ConnectivityMonitor):
    """Derives connectivity from periodic HTTP probes of a known URL."""

    def __init__(
        self,
        config: Optional[ReaderConfig] = None,
        connected: bool = True,
    ):
        super().__init__(connected=connected)
        if config is None:
            config = get_config()
        self.probe_url = config.connectivity_probe_url
        self.timeout = min(config.request_timeout, 10.0)

    async def check(self) -> bool:
        """Probe the network once and update the state.

        Returns:
            True if the probe URL answered
        """
        logger = UnifiedLogger.get_logger(__name__)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.head(self.probe_url)
                connected = response.status_code < 500
            except httpx.HTTPError as e:
                logger.debug(f"Connectivity probe failed: {e}")
                connected = False

        self.set_connected(connected)
        return connected

    async def watch(self, interval: float = 15.0) -> None:
        """Probe every ``interval`` seconds until cancelled.

        The first probe happens after one interval; call check() for an
        immediate reading.
        """
        while True:
            await asyncio.sleep(interval)
            await self.check()
