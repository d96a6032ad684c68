from __future__ import annotations

import abc
import logging

logger = logging.getLogger("warden.host")


class BaseHost(abc.ABC):
    """
    Lifecycle signals sent back to the runtime hosting the cache.
    """

    @abc.abstractmethod
    async def skip_waiting(self) -> None:
        """Activate the freshly installed instance without a waiting period."""
        raise NotImplementedError()

    @abc.abstractmethod
    async def claim_clients(self) -> None:
        """Take control of already open clients without waiting for a reload."""
        raise NotImplementedError()


class NullHost(BaseHost):
    """
    Host for runtimes with nothing to signal, such as a plain HTTP client.

    It only remembers which signals were received.
    """

    def __init__(self) -> None:
        self.skipped_waiting = False
        self.claimed_clients = False

    async def skip_waiting(self) -> None:
        logger.debug("Host signal: skip waiting")
        self.skipped_waiting = True

    async def claim_clients(self) -> None:
        logger.debug("Host signal: claim clients")
        self.claimed_clients = True
