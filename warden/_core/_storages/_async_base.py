from __future__ import annotations

import abc
import typing as tp

from ..models import Entry, Request, Response


class AsyncBaseCache(abc.ABC):
    """
    Handle to a single cache generation.
    """

    name: str

    @abc.abstractmethod
    async def match(self, key: str) -> tp.Optional[Entry]:
        raise NotImplementedError()

    @abc.abstractmethod
    async def put(self, key: str, request: Request, response: Response) -> Entry:
        """
        Stores a snapshot of the response under the key, replacing any
        previous entry. The response body is read in full.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def delete(self, key: str) -> bool:
        raise NotImplementedError()

    @abc.abstractmethod
    async def keys(self) -> tp.List[str]:
        raise NotImplementedError()


class AsyncBaseStorage(abc.ABC):
    """
    A named collection of cache generations.
    """

    @abc.abstractmethod
    async def open(self, name: str) -> AsyncBaseCache:
        """
        Opens the generation, creating it if it does not exist.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def generation_names(self) -> tp.Set[str]:
        raise NotImplementedError()

    @abc.abstractmethod
    async def delete_generation(self, name: str) -> bool:
        """
        Deletes the generation and all of its entries.

        Returns:
            True if the generation existed, False otherwise.
        """
        raise NotImplementedError()

    async def close(self) -> None:
        pass
