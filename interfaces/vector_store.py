# VectorStore port
from __future__ import annotations

import logging
import threading
from typing import Any, Protocol

from pinecone import Pinecone, ServerlessSpec

from config.constant import DEFAULT_PINECONE_CLOUD, DEFAULT_PINECONE_REGION
from ingest_exceptions import VectorStoreError

logger = logging.getLogger(__name__)


class VectorStore(Protocol):
    def collection_exists(self, name: str) -> bool: ...
    def create_collection(self, name: str, *, dimension: int, metric: str) -> None: ...
    def upsert(self, name: str, records: list[dict[str, Any]]) -> Any: ...


class PineconeVectorStore:
    """One serverless Pinecone index per collection."""

    def __init__(
        self,
        client: Pinecone,
        *,
        cloud: str = DEFAULT_PINECONE_CLOUD,
        region: str = DEFAULT_PINECONE_REGION,
    ):
        self._client = client
        self._spec = ServerlessSpec(cloud=cloud, region=region)
        self._indexes: dict[str, Any] = {}
        self._lock = threading.Lock()

    def _index(self, name: str) -> Any:
        with self._lock:
            index = self._indexes.get(name)
            if index is None:
                index = self._client.Index(name)
                self._indexes[name] = index
            return index

    def collection_exists(self, name: str) -> bool:
        try:
            existing = {i["name"] for i in self._client.list_indexes()}
        except Exception as error:  # pylint: disable=broad-except
            raise VectorStoreError(str(error)) from error
        return name in existing

    def create_collection(self, name: str, *, dimension: int, metric: str) -> None:
        logger.info("Creating Pinecone index '%s' (dim=%d, metric=%s)",
                    name, dimension, metric)
        try:
            self._client.create_index(
                name=name,
                dimension=dimension,
                metric=metric,
                spec=self._spec,
            )
        except Exception as error:  # pylint: disable=broad-except
            raise VectorStoreError(str(error)) from error

    def upsert(self, name: str, records: list[dict[str, Any]]) -> Any:
        try:
            return self._index(name).upsert(vectors=records)
        except Exception as error:  # pylint: disable=broad-except
            raise VectorStoreError(str(error)) from error


__all__ = [
    "VectorStore",
    "PineconeVectorStore",
]
