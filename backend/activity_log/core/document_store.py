"""Cosmos DB backed document store.

Each logical collection maps to one Cosmos container. Containers that do not
exist yet read as empty and are created (partitioned on ``/id``) on first write.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Protocol

from azure.core.exceptions import AzureError
from azure.cosmos import PartitionKey
from azure.cosmos.aio import CosmosClient
from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceNotFoundError
from pydantic import BaseModel

from activity_log.core.config import Settings
from activity_log.core.exceptions import MissingIndexError, NotFoundError, StoreUnavailableError
from activity_log.core.extraction import get_value_by_path

logger = logging.getLogger(__name__)

_SYSTEM_FIELDS = frozenset({"_rid", "_self", "_etag", "_attachments", "_ts", "_lsn"})
_DEFAULT_PARTITION_PATH = "/id"


class StoredDocument(BaseModel):
    id: str
    data: dict[str, Any]


class DocumentStore(Protocol):
    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None: ...

    async def add(self, collection: str, data: dict[str, Any]) -> StoredDocument: ...

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> StoredDocument: ...

    async def delete(self, collection: str, doc_id: str) -> None: ...

    async def query(
        self,
        collection: str,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        filters: dict[str, Any] | None = None,
    ) -> list[StoredDocument]: ...

    async def count(self, collection: str) -> int: ...


def _to_stored(item: dict[str, Any]) -> StoredDocument:
    data = {k: v for k, v in item.items() if k not in _SYSTEM_FIELDS and k != "id"}
    return StoredDocument(id=str(item.get("id", "")), data=data)


def _is_missing_index(err: CosmosHttpResponseError) -> bool:
    return err.status_code == 400 and "index" in str(err.message or err).lower()


def build_query(
    *,
    order_by: str | None = None,
    descending: bool = False,
    limit: int | None = None,
    filters: dict[str, Any] | None = None,
) -> tuple[str, list[dict[str, Any]]]:
    top = f"TOP {int(limit)} " if limit else ""
    query = f"SELECT {top}* FROM c"
    params: list[dict[str, Any]] = []

    if filters:
        clauses = []
        for i, (field, value) in enumerate(filters.items()):
            name = f"@p{i}"
            clauses.append(f'c["{field}"] = {name}')
            params.append({"name": name, "value": value})
        query += " WHERE " + " AND ".join(clauses)

    if order_by:
        query += f' ORDER BY c["{order_by}"] {"DESC" if descending else "ASC"}'

    return query, params


class CosmosDocumentStore:
    def __init__(self) -> None:
        self.client: CosmosClient | None = None
        self.database: Any = None
        self.initialized: bool = False
        self._containers: dict[str, Any] = {}
        self._partition_paths: dict[str, str] = {}
        self._ensured: set[str] = set()

    async def initialize(self, settings: Settings) -> None:
        if self.initialized:
            return

        if not settings.COSMOS_DB_ENDPOINT or not settings.COSMOS_DB_KEY:
            logger.warning("Cosmos DB credentials missing, document store not initialized")
            return

        self.client = CosmosClient(settings.COSMOS_DB_ENDPOINT, settings.COSMOS_DB_KEY)
        self.database = self.client.get_database_client(settings.COSMOS_DB_DATABASE)
        self.initialized = True
        logger.info("CosmosDocumentStore initialized (database=%s)", settings.COSMOS_DB_DATABASE)

    async def close(self) -> None:
        if self.client:
            await self.client.close()
        self.client = None
        self.database = None
        self.initialized = False
        self._containers.clear()
        self._partition_paths.clear()
        self._ensured.clear()

    def _container(self, collection: str) -> Any:
        if not self.database:
            raise StoreUnavailableError("Cosmos DB is not configured")
        if collection not in self._containers:
            self._containers[collection] = self.database.get_container_client(collection)
        return self._containers[collection]

    async def _writable_container(self, collection: str) -> Any:
        if not self.database:
            raise StoreUnavailableError("Cosmos DB is not configured")
        if collection not in self._ensured:
            self._containers[collection] = await self.database.create_container_if_not_exists(
                id=collection,
                partition_key=PartitionKey(path=_DEFAULT_PARTITION_PATH),
            )
            self._ensured.add(collection)
        return self._containers[collection]

    async def _partition_path(self, collection: str) -> str:
        if collection not in self._partition_paths:
            properties = await self._container(collection).read()
            paths = (properties.get("partitionKey") or {}).get("paths") or [_DEFAULT_PARTITION_PATH]
            self._partition_paths[collection] = paths[0]
        return self._partition_paths[collection]

    async def _partition_value(self, collection: str, item: dict[str, Any]) -> Any:
        path = await self._partition_path(collection)
        return get_value_by_path(item, path.strip("/").replace("/", "."))

    async def _collect(self, collection: str, query: str, params: list[dict[str, Any]]) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        async for item in self._container(collection).query_items(
            query=query,
            parameters=params,
            enable_cross_partition_query=True,
        ):
            items.append(item)
        return items

    async def _read_raw(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        items = await self._collect(
            collection,
            "SELECT * FROM c WHERE c.id = @id",
            [{"name": "@id", "value": doc_id}],
        )
        return items[0] if items else None

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        try:
            item = await self._read_raw(collection, doc_id)
        except CosmosResourceNotFoundError:
            return None
        except AzureError as err:
            logger.error("Point read %s/%s failed: %s", collection, doc_id, err)
            raise StoreUnavailableError(f"Failed to read {collection}/{doc_id}") from err

        if item is None:
            return None
        return _to_stored(item).data

    async def query(
        self,
        collection: str,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        filters: dict[str, Any] | None = None,
    ) -> list[StoredDocument]:
        query, params = build_query(order_by=order_by, descending=descending, limit=limit, filters=filters)
        try:
            items = await self._collect(collection, query, params)
        except CosmosResourceNotFoundError:
            return []
        except CosmosHttpResponseError as err:
            if order_by and _is_missing_index(err):
                raise MissingIndexError(f"Ordering {collection} by {order_by} requires an index") from err
            logger.error("Query on %s failed: %s", collection, err)
            raise StoreUnavailableError(f"Failed to query {collection}") from err
        except AzureError as err:
            logger.error("Query on %s failed: %s", collection, err)
            raise StoreUnavailableError(f"Failed to query {collection}") from err

        return [_to_stored(item) for item in items]

    async def count(self, collection: str) -> int:
        try:
            values = await self._collect(collection, "SELECT VALUE COUNT(1) FROM c", [])
        except CosmosResourceNotFoundError:
            return 0
        except AzureError as err:
            logger.error("Count on %s failed: %s", collection, err)
            raise StoreUnavailableError(f"Failed to count {collection}") from err

        return int(sum(values))

    async def add(self, collection: str, data: dict[str, Any]) -> StoredDocument:
        body = {**data, "id": uuid.uuid4().hex}
        try:
            container = await self._writable_container(collection)
            created = await container.create_item(body=body)
        except AzureError as err:
            logger.error("Insert into %s failed: %s", collection, err)
            raise StoreUnavailableError(f"Failed to write to {collection}") from err

        return _to_stored(created)

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> StoredDocument:
        try:
            existing = await self._read_raw(collection, doc_id)
            if existing is None:
                raise NotFoundError(f"{collection}/{doc_id} does not exist")
            body = {**existing, **data, "id": doc_id}
            replaced = await self._container(collection).replace_item(item=doc_id, body=body)
        except CosmosResourceNotFoundError as err:
            raise NotFoundError(f"{collection}/{doc_id} does not exist") from err
        except AzureError as err:
            logger.error("Update of %s/%s failed: %s", collection, doc_id, err)
            raise StoreUnavailableError(f"Failed to update {collection}/{doc_id}") from err

        return _to_stored(replaced)

    async def delete(self, collection: str, doc_id: str) -> None:
        try:
            existing = await self._read_raw(collection, doc_id)
            if existing is None:
                raise NotFoundError(f"{collection}/{doc_id} does not exist")
            partition_value = await self._partition_value(collection, existing)
            await self._container(collection).delete_item(item=doc_id, partition_key=partition_value)
        except CosmosResourceNotFoundError as err:
            raise NotFoundError(f"{collection}/{doc_id} does not exist") from err
        except AzureError as err:
            logger.error("Delete of %s/%s failed: %s", collection, doc_id, err)
            raise StoreUnavailableError(f"Failed to delete {collection}/{doc_id}") from err

    async def check_connection(self) -> bool:
        if not self.database:
            return False
        try:
            await self.database.read()
            return True
        except Exception:
            logger.exception("Cosmos DB connection check failed")
            return False
