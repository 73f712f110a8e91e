"""Generic entity cache - local copy of one entity kind kept in sync with the server.

Each concrete cache supplies the collection path, how to parse one server
envelope, how to derive the business key, and what structural validation
applies. The base class owns the synchronization rules:

- reads (``load_all``, ``get_by_key``) never raise; they set ``last_error``
- a 404 on ``get_by_key`` means absent, not failed
- ``create``/``update`` validate locally before any request and raise only
  when called with ``strict=True``
- ``delete`` always re-raises after recording the error
- the cached mapping only changes after the server confirms a mutation
- a second mutation of a key already in flight is rejected
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
import logging
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel

from clinirec.core.decorators import cache_operation
from clinirec.core.exceptions import (
    ClinirecBaseError,
    ConcurrentMutationError,
    DataValidationError,
    DocumentParseError,
    HTTPResponseError,
    MissingBusinessKeyError,
    NoResponseError,
    TransportError,
)
from clinirec.core.messages import MessageCatalog, MessageKey
from clinirec.transport.gateway import TransportGateway

logger = logging.getLogger(__name__)

K = TypeVar("K")
T = TypeVar("T")


def _is_blank(key: Any) -> bool:
    return key is None or (isinstance(key, str) and not key.strip())


class EntityCache(ABC, Generic[K, T]):
    """Base class for every entity cache."""

    entity: ClassVar[str]
    collection: ClassVar[str]
    requires_key: ClassVar[bool] = True

    def __init__(
        self, gateway: TransportGateway, messages: MessageCatalog | None = None
    ) -> None:
        self.gateway = gateway
        self.messages = messages or MessageCatalog()
        self.last_error: str | None = None
        self.warnings: list[str] = []
        self._records: dict[K, T] = {}
        self._pending = 0
        self._in_flight: set[K] = set()

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def parse(self, raw: Any) -> T:
        """Parse one server envelope.

        Raises:
            DocumentParseError: The envelope or its document is unusable
        """

    @abstractmethod
    def key_of(self, record: T) -> K:
        """Return the business key of a parsed record."""

    def key_from_input(self, data: Mapping[str, Any]) -> K | None:
        """Return the business key carried by data about to be created."""
        return None

    def validate(self, data: Mapping[str, Any], *, creating: bool) -> list[str]:
        return []

    def serialize(self, data: Mapping[str, Any]) -> Any:
        return dict(data)

    async def create_params(
        self, data: Mapping[str, Any], key: K | None
    ) -> dict[str, Any] | None:
        return None

    async def hydrate(self, record: T) -> T:
        """Enrich a single fetched or created record before it is cached."""
        return record

    def item_path(self, key: K) -> str:
        return f"{self.collection}/{key}"

    # ------------------------------------------------------------------
    # Local reads
    # ------------------------------------------------------------------

    @property
    def busy(self) -> bool:
        return self._pending > 0

    @property
    def records(self) -> list[T]:
        return list(self._records.values())

    def peek(self, key: K) -> T | None:
        """Return the cached record for ``key`` without contacting the server."""
        return self._records.get(key)

    def is_in_flight(self, key: K) -> bool:
        return key in self._in_flight

    def clear(self) -> None:
        self._records.clear()
        self.last_error = None
        self.warnings.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._records.values()))

    # ------------------------------------------------------------------
    # Remote operations
    # ------------------------------------------------------------------

    @cache_operation()
    async def load_all(self) -> None:
        """Replace the cache with the server's full collection."""
        await self._load_collection(self.collection)

    @cache_operation()
    async def get_by_key(self, key: K) -> T | None:
        """Fetch one record; None when absent or on failure."""
        self.last_error = None
        if _is_blank(key):
            self.last_error = self.messages.get(MessageKey.KEY_REQUIRED, self.entity)
            return None

        with self._tracking():
            try:
                raw = await self.gateway.get(self.item_path(key))
                record = await self.hydrate(self.parse(raw))
            except HTTPResponseError as e:
                if not e.is_not_found:
                    self._record_failure(e, MessageKey.FETCH_FAILED)
                    return None
                logger.info("%s %s not found", self.entity, key)
                self._records.pop(key, None)
                return None
            except ClinirecBaseError as e:
                self._record_failure(e, MessageKey.FETCH_FAILED)
                return None

        self._store(record)
        return record

    @cache_operation()
    async def create(
        self, data: Mapping[str, Any] | BaseModel, *, strict: bool = False
    ) -> T | None:
        """Create a record on the server and cache the echoed result."""
        self.last_error = None
        try:
            payload = self._as_payload(data)
            key = self._check(payload, creating=True)
            with self._tracking(key):
                params = await self.create_params(payload, key)
                raw = await self.gateway.post(
                    self.collection, self.serialize(payload), params=params
                )
                record = await self.hydrate(self.parse(raw))
        except ClinirecBaseError as e:
            self._record_failure(e, MessageKey.CREATE_FAILED)
            if strict:
                raise
            return None

        self._store(record)
        logger.info("Created %s %s", self.entity, self.key_of(record))
        return record

    @cache_operation()
    async def update(
        self, key: K, data: Mapping[str, Any] | BaseModel, *, strict: bool = False
    ) -> T | None:
        """Replace a record on the server and in the cache."""
        self.last_error = None
        try:
            self._require_key(key)
            payload = self._as_payload(data)
            self._check(payload, creating=False)
            with self._tracking(key):
                raw = await self.gateway.put(self.item_path(key), self.serialize(payload))
                record = await self.hydrate(self.parse(raw))
        except ClinirecBaseError as e:
            self._record_failure(e, MessageKey.UPDATE_FAILED)
            if strict:
                raise
            return None

        new_key = self.key_of(record)
        if new_key != key:
            self._records.pop(key, None)
        self._store(record)
        logger.info("Updated %s %s", self.entity, new_key)
        return record

    @cache_operation()
    async def delete(self, key: K) -> None:
        """Delete a record on the server, then drop it from the cache.

        Raises:
            ClinirecBaseError: The delete failed; the cache is unchanged
        """
        self.last_error = None
        try:
            self._require_key(key)
            with self._tracking(key):
                await self.gateway.delete(self.item_path(key))
        except ClinirecBaseError as e:
            self._record_failure(e, MessageKey.DELETE_FAILED)
            raise

        self._records.pop(key, None)
        logger.info("Deleted %s %s", self.entity, key)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load_collection(self, path: str) -> list[T] | None:
        self.last_error = None
        with self._tracking():
            try:
                raw = await self.gateway.get(path)
            except TransportError as e:
                self._record_failure(e, MessageKey.LOAD_FAILED)
                return None

        if raw is None:
            raw = []
        if not isinstance(raw, list):
            logger.warning(
                "Expected a list of %s records, got %s", self.entity, type(raw).__name__
            )
            self.last_error = self.messages.get(MessageKey.LOAD_FAILED, self.entity)
            return None

        records: dict[K, T] = {}
        for item in raw:
            try:
                record = self.parse(item)
            except DocumentParseError as e:
                logger.warning(
                    "Dropping unreadable %s record %s", self.entity, e.record_id
                )
                logger.debug("Parse failure detail: %s", e.reason)
                continue
            records[self.key_of(record)] = record

        if raw and not records:
            self.last_error = self.messages.get(MessageKey.NO_VALID_RECORDS, self.entity)
        self._records = records
        logger.debug("Loaded %d of %d %s records", len(records), len(raw), self.entity)
        return list(records.values())

    @contextmanager
    def _tracking(self, key: K | None = None) -> Iterator[None]:
        if key is not None:
            if key in self._in_flight:
                raise ConcurrentMutationError(self.entity, key)
            self._in_flight.add(key)
        self._pending += 1
        try:
            yield
        finally:
            self._pending -= 1
            if key is not None:
                self._in_flight.discard(key)

    def _store(self, record: T) -> None:
        self._records[self.key_of(record)] = record

    def _as_payload(self, data: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
        if isinstance(data, BaseModel):
            return data.model_dump(by_alias=True, exclude_none=True, mode="json")
        if isinstance(data, Mapping):
            return dict(data)
        msg = self.messages.get(MessageKey.DOCUMENT_UNREADABLE, self.entity)
        raise DataValidationError(msg)

    def _require_key(self, key: K) -> None:
        if _is_blank(key):
            raise MissingBusinessKeyError(
                self.entity, self.messages.get(MessageKey.KEY_REQUIRED, self.entity)
            )

    def _check(self, payload: Mapping[str, Any], *, creating: bool) -> K | None:
        errors = self.validate(payload, creating=creating)
        if errors:
            raise DataValidationError("; ".join(errors), errors=errors)
        if not creating:
            return None
        key = self.key_from_input(payload)
        if self.requires_key and _is_blank(key):
            raise MissingBusinessKeyError(
                self.entity, self.messages.get(MessageKey.KEY_REQUIRED, self.entity)
            )
        return key

    def _describe(self, error: ClinirecBaseError, default: MessageKey) -> str:
        if isinstance(error, DataValidationError):
            return "; ".join(error.errors)
        if isinstance(error, ConcurrentMutationError):
            return self.messages.get(MessageKey.CONCURRENT_MUTATION, self.entity)
        if isinstance(error, DocumentParseError):
            return self.messages.get(MessageKey.DOCUMENT_UNREADABLE, self.entity)
        if isinstance(error, TransportError):
            server_message = error.server_message()
            if server_message:
                return server_message
            if isinstance(error, NoResponseError):
                return self.messages.get(MessageKey.SERVICE_UNREACHABLE)
        return self.messages.get(default, self.entity)

    def _record_failure(self, error: ClinirecBaseError, default: MessageKey) -> None:
        self.last_error = self._describe(error, default)
        logger.warning("%s operation failed: %s", self.entity, error)

    def _warn(self, message: str) -> None:
        self.warnings.append(message)
        logger.warning("%s: %s", self.entity, message)
