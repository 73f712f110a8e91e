"""Client context - the single place where the client is wired together.

Everything that was process-wide state in a browser client (the session,
the entity caches, the router guard) is an attribute of one
``ClientContext``. Build it once, use it as an async context manager, and
hand its parts to whatever needs them.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import TYPE_CHECKING, Self

from clinirec.auth.guard import NavigationDecision, NavigationGuard
from clinirec.auth.routes import NavigationPaths, default_routes
from clinirec.auth.session import SessionManager
from clinirec.core.config import Settings, get_settings
from clinirec.core.messages import MessageCatalog
from clinirec.services.correlator import PatientRecordCorrelator
from clinirec.services.observation_cache import ObservationCache
from clinirec.services.patient_cache import PatientCache
from clinirec.services.practitioner_cache import PractitionerCache
from clinirec.services.user_cache import UserCache
from clinirec.services.visit_cache import VisitCache
from clinirec.storage.local_storage import JsonFileStorage
from clinirec.transport.gateway import TransportGateway

if TYPE_CHECKING:
    import httpx

    from clinirec.ports.storage import StoragePort
    from clinirec.services.entity_cache import EntityCache

logger = logging.getLogger(__name__)


class ClientContext:
    """Owns the gateway, session, guard and entity caches of one client."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        storage: StoragePort | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Wire the client.

        Args:
            settings: Client settings, defaults to ``get_settings()``
            storage: Persisted session storage, defaults to a JSON file at
                ``settings.storage_path``
            transport: Optional httpx transport, used by tests to fake the server
        """
        self.settings = settings or get_settings()
        self.messages = MessageCatalog(self.settings.locale)
        self.storage = storage or JsonFileStorage(self.settings.storage_path)

        self.gateway = TransportGateway(
            self.settings.api_base_url,
            timeout=self.settings.request_timeout,
            transport=transport,
        )
        self.session = SessionManager(self.gateway, self.storage)
        self.gateway.token_provider = self.session.get_token
        self.gateway.on_unauthorized = self.session.handle_unauthorized

        paths = NavigationPaths.from_settings(self.settings)
        self.guard = NavigationGuard(default_routes(paths), paths)

        self.patients = PatientCache(self.gateway, self.messages)
        self.correlator = PatientRecordCorrelator(self.gateway, self.patients, self.messages)
        self.practitioners = PractitionerCache(self.gateway, self.messages)
        self.visits = VisitCache(self.gateway, self.messages, correlator=self.correlator)
        self.observations = ObservationCache(
            self.gateway, self.messages, correlator=self.correlator
        )
        self.users = UserCache(self.gateway, self.messages)

        self.session.add_logout_listener(self.clear_caches)

    @property
    def caches(self) -> tuple[EntityCache, ...]:
        return (
            self.patients,
            self.practitioners,
            self.visits,
            self.observations,
            self.users,
        )

    def clear_caches(self) -> None:
        """Forget every cached record, e.g. after the session ends."""
        for cache in self.caches:
            cache.clear()
        logger.debug("Entity caches cleared")

    def navigate(self, path: str) -> NavigationDecision:
        return self.guard.navigate(path, self.session.snapshot())

    async def start(self) -> Self:
        """Restore any persisted session."""
        self.session.initialize()
        return self

    async def aclose(self) -> None:
        await self.gateway.aclose()
        logger.debug("Client context closed")

    async def __aenter__(self) -> Self:
        return await self.start()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
