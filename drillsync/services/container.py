"""Service container for dependency injection."""

import logging
from typing import Dict, Any

from flask import current_app

from drillsync.config import SyncConfig

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'drillsync'


class ServiceContainer:
    """Container for application services.

    Holds one ``SyncConfig`` and builds each service on first use from it.
    Tests can ``register`` replacements before the first lookup.
    """

    def __init__(self, config: SyncConfig, backend=None):
        """Initialize the service container."""
        self.config = config
        self._backend = backend
        self._services: Dict[str, Any] = {}

    def register(self, name: str, service: Any) -> None:
        """Register a service in the container.

        Args:
            name: Name of the service
            service: The service instance
        """
        self._services[name] = service

    def get(self, name: str) -> Any:
        """Get a service from the container by name.

        Raises:
            KeyError: if no such service exists
        """
        if name in self._services:
            return self._services[name]

        init_method = getattr(self, f"_init_{name}", None)
        if init_method is None:
            raise KeyError(f"Unknown service: {name}")
        service = init_method()
        self._services[name] = service
        logger.debug(f"Service {name} created")
        return service

    @property
    def store(self):
        return self.get('store')

    @property
    def sync_client(self):
        return self.get('sync_client')

    @property
    def connectivity(self):
        return self.get('connectivity')

    @property
    def sync_service(self):
        return self.get('sync_service')

    @property
    def remote_service(self):
        return self.get('remote_service')

    def _init_store(self):
        from drillsync.services.local_store import LocalStore
        if self._backend is None:
            from drillsync.models.kv_repository import SqlAlchemyKeyValueRepository
            from drillsync.extensions import db
            self._backend = SqlAlchemyKeyValueRepository(db)
        return LocalStore(self._backend, self.config)

    def _init_sync_client(self):
        from drillsync.services.sync_client import SyncClient
        return SyncClient(self.config)

    def _init_connectivity(self):
        from drillsync.services.connectivity import ConnectivityMonitor
        return ConnectivityMonitor.from_config(self.config)

    def _init_sync_service(self):
        from drillsync.services.sync_service import SyncService
        return SyncService(self.store, self.sync_client, self.connectivity, self.config)

    def _init_remote_service(self):
        from drillsync.services.remote_service import RemoteService
        return RemoteService(self.sync_client, self.store, self.config)


def init_container(app, backend=None) -> ServiceContainer:
    """Build the container for ``app`` and attach it to ``app.extensions``."""
    container = ServiceContainer(SyncConfig.from_mapping(app.config), backend=backend)
    app.extensions[EXTENSION_KEY] = container
    logger.info("Service container initialized")
    return container


def get_container(app=None) -> ServiceContainer:
    return (app or current_app).extensions[EXTENSION_KEY]
