"""Application services: local store, sync client and sync orchestration."""

from drillsync.services.container import ServiceContainer, get_container, init_container

__all__ = ["ServiceContainer", "get_container", "init_container"]
