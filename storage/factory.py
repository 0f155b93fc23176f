"""
Factory for creating storage backends
"""
from typing import Any, Dict, Type

import structlog

from storage.base import LocalStorageBackend, StorageBackend

logger = structlog.get_logger()


# Registry of available storage backends
STORAGE_BACKENDS: Dict[str, Type[StorageBackend]] = {
    "filesystem": LocalStorageBackend,
    "local": LocalStorageBackend,
}


def register_backend(backend_type: str, backend_class: Type[StorageBackend]) -> None:
    """Register an additional backend type (e.g. an in-memory one for tests)."""
    if not issubclass(backend_class, StorageBackend):
        raise ValueError(f"Backend {backend_class.__name__} must inherit from StorageBackend")
    STORAGE_BACKENDS[backend_type] = backend_class


def create_storage_backend(config: Dict[str, Any]) -> StorageBackend:
    """Create a storage backend from a config dict with a ``type`` key."""
    backend_type = config.get("type")
    if not backend_type:
        raise ValueError("Storage backend type not specified")

    backend_class = STORAGE_BACKENDS.get(backend_type)
    if backend_class is None:
        raise ValueError(f"Unknown storage backend type: {backend_type}")

    logger.debug("Creating storage backend", type=backend_type, name=config.get("name"))
    return backend_class(config)
