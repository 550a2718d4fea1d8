"""Storage backend factory for creating storage instances.

This module provides a factory function to create storage backends
based on configuration, supporting different backend types.
"""

import logging

from .audit import AuditLogObserver
from .exceptions import StorageConfigurationError
from .interface import StorageInterface
from .memory import InMemoryStorage
from .models import StorageConfig

logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = ["memory"]


def create_storage(config: StorageConfig) -> StorageInterface:
    """Create a storage backend instance based on configuration.

    Args:
        config: Storage configuration specifying backend type and settings

    Returns:
        StorageInterface: Configured storage backend instance

    Raises:
        StorageConfigurationError: If backend type is unsupported or config is invalid
    """
    validate_storage_config(config)
    backend_type = config.backend_type.lower()

    logger.info(f"Creating storage backend: {backend_type}")

    storage = InMemoryStorage(lock_timeout=config.lock_timeout_seconds)
    if config.audit_log:
        storage.on_change(AuditLogObserver())
    return storage


def validate_storage_config(config: StorageConfig) -> None:
    """Validate storage configuration.

    Args:
        config: Storage configuration to validate

    Raises:
        StorageConfigurationError: If configuration is invalid
    """
    if not config.backend_type:
        raise StorageConfigurationError("Storage backend type is required")

    if config.backend_type.lower() not in SUPPORTED_BACKENDS:
        raise StorageConfigurationError(
            f"Unsupported storage backend: {config.backend_type}. "
            f"Supported backends: {', '.join(SUPPORTED_BACKENDS)}"
        )

    if config.lock_timeout_seconds <= 0:
        raise StorageConfigurationError("Lock timeout must be positive")

    logger.debug(f"Storage configuration validated for backend: {config.backend_type}")
