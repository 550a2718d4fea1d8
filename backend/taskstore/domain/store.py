"""Ready-to-use task store wired from settings."""

from ..config import Settings
from ..core import configure_logging, get_logger
from ..storage import StorageInterface, create_storage

logger = get_logger(__name__)


async def create_task_store(
    settings: Settings | None = None, configure_logs: bool = False
) -> StorageInterface:
    """Create a store with the user, task, project and tag schemas loaded.

    Args:
        settings: Configuration, read from the environment when omitted
        configure_logs: Also configure structlog from the settings

    Returns:
        A store with every schema and relationship registered

    Raises:
        StorageConfigurationError: If the storage settings are invalid
        StorageOperationError: If the schema files cannot be loaded
    """
    settings = settings or Settings()

    if configure_logs:
        configure_logging(
            environment=settings.environment,
            log_level=settings.log_level,
            json_logs=settings.json_logs,
        )

    store = create_storage(settings.storage)
    bundle = await store.load_schemas(settings.schema_dir)

    logger.info(
        "Task store ready",
        entities=sorted(bundle.schemas),
        relationships=len(bundle.relationships),
    )
    return store
