"""
Bootstrap module for SmartCube Core
Builds the service container in dependency order
"""
from typing import Optional, TYPE_CHECKING

from .config import Config
from .container import ServiceContainer
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from ..ai.client import AIProviderClient
    from ..storage.base import StorageInterface

logger = get_logger(__name__)


def build_container(
    mode: Optional[str] = None,
    *,
    storage: Optional['StorageInterface'] = None,
    ai_client: Optional['AIProviderClient'] = None,
    uploads_path: Optional[str] = None,
    ai_timeout_ms: Optional[int] = None,
) -> ServiceContainer:
    """
    Build a ServiceContainer

    Every call builds fresh services; callers own the container they get.
    Pass storage/ai_client to substitute backends (tests, embedding).

    Args:
        mode: 'solo' or 'prod' (defaults to Config.MODE)
        storage: Storage backend (default: built from mode)
        ai_client: AI provider client (default: AIProviderClient for Config.AI_PROVIDER)
        uploads_path: Saver cube output directory (default: Config.UPLOADS_PATH)
        ai_timeout_ms: Watchdog budget for AI-backed cubes (default: Config.AI_TIMEOUT_MS)

    Returns:
        ServiceContainer with all services initialized
    """
    from ..ai.client import AIProviderClient
    from ..storage import LocalJSONStorage, SupabaseStorage
    from .execution.cube_executor import CubeExecutor
    from .execution.cube_registry import build_default_registry
    from .execution.manager import ExecutionManager

    resolved_mode = mode or Config.MODE
    logger.info(f"Building ServiceContainer for mode={resolved_mode}")

    # 1. Storage (no dependencies)
    if storage is None:
        if resolved_mode == "prod":
            if not Config.SUPABASE_URL or not Config.SUPABASE_KEY:
                raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required for prod mode")
            storage = SupabaseStorage(Config.SUPABASE_URL, Config.SUPABASE_KEY)
        else:
            storage = LocalJSONStorage(Config.STORAGE_PATH)
    logger.debug("Storage initialized")

    # 2. AI client (used only inside AI-backed cubes)
    if ai_client is None:
        ai_client = AIProviderClient()

    # 3. Handlers, executor, manager
    registry = build_default_registry(ai_client=ai_client, uploads_path=uploads_path)
    executor = CubeExecutor(registry, ai_timeout_ms=ai_timeout_ms)
    manager = ExecutionManager(storage, executor)
    logger.debug(f"Registered {len(registry)} cube types")

    return ServiceContainer(
        storage=storage,
        registry=registry,
        executor=executor,
        manager=manager,
        ai_client=ai_client,
        mode=resolved_mode,
    )
