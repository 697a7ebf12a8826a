# queue_optimizer/ray_init.py
import ray
from typing import Any, Dict, Optional
from queue_optimizer.log_handler import get_logger


logger = get_logger(__name__)
_ray_initialized = False


def initialize_ray(
    address: Optional[str] = None, ignore_reinit: bool = True, **kwargs
) -> bool:
    """
    Initialize Ray for the throttle actors.

    Args:
        address: Optional Ray cluster address to connect to
        ignore_reinit: Whether to ignore reinitialization
        **kwargs: Additional parameters to pass to ray.init()

    Returns:
        bool: True if Ray was initialized here, False if it already was
    """
    global _ray_initialized

    if ray.is_initialized():
        if not _ray_initialized:
            logger.info("Ray was already initialized externally")
        return False

    init_kwargs = {"ignore_reinit_error": ignore_reinit}
    if address:
        init_kwargs["address"] = address
        logger.info(f"Connecting to Ray cluster at {address}")
    else:
        logger.info("Starting local Ray instance")
    init_kwargs.update(kwargs)

    try:
        ray.init(**init_kwargs)
    except Exception as e:
        logger.error(f"Failed to initialize Ray: {str(e)}")
        raise
    _ray_initialized = True
    logger.info("Ray initialized successfully")
    return True


def get_ray_resources() -> Dict[str, Any]:
    """Resources still free on the connected cluster, empty without Ray."""
    if not ray.is_initialized():
        return {}
    return ray.available_resources()


def get_ray_dashboard_url() -> Optional[str]:
    if not ray.is_initialized():
        return None
    try:
        return ray.get_dashboard_url() or None
    except Exception as e:
        logger.error(f"Error getting Ray dashboard URL: {str(e)}")
        return None


def shutdown_ray() -> None:
    """Shutdown Ray if it was initialized by this module."""
    global _ray_initialized
    if _ray_initialized and ray.is_initialized():
        ray.shutdown()
        _ray_initialized = False
        logger.info("Ray shutdown complete")
