# queue_optimizer/throttle/__init__.py
from .config import ThrottleConfig, ThrottleNamespace
from .registry import ThrottleRegistry
from .service import RayThrottleService

__all__ = [
    'ThrottleConfig',
    'ThrottleNamespace',
    'ThrottleRegistry',
    'RayThrottleService',
]
