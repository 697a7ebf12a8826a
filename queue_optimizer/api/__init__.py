# queue_optimizer/api/__init__.py
from .models import (
    ThrottleSettings,
    ThrottleResponse,
    ThrottleListResponse,
    AdmissionRequest,
    AdmissionResponse,
    InventoryUpdate,
)
from .router import router
from .state import AppState
from .exceptions import InvalidRequestError, ThrottleNotFoundError, ServiceUnavailableError

__all__ = [
    'ThrottleSettings',
    'ThrottleResponse',
    'ThrottleListResponse',
    'AdmissionRequest',
    'AdmissionResponse',
    'InventoryUpdate',
    'router',
    'AppState',
    'InvalidRequestError',
    'ThrottleNotFoundError',
    'ServiceUnavailableError',
]
