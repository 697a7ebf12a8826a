# queue_optimizer/exceptions.py


class OptimizerError(Exception):
    """Base exception for analyzer and throttle errors"""
    pass


class InvalidArgumentError(OptimizerError, ValueError):
    """Raised for bad throttle parameters or a malformed fleet snapshot"""
    pass


class InventoryUnavailableError(OptimizerError):
    """Raised when the fleet or queue inventory could not be obtained"""
    pass


class UnknownKeyError(OptimizerError, KeyError):
    """Raised when a throttle is required for a key that has none"""
    pass
