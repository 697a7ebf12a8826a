# queue_optimizer/api/exceptions.py
from fastapi import HTTPException
from starlette.status import (
    HTTP_404_NOT_FOUND,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)


class InvalidRequestError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class ThrottleNotFoundError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=HTTP_404_NOT_FOUND, detail=detail)


class ServiceUnavailableError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


class OptimizerServiceError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
