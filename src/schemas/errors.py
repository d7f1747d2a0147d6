"""Error response schema shared by every endpoint."""
from schemas.base import ApiModel


class ErrorResponse(ApiModel):
    """Body returned for every failed request: {"message": ..., "errorCode": ...}."""

    message: str
    error_code: str
