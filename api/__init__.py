"""HTTP layer: response envelope, error mapping and invoice routes."""

from api.base import (
    APIError,
    APIMeta,
    APIResponse,
    success_response,
    error_response,
    ErrorCodes,
)
