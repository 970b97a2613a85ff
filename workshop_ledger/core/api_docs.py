from fastapi import HTTPException

from workshop_ledger.schemas.common import ErrorOut
from workshop_ledger.services.stock_ledger_service import NotFoundError, StockLedgerError


_ERROR_EXAMPLES: dict[int, tuple[str, str, str]] = {
    400: ("bad_request", "Insufficient stock", "/stock-movements"),
    401: ("unauthorized", "Not authenticated", "/products"),
    403: ("forbidden", "You can only update your own profile", "/users/2"),
    404: ("not_found", "Product not found", "/products/42"),
    422: ("validation_error", "Validation failed", "/product-stock"),
    429: ("rate_limited", "Too many failed attempts. Try again later.", "/auth/login"),
    500: ("internal_error", "Internal server error", "/dashboard/stats"),
}


def error_responses(*status_codes: int) -> dict[int, dict]:
    responses: dict[int, dict] = {}
    for status_code in status_codes:
        code, message, path = _ERROR_EXAMPLES.get(
            status_code, ("http_error", "HTTP error", "/")
        )
        responses[status_code] = {
            "model": ErrorOut,
            "description": message,
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": code,
                            "message": message,
                            "request_id": "request-id",
                            "path": path,
                            "details": None,
                        }
                    }
                }
            },
        }
    return responses


def ledger_http_error(exc: StockLedgerError) -> HTTPException:
    """Map a stock ledger error to the status its `error_responses` entry documents."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))
