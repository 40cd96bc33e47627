"""
Domain error taxonomy.

Services raise these; the HTTP layer renders them through the registered
exception handlers and the WebSocket gateway turns them into `error` frames.
"""


class MarketplaceError(Exception):
    status_code = 500
    code = "server_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(MarketplaceError):
    status_code = 404
    code = "not_found"


class Forbidden(MarketplaceError):
    status_code = 403
    code = "forbidden"


class InvalidState(MarketplaceError):
    """Well-formed request that the state machine refuses for the current status."""
    status_code = 403
    code = "invalid_state"


class ValidationError(MarketplaceError):
    status_code = 400
    code = "validation_error"


class Unauthorized(MarketplaceError):
    status_code = 401
    code = "unauthorized"


class AccountBlocked(MarketplaceError):
    status_code = 403
    code = "account_blocked"


class LocationUnavailable(MarketplaceError):
    status_code = 404
    code = "location_unavailable"
