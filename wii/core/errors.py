"""
Error kinds raised by services and stores.

Every error is scoped to a single request; the exception handlers in
``wii.main`` turn them into JSON error envelopes.
"""


class WiiError(Exception):
    status_code = 500
    error_type = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgument(WiiError):
    """Bad pagination, malformed filter or an invalid payload."""

    status_code = 400
    error_type = "invalid_argument"


class NotFound(WiiError):
    status_code = 404
    error_type = "not_found"


class StorageUnavailable(WiiError):
    """The underlying database read or write failed."""

    status_code = 503
    error_type = "storage_unavailable"


class BadRequestAlert(InvalidArgument):
    """Invalid request against a named entity, reported with an error key
    (``idexists``, ``idnull``, ``idinvalid``, ``idnotfound`` ...)."""

    def __init__(self, message: str, entity_name: str, error_key: str):
        super().__init__(message)
        self.entity_name = entity_name
        self.error_key = error_key
