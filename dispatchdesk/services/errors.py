"""Domain errors raised by the dispatch services and mapped to HTTP responses in main."""


class DispatchError(Exception):
    status_code = 400
    code = "dispatch_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code


class InputValidationError(DispatchError):
    status_code = 422
    code = "validation_error"


class DuplicateLoadReferenceError(DispatchError):
    status_code = 409
    code = "duplicate_load_id"

    def __init__(self, message: str | None = None):
        super().__init__(message or "Load ID already exists. Please use a unique Load ID.")


class RecordNotFoundError(DispatchError):
    status_code = 404
    code = "not_found"


class OwnershipError(DispatchError):
    status_code = 403
    code = "forbidden"


class PersistenceError(DispatchError):
    status_code = 503
    code = "persistence_error"


class ReconciliationError(DispatchError):
    status_code = 500
    code = "reconciliation_failed"
