class MultisigError(Exception):
    pass


class MultisigValidationError(MultisigError):
    pass


class MultisigAuthorizationError(MultisigError):
    pass


class MultisigStateError(MultisigError):
    pass


class MultisigConcurrencyError(MultisigStateError):
    pass


class MultisigNotFoundError(MultisigError):
    pass


class MultisigExecutionError(MultisigError):
    pass


class MultisigIdempotencyConflictError(MultisigError):
    pass
