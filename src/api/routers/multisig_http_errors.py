from typing import NoReturn

from fastapi import HTTPException, status

from src.core.multisig import (
    MultisigAuthorizationError,
    MultisigExecutionError,
    MultisigIdempotencyConflictError,
    MultisigNotFoundError,
    MultisigStateError,
    MultisigValidationError,
)

# Newer Starlette releases renamed HTTP_422_UNPROCESSABLE_ENTITY.
HTTP_422_UNPROCESSABLE = getattr(
    status,
    "HTTP_422_UNPROCESSABLE_CONTENT",
    status.HTTP_422_UNPROCESSABLE_ENTITY,
)


def raise_multisig_http_exception(exc: Exception) -> NoReturn:
    if isinstance(exc, MultisigNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, MultisigAuthorizationError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    if isinstance(exc, (MultisigIdempotencyConflictError, MultisigStateError)):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if isinstance(exc, MultisigValidationError):
        raise HTTPException(status_code=HTTP_422_UNPROCESSABLE, detail=str(exc)) from exc
    if isinstance(exc, MultisigExecutionError):
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    raise exc
