"""Traduction des erreurs métier en réponses HTTP."""

from __future__ import annotations

from fastapi import HTTPException, status

from ricemill.errors import LedgerError

_STATUS_BY_KIND = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "validation_failed": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "business_rule": status.HTTP_400_BAD_REQUEST,
}


def to_http_exception(exc: LedgerError) -> HTTPException:
    """``{"detail": {"kind", "message", ...details}}`` avec le code du type d'erreur."""
    return HTTPException(
        status_code=_STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST),
        detail=exc.to_dict(),
    )
