"""Exceptions raised by the CFDI engine and its collaborators."""

from __future__ import annotations


class CfdiError(RuntimeError):
    """Base class for every error raised by :mod:`cfdimx`."""


class InvalidTransition(CfdiError):
    """Raised when a lifecycle operation is not permitted in the current state."""

    def __init__(self, action: str, state: str) -> None:
        self.action = action
        self.state = state
        super().__init__(
            f"Acción '{action}' no permitida para un CFDI en estado '{state}'"
        )


class StoreError(CfdiError):
    """Raised by a document store when a CRUD operation fails."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class CatalogError(CfdiError):
    """Raised when a reference catalog cannot be loaded."""


class InvalidRecord(CfdiError, ValueError):
    """Raised when a stored or user supplied CFDI record cannot be read."""


class InvalidDocument(CfdiError):
    """Raised when an operation needs a valid invoice and got one with errors.

    ``errors`` is the field to message map produced by the validator.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__(f"El CFDI tiene {len(self.errors)} error(es) de validación")


__all__ = [
    "CatalogError",
    "CfdiError",
    "InvalidDocument",
    "InvalidRecord",
    "InvalidTransition",
    "StoreError",
]
