"""
Error taxonomy for the chain-of-custody engine.

Generation, issuance, and signing failures are raised and abort the single
operation that hit them. Validation outcomes are never raised; they are
returned as results (see ``pqbgpsec.pki.types.ValidationResult``).
"""


class PQBGPsecError(Exception):
    """Base class for all engine errors."""


class KeyGenerationError(PQBGPsecError):
    """Unsupported, unavailable or misconfigured signature algorithm."""


class IssuanceError(PQBGPsecError):
    """Certificate authority state is invalid or a request was refused."""


class SigningError(PQBGPsecError):
    """Key pair cannot sign the given message (algorithm or key mismatch)."""


class DecodeError(PQBGPsecError, ValueError):
    """A persisted or transmitted record is malformed."""


class StorageError(PQBGPsecError):
    """Ledger store backend failure."""


class ScenarioError(PQBGPsecError):
    """A scenario step was invoked out of order."""


__all__ = [
    "PQBGPsecError",
    "KeyGenerationError",
    "IssuanceError",
    "SigningError",
    "DecodeError",
    "StorageError",
    "ScenarioError",
]
