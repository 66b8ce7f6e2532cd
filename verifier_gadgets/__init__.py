"""Verifier gadgets - Emulated field, twisted Edwards and Poseidon-BN254 circuits."""

from verifier_gadgets.errors import (
    ConfigurationError,
    MissingAssignmentError,
    UnsatisfiedConstraintError,
)

__all__ = [
    "ConfigurationError",
    "MissingAssignmentError",
    "UnsatisfiedConstraintError",
]
