"""Primitives - Fields, curve descriptors and Poseidon parameters outside the circuit."""

from verifier_gadgets.primitives.edwards import (
    BABYJUBJUB,
    ED25519,
    CurveParams,
)
from verifier_gadgets.primitives.field import (
    BN254,
    BN254_SCALAR,
    GF_GOLDILOCKS,
    GOLDILOCKS_PRIME,
    FieldParams,
    decompose,
    recompose,
)
from verifier_gadgets.primitives.poseidon_params import (
    BN254_POSEIDON,
    PoseidonParams,
    mds_matrix,
    round_constants,
)

__all__ = [
    # Fields
    "BN254",
    "BN254_SCALAR",
    "GF_GOLDILOCKS",
    "GOLDILOCKS_PRIME",
    "FieldParams",
    "decompose",
    "recompose",
    # Curves
    "CurveParams",
    "ED25519",
    "BABYJUBJUB",
    # Poseidon
    "PoseidonParams",
    "BN254_POSEIDON",
    "round_constants",
    "mds_matrix",
]
