"""Gadgets - In-circuit arithmetic built on the constraint builder."""

from verifier_gadgets.gadgets.edwards import AffinePoint, Curve, point_assignment
from verifier_gadgets.gadgets.emulated import Element, EmulatedField, element_assignment
from verifier_gadgets.gadgets.goldilocks import (
    GoldilocksChip,
    GoldilocksVariable,
    goldilocks_assignment,
)
from verifier_gadgets.gadgets.poseidon_bn254 import BN254Chip

__all__ = [
    # Emulated field
    "EmulatedField",
    "Element",
    "element_assignment",
    # Twisted Edwards
    "Curve",
    "AffinePoint",
    "point_assignment",
    # Goldilocks
    "GoldilocksChip",
    "GoldilocksVariable",
    "goldilocks_assignment",
    # Poseidon
    "BN254Chip",
]
