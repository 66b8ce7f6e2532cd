"""Native fields, emulated field descriptors and limb helpers.

Uses the galois library for the native prime fields. BN254 is the native
field of the verifier circuit; Goldilocks is the field of the proof being
verified, whose values travel through the circuit as 64-bit units.

Emulated (non-native) fields are described by FieldParams: a modulus and a
fixed limb layout. The limb helpers here are shared by the in-circuit hints
and the witness assignment helpers.
"""

from dataclasses import dataclass
from typing import List, Sequence

import galois

# --- Native Moduli ---

BN254_SCALAR = 21888242871839275222246405745257275088548364400416034343698204186575808495617
"""Scalar field of BN254, the native field of the verifier circuit."""

GOLDILOCKS_PRIME = 0xFFFFFFFF00000001
"""p = 2^64 - 2^32 + 1."""

# Factoring BN254_SCALAR - 1 inside galois is slow, so the multiplicative
# generator is supplied directly.
BN254 = galois.GF(BN254_SCALAR, primitive_element=5, verify=False)
"""Native field GF(r) of the BN254 curve."""

GF_GOLDILOCKS = galois.GF(GOLDILOCKS_PRIME)
"""Goldilocks prime field."""


# --- Emulated Field Descriptors ---


@dataclass(frozen=True)
class FieldParams:
    """Limb layout of an emulated (non-native) prime field.

    Attributes:
        name: Short identifier used in constraint labels
        modulus: The emulated prime P
        nb_limbs: Number of native limbs per element
        bits_per_limb: Width of a reduced limb
    """

    name: str
    modulus: int
    nb_limbs: int
    bits_per_limb: int

    @classmethod
    def for_modulus(cls, name: str, modulus: int, bits_per_limb: int = 64) -> "FieldParams":
        """Smallest limb count of width bits_per_limb that holds the modulus."""
        nb_limbs = -(-modulus.bit_length() // bits_per_limb)
        return cls(name, modulus, nb_limbs, bits_per_limb)

    @property
    def modulus_limbs(self) -> List[int]:
        return decompose(self.modulus, self.bits_per_limb, self.nb_limbs)


# --- Limb Helpers ---


def decompose(value: int, bits_per_limb: int, nb_limbs: int) -> List[int]:
    """Split a non-negative integer into little-endian limbs.

    Bits above nb_limbs * bits_per_limb are dropped; callers that need an exact
    split must check the bound themselves.
    """
    mask = (1 << bits_per_limb) - 1
    return [(value >> (bits_per_limb * i)) & mask for i in range(nb_limbs)]


def recompose(limbs: Sequence[int], bits_per_limb: int) -> int:
    """Inverse of decompose. Limbs may exceed bits_per_limb (unreduced form)."""
    value = 0
    for limb in reversed(limbs):
        value = (value << bits_per_limb) + int(limb)
    return value


def to_signed(value: int, modulus: int) -> int:
    """Map a native field value to the symmetric range (-m/2, m/2]."""
    return value - modulus if value > modulus // 2 else value
