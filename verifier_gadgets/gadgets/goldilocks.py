"""Goldilocks values carried as single native variables.

The proofs being verified live over Goldilocks (p = 2^64 - 2^32 + 1), which is
much smaller than the native BN254 field, so a Goldilocks value fits in one
native wire. Only the canonical range is enforced here; arithmetic modulo
the Goldilocks prime is outside the gadget layer.
"""

from dataclasses import dataclass
from typing import Dict

from verifier_gadgets.constraints.api import Builder
from verifier_gadgets.constraints.system import Variable
from verifier_gadgets.primitives.field import GOLDILOCKS_PRIME


@dataclass(frozen=True)
class GoldilocksVariable:
    limb: Variable


class GoldilocksChip:
    def __init__(self, api: Builder) -> None:
        self.api = api

    def constant(self, value: int) -> GoldilocksVariable:
        return GoldilocksVariable(self.api.constant(value % GOLDILOCKS_PRIME))

    def input(self, name: str, public: bool = False) -> GoldilocksVariable:
        """Declare an input constrained to [0, GOLDILOCKS_PRIME)."""
        limb = self.api.public_input(name) if public else self.api.secret_input(name)
        v = GoldilocksVariable(limb)
        self.range_check(v)
        return v

    def range_check(self, v: GoldilocksVariable) -> None:
        """Constrain v to a canonical Goldilocks value."""
        bits = self.api.to_binary(v.limb, 64)
        self.api.assert_is_less_or_equal_bits(bits, GOLDILOCKS_PRIME - 1)


def goldilocks_assignment(name: str, value: int) -> Dict[str, int]:
    if not 0 <= value < GOLDILOCKS_PRIME:
        raise ValueError(f"{value} is not a canonical Goldilocks value")
    return {name: value}
