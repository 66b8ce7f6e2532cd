"""In-circuit Poseidon over the BN254 scalar field.

Width 4, rate 3, 8 full rounds and 56 partial rounds with the x^5 S-box,
framed as plonky2's PoseidonBN128 hasher: Goldilocks inputs are packed three
to a native element, digests are single native elements. Outputs agree with
primitives/poseidon.py bit for bit.

Usage:
    chip = BN254Chip(api)
    digest = chip.hash_no_pad([gl.input(f"leaf[{i}]") for i in range(8)])
    root = chip.two_to_one(digest, sibling)
"""

from typing import List, Sequence, Tuple

from verifier_gadgets.constraints.api import Builder
from verifier_gadgets.constraints.system import Operand, Variable
from verifier_gadgets.errors import ConfigurationError
from verifier_gadgets.gadgets.goldilocks import GoldilocksChip, GoldilocksVariable
from verifier_gadgets.primitives.field import BN254_SCALAR
from verifier_gadgets.primitives.poseidon import (
    GOLDILOCKS_PER_ELEMENT,
    TO_VEC_CHUNK_BITS,
    TO_VEC_LEN,
)
from verifier_gadgets.primitives.poseidon_params import BN254_POSEIDON, mds_matrix, round_constants

# --- Type Aliases ---
BN254State = Tuple[Variable, ...]
BN254HashOut = Variable


class BN254Chip:
    """Poseidon chip bound to one circuit builder.

    Raises:
        ConfigurationError: If the builder's native field is not the BN254
            scalar field the round constants were generated for
    """

    def __init__(self, api: Builder) -> None:
        if api.modulus != BN254_SCALAR:
            raise ConfigurationError(
                f"Poseidon BN254 constants require the BN254 scalar field, got modulus {api.modulus}"
            )
        self.api = api
        self.gl = GoldilocksChip(api)
        self.params = BN254_POSEIDON
        self._constants = round_constants(self.params)
        self._mds = mds_matrix(self.params)

    # --- Sponge ---

    def _pack(self, chunk: Sequence[GoldilocksVariable]) -> Variable:
        acc: Operand = 0
        for k, v in enumerate(chunk):
            acc = self.api.mul_acc(acc, v.limb, 1 << (64 * k))
        return self.api.add(acc, 0)

    def hash_no_pad(self, inputs: Sequence[GoldilocksVariable]) -> BN254HashOut:
        """Overwrite rate slots 1..3 with packed inputs, permute per chunk, output slot 0."""
        chunk_len = self.params.rate * GOLDILOCKS_PER_ELEMENT
        state: List[Variable] = [self.api.constant(0)] * self.params.width
        for i in range(0, len(inputs), chunk_len):
            rate_chunk = inputs[i:i + chunk_len]
            for j in range(0, len(rate_chunk), GOLDILOCKS_PER_ELEMENT):
                state[j // GOLDILOCKS_PER_ELEMENT + 1] = self._pack(rate_chunk[j:j + GOLDILOCKS_PER_ELEMENT])
            state = list(self.permute(tuple(state)))
        return state[0]

    def hash_or_noop(self, inputs: Sequence[GoldilocksVariable]) -> BN254HashOut:
        """Inputs that fit in one digest are packed into it without a permutation."""
        if len(inputs) <= GOLDILOCKS_PER_ELEMENT:
            return self._pack(inputs)
        return self.hash_no_pad(inputs)

    def two_to_one(self, left: BN254HashOut, right: BN254HashOut) -> BN254HashOut:
        zero = self.api.constant(0)
        state = self.permute((zero, zero, left, right))
        return state[0]

    def to_vec(self, digest: BN254HashOut) -> List[GoldilocksVariable]:
        """Canonical bits of the digest regrouped into 56-bit Goldilocks values."""
        bits = self.api.to_binary(digest)
        return [
            GoldilocksVariable(self.api.from_binary(bits[TO_VEC_CHUNK_BITS * i:TO_VEC_CHUNK_BITS * (i + 1)]))
            for i in range(TO_VEC_LEN)
        ]

    # --- Permutation ---

    def permute(self, state: BN254State) -> BN254State:
        half = self.params.full_rounds // 2
        state = self._full_rounds(state, 0)
        state = self._partial_rounds(state, half)
        return self._full_rounds(state, half + self.params.partial_rounds)

    def _full_rounds(self, state: BN254State, start: int) -> BN254State:
        for r in range(start, start + self.params.full_rounds // 2):
            state = self._ark(state, r)
            state = tuple(self._exp5(x) for x in state)
            state = self._mix(state)
        return state

    def _partial_rounds(self, state: BN254State, start: int) -> BN254State:
        for r in range(start, start + self.params.partial_rounds):
            state = self._ark(state, r)
            state = (self._exp5(state[0]),) + state[1:]
            state = self._mix(state)
        return state

    def _ark(self, state: BN254State, r: int) -> BN254State:
        t = self.params.width
        return tuple(self.api.add(x, self._constants[r * t + i]) for i, x in enumerate(state))

    def _exp5(self, x: Variable) -> Variable:
        x2 = self.api.mul(x, x)
        x4 = self.api.mul(x2, x2)
        return self.api.mul(x4, x)

    def _mix(self, state: BN254State) -> BN254State:
        out = []
        for row in self._mds:
            acc: Operand = 0
            for m, x in zip(row, state):
                acc = self.api.mul_acc(acc, x, m)
            out.append(self.api.add(acc, 0))
        return tuple(out)
