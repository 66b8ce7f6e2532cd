"""Out-of-circuit Poseidon over BN254 with plonky2's PoseidonBN128 sponge.

Bit-exact reference for the in-circuit chip in gadgets/poseidon_bn254.py.
State arithmetic uses galois field arrays, the mix layer is a matrix-vector
product (M @ state).

Usage:
    digest = hash_no_pad([1, 2, 3, 4])       # Goldilocks values in, BN254 int out
    node = two_to_one(digest, digest)
    limbs = to_vec(node)                      # five 56-bit Goldilocks values
"""

from typing import List, Sequence

import galois

from verifier_gadgets.primitives.field import BN254, GOLDILOCKS_PRIME
from verifier_gadgets.primitives.poseidon_params import (
    BN254_POSEIDON,
    PoseidonParams,
    mds_matrix,
    round_constants,
)

# --- Sponge Framing ---

GOLDILOCKS_PER_ELEMENT = 3
"""Goldilocks values packed into one BN254 element (3 x 64 bits < 254 bits)."""

TO_VEC_CHUNK_BITS = 56
"""Width of the chunks a digest is split into by to_vec (below the Goldilocks prime)."""

TO_VEC_LEN = 5
"""Number of to_vec chunks covering the 254-bit native field."""


def permute(state: Sequence[int], params: PoseidonParams = BN254_POSEIDON) -> List[int]:
    """Poseidon permutation: R_F/2 full rounds, R_P partial rounds, R_F/2 full rounds."""
    if len(state) != params.width:
        raise ValueError(f"Expected state of width {params.width}, got {len(state)}")
    GF = BN254 if params.modulus == int(BN254.order) else galois.GF(params.modulus)
    t = params.width
    constants = GF(round_constants(params))
    mds = GF(mds_matrix(params))
    half = params.full_rounds // 2

    x = GF([v % params.modulus for v in state])
    for r in range(params.n_rounds):
        x = x + constants[r * t:(r + 1) * t]
        if r < half or r >= half + params.partial_rounds:
            x = x ** params.alpha
        else:
            x[0] = x[0] ** params.alpha
        x = mds @ x
    return [int(v) for v in x]


def pack(values: Sequence[int]) -> int:
    """Pack up to three Goldilocks values as little-endian 64-bit units."""
    if len(values) > GOLDILOCKS_PER_ELEMENT:
        raise ValueError(f"At most {GOLDILOCKS_PER_ELEMENT} values fit in one element")
    acc = 0
    for k, v in enumerate(values):
        acc += int(v) << (64 * k)
    return acc


def _check_goldilocks(values: Sequence[int]) -> None:
    for v in values:
        if not 0 <= int(v) < GOLDILOCKS_PRIME:
            raise ValueError(f"{v} is not a canonical Goldilocks value")


def hash_no_pad(inputs: Sequence[int]) -> int:
    """Absorb Goldilocks values, RATE * 3 per permutation, into slots 1..RATE."""
    _check_goldilocks(inputs)
    params = BN254_POSEIDON
    chunk = params.rate * GOLDILOCKS_PER_ELEMENT
    state = [0] * params.width
    for i in range(0, len(inputs), chunk):
        rate_chunk = inputs[i:i + chunk]
        for j in range(0, len(rate_chunk), GOLDILOCKS_PER_ELEMENT):
            state[j // GOLDILOCKS_PER_ELEMENT + 1] = pack(rate_chunk[j:j + GOLDILOCKS_PER_ELEMENT])
        state = permute(state, params)
    return state[0]


def hash_or_noop(inputs: Sequence[int]) -> int:
    """Inputs that fit in one digest are packed into it without hashing."""
    if len(inputs) <= GOLDILOCKS_PER_ELEMENT:
        _check_goldilocks(inputs)
        return pack(inputs)
    return hash_no_pad(inputs)


def two_to_one(left: int, right: int) -> int:
    state = permute([0, 0, left, right], BN254_POSEIDON)
    return state[0]


def to_vec(digest: int) -> List[int]:
    """Split a digest into TO_VEC_LEN little-endian 56-bit chunks."""
    digest %= BN254_POSEIDON.modulus
    mask = (1 << TO_VEC_CHUNK_BITS) - 1
    return [(digest >> (TO_VEC_CHUNK_BITS * i)) & mask for i in range(TO_VEC_LEN)]

