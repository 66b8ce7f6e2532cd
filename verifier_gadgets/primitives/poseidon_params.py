"""Poseidon parameterizations and their round constants / MDS matrices.

Constants are produced by the reference Poseidon parameter generation
(Grain LFSR in self-shrinking mode seeded with the parameterization), so
they are identical to the published tables used by circomlib and plonky2's
PoseidonBN128 for the same (modulus, width, rounds).

Usage:
    constants = round_constants(BN254_POSEIDON)   # (R_F + R_P) * width ints
    mds = mds_matrix(BN254_POSEIDON)              # width x width ints
"""

import logging
from collections import deque
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, List, Tuple

from verifier_gadgets.errors import ConfigurationError
from verifier_gadgets.primitives.field import BN254_SCALAR

logger = logging.getLogger(__name__)

# Grain state width and the taps of its feedback polynomial
_GRAIN_BITS = 80
_GRAIN_TAPS = (62, 51, 38, 23, 13, 0)
_GRAIN_WARMUP = 160


@dataclass(frozen=True)
class PoseidonParams:
    """Poseidon parameterization over a prime field.

    Attributes:
        modulus: Prime field modulus
        width: State width t
        full_rounds: Total full rounds R_F (split evenly before/after the partial phase)
        partial_rounds: Partial rounds R_P
        alpha: S-box exponent
    """

    modulus: int
    width: int
    full_rounds: int
    partial_rounds: int
    alpha: int = 5

    @property
    def rate(self) -> int:
        """Number of state slots absorbing input (capacity 1)."""
        return self.width - 1

    @property
    def n_rounds(self) -> int:
        return self.full_rounds + self.partial_rounds

    def validate(self) -> None:
        if self.width < 2:
            raise ConfigurationError(f"Poseidon width must be at least 2, got {self.width}")
        if self.full_rounds % 2:
            raise ConfigurationError(f"Full rounds must split evenly, got {self.full_rounds}")
        if self.alpha != 5:
            raise ConfigurationError(f"Only the x^5 S-box is supported, got alpha={self.alpha}")
        if self.modulus % 5 == 1:
            raise ConfigurationError("x^5 is not a permutation when 5 divides modulus - 1")


BN254_POSEIDON = PoseidonParams(BN254_SCALAR, width=4, full_rounds=8, partial_rounds=56)
"""Width-4 Poseidon over the BN254 scalar field (rate 3, capacity 1)."""

BN254_POSEIDON_T3 = PoseidonParams(BN254_SCALAR, width=3, full_rounds=8, partial_rounds=57)
"""Width-3 circomlib Poseidon, kept for cross-checking the generator."""


# --- Grain LFSR ---


def _grain_bits(params: PoseidonParams) -> Iterator[int]:
    """Self-shrinking Grain output stream seeded by the parameterization."""
    n = params.modulus.bit_length()
    seed = (
        format(1, "02b")  # prime field
        + format(0, "04b")  # x^alpha S-box
        + format(n, "012b")
        + format(params.width, "012b")
        + format(params.full_rounds, "010b")
        + format(params.partial_rounds, "010b")
        + "1" * 30
    )
    state = deque((int(c) for c in seed), maxlen=_GRAIN_BITS)

    def step() -> int:
        bit = 0
        for tap in _GRAIN_TAPS:
            bit ^= state[tap]
        state.append(bit)
        return bit

    for _ in range(_GRAIN_WARMUP):
        step()
    while True:
        # keep the second bit of each pair only when the first is set
        if step():
            yield step()
        else:
            step()


def _draw(bits: Iterator[int], n: int) -> int:
    """Next n-bit integer, most significant bit first."""
    value = 0
    for _ in range(n):
        value = (value << 1) | next(bits)
    return value


@lru_cache(maxsize=None)
def _generate(params: PoseidonParams) -> Tuple[Tuple[int, ...], Tuple[Tuple[int, ...], ...]]:
    params.validate()
    p, t = params.modulus, params.width
    n = p.bit_length()
    bits = _grain_bits(params)

    constants = []
    for _ in range(params.n_rounds * t):
        value = _draw(bits, n)
        while value >= p:
            value = _draw(bits, n)
        constants.append(value)

    # Cauchy matrix M[i][j] = 1 / (x_i + y_j) from fresh distinct draws
    while True:
        draws = [_draw(bits, n) % p for _ in range(2 * t)]
        while len(set(draws)) != len(draws):
            draws = [_draw(bits, n) % p for _ in range(2 * t)]
        xs, ys = draws[:t], draws[t:]
        if all((x + y) % p for x in xs for y in ys):
            break
    mds = tuple(tuple(pow(x + y, -1, p) for y in ys) for x in xs)

    logger.debug(
        "Generated Poseidon constants: t=%d, R_F=%d, R_P=%d, %d-bit modulus",
        t, params.full_rounds, params.partial_rounds, n,
    )
    return tuple(constants), mds


def round_constants(params: PoseidonParams) -> List[int]:
    """Round constants, C[r * width + i] added to slot i in round r."""
    return list(_generate(params)[0])


def mds_matrix(params: PoseidonParams) -> List[List[int]]:
    """MDS matrix; the mix layer computes state'[i] = sum_j M[i][j] * state[j]."""
    return [list(row) for row in _generate(params)[1]]
