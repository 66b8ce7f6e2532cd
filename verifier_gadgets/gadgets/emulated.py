"""Emulated (non-native) prime field arithmetic.

An Element holds a value modulo a foreign prime P as little-endian native
limbs. Each limb's integer value is in [0, 2^(bits_per_limb + overflow)), where
overflow is tracked explicitly on the element:

- add/sub/neg/select grow overflow and create no multiplication constraints
- mul/reduce/inverse/div produce fully reduced limbs (overflow 0)
- a reduction is only inserted when the next operation would leave the bit
  budget (lazy reduction)

Every non-linear relation is proven the same way. Hints supply a quotient k
and remainder r, both range checked limb-wise, and the polynomial identity

    lhs(X) == k(X) * p(X) + r(X)   at X = 2^bits_per_limb

is checked coefficient-wise with a chain of signed, range-checked carries:

    diff_0 == c_0 * 2^bits,  diff_i + c_(i-1) == c_i * 2^bits,  diff_last + c == 0

The bit budget guarantees no coefficient, carry or intermediate sum reaches
half the native modulus, so the native relations imply the integer ones.
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import Dict, List, Optional, Sequence, Tuple

from verifier_gadgets.constraints.api import Builder
from verifier_gadgets.constraints.system import Operand, Variable, Witness
from verifier_gadgets.errors import ConfigurationError
from verifier_gadgets.primitives.field import FieldParams, decompose, recompose, to_signed

logger = logging.getLogger(__name__)

# Bits kept free between the largest checked coefficient and the native modulus.
CARRY_HEADROOM = 3


@dataclass(frozen=True)
class Element:
    """Emulated field element.

    Attributes:
        limbs: Little-endian native limbs
        overflow: Extra bits each limb may carry above bits_per_limb
    """

    limbs: Tuple[Variable, ...]
    overflow: int = 0


def _clog2(x: int) -> int:
    return (x - 1).bit_length()


# --- Hints ---


def _quo_rem(p: int, bits: int, n: int, nk: int, value: int) -> List[int]:
    k, r = divmod(value, p)
    return decompose(r, bits, n) + decompose(k, bits, nk)


def _mul_hint(p: int, bits: int, n: int, nk: int, modulus: int, inputs: List[int]) -> List[int]:
    a = recompose(inputs[:n], bits)
    b = recompose(inputs[n:], bits)
    return _quo_rem(p, bits, n, nk, a * b)


def _reduce_hint(p: int, bits: int, n: int, nk: int, modulus: int, inputs: List[int]) -> List[int]:
    return _quo_rem(p, bits, n, nk, recompose(inputs, bits))


def _quotient_hint(p: int, bits: int, nk: int, modulus: int, inputs: List[int]) -> List[int]:
    return decompose(recompose(inputs, bits) // p, bits, nk)


def _inverse_hint(p: int, bits: int, n: int, modulus: int, inputs: List[int]) -> List[int]:
    a = recompose(inputs, bits) % p
    # zero has no inverse; returning 0 leaves a * inv == 1 unsatisfiable
    inv = pow(a, -1, p) if a else 0
    return decompose(inv, bits, n)


def _div_hint(p: int, bits: int, n: int, modulus: int, inputs: List[int]) -> List[int]:
    a = recompose(inputs[:n], bits) % p
    b = recompose(inputs[n:], bits) % p
    q = a * pow(b, -1, p) % p if b else 0
    return decompose(q, bits, n)


def _carry_hint(bits: int, modulus: int, inputs: List[int]) -> List[int]:
    carries = []
    carry = 0
    for d in inputs[:-1]:
        # floor division; an inexact step leaves its relation unsatisfied
        carry = (to_signed(d, modulus) + carry) >> bits
        carries.append(carry % modulus)
    return carries


# --- Field Gadget ---


class EmulatedField:
    """Arithmetic modulo params.modulus inside a circuit over api's native field.

    Args:
        api: Circuit builder
        params: Limb layout and modulus of the emulated field

    Raises:
        ConfigurationError: If the limbs cannot hold the modulus, or two
            reduced elements cannot be multiplied within the native field
    """

    def __init__(self, api: Builder, params: FieldParams) -> None:
        p, n, bits = params.modulus, params.nb_limbs, params.bits_per_limb
        if p < 3 or n < 1 or bits < 1:
            raise ConfigurationError(f"Malformed emulated field parameters: {params}")
        if n * bits < p.bit_length():
            raise ConfigurationError(
                f"{params.name}: {n} limbs of {bits} bits cannot hold a {p.bit_length()}-bit modulus"
            )
        self.api = api
        self.params = params
        self._native_bits = api.field_bits

        # Largest overflow whose reduction relation still fits (see _fits).
        self.max_overflow = self._native_bits - bits - CARRY_HEADROOM - 2
        product_nk = self._quotient_limbs(2 * self._value_bits(0))
        if self.max_overflow < 1 or not self._fits(self._relation_bits(self._mul_lhs_bits(0, 0), product_nk)):
            raise ConfigurationError(
                f"{params.name}: products of {n} limbs of {bits} bits overflow the "
                f"{self._native_bits}-bit native field"
            )

        self._p_limbs = params.modulus_limbs
        self._padding: Dict[int, List[int]] = {}
        self._zero = self.constant(0)
        self._one = self.constant(1)
        logger.debug(
            "Emulated field %s: %d x %d-bit limbs, max overflow %d",
            params.name, n, bits, self.max_overflow,
        )

    # --- Bit Budget ---

    def _value_bits(self, overflow: int) -> int:
        """Bound on the recomposed value of an element with this overflow."""
        return self.params.nb_limbs * self.params.bits_per_limb + overflow + 1

    def _mul_lhs_bits(self, overflow_a: int, overflow_b: int) -> int:
        bits = self.params.bits_per_limb
        return 2 * bits + overflow_a + overflow_b + _clog2(self.params.nb_limbs)

    def _quotient_limbs(self, value_bits: int) -> int:
        k_bits = max(1, value_bits - self.params.modulus.bit_length() + 1)
        return -(-k_bits // self.params.bits_per_limb)

    def _relation_bits(self, lhs_bits: int, nk: int) -> int:
        """Bound on |lhs_i - (k*p + r)_i| for one coefficient."""
        bits = self.params.bits_per_limb
        rhs_bits = 2 * bits + _clog2(min(nk, self.params.nb_limbs)) + 1
        return max(lhs_bits, rhs_bits)

    def _fits(self, relation_bits: int) -> bool:
        return relation_bits + CARRY_HEADROOM < self._native_bits

    # --- Construction ---

    def constant(self, value: int) -> Element:
        """Element for a literal integer, reduced mod P."""
        p = self.params
        limbs = decompose(value % p.modulus, p.bits_per_limb, p.nb_limbs)
        return Element(tuple(self.api.constant(limb) for limb in limbs))

    def input(self, name: str, public: bool = False) -> Element:
        """Declare an input element; each limb is range checked."""
        p = self.params
        new = self.api.public_input if public else self.api.secret_input
        limbs = tuple(new(f"{name}[{i}]") for i in range(p.nb_limbs))
        self._range_check_limbs(limbs, f"input.{name}")
        return Element(limbs)

    def zero(self) -> Element:
        return self._zero

    def one(self) -> Element:
        return self._one

    def constant_value(self, a: Element) -> Optional[int]:
        """The value of a mod P if it is known at build time."""
        values = [self.api.constant_value(limb) for limb in a.limbs]
        if any(v is None for v in values):
            return None
        return recompose(values, self.params.bits_per_limb) % self.params.modulus

    def value(self, witness: Witness, a: Element) -> int:
        """Canonical value of a under a solved witness."""
        limbs = [witness.evaluate(limb) for limb in a.limbs]
        return recompose(limbs, self.params.bits_per_limb) % self.params.modulus

    def _range_check_limbs(self, limbs: Sequence[Variable], label: str) -> None:
        for limb in limbs:
            self.api.range_check(limb, self.params.bits_per_limb, label=f"{self.params.name}.{label}")

    # --- Linear Operations ---

    def add(self, a: Element, b: Element) -> Element:
        ka, kb = self.constant_value(a), self.constant_value(b)
        if ka is not None and kb is not None:
            return self.constant(ka + kb)
        while max(a.overflow, b.overflow) + 1 > self.max_overflow:
            if a.overflow >= b.overflow:
                a = self.reduce(a)
            else:
                b = self.reduce(b)
        limbs = tuple(self.api.add(x, y) for x, y in zip(a.limbs, b.limbs))
        return Element(limbs, max(a.overflow, b.overflow) + 1)

    def _sub_padding(self, overflow: int) -> List[int]:
        """Limb-wise padding that is a multiple of P and dominates every limb
        of an element with the given overflow."""
        if overflow not in self._padding:
            p, n, bits = self.params.modulus, self.params.nb_limbs, self.params.bits_per_limb
            pad_limbs = [1 << (bits + overflow)] * n
            rest = decompose((p - recompose(pad_limbs, bits) % p) % p, bits, n)
            self._padding[overflow] = [x + y for x, y in zip(pad_limbs, rest)]
        return self._padding[overflow]

    def sub(self, a: Element, b: Element) -> Element:
        ka, kb = self.constant_value(a), self.constant_value(b)
        if ka is not None and kb is not None:
            return self.constant(ka - kb)
        while max(b.overflow + 1, a.overflow) + 1 > self.max_overflow:
            if b.overflow + 1 >= a.overflow:
                b = self.reduce(b)
            else:
                a = self.reduce(a)
        pad = self._sub_padding(b.overflow)
        limbs = tuple(
            self.api.sub(self.api.add(x, k), y) for x, k, y in zip(a.limbs, pad, b.limbs)
        )
        return Element(limbs, max(b.overflow + 1, a.overflow) + 1)

    def neg(self, a: Element) -> Element:
        return self.sub(self._zero, a)

    def select(self, sel: Operand, a: Element, b: Element) -> Element:
        """a if sel == 1 else b. sel must be constrained boolean."""
        k = self.api.constant_value(sel)
        if k is not None:
            return a if k == 1 else b
        limbs = tuple(self.api.select(sel, x, y) for x, y in zip(a.limbs, b.limbs))
        return Element(limbs, max(a.overflow, b.overflow))

    # --- Reduction and Relations ---

    def _check_relation(
        self,
        lhs: Sequence[Operand],
        lhs_bits: int,
        k: Sequence[Variable],
        r: Sequence[Variable],
        label: str,
    ) -> None:
        """Constrain lhs(2^bits) == k(2^bits) * P + r(2^bits) over the integers.

        lhs coefficients must be non-negative and below 2^lhs_bits; k and r
        limbs must already be range checked to bits_per_limb.
        """
        api = self.api
        n, bits = self.params.nb_limbs, self.params.bits_per_limb
        tag = f"{self.params.name}.{label}"
        nk = len(k)
        length = max(len(lhs), nk + n - 1, len(r))
        relation_bits = self._relation_bits(lhs_bits, nk)
        carry_bits = relation_bits - bits + 1

        diffs: List[Variable] = []
        for i in range(length):
            d = lhs[i] if i < len(lhs) else 0
            for j in range(max(0, i - n + 1), min(i, nk - 1) + 1):
                d = api.sub(d, api.mul(k[j], self._p_limbs[i - j]))
            if i < len(r):
                d = api.sub(d, r[i])
            diffs.append(api.add(d, 0))

        carries = api.new_hint(partial(_carry_hint, bits), length - 1, *diffs, name=f"{tag}.carries")
        prev: Operand = 0
        for i, d in enumerate(diffs):
            acc = api.add(d, prev)
            if i == length - 1:
                api.assert_is_equal(acc, 0, label=f"{tag}.carry")
                break
            c = carries[i]
            api.assert_is_equal(acc, api.mul(c, 1 << bits), label=f"{tag}.carry")
            api.range_check(api.add(c, 1 << carry_bits), carry_bits + 1, label=f"{tag}.carry_range")
            prev = c

    def reduce(self, a: Element, strict: bool = False) -> Element:
        """Element congruent to a with overflow 0.

        Without strict, an element that already has overflow 0 is returned
        as is. With strict, the result is always recomputed as a mod P (the
        canonical remainder), which to_bits relies on.
        """
        if a.overflow == 0 and not strict:
            return a
        k = self.constant_value(a)
        if k is not None:
            return self.constant(k)
        p, n, bits = self.params.modulus, self.params.nb_limbs, self.params.bits_per_limb
        nk = self._quotient_limbs(self._value_bits(a.overflow))
        outs = self.api.new_hint(
            partial(_reduce_hint, p, bits, n, nk), n + nk, *a.limbs, name=f"{self.params.name}.reduce"
        )
        self._range_check_limbs(outs, "reduce")
        r, quo = outs[:n], outs[n:]
        self._check_relation(list(a.limbs), bits + a.overflow, quo, r, "reduce")
        return Element(tuple(r))

    def _prepare_mul(self, a: Element, b: Element) -> Tuple[Element, Element]:
        while not self._fits(self._relation_bits(
            self._mul_lhs_bits(a.overflow, b.overflow),
            self._quotient_limbs(self._value_bits(a.overflow) + self._value_bits(b.overflow)),
        )):
            if a.overflow >= b.overflow:
                a = self.reduce(a)
            else:
                b = self.reduce(b)
        return a, b

    def mul(self, a: Element, b: Element) -> Element:
        ka, kb = self.constant_value(a), self.constant_value(b)
        if ka is not None and kb is not None:
            return self.constant(ka * kb)
        a, b = self._prepare_mul(a, b)
        api = self.api
        p, n, bits = self.params.modulus, self.params.nb_limbs, self.params.bits_per_limb
        nk = self._quotient_limbs(self._value_bits(a.overflow) + self._value_bits(b.overflow))
        outs = api.new_hint(
            partial(_mul_hint, p, bits, n, nk), n + nk, *a.limbs, *b.limbs, name=f"{self.params.name}.mul"
        )
        self._range_check_limbs(outs, "mul")
        r, quo = outs[:n], outs[n:]

        lhs: List[Operand] = [0] * (2 * n - 1)
        for i, x in enumerate(a.limbs):
            for j, y in enumerate(b.limbs):
                lhs[i + j] = api.mul_acc(lhs[i + j], x, y)
        self._check_relation(lhs, self._mul_lhs_bits(a.overflow, b.overflow), quo, r, "mul")
        return Element(tuple(r))

    def assert_is_equal(self, a: Element, b: Element) -> None:
        """Constrain a == b (mod P) by proving a - b is an exact multiple of P."""
        ka, kb = self.constant_value(a), self.constant_value(b)
        if ka is not None and kb is not None:
            if ka != kb:
                self.api.assert_is_equal(ka, kb, label=f"{self.params.name}.assert_is_equal")
            return
        diff = self.sub(a, b)
        p, bits = self.params.modulus, self.params.bits_per_limb
        nk = self._quotient_limbs(self._value_bits(diff.overflow))
        quo = self.api.new_hint(
            partial(_quotient_hint, p, bits, nk), nk, *diff.limbs, name=f"{self.params.name}.assert_is_equal"
        )
        self._range_check_limbs(quo, "assert_is_equal")
        self._check_relation(list(diff.limbs), bits + diff.overflow, quo, [], "assert_is_equal")

    def inverse(self, a: Element) -> Element:
        """1 / a; unsatisfiable if a is congruent to 0."""
        k = self.constant_value(a)
        if k:
            return self.constant(pow(k, -1, self.params.modulus))
        p, n, bits = self.params.modulus, self.params.nb_limbs, self.params.bits_per_limb
        limbs = self.api.new_hint(
            partial(_inverse_hint, p, bits, n), n, *a.limbs, name=f"{self.params.name}.inverse"
        )
        self._range_check_limbs(limbs, "inverse")
        inv = Element(tuple(limbs))
        self.assert_is_equal(self.mul(a, inv), self._one)
        return inv

    def div(self, a: Element, b: Element) -> Element:
        """a / b.

        Only q * b == a is enforced, so 0 / 0 is satisfiable (by any q).
        Use inverse() when b must be proven nonzero.
        """
        ka, kb = self.constant_value(a), self.constant_value(b)
        if ka is not None and kb:
            return self.constant(ka * pow(kb, -1, self.params.modulus))
        p, n, bits = self.params.modulus, self.params.nb_limbs, self.params.bits_per_limb
        limbs = self.api.new_hint(
            partial(_div_hint, p, bits, n), n, *a.limbs, *b.limbs, name=f"{self.params.name}.div"
        )
        self._range_check_limbs(limbs, "div")
        q = Element(tuple(limbs))
        self.assert_is_equal(self.mul(q, b), a)
        return q

    # --- Bits ---

    def to_bits(self, a: Element) -> List[Variable]:
        """Little-endian bits of the canonical representative of a.

        The decomposition is range checked (boolean bits recomposing each
        limb) and bounded by P - 1, so it is unique.
        """
        r = self.reduce(a, strict=True)
        bits: List[Variable] = []
        for limb in r.limbs:
            bits.extend(self.api.to_binary(limb, self.params.bits_per_limb))
        self.api.assert_is_less_or_equal_bits(bits, self.params.modulus - 1)
        return bits

    def from_bits(self, bits: Sequence[Operand]) -> Element:
        """Element whose value is the little-endian bits (assumed boolean)."""
        n, width = self.params.nb_limbs, self.params.bits_per_limb
        if len(bits) > n * width:
            raise ValueError(f"{len(bits)} bits do not fit in {n} limbs of {width} bits")
        limbs = tuple(self.api.from_binary(bits[i * width:(i + 1) * width]) for i in range(n))
        return Element(limbs)


def element_assignment(name: str, value: int, params: FieldParams) -> Dict[str, int]:
    """Input assignment for an element declared with EmulatedField.input(name).

    The value is split without reduction, so non-canonical representatives
    below 2^(nb_limbs * bits_per_limb) can be assigned on purpose.
    """
    if value < 0 or value >> (params.nb_limbs * params.bits_per_limb):
        raise ValueError(f"{value} does not fit in the limbs of {params.name}")
    limbs = decompose(value, params.bits_per_limb, params.nb_limbs)
    return {f"{name}[{i}]": limb for i, limb in enumerate(limbs)}
