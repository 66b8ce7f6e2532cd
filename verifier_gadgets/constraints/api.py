"""Circuit-building API over the native field.

Builder is the handle threaded through every gadget. Its operations accept
Variables or plain integers and return new Variables:

- Linear operations (add, sub, neg, multiplication by a constant) only combine
  linear expressions and never create constraints.
- Non-linear operations allocate a wire computed by a hint and record the
  rank-1 constraint that pins it.
- Operations whose operands are all constants fold at build time.

Example:
    api = Builder(BN254)
    x = api.secret_input("x")
    y = api.mul(x, x)
    api.assert_is_equal(api.add(y, x, 5), 35)
"""

from functools import partial
from typing import Dict, List, Optional, Sequence

from verifier_gadgets.constraints.system import (
    R1C,
    ConstraintSystem,
    Hint,
    HintFunction,
    Operand,
    RangeCheck,
    Variable,
)


# --- Hints ---


def _product_hint(modulus: int, inputs: List[int]) -> List[int]:
    return [inputs[0] * inputs[1] % modulus]


def _inverse_hint(modulus: int, inputs: List[int]) -> List[int]:
    # Zero has no inverse; 0 makes the pinning constraint fail.
    if inputs[0] == 0:
        return [0]
    return [pow(inputs[0], -1, modulus)]


def _div_hint(modulus: int, inputs: List[int]) -> List[int]:
    a, b = inputs
    if b == 0:
        return [0]
    return [a * pow(b, -1, modulus) % modulus]


def _bits_hint(n_bits: int, modulus: int, inputs: List[int]) -> List[int]:
    return [(inputs[0] >> i) & 1 for i in range(n_bits)]


# --- Builder ---


class Builder:
    """Constraint-network builder for one circuit.

    Args:
        field: galois prime field class of the native field
    """

    def __init__(self, field) -> None:
        self.cs = ConstraintSystem(field)
        self.modulus = self.cs.modulus

    @property
    def field(self):
        return self.cs.field

    @property
    def field_bits(self) -> int:
        """Bit length of the largest native field element."""
        return (self.modulus - 1).bit_length()

    # --- Values ---

    def constant(self, value: int) -> Variable:
        return Variable(constant=int(value) % self.modulus)

    def constant_value(self, x: Operand) -> Optional[int]:
        """The value of x if it is known at build time, None otherwise."""
        if isinstance(x, int):
            return x % self.modulus
        if x.is_constant:
            return x.constant
        return None

    def public_input(self, name: str) -> Variable:
        return Variable({self.cs.add_input(name, public=True): 1})

    def secret_input(self, name: str) -> Variable:
        return Variable({self.cs.add_input(name, public=False): 1})

    def _lift(self, x: Operand) -> Variable:
        if isinstance(x, Variable):
            return x
        return self.constant(x)

    def new_hint(self, fn: HintFunction, n_outputs: int, *inputs: Operand, name: str = "") -> List[Variable]:
        """Allocate n_outputs wires computed by fn from the values of inputs.

        Hint outputs are unconstrained: the caller must pin them with
        constraints.
        """
        outputs = tuple(self.cs.new_wire() for _ in range(n_outputs))
        self.cs.add_hint(Hint(fn, tuple(self._lift(x) for x in inputs), outputs, name))
        return [Variable({w: 1}) for w in outputs]

    # --- Linear Operations ---

    def _combine(self, x: Operand, y: Operand, sign: int) -> Variable:
        m = self.modulus
        x, y = self._lift(x), self._lift(y)
        terms: Dict[int, int] = dict(x.terms)
        for wire, coeff in y.terms.items():
            c = (terms.get(wire, 0) + sign * coeff) % m
            if c:
                terms[wire] = c
            else:
                terms.pop(wire, None)
        return Variable(terms, (x.constant + sign * y.constant) % m)

    def _scale(self, x: Operand, k: int) -> Variable:
        m = self.modulus
        x = self._lift(x)
        k %= m
        if k == 0:
            return Variable()
        return Variable({w: c * k % m for w, c in x.terms.items()}, x.constant * k % m)

    def add(self, a: Operand, b: Operand, *rest: Operand) -> Variable:
        res = self._combine(a, b, 1)
        for x in rest:
            res = self._combine(res, x, 1)
        return res

    def sub(self, a: Operand, b: Operand, *rest: Operand) -> Variable:
        res = self._combine(a, b, -1)
        for x in rest:
            res = self._combine(res, x, -1)
        return res

    def neg(self, a: Operand) -> Variable:
        return self._scale(a, -1)

    # --- Non-linear Operations ---

    def mul(self, a: Operand, b: Operand, *rest: Operand) -> Variable:
        res = self._mul2(a, b)
        for x in rest:
            res = self._mul2(res, x)
        return res

    def _mul2(self, a: Operand, b: Operand) -> Variable:
        ka, kb = self.constant_value(a), self.constant_value(b)
        if ka is not None:
            return self._scale(b, ka)
        if kb is not None:
            return self._scale(a, kb)
        a, b = self._lift(a), self._lift(b)
        (out,) = self.new_hint(_product_hint, 1, a, b, name="mul")
        self.cs.add_constraint(R1C(a, b, out, "mul"))
        return out

    def mul_acc(self, acc: Operand, a: Operand, b: Operand) -> Variable:
        """acc + a * b."""
        return self.add(acc, self.mul(a, b))

    def inverse(self, a: Operand) -> Variable:
        """1 / a; unsatisfiable if a is zero."""
        k = self.constant_value(a)
        if k is not None and k != 0:
            return self.constant(pow(k, -1, self.modulus))
        a = self._lift(a)
        (inv,) = self.new_hint(_inverse_hint, 1, a, name="inverse")
        self.cs.add_constraint(R1C(a, inv, self.constant(1), "inverse"))
        return inv

    def div(self, a: Operand, b: Operand) -> Variable:
        """a / b; unsatisfiable if b is zero and a is not."""
        ka, kb = self.constant_value(a), self.constant_value(b)
        if kb is not None and kb != 0:
            return self._scale(a, pow(kb, -1, self.modulus))
        if ka is not None and kb is not None:
            # b == 0: keep the failing relation in the network
            self.assert_is_equal(a, 0, label="div.by_zero")
            return self.constant(0)
        a, b = self._lift(a), self._lift(b)
        (q,) = self.new_hint(_div_hint, 1, a, b, name="div")
        self.cs.add_constraint(R1C(b, q, a, "div"))
        return q

    def select(self, sel: Operand, x: Operand, y: Operand) -> Variable:
        """x if sel == 1 else y. sel must already be constrained boolean."""
        ks = self.constant_value(sel)
        if ks is not None:
            return self._lift(x) if ks == 1 else self._lift(y)
        # y + sel * (x - y)
        return self.add(y, self.mul(sel, self.sub(x, y)))

    # --- Bits ---

    def to_binary(self, a: Operand, n_bits: Optional[int] = None) -> List[Variable]:
        """Little-endian boolean decomposition of a into n_bits bits.

        Defaults to the full native bit length, in which case the
        decomposition is also constrained to be canonical (<= modulus - 1).
        """
        n_bits = self.field_bits if n_bits is None else n_bits
        k = self.constant_value(a)
        if k is not None:
            # Oversized constants keep a failing recomposition constraint.
            if k >> n_bits == 0:
                return [self.constant((k >> i) & 1) for i in range(n_bits)]
        bits = self.new_hint(partial(_bits_hint, n_bits), n_bits, a, name="to_binary")
        for bit in bits:
            self.assert_is_boolean(bit)
        self.assert_is_equal(self.from_binary(bits), a, label="to_binary.recompose")
        if n_bits >= self.field_bits:
            self.assert_is_less_or_equal_bits(bits, self.modulus - 1)
        return bits

    def from_binary(self, bits: Sequence[Operand]) -> Variable:
        res = Variable()
        for i, bit in enumerate(bits):
            res = self.add(res, self._scale(bit, 1 << i))
        return res

    # --- Assertions ---

    def assert_is_equal(self, a: Operand, b: Operand, label: str = "assert_is_equal") -> None:
        diff = self.sub(a, b)
        if diff.is_constant and diff.constant == 0:
            return
        self.cs.add_constraint(R1C(diff, self.constant(1), Variable(), label))

    def assert_is_boolean(self, a: Operand) -> None:
        k = self.constant_value(a)
        if k in (0, 1):
            return
        a = self._lift(a)
        self.cs.add_constraint(R1C(a, a, a, "assert_is_boolean"))

    def range_check(self, a: Operand, bits: int, label: str = "range_check") -> None:
        """Constrain 0 <= a < 2^bits."""
        k = self.constant_value(a)
        if k is not None and k >> bits == 0:
            return
        self.cs.add_constraint(RangeCheck(self._lift(a), bits, label))

    def assert_is_less_or_equal_bits(self, bits: Sequence[Operand], bound: int) -> None:
        """Constrain the little-endian boolean vector bits to encode a value <= bound.

        Scans from the most significant bit keeping p[i] == 1 while every bit
        above i equals the bound's bit. Where the bound has a 0 and the prefix
        still matches, the input bit is forced to 0.
        """
        n = len(bits)
        if bound >> n:
            return
        # bound bits below the lowest zero never need a prefix product
        t = 0
        while t < n and (bound >> t) & 1:
            t += 1
        p: List[Operand] = [0] * (n + 1)
        p[n] = 1
        for i in range(n - 1, t - 1, -1):
            p[i] = p[i + 1] if (bound >> i) & 1 == 0 else self.mul(p[i + 1], bits[i])
        for i in range(n - 1, -1, -1):
            if (bound >> i) & 1 == 0:
                # (1 - p[i+1] - bit) * bit == 0
                lhs = self.mul(self.sub(1, p[i + 1], bits[i]), bits[i])
                self.assert_is_equal(lhs, 0, label="assert_is_less_or_equal")
            else:
                self.assert_is_boolean(bits[i])
