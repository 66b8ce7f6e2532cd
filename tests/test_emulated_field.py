"""Tests for emulated (non-native) field arithmetic.

Operands are drawn near the limb and modulus boundaries, including
non-canonical representatives (values >= P that still fit in the limbs),
and every result is compared against big-integer arithmetic mod P.
"""

import dataclasses
import random

import pytest

from verifier_gadgets.constraints import Builder, Circuit, compile_circuit
from verifier_gadgets.errors import ConfigurationError, UnsatisfiedConstraintError
from verifier_gadgets.gadgets.emulated import EmulatedField, element_assignment
from verifier_gadgets.primitives.edwards import ED25519
from verifier_gadgets.primitives.field import BN254, FieldParams, decompose, recompose

PARAMS = ED25519.base_field
P = PARAMS.modulus
N_LIMBS, LIMB_BITS = PARAMS.nb_limbs, PARAMS.bits_per_limb
LIMB_MAX = (1 << (PARAMS.nb_limbs * PARAMS.bits_per_limb)) - 1

# Boundary operands: zero, one, around P, around 2^64 limb edges and the
# largest non-canonical value the limbs can hold.
EDGE_VALUES = [0, 1, 2, P - 1, P - 2, P, P + 1, (1 << 64) - 1, 1 << 64, (1 << 192) - 1, LIMB_MAX]


def _operand_pairs(seed: int, n_random: int = 8):
    rng = random.Random(seed)
    pairs = [(a, b) for a in EDGE_VALUES[:6] for b in EDGE_VALUES[3:]]
    pairs += [(rng.randrange(P), rng.randrange(P)) for _ in range(n_random)]
    pairs += [(rng.randrange(LIMB_MAX + 1), rng.randrange(LIMB_MAX + 1)) for _ in range(n_random)]
    return pairs


def _assign(**values):
    assignment = {}
    for name, value in values.items():
        assignment.update(element_assignment(name, value, PARAMS))
    return assignment


# =============================================================================
# Test Circuits
# =============================================================================


class BinaryOpCircuit(Circuit):
    """op(a, b) == c."""

    def __init__(self, op: str) -> None:
        self.op = op

    def define(self, api: Builder) -> None:
        f = EmulatedField(api, PARAMS)
        a, b, c = f.input("a"), f.input("b"), f.input("c")
        f.assert_is_equal(getattr(f, self.op)(a, b), c)


class UnaryOpCircuit(Circuit):
    """op(a) == c."""

    def __init__(self, op: str) -> None:
        self.op = op

    def define(self, api: Builder) -> None:
        f = EmulatedField(api, PARAMS)
        a, c = f.input("a"), f.input("c")
        f.assert_is_equal(getattr(f, self.op)(a), c)


class AccumulateCircuit(Circuit):
    """Sum of `count` copies of a, then multiplied by b, equals c."""

    def __init__(self, count: int) -> None:
        self.count = count

    def define(self, api: Builder) -> None:
        f = EmulatedField(api, PARAMS)
        a, b, c = f.input("a"), f.input("b"), f.input("c")
        acc = a
        for _ in range(self.count - 1):
            acc = f.add(acc, a)
            assert acc.overflow <= f.max_overflow
        f.assert_is_equal(f.mul(acc, b), c)


class SubChainCircuit(Circuit):
    """a - b - b - ... (count times) equals c."""

    def __init__(self, count: int) -> None:
        self.count = count

    def define(self, api: Builder) -> None:
        f = EmulatedField(api, PARAMS)
        a, b, c = f.input("a"), f.input("b"), f.input("c")
        acc = a
        for _ in range(self.count):
            acc = f.sub(acc, b)
            assert acc.overflow <= f.max_overflow
        f.assert_is_equal(acc, c)


class ToBitsCircuit(Circuit):
    def define(self, api: Builder) -> None:
        self.f = EmulatedField(api, PARAMS)
        self.a = self.f.input("a")
        self.bits = self.f.to_bits(self.a)
        self.f.assert_is_equal(self.f.from_bits(self.bits), self.a)


class SelectCircuit(Circuit):
    def define(self, api: Builder) -> None:
        f = EmulatedField(api, PARAMS)
        sel = api.secret_input("sel")
        api.assert_is_boolean(sel)
        a, b, c = f.input("a"), f.input("b"), f.input("c")
        f.assert_is_equal(f.select(sel, a, b), c)


# =============================================================================
# Construction
# =============================================================================


class TestConstruction:
    """Bit budget checks at construction."""

    def test_ed25519_layout(self) -> None:
        """Ed25519 base field uses four 64-bit limbs."""
        f = EmulatedField(Builder(BN254), PARAMS)
        assert PARAMS.nb_limbs == 4
        assert f.max_overflow > 0

    def test_wide_limbs_rejected(self) -> None:
        """Two 128-bit limbs cannot be multiplied under a 254-bit native field."""
        with pytest.raises(ConfigurationError):
            EmulatedField(Builder(BN254), FieldParams("wide", P, 2, 128))

    def test_too_few_limbs_rejected(self) -> None:
        """Limbs must be able to hold the modulus."""
        with pytest.raises(ConfigurationError):
            EmulatedField(Builder(BN254), FieldParams("short", P, 3, 64))

    def test_construction_adds_no_constraints(self) -> None:
        """Creating a field only allocates constants."""
        api = Builder(BN254)
        EmulatedField(api, PARAMS)
        assert api.cs.constraints == []

    def test_constant_folding(self) -> None:
        """Arithmetic on constants folds at build time."""
        api = Builder(BN254)
        f = EmulatedField(api, PARAMS)
        x = f.mul(f.sub(f.constant(3), f.constant(5)), f.inverse(f.constant(7)))
        assert f.constant_value(x) == (-2 * pow(7, -1, P)) % P
        assert api.cs.constraints == []

    def test_assignment_rejects_oversized_values(self) -> None:
        """Values must fit in the limbs."""
        with pytest.raises(ValueError):
            element_assignment("a", LIMB_MAX + 1, PARAMS)
        with pytest.raises(ValueError):
            element_assignment("a", -1, PARAMS)


# =============================================================================
# Arithmetic
# =============================================================================


@pytest.fixture(scope="module")
def circuits():
    return {op: compile_circuit(BinaryOpCircuit(op), BN254) for op in ("add", "sub", "mul")}


class TestArithmetic:
    """Results match big-integer arithmetic mod P."""

    @pytest.mark.parametrize("a,b", _operand_pairs(seed=1))
    def test_add(self, circuits, a, b) -> None:
        """a + b."""
        circuits["add"].solve(_assign(a=a, b=b, c=(a + b) % P))

    @pytest.mark.parametrize("a,b", _operand_pairs(seed=2))
    def test_sub(self, circuits, a, b) -> None:
        """a - b."""
        circuits["sub"].solve(_assign(a=a, b=b, c=(a - b) % P))

    @pytest.mark.parametrize("a,b", _operand_pairs(seed=3))
    def test_mul(self, circuits, a, b) -> None:
        """a * b."""
        circuits["mul"].solve(_assign(a=a, b=b, c=a * b % P))

    def test_wrong_product_rejected(self, circuits) -> None:
        """An off-by-one product fails."""
        a, b = P - 1, P - 2
        with pytest.raises(UnsatisfiedConstraintError):
            circuits["mul"].solve(_assign(a=a, b=b, c=(a * b + 1) % P))

    def test_product_plus_modulus_accepted(self, circuits) -> None:
        """A non-canonical representative of the product is still equal mod P."""
        circuits["mul"].solve(_assign(a=3, b=5, c=15 + P))

    def test_unranged_limb_rejected(self, circuits) -> None:
        """An input limb above 2^64 fails its range check."""
        assignment = _assign(a=1, b=1, c=1)
        assignment["a[0]"] += 1 << 64
        assignment["a[1]"] -= 1
        with pytest.raises(UnsatisfiedConstraintError):
            circuits["mul"].solve(assignment)

    @pytest.mark.parametrize("a", [1, 2, P - 1, P + 1, 1 << 200])
    def test_neg(self, a) -> None:
        """-a."""
        cs = compile_circuit(UnaryOpCircuit("neg"), BN254)
        cs.solve(_assign(a=a, c=-a % P))

    def test_select(self) -> None:
        """Limb-wise selection."""
        cs = compile_circuit(SelectCircuit(), BN254)
        cs.solve({"sel": 1, **_assign(a=P - 1, b=7, c=P - 1)})
        cs.solve({"sel": 0, **_assign(a=P - 1, b=7, c=7)})
        with pytest.raises(UnsatisfiedConstraintError):
            cs.solve({"sel": 0, **_assign(a=P - 1, b=7, c=P - 1)})


class TestLazyReduction:
    """Overflow tracking across long linear chains."""

    def test_long_addition_chain(self) -> None:
        """Adding past the overflow budget triggers reductions and stays correct."""
        cs = compile_circuit(AccumulateCircuit(300), BN254)
        a, b = P - 1, P - 3
        cs.solve(_assign(a=a, b=b, c=300 * a * b % P))
        cs.solve(_assign(a=LIMB_MAX, b=LIMB_MAX, c=300 * LIMB_MAX * LIMB_MAX % P))

    def test_long_subtraction_chain(self) -> None:
        """Repeated subtraction keeps padding within budget."""
        cs = compile_circuit(SubChainCircuit(250), BN254)
        a, b = 5, P - 1
        cs.solve(_assign(a=a, b=b, c=(a - 250 * b) % P))

    def test_overflowed_operand_multiplies(self) -> None:
        """A product of unreduced operands is exact."""
        cs = compile_circuit(AccumulateCircuit(40), BN254)
        cs.solve(_assign(a=LIMB_MAX, b=P - 1, c=40 * LIMB_MAX * (P - 1) % P))


@pytest.fixture(scope="module")
def inverse_cs():
    return compile_circuit(UnaryOpCircuit("inverse"), BN254)


class TestInverseAndDiv:
    """Field inverse and division."""

    @pytest.mark.parametrize("a", [1, 2, P - 1, P + 2, LIMB_MAX])
    def test_inverse(self, inverse_cs, a) -> None:
        """a * (1 / a) == 1."""
        inverse_cs.solve(_assign(a=a, c=pow(a % P, -1, P)))

    @pytest.mark.parametrize("a", [0, P])
    def test_inverse_of_zero_unsatisfiable(self, inverse_cs, a) -> None:
        """Zero, in any representation, has no inverse."""
        with pytest.raises(UnsatisfiedConstraintError):
            inverse_cs.solve(_assign(a=a, c=0))

    def test_div(self) -> None:
        """a / b."""
        cs = compile_circuit(BinaryOpCircuit("div"), BN254)
        for a, b in [(1, 2), (P - 1, P - 1), (LIMB_MAX, 12345), (0, 9)]:
            cs.solve(_assign(a=a, b=b, c=a * pow(b, -1, P) % P))

    def test_div_by_zero_unsatisfiable(self) -> None:
        """Nonzero / 0 has no solution."""
        cs = compile_circuit(BinaryOpCircuit("div"), BN254)
        with pytest.raises(UnsatisfiedConstraintError):
            cs.solve(_assign(a=1, b=0, c=0))


@pytest.fixture(scope="module")
def equal_cs():
    return compile_circuit(UnaryOpCircuit("reduce"), BN254)


class TestEquality:
    """assert_is_equal proves congruence mod P."""

    @pytest.mark.parametrize("a,c", [(0, P), (P + 1, 1), (LIMB_MAX, LIMB_MAX % P)])
    def test_congruent_values_equal(self, equal_cs, a, c) -> None:
        """Different representatives of the same residue are equal."""
        equal_cs.solve(_assign(a=a, c=c))

    @pytest.mark.parametrize("a,c", [(0, 1), (P, P - 1), (LIMB_MAX, 0)])
    def test_distinct_values_rejected(self, equal_cs, a, c) -> None:
        """Different residues are not equal."""
        with pytest.raises(UnsatisfiedConstraintError):
            equal_cs.solve(_assign(a=a, c=c))


@pytest.fixture(scope="module")
def circuit_and_cs():
    circuit = ToBitsCircuit()
    return circuit, compile_circuit(circuit, BN254)


class TestBits:
    """Canonical bit decomposition."""

    @pytest.mark.parametrize("a", [0, 1, P - 1, P, P + 12345, LIMB_MAX])
    def test_bits_are_canonical(self, circuit_and_cs, a) -> None:
        """Bits encode a mod P, whatever representative was assigned."""
        circuit, cs = circuit_and_cs
        witness = cs.solve(_assign(a=a))
        bits = [witness.evaluate(b) for b in circuit.bits]
        assert len(bits) == PARAMS.nb_limbs * PARAMS.bits_per_limb
        assert sum(b << i for i, b in enumerate(bits)) == a % P
        assert circuit.f.value(witness, circuit.a) == a % P

    def test_from_bits_rejects_too_many_bits(self) -> None:
        """from_bits needs the bits to fit in the limbs."""
        f = EmulatedField(Builder(BN254), PARAMS)
        with pytest.raises(ValueError):
            f.from_bits([0] * (PARAMS.nb_limbs * PARAMS.bits_per_limb + 1))


# =============================================================================
# Forged hints
# =============================================================================


def _forge_hints(cs, suffix: str, forge) -> int:
    """Wrap every hint whose name ends with suffix so forge rewrites its honest outputs."""
    count = 0
    for i, hint in enumerate(cs.hints):
        if hint.name.endswith(suffix):
            cs.hints[i] = dataclasses.replace(hint, fn=lambda m, xs, fn=hint.fn: forge(fn(m, xs)))
            count += 1
    return count


def _split_rem_quo(outs):
    """(remainder, quotient, quotient limb count) from a mul/reduce hint output."""
    return recompose(outs[:N_LIMBS], LIMB_BITS), recompose(outs[N_LIMBS:], LIMB_BITS), len(outs) - N_LIMBS


class TestForgedHints:
    """Constraints reject hint outputs an honest prover never produces."""

    def test_non_canonical_remainder_rejected(self) -> None:
        """r + P with k - 1 satisfies the reduce relation but not the to_bits bound."""

        def forge(outs):
            r, k, nk = _split_rem_quo(outs)
            return decompose(r + P, LIMB_BITS, N_LIMBS) + decompose(k - 1, LIMB_BITS, nk)

        cs = compile_circuit(ToBitsCircuit(), BN254)
        assert _forge_hints(cs, ".reduce", forge) == 1
        with pytest.raises(UnsatisfiedConstraintError) as exc:
            cs.solve(_assign(a=P + 12345))
        assert exc.value.label == "assert_is_less_or_equal"

    def test_forged_remainder_rejected(self) -> None:
        """A remainder off by one fails the mul carry chain even when c agrees with it."""

        def forge(outs):
            r, k, nk = _split_rem_quo(outs)
            return decompose(r + 1, LIMB_BITS, N_LIMBS) + decompose(k, LIMB_BITS, nk)

        a, b = P - 2, 0xDEADBEEF << 100
        cs = compile_circuit(BinaryOpCircuit("mul"), BN254)
        assert _forge_hints(cs, ".mul", forge) == 1
        with pytest.raises(UnsatisfiedConstraintError) as exc:
            cs.solve(_assign(a=a, b=b, c=(a * b + 1) % P))
        assert exc.value.label.startswith(f"{PARAMS.name}.mul.")

    def test_wrong_quotient_rejected(self) -> None:
        """An equality quotient off by one fails the carry chain."""

        def forge(outs):
            return decompose(recompose(outs, LIMB_BITS) + 1, LIMB_BITS, len(outs))

        cs = compile_circuit(UnaryOpCircuit("reduce"), BN254)
        assert _forge_hints(cs, ".assert_is_equal", forge) == 1
        with pytest.raises(UnsatisfiedConstraintError) as exc:
            cs.solve(_assign(a=P + 1, c=1))
        assert exc.value.label.startswith(f"{PARAMS.name}.assert_is_equal.")
