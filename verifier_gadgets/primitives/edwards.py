"""Twisted Edwards curve descriptors and out-of-circuit group law.

A twisted Edwards curve over GF(p) is a * x^2 + y^2 = 1 + d * x^2 * y^2 with
identity (0, 1). The unified addition law is complete when a is a square and
d is a non-square mod p; CurveParams.is_complete reports whether a
parameterization meets that condition.

The reference operations work on (x, y) integer tuples and are used to build
test expectations for the in-circuit Curve gadget.
"""

from dataclasses import dataclass
from typing import Tuple

import galois

from verifier_gadgets.errors import ConfigurationError
from verifier_gadgets.primitives.field import BN254_SCALAR, FieldParams

# --- Type Aliases ---
Point = Tuple[int, int]


@dataclass(frozen=True)
class CurveParams:
    """Twisted Edwards curve with a prime-order subgroup.

    Attributes:
        name: Curve identifier
        p: Base field modulus
        r: Order of the subgroup generated by (gx, gy)
        a, d: Curve coefficients (reduced mod p)
        gx, gy: Subgroup generator
        bits_per_limb: Limb width used to emulate both fields in-circuit
    """

    name: str
    p: int
    r: int
    a: int
    d: int
    gx: int
    gy: int
    bits_per_limb: int = 64

    @property
    def base_field(self) -> FieldParams:
        return FieldParams.for_modulus(f"{self.name}.Fp", self.p, self.bits_per_limb)

    @property
    def scalar_field(self) -> FieldParams:
        return FieldParams.for_modulus(f"{self.name}.Fr", self.r, self.bits_per_limb)

    @property
    def generator(self) -> Point:
        return (self.gx, self.gy)

    @property
    def is_complete(self) -> bool:
        """a is a quadratic residue and d is not (Euler's criterion)."""
        half = (self.p - 1) // 2
        return pow(self.a, half, self.p) == 1 and pow(self.d, half, self.p) == self.p - 1

    def validate(self) -> None:
        """Check the descriptor is a usable curve.

        Raises:
            ConfigurationError: If a modulus is not prime, the coefficients are
                degenerate, or the generator is not a point of order r
        """
        if not galois.is_prime(self.p) or not galois.is_prime(self.r):
            raise ConfigurationError(f"{self.name}: p and r must be prime")
        a, d = self.a % self.p, self.d % self.p
        if a == 0 or d == 0 or a == d:
            raise ConfigurationError(f"{self.name}: need a != d, both nonzero (a={a}, d={d})")
        if not is_on_curve(self, self.generator):
            raise ConfigurationError(f"{self.name}: generator is not on the curve")
        if scalar_mul(self, self.generator, self.r) != IDENTITY:
            raise ConfigurationError(f"{self.name}: generator does not have order r")


IDENTITY: Point = (0, 1)


# --- Reference Group Law ---


def is_on_curve(curve: CurveParams, pt: Point) -> bool:
    p = curve.p
    x, y = pt
    x2, y2 = x * x % p, y * y % p
    return (curve.a * x2 + y2 - 1 - curve.d * x2 * y2) % p == 0


def add(curve: CurveParams, p1: Point, p2: Point) -> Point:
    p = curve.p
    x1, y1 = p1
    x2, y2 = p2
    t = curve.d * x1 * x2 * y1 * y2 % p
    x3 = (x1 * y2 + y1 * x2) * pow(1 + t, -1, p) % p
    y3 = (y1 * y2 - curve.a * x1 * x2) * pow(1 - t, -1, p) % p
    return (x3, y3)


def double(curve: CurveParams, pt: Point) -> Point:
    p = curve.p
    x, y = pt
    ax2, y2 = curve.a * x * x % p, y * y % p
    x3 = 2 * x * y * pow(ax2 + y2, -1, p) % p
    y3 = (y2 - ax2) * pow(2 - ax2 - y2, -1, p) % p
    return (x3, y3)


def neg(curve: CurveParams, pt: Point) -> Point:
    return (-pt[0] % curve.p, pt[1])


def scalar_mul(curve: CurveParams, pt: Point, s: int) -> Point:
    """s * pt by double-and-add; s is taken as is (not reduced mod r)."""
    res, tmp = IDENTITY, pt
    while s:
        if s & 1:
            res = add(curve, res, tmp)
        tmp = add(curve, tmp, tmp)
        s >>= 1
    return res


# --- Named Curves ---

_P25519 = 2**255 - 19

ED25519 = CurveParams(
    name="ed25519",
    p=_P25519,
    r=2**252 + 27742317777372353535851937790883648493,
    a=_P25519 - 1,
    d=-121665 * pow(121666, -1, _P25519) % _P25519,
    gx=0x216936D3CD6E53FEC0A4E231FDD6DC5C692CC7609525A7B2C9562D608F25D51A,
    gy=0x6666666666666666666666666666666666666666666666666666666666666658,
)
"""Edwards form of Curve25519 with a = -1 (complete)."""

BABYJUBJUB = CurveParams(
    name="babyjubjub",
    p=BN254_SCALAR,
    r=2736030358979909402780800718157159386076813972158567259200215660948447373041,
    a=168700,
    d=168696,
    gx=5299619240641551281634865583518297030282874472190772894086521144482721001553,
    gy=16950150798460657717958625567821834550301663161624707787222815936182638968203,
)
"""Baby Jubjub (EIP-2494) with its prime-order subgroup generator Base8."""
