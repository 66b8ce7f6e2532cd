"""Twisted Edwards group law over an emulated base field.

Points are affine (X, Y) pairs of EmulatedField elements; scalars are
elements of a second EmulatedField modulo the subgroup order r.

Example:
    class MulCircuit(Circuit):
        def define(self, api: Builder) -> None:
            curve = Curve(api, ED25519)
            s = curve.scalars.input("s")
            q = curve.input_point("q")
            curve.assert_is_equal(curve.scalar_mul_generator(s), q)
"""

import logging
from dataclasses import dataclass
from typing import Dict, List

from verifier_gadgets.constraints.api import Builder
from verifier_gadgets.constraints.system import Operand, Variable
from verifier_gadgets.gadgets.emulated import Element, EmulatedField, element_assignment
from verifier_gadgets.primitives import edwards as ref
from verifier_gadgets.primitives.edwards import CurveParams

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AffinePoint:
    x: Element
    y: Element


class Curve:
    """In-circuit twisted Edwards curve.

    Args:
        api: Circuit builder
        params: Curve descriptor; validated on construction

    Raises:
        ConfigurationError: If params do not describe a usable curve, or a
            field cannot be emulated over the native field
    """

    def __init__(self, api: Builder, params: CurveParams) -> None:
        params.validate()
        if not params.is_complete:
            logger.warning(
                "%s: a is not a square or d is a square; addition is not complete "
                "and exceptional inputs (P == -Q, small-order points) may be unsatisfiable",
                params.name,
            )
        self.api = api
        self.params = params
        self.base = EmulatedField(api, params.base_field)
        self.scalars = EmulatedField(api, params.scalar_field)
        self._a = params.a % params.p
        self._d = self.base.constant(params.d)

    # --- Construction ---

    def identity(self) -> AffinePoint:
        return AffinePoint(self.base.zero(), self.base.one())

    def constant_point(self, x: int, y: int) -> AffinePoint:
        return AffinePoint(self.base.constant(x), self.base.constant(y))

    def generator(self) -> AffinePoint:
        return self.constant_point(self.params.gx, self.params.gy)

    def input_point(self, name: str, public: bool = False) -> AffinePoint:
        """Declare a point input; membership is not asserted here."""
        return AffinePoint(
            self.base.input(f"{name}.x", public=public),
            self.base.input(f"{name}.y", public=public),
        )

    # --- Helpers ---

    def _mul_by_a(self, v: Element) -> Element:
        if self._a == self.params.p - 1:
            return self.base.neg(v)
        return self.base.mul(v, self.base.constant(self._a))

    # --- Group Law ---

    def assert_is_on_curve(self, pt: AffinePoint) -> None:
        """a * x^2 + y^2 == 1 + d * x^2 * y^2."""
        f = self.base
        x2 = f.mul(pt.x, pt.x)
        y2 = f.mul(pt.y, pt.y)
        lhs = f.add(self._mul_by_a(x2), y2)
        rhs = f.add(f.one(), f.mul(self._d, f.mul(x2, y2)))
        f.assert_is_equal(lhs, rhs)

    def neg(self, pt: AffinePoint) -> AffinePoint:
        return AffinePoint(self.base.neg(pt.x), pt.y)

    def add(self, p: AffinePoint, q: AffinePoint) -> AffinePoint:
        """Unified addition.

        x3 = (x1 y2 + y1 x2) / (1 + d x1 x2 y1 y2)
        y3 = (y1 y2 - a x1 x2) / (1 - d x1 x2 y1 y2)

        computed with u = (y1 - a x1)(x2 + y2), so that
        y1 y2 - a x1 x2 = u + a x1 y2 - y1 x2.
        """
        f = self.base
        u = f.mul(f.sub(p.y, self._mul_by_a(p.x)), f.add(q.x, q.y))
        v0 = f.mul(p.x, q.y)
        v1 = f.mul(q.x, p.y)
        v2 = f.mul(self._d, f.mul(v0, v1))
        x = f.div(f.add(v0, v1), f.add(f.one(), v2))
        y = f.div(f.sub(f.add(u, self._mul_by_a(v0)), v1), f.sub(f.one(), v2))
        return AffinePoint(x, y)

    def double(self, pt: AffinePoint) -> AffinePoint:
        """x3 = 2xy / (a x^2 + y^2), y3 = (y^2 - a x^2) / (2 - a x^2 - y^2)."""
        f = self.base
        ax2 = self._mul_by_a(f.mul(pt.x, pt.x))
        y2 = f.mul(pt.y, pt.y)
        xy = f.mul(pt.x, pt.y)
        x = f.div(f.add(xy, xy), f.add(ax2, y2))
        y = f.div(f.sub(y2, ax2), f.sub(f.constant(2), f.add(ax2, y2)))
        return AffinePoint(x, y)

    def select(self, sel: Operand, p: AffinePoint, q: AffinePoint) -> AffinePoint:
        """p if sel == 1 else q. sel must be constrained boolean."""
        return AffinePoint(self.base.select(sel, p.x, q.x), self.base.select(sel, p.y, q.y))

    def assert_is_equal(self, p: AffinePoint, q: AffinePoint) -> None:
        self.base.assert_is_equal(p.x, q.x)
        self.base.assert_is_equal(p.y, q.y)

    def _scalar_bits(self, s: Element) -> List[Variable]:
        return self.scalars.to_bits(s)[:self.params.r.bit_length()]

    def scalar_mul(self, pt: AffinePoint, s: Element) -> AffinePoint:
        """s * pt by double-and-add over every bit of the canonical scalar.

        Each bit picks between the current power-of-two multiple and the
        identity, so the constraint shape does not depend on s.
        """
        bits = self._scalar_bits(s)
        identity = self.identity()
        res = self.select(bits[0], pt, identity)
        tmp = pt
        for bit in bits[1:]:
            tmp = self.double(tmp)
            res = self.add(res, self.select(bit, tmp, identity))
        return res

    def scalar_mul_generator(self, s: Element) -> AffinePoint:
        """s * G with the multiples 2^i * G folded to constants."""
        bits = self._scalar_bits(s)
        identity = self.identity()
        multiple = self.params.generator
        res = self.select(bits[0], self.constant_point(*multiple), identity)
        for bit in bits[1:]:
            multiple = ref.double(self.params, multiple)
            res = self.add(res, self.select(bit, self.constant_point(*multiple), identity))
        return res


def point_assignment(name: str, pt: ref.Point, params: CurveParams) -> Dict[str, int]:
    """Input assignment for a point declared with Curve.input_point(name)."""
    field = params.base_field
    assignment = element_assignment(f"{name}.x", pt[0], field)
    assignment.update(element_assignment(f"{name}.y", pt[1], field))
    return assignment
