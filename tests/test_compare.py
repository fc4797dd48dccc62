import random
from fractions import Fraction
from itertools import product

import pytest

from binfloat import *
from binfloat.number import make_zero, make_infinity, make_nan, make_one, normalize


NAN = make_nan()
INF = make_infinity(False)
NINF = make_infinity(True)
ZERO = make_zero(False)
NZERO = make_zero(True)

# In increasing order
ORDERED = (
    NINF,
    from_float(-1e300),
    from_int(-3),
    from_float(-0.5),
    from_float(-1e-300),
    NZERO,
    from_float(1e-300),
    normalize(False, -1, 1, 200),
    make_one(2),
    from_float(1.0000000000000002),
    from_int(2**200 + 1),
    INF,
)


def sign_of(value):
    return (value > 0) - (value < 0)


class TestCompare:

    @pytest.mark.parametrize('lhs, rhs', product(range(len(ORDERED)), repeat=2))
    def test_order(self, lhs, rhs):
        assert compare(ORDERED[lhs], ORDERED[rhs]) == sign_of(lhs - rhs)

    def test_zeroes_equal(self):
        assert compare(ZERO, NZERO) == 0
        assert compare(NZERO, ZERO) == 0
        assert compare(NZERO, from_float(-1e-300)) == 1

    def test_precision_ignored(self):
        # The same value at different working precisions
        assert compare(make_one(2), make_one(1000)) == 0
        assert compare(from_float(0.1), round_to(from_float(0.1), 20)) == -1

    @pytest.mark.parametrize('seed', range(5))
    def test_random(self, seed):
        rng = random.Random(seed)
        for _ in range(200):
            lhs = from_int(rng.randrange(-10**6, 10**6))
            rhs = normalize(rng.random() < 0.5, -rng.randrange(30), rng.randrange(1, 10**12),
                            rng.randrange(2, 100))
            lhs_f = Fraction(*lhs.as_integer_ratio())
            rhs_f = Fraction(*rhs.as_integer_ratio())
            assert compare(lhs, rhs) == sign_of(lhs_f - rhs_f)

    @pytest.mark.parametrize('value', ORDERED + (ZERO, ))
    def test_nan_raises(self, value):
        with pytest.raises(StrictCompareViolation) as e:
            compare(NAN, value)
        assert e.value.operands == (NAN, value)
        with pytest.raises(StrictCompareViolation):
            compare(value, NAN)
        with pytest.raises(StrictCompareViolation):
            compare_abs(value, NAN)

    def test_nan_nan_raises(self):
        with pytest.raises(ArithmeticError):
            compare(NAN, NAN)


class TestCompareAbs:

    @pytest.mark.parametrize('lhs, rhs, answer', (
        (from_int(-3), from_int(2), 1),
        (from_int(2), from_int(-3), -1),
        (NINF, INF, 0),
        (NINF, from_int(5), 1),
        (NZERO, ZERO, 0),
        (from_float(-0.5), from_float(0.5), 0),
        (NZERO, from_float(-1e-300), -1),
    ))
    def test_table(self, lhs, rhs, answer):
        assert compare_abs(lhs, rhs) == answer


class TestCompareFull:

    @pytest.mark.parametrize('lhs, rhs', product(range(len(ORDERED)), repeat=2))
    def test_order(self, lhs, rhs):
        assert compare_full(ORDERED[lhs], ORDERED[rhs]) == sign_of(lhs - rhs)

    def test_signed_zeroes(self):
        assert compare_full(NZERO, ZERO) == -1
        assert compare_full(ZERO, NZERO) == 1
        assert compare_full(ZERO, ZERO) == 0
        assert compare_full(NZERO, NZERO) == 0

    @pytest.mark.parametrize('value', ORDERED + (ZERO, ))
    def test_nan_last(self, value):
        assert compare_full(NAN, value) == 1
        assert compare_full(value, NAN) == -1

    def test_nan_equal(self):
        assert compare_full(NAN, NAN) == 0
