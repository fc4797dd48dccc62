import decimal
import logging
import math
from decimal import Decimal, localcontext

import pytest

from binfloat import *
from binfloat.arith import neg, scaleb, abs_, exact_sub
from binfloat.number import make_zero, make_infinity, make_nan, make_one


# Reference values are computed with the decimal module at a much higher precision than
# the binary results, then correctly rounded by parse_decimal().
REF = decimal.Context(prec=150, Emax=decimal.MAX_EMAX, Emin=decimal.MIN_EMIN)

PRECISIONS = (24, 53, 64, 113, 200)

NAN = make_nan()
INF = make_infinity(False)
NINF = make_infinity(True)
ZERO = make_zero(False)
NZERO = make_zero(True)


def machin_pi(digits):
    '''Return pi * 10^(digits + 20) to within a few units.'''
    scale = 10 ** (digits + 20)

    def arctan_recip(x):
        total = term = scale // x
        x2 = x * x
        n = 1
        sign = 1
        while term:
            term //= x2
            n += 2
            sign = -sign
            total += sign * (term // n)
        return total

    return 4 * (4 * arctan_recip(5) - arctan_recip(239))


def pi_text(digits):
    '''Return pi to the given number of significant digits.'''
    value = machin_pi(digits)
    quotient, remainder = divmod(value, 10 ** 21)
    if 2 * remainder >= 10 ** 21:
        quotient += 1
    text = str(quotient)
    return text[0] + '.' + text[1:]


PI = Decimal(machin_pi(200)).scaleb(-220, REF)


def dec_reduce(x):
    with localcontext(REF):
        two_pi = 2 * PI
        return x - (x / two_pi).to_integral_value() * two_pi


def dec_series(total, term, x, n):
    with localcontext(REF):
        while True:
            term = -term * x * x / ((n + 1) * (n + 2))
            n += 2
            new_total = total + term
            if new_total == total:
                return total
            total = new_total


def dec_sin(x):
    r = dec_reduce(x)
    return dec_series(r, r, r, 1)


def dec_cos(x):
    r = dec_reduce(x)
    return dec_series(Decimal(1), Decimal(1), r, 0)


def dec_tan(x):
    return REF.divide(dec_sin(x), dec_cos(x))


def dec_atan(x):
    with localcontext(REF):
        doublings = 0
        while abs(x) > Decimal('0.01'):
            x = x / (1 + (1 + x * x).sqrt())
            doublings += 1
        total = term = x
        n = 1
        while True:
            term = -term * x * x
            n += 2
            new_total = total + term / n
            if new_total == total:
                break
            total = new_total
        return total * 2 ** doublings


def dec_asin(x):
    with localcontext(REF):
        return dec_atan(x / (1 - x * x).sqrt())


def dec_acos(x):
    with localcontext(REF):
        return PI / 2 - dec_asin(x)


def reference(value, precision):
    return parse_decimal(str(value), precision)


def num(value):
    return from_float(float(value))


TRIG_VALUES = (0.5, -0.75, 1.0, 3.0, -10.0, 100.0, 1e-5, 12345.678, -2.0 ** -30, 1e22,
               math.pi, math.pi / 2, -math.pi / 4)
INVERSE_TRIG_VALUES = (0.5, -0.75, 0.999, 1e-5, -0.3, 0.9999999999999999, 2.0 ** -20)


class TestConstants:

    @pytest.mark.parametrize('precision', PRECISIONS)
    def test_pi(self, precision):
        assert const_pi(precision) == reference(PI, precision)

    @pytest.mark.parametrize('precision', PRECISIONS)
    def test_ln2(self, precision):
        assert const_ln2(precision) == reference(REF.ln(2), precision)

    def test_float_values(self):
        assert to_float(const_pi(53)) == math.pi
        assert to_float(const_ln2(53)) == math.log(2)

    def test_inexact(self):
        status = Status()
        const_pi(10, status)
        assert status.flags == Flags.INEXACT

    def test_many_digits(self):
        assert to_fixed(const_pi(4000), 1000) == pi_text(1000)

    def test_cache(self):
        cache = ConstantCache()
        assert len(cache) == 0 and Constant.PI not in cache
        assert const_pi(300, cache=cache) == const_pi(300)
        assert Constant.PI in cache and Constant.LN2 not in cache
        # Served from the cache by truncation
        assert const_pi(100, cache=cache) == const_pi(100)
        assert const_ln2(100, cache=cache) == const_ln2(100)
        assert len(cache) == 2
        cache.clear()
        assert len(cache) == 0

    def test_cache_logs(self, caplog):
        caplog.set_level(logging.DEBUG, logger='binfloat.transcendental')
        ConstantCache().fixed(Constant.LN2, 100)
        assert 'computing LN2 to 164 bits' in caplog.text


class TestExpLn:

    @pytest.mark.parametrize('value', (1.0, -1.0, 0.5, 1e-5, -1e-30, 10.0, -10.0, 700.0,
                                       1000.0, -1000.0, 12345.5))
    @pytest.mark.parametrize('precision', PRECISIONS)
    def test_exp(self, value, precision):
        assert exp(num(value), precision) == reference(REF.exp(Decimal(value)), precision)

    @pytest.mark.parametrize('value', (2.0, 3.0, 0.5, 10.0, 1e-300, 1e300, 1.0000001,
                                       0.9999999, 1 + 2.0 ** -52, 123456789.0))
    @pytest.mark.parametrize('precision', PRECISIONS)
    def test_ln(self, value, precision):
        assert ln(num(value), precision) == reference(REF.ln(Decimal(value)), precision)

    def test_ln_near_one(self):
        value = add(make_one(2), scaleb(make_one(2), -200), 300)
        expected = REF.ln(REF.add(1, REF.power(2, -200)))
        assert ln(value, 53) == reference(expected, 53)

    @pytest.mark.parametrize('gap', (1000, 5000))
    def test_ln_cancellation(self, gap):
        # ln(1 + e) = e - e^2/2 + ... and ln(1 - e) = -e - e^2/2 - ... for e = 2^-gap
        tiny = scaleb(make_one(2), -gap)
        status = Status()
        assert ln(add(make_one(2), tiny, gap + 1), 53, status) == scaleb(make_one(53), -gap)
        assert status.flags == Flags.INEXACT
        below = sub(make_one(2), tiny, gap + 1)
        assert ln(below, 53) == neg(scaleb(make_one(53), -gap))

    def test_ln_many_digits(self):
        expected = decimal.Context(prec=1000).ln(3)
        assert to_fixed(ln(from_int(3), 4000), 1000) == str(expected)

    def test_exp_many_digits(self):
        expected = decimal.Context(prec=500).exp(1)
        assert to_fixed(exp(make_one(2), 2000), 500) == str(expected)

    @pytest.mark.parametrize('value, answer, flags', (
        (NAN, NAN, 0),
        (INF, INF, 0),
        (NINF, ZERO, 0),
        (ZERO, make_one(53), 0),
        (NZERO, make_one(53), 0),
    ))
    def test_exp_specials(self, value, answer, flags):
        status = Status()
        assert exp(value, 53, status) == answer
        assert status.flags == flags

    @pytest.mark.parametrize('value, answer, flags', (
        (NAN, NAN, 0),
        (INF, INF, 0),
        (NINF, NAN, Flags.INVALID),
        (ZERO, NINF, Flags.DIV_BY_ZERO),
        (NZERO, NINF, Flags.DIV_BY_ZERO),
        (num(-1.0), NAN, Flags.INVALID),
        (make_one(2), ZERO, 0),
        (make_one(500), ZERO, 0),
    ))
    def test_ln_specials(self, value, answer, flags):
        status = Status()
        assert ln(value, 53, status) == answer
        assert status.flags == flags

    def test_inexact(self):
        status = Status()
        exp(make_one(2), 53, status)
        assert status.flags == Flags.INEXACT


class TestTrig:

    @pytest.mark.parametrize('value', TRIG_VALUES)
    @pytest.mark.parametrize('precision', PRECISIONS)
    def test_sin(self, value, precision):
        assert sin(num(value), precision) == reference(dec_sin(Decimal(value)), precision)

    @pytest.mark.parametrize('value', TRIG_VALUES)
    @pytest.mark.parametrize('precision', PRECISIONS)
    def test_cos(self, value, precision):
        assert cos(num(value), precision) == reference(dec_cos(Decimal(value)), precision)

    @pytest.mark.parametrize('value', TRIG_VALUES)
    @pytest.mark.parametrize('precision', PRECISIONS)
    def test_tan(self, value, precision):
        assert tan(num(value), precision) == reference(dec_tan(Decimal(value)), precision)

    def test_sin_of_pi(self):
        # The float nearest pi is below it by about 1.2246e-16
        assert to_float(sin(num(math.pi), 53)) == 1.2246467991473532e-16

    def test_reduction_cancellation(self):
        # pi rounded to 3000 bits is off from pi by about 2^-3000
        value = const_pi(3000)
        delta = sub(const_pi(6000), value, 53)
        assert sin(value, 53) == delta
        assert tan(value, 53) == neg(delta)
        assert cos(scaleb(value, -1), 53) == scaleb(delta, -1)

    @pytest.mark.parametrize('function', (sin, tan))
    @pytest.mark.parametrize('precision', (53, 100))
    def test_tiny(self, function, precision):
        status = Status()
        value = num(1e-200)
        result = function(value, precision, status)
        assert compare(result, value) == 0 and result.precision == precision
        assert status.flags == Flags.INEXACT
        assert compare(function(neg(value), precision), neg(value)) == 0

    def test_tiny_power_of_two(self):
        # sin is just below 2^-500, where the spacing of representable numbers halves
        value = scaleb(make_one(53), -500)
        assert sin(value, 53) == value
        assert tan(value, 53) == value

    @pytest.mark.parametrize('function', (sin, tan))
    @pytest.mark.parametrize('value', (ZERO, NZERO))
    def test_signed_zero(self, function, value):
        assert function(value, 53) == value

    @pytest.mark.parametrize('function', (sin, cos, tan))
    @pytest.mark.parametrize('value', (INF, NINF))
    def test_infinity_invalid(self, function, value):
        status = Status()
        assert function(value, 53, status) == NAN
        assert status.flags == Flags.INVALID

    @pytest.mark.parametrize('function', (sin, cos, tan))
    def test_nan(self, function):
        status = Status()
        assert function(NAN, 53, status) == NAN
        assert status.flags == 0

    def test_cos_zero(self):
        assert cos(NZERO, 64) == make_one(64)


class TestInverseTrig:

    @pytest.mark.parametrize('value', TRIG_VALUES + (1e300, -1e-300))
    @pytest.mark.parametrize('precision', PRECISIONS)
    def test_atan(self, value, precision):
        assert atan(num(value), precision) == reference(dec_atan(Decimal(value)), precision)

    @pytest.mark.parametrize('value', INVERSE_TRIG_VALUES)
    @pytest.mark.parametrize('precision', PRECISIONS)
    def test_asin(self, value, precision):
        assert asin(num(value), precision) == reference(dec_asin(Decimal(value)), precision)

    @pytest.mark.parametrize('value', INVERSE_TRIG_VALUES)
    @pytest.mark.parametrize('precision', PRECISIONS)
    def test_acos(self, value, precision):
        assert acos(num(value), precision) == reference(dec_acos(Decimal(value)), precision)

    def test_atan_one(self):
        # atan(1) = pi/4
        assert atan(make_one(2), 100) == scaleb(const_pi(100), -2)

    @pytest.mark.parametrize('function', (atan, asin))
    def test_tiny(self, function):
        value = num(-1e-200)
        assert function(value, 53) == value

    @pytest.mark.parametrize('gap', (200, 2000))
    def test_acos_near_one(self, gap):
        # acos(1 - e) = sqrt(2e) (1 + e/12 + ...)
        value = sub(make_one(2), scaleb(make_one(2), -gap), gap + 1)
        assert acos(value, 53) == sqrt(scaleb(make_one(2), 1 - gap), 53)

    def test_atan_small(self):
        value = scaleb(from_int(5), -90)
        assert atan(value, 200) == reference(dec_atan(Decimal(5 * 2.0 ** -90)), 200)

    def test_acos_of_minus_one(self):
        assert to_fixed(acos(neg(make_one(2)), 10000), 3000) == pi_text(3000)

    @pytest.mark.parametrize('function, value, answer, flags', (
        (atan, INF, scaleb(const_pi(53), -1), 0),
        (atan, NINF, neg(scaleb(const_pi(53), -1)), 0),
        (atan, NZERO, NZERO, 0),
        (atan, NAN, NAN, 0),
        (asin, make_one(2), scaleb(const_pi(53), -1), 0),
        (asin, neg(make_one(2)), neg(scaleb(const_pi(53), -1)), 0),
        (asin, num(1.5), NAN, Flags.INVALID),
        (asin, INF, NAN, Flags.INVALID),
        (asin, NZERO, NZERO, 0),
        (acos, make_one(2), ZERO, 0),
        (acos, neg(make_one(2)), const_pi(53), 0),
        (acos, ZERO, scaleb(const_pi(53), -1), 0),
        (acos, NZERO, scaleb(const_pi(53), -1), 0),
        (acos, num(-1.0000000000000002), NAN, Flags.INVALID),
        (acos, NINF, NAN, Flags.INVALID),
        (acos, NAN, NAN, 0),
    ))
    def test_specials(self, function, value, answer, flags):
        status = Status()
        assert function(value, 53, status) == answer
        assert status.flags & ~Flags.INEXACT == flags


class TestPow:

    @pytest.mark.parametrize('base, power', (
        (1.5, 2.5),
        (10.0, -3.0),
        (7.0, 1 / 3),
        (1e10, 0.1),
        (0.3, -7.25),
        (-2.0, 3.0),
        (-1.5, -3.0),
        (1.1, 100.0),
        (2.0, 0.5),
        (123.0, 1e-10),
        (0.999, 12345.5),
    ))
    @pytest.mark.parametrize('precision', PRECISIONS)
    def test_values(self, base, power, precision):
        expected = REF.power(Decimal(base), Decimal(power))
        assert pow(num(base), num(power), precision) == reference(expected, precision)

    @pytest.mark.parametrize('base, power, answer', (
        (3, 40, 3 ** 40),
        (2, 1000, 2 ** 1000),
        (-3, 3, -27),
        (-3, 4, 81),
        (5, 27, 5 ** 27),
    ))
    def test_exact_integer_powers(self, base, power, answer):
        status = Status()
        result = pow(from_int(base), from_int(power), 64, status)
        assert result.as_integer_ratio() == (answer, 1)
        assert status.flags == 0

    def test_negative_integer_power(self):
        status = Status()
        result = pow(num(0.5), from_int(-1000), 53, status)
        assert result.as_integer_ratio() == (2 ** 1000, 1)
        assert status.flags == 0

    def test_half_is_sqrt(self):
        for value in (2.0, 3.0, 1e-300, 12345.0):
            assert pow(num(value), num(0.5), 113) == sqrt(num(value), 113)

    def test_huge_integer_exponent(self):
        # Beyond repeated squaring the exp(y ln x) path must still land exactly
        result = pow(from_int(2), from_int(2 ** 70), 53)
        assert result == Number(Tag.NORMAL, False, 2 ** 70 + 1, 1 << 52, 53)

    @pytest.mark.parametrize('base, power, answer, flags', (
        (NAN, ZERO, make_one(53), 0),
        (INF, NZERO, make_one(53), 0),
        (make_one(2), NAN, make_one(53), 0),
        (make_one(2), NINF, make_one(53), 0),
        (NAN, num(2.0), NAN, 0),
        (num(2.0), NAN, NAN, 0),
        (ZERO, num(-3.0), INF, Flags.DIV_BY_ZERO),
        (NZERO, num(-3.0), NINF, Flags.DIV_BY_ZERO),
        (NZERO, num(-2.0), INF, Flags.DIV_BY_ZERO),
        (NZERO, num(-0.5), INF, Flags.DIV_BY_ZERO),
        (NZERO, NINF, INF, Flags.DIV_BY_ZERO),
        (NZERO, num(3.0), NZERO, 0),
        (NZERO, num(2.0), ZERO, 0),
        (ZERO, num(0.5), ZERO, 0),
        (num(-1.0), INF, make_one(53), 0),
        (num(-1.0), NINF, make_one(53), 0),
        (num(0.5), INF, ZERO, 0),
        (num(0.5), NINF, INF, 0),
        (num(-2.0), INF, INF, 0),
        (num(2.0), NINF, ZERO, 0),
        (NINF, num(3.0), NINF, 0),
        (NINF, num(2.0), INF, 0),
        (NINF, num(-3.0), NZERO, 0),
        (NINF, num(-2.0), ZERO, 0),
        (NINF, num(0.5), INF, 0),
        (INF, num(-1.0), ZERO, 0),
        (INF, num(2.0), INF, 0),
        (num(-2.0), num(0.5), NAN, Flags.INVALID),
        (num(-2.0), num(2.5), NAN, Flags.INVALID),
    ))
    def test_specials(self, base, power, answer, flags):
        status = Status()
        assert pow(base, power, 53, status) == answer
        assert status.flags == flags


class TestPrecision:

    @pytest.mark.parametrize('function, args', (
        (exp, (num(0.7), )),
        (exp, (num(-30.25), )),
        (ln, (num(3.0), )),
        (ln, (add(make_one(2), scaleb(make_one(2), -1000), 1001), )),
        (sin, (num(100.0), )),
        (sin, (const_pi(3000), )),
        (atan, (num(0.3), )),
        (atan, (scaleb(from_int(5), -90), )),
        (pow, (num(1.5), num(2.5))),
        (pow, (num(0.999), num(12345.5))),
    ))
    def test_error_decreases(self, function, args):
        # Errors against a far more precise result never grow with the precision
        exact = function(*args, 1000)
        previous = None
        for precision in (24, 53, 113, 200, 500):
            error = abs_(exact_sub(function(*args, precision), exact))
            if previous is not None:
                assert compare(error, previous) <= 0
            previous = error
