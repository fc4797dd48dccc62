#
# Correctly-rounded transcendental functions and constants
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

import logging
from enum import IntEnum
from math import isqrt

from .arith import (
    mul, div, sqrt, add, abs_, neg, exact_add, exact_sub, exact_mul, is_integer,
    is_odd_integer,
)
from .compare import compare_abs
from .errors import Flags
from .number import (
    Tag, Number, Status, check_precision, normalize, make_zero, make_infinity, make_nan,
    make_one, raise_flags, PREC_MIN,
)

__all__ = ('Constant', 'ConstantCache', 'const_pi', 'const_ln2', 'constant',
           'exp', 'ln', 'pow', 'sin', 'cos', 'tan', 'asin', 'acos', 'atan',
           'GUARD_BITS', 'ZIV_MAX_ROUNDS', 'INT_POW_MAX_BITS')

logger = logging.getLogger(__name__)

# Extra bits of working precision beyond the requested precision on the first evaluation
GUARD_BITS = 32
# Evaluations too close to a rounding boundary attempted before rounding the last one
ZIV_MAX_ROUNDS = 8
# Integer exponents of pow() up to this many bits are handled by repeated squaring
INT_POW_MAX_BITS = 64

ONE = make_one(PREC_MIN)


class Constant(IntEnum):
    '''The named constants a Value can be set to.'''
    PI = 0
    LN2 = 1


#
# Fixed-point kernels.  Integers scaled by 2^bits stand for reals; each kernel documents
# the bound on its error in units of 2^-bits.
#

def _pi_fixed(bits):
    '''Return pi * 2^bits to within 1 unit, by the Chudnovsky series summed with binary
    splitting.'''
    guard = bits.bit_length() + 8
    work = bits + guard
    C3_OVER_24 = 640320 ** 3 // 24

    def split(a, b):
        if b - a == 1:
            if a == 0:
                p = q = 1
            else:
                p = (6 * a - 5) * (2 * a - 1) * (6 * a - 1)
                q = a * a * a * C3_OVER_24
            t = p * (13591409 + 545140134 * a)
            if a & 1:
                t = -t
            return p, q, t
        m = (a + b) // 2
        p1, q1, t1 = split(a, m)
        p2, q2, t2 = split(m, b)
        return p1 * p2, q1 * q2, q2 * t1 + p1 * t2

    # Each term contributes a little over 47 bits
    _, q, t = split(0, work // 47 + 2)
    sqrt_c = isqrt(10005 << (2 * work))
    return ((426880 * sqrt_c * q) // t) >> guard


def _atanh_recip(n, bits):
    '''Return atanh(1/n) * 2^bits for an integer n > 1.'''
    power = (1 << bits) // n
    total = power
    n2 = n * n
    k = 3
    while power:
        power //= n2
        total += power // k
        k += 2
    return total


def _ln2_fixed(bits):
    '''Return ln(2) * 2^bits to within 1 unit, using

         ln 2 = 18 atanh(1/26) - 2 atanh(1/4801) + 8 atanh(1/8749)
    '''
    guard = bits.bit_length() + 10
    work = bits + guard
    value = (18 * _atanh_recip(26, work) - 2 * _atanh_recip(4801, work)
             + 8 * _atanh_recip(8749, work))
    return value >> guard


_CONSTANT_KERNELS = {
    Constant.PI: _pi_fixed,
    Constant.LN2: _ln2_fixed,
}


class ConstantCache:
    '''Memoizes fixed-point values of the constants.

    One entry is kept per constant: the most precise value computed so far.  Requests for
    fewer bits are served by truncating it.  Values returned are within 2 units.
    '''

    __slots__ = ('_entries', )

    def __init__(self):
        self._entries = {}

    def __len__(self):
        return len(self._entries)

    def __contains__(self, which):
        return which in self._entries

    def fixed(self, which, bits):
        '''Return the constant scaled by 2^bits.'''
        entry = self._entries.get(which)
        if entry is None or entry[0] < bits:
            # Round up the size so that modest increases in precision hit the cache
            cached_bits = bits + 64
            logger.debug('computing %s to %d bits', which.name, cached_bits)
            entry = self._entries[which] = (cached_bits, _CONSTANT_KERNELS[which](cached_bits))
        cached_bits, value = entry
        return value >> (cached_bits - bits)

    def clear(self):
        '''Drop all memoized values.'''
        self._entries.clear()


def _constant_fixed(which, bits, cache):
    if cache is None:
        return _CONSTANT_KERNELS[which](bits)
    return cache.fixed(which, bits)


def _reduction_steps(bits):
    '''Return how many times to halve an argument before summing a series at the given
    working precision.'''
    return max(2, isqrt(bits) // 2)


def _fixed(number, bits):
    '''Return |number| * 2^bits truncated to an integer.'''
    shift = number.exponent_int() + bits
    if shift >= 0:
        return number.significand << shift
    return number.significand >> -shift


def _is_one(number):
    return (number.tag == Tag.NORMAL and not number.sign and number.exponent == 1
            and number.significand == 1 << (number.precision - 1))


def _is_half(number):
    return (number.tag == Tag.NORMAL and not number.sign and number.exponent == 0
            and number.significand == 1 << (number.precision - 1))


def _exp_approx(x, bits, cache):
    '''Approximate exp(x) for finite non-zero x.  Returns (approx, exponent, err) where
    exp(x) lies within err units of approx * 2^exponent.'''
    steps = _reduction_steps(bits)
    work = bits + steps + 16

    # Reduce x = k * ln2 + r with 0 <= r < ln2.  The integer part of x must cancel so
    # work with that many more bits.
    extra = max(x.exponent, 0) + 8
    wide = work + extra
    x_fixed = _fixed(x, wide)
    if x.sign:
        x_fixed = -x_fixed
    ln2 = _constant_fixed(Constant.LN2, wide, cache)
    k = x_fixed // ln2
    r = (x_fixed - k * ln2) >> extra

    # exp(r) = exp(r / 2^steps) ^ (2^steps)
    t = r >> steps
    total = term = 1 << work
    n = 1
    while term:
        term = (term * t >> work) // n
        total += term
        n += 1
    for _ in range(steps):
        total = total * total >> work

    return total, k - work, (n + 8) << (steps + 1)


def _ln_approx(x, bits, cache):
    '''Approximate ln(x) for finite positive x other than 1.  Returns (approx, exponent,
    err) where approx is signed.'''
    # Near 1 the result is about x - 1, whose leading bits cancel
    cancel = 0
    if x.exponent in (0, 1):
        diff = x.significand - (1 << (x.precision - x.exponent))
        cancel = max(0, x.precision - x.exponent - abs(diff).bit_length())

    steps = _reduction_steps(bits)
    work = bits + steps + 16 + cancel
    one = 1 << work

    # x = m * 2^exponent with m in [1/sqrt(2), sqrt(2))
    exponent = x.exponent
    shift = work - x.precision
    if 2 * x.significand * x.significand < 1 << (2 * x.precision):
        shift += 1
        exponent -= 1
    m = x.significand << shift if shift >= 0 else x.significand >> -shift

    # ln(m) = 2^steps * ln(m^(1/2^steps)) and ln(y) = 2 atanh((y - 1) / (y + 1))
    for _ in range(steps):
        m = isqrt(m << work)
    z = ((m - one) << work) // (m + one)
    negative = z < 0
    z = abs(z)
    z2 = z * z >> work
    total = power = z
    n = 3
    while power:
        power = power * z2 >> work
        total += power // n
        n += 2
    total <<= steps + 1
    if negative:
        total = -total

    if exponent:
        e_bits = abs(exponent).bit_length()
        total += (exponent * _constant_fixed(Constant.LN2, work + e_bits, cache)) >> e_bits

    return total, -work, (n + 8) << (steps + 1)


def _sin_cos_series(t, work):
    '''Return (sin t, cos t, terms) for 0 <= t < 1 in fixed point.'''
    t2 = t * t >> work
    results = []
    for first, n in ((t, 1), (1 << work, 0)):
        total = term = first
        sign = -1
        while term:
            term = (term * t2 >> work) // ((n + 1) * (n + 2))
            total += sign * term
            n += 2
            sign = -sign
        results.append(total)
    return results[0], results[1], n


def _sin_cos_approx(x, bits, cache):
    '''Approximate sin(x) and cos(x) for finite non-zero x.  Returns (sin, cos, work, err):
    signed approximations scaled by 2^work, each within err units.'''
    steps = _reduction_steps(bits)
    work = bits + steps + 16

    # Reduce x = k * pi/2 + r with |r| <= pi/4, with pi accurate well beyond the integer
    # part of x
    extra = max(x.exponent, 0) + 8
    wide = work + extra
    x_fixed = _fixed(x, wide)
    half_pi = _constant_fixed(Constant.PI, wide - 1, cache)
    k = (2 * x_fixed + half_pi) // (2 * half_pi)
    r = (x_fixed - k * half_pi) >> extra
    if x.sign:
        r, k = -r, -k

    negative = r < 0
    s, c, n = _sin_cos_series(abs(r) >> steps, work)
    # Double the angle back up
    for _ in range(steps):
        s, c = (s * c) >> (work - 1), (c * c - s * s) >> work
    if negative:
        s = -s

    quadrant = k & 3
    if quadrant == 1:
        s, c = c, -s
    elif quadrant == 2:
        s, c = -s, -c
    elif quadrant == 3:
        s, c = -c, s

    return s, c, work, (n + 8) << (steps + 1)


def _tan_approx(x, bits, cache):
    s, c, work, err = _sin_cos_approx(x, bits, cache)
    if abs(c) <= 2 * err:
        # Too close to a pole to say anything; this forces more precision
        return 0, -work, 1
    t = (abs(s) << work) // abs(c)
    t_err = ((err << work) + t * err) // (abs(c) - err) + 2
    if (s < 0) != (c < 0):
        t = -t
    return t, -work, t_err


def _atan_approx(x, bits, cache):
    '''Approximate atan(x) for finite non-zero x.  Returns (approx, exponent, err) where
    approx is signed.'''
    # atan(x) = pi/2 - atan(1/x) for x > 1
    invert = x.exponent > 1 or (x.exponent == 1 and x.significand != 1 << (x.precision - 1))

    # Otherwise the result is about x in magnitude
    steps = _reduction_steps(bits)
    work = bits + steps + 16
    if not invert and x.exponent < 0:
        work -= x.exponent
    one = 1 << work

    if invert:
        y = (one << work) // _fixed(x, work)
    else:
        y = _fixed(x, work)

    # atan(y) = 2 atan(y / (1 + sqrt(1 + y^2)))
    for _ in range(steps):
        y2 = y * y >> work
        y = (y << work) // (one + isqrt((one + y2) << work))

    y2 = y * y >> work
    total = power = y
    n = 3
    sign = -1
    while power:
        power = power * y2 >> work
        total += sign * (power // n)
        n += 2
        sign = -sign
    total <<= steps

    if invert:
        total = _constant_fixed(Constant.PI, work - 1, cache) - total
    if x.sign:
        total = -total
    return total, -work, (n + 8) << (steps + 1)


def _argument_precision(bits):
    '''Precision at which derived arguments are computed so that their rounding errors
    are negligible at the given working precision.'''
    return bits + isqrt(bits) + 64


def _asin_approx(x, bits, cache):
    # asin(x) = atan(x / sqrt(1 - x^2))
    precision = _argument_precision(bits)
    root = sqrt(exact_sub(ONE, exact_mul(x, x)), precision)
    approx, exponent, err = _atan_approx(div(x, root, precision), bits, cache)
    return approx, exponent, err + 1


def _acos_approx(x, bits, cache):
    # acos(x) = 2 atan(sqrt((1 - x) / (1 + x)))
    precision = _argument_precision(bits)
    ratio = div(exact_sub(ONE, x), exact_add(ONE, x), precision)
    approx, exponent, err = _atan_approx(sqrt(ratio, precision), bits, cache)
    return approx, exponent + 1, err + 1


def _round_approx(sign, approx, exponent, err, precision, status):
    '''Try to round an approximation.  The true result lies within err units of
    approx * 2^exponent, and err is zero if it is exact.

    Returns a pair (result, extra).  If the result cannot be determined it is None, and
    extra is how many more significant bits the approximation needs, or zero if it was
    too close to a rounding boundary.
    '''
    if err == 0:
        return normalize(sign, exponent, approx, precision, status), 0

    # Insist the error is confined to bits well below the rounding bit
    bits = approx.bit_length() - precision
    needed = err.bit_length() + 3
    if bits < needed:
        return None, needed - bits

    low = approx & ((1 << bits) - 1)
    if abs(low - (1 << (bits - 1))) <= err:
        return None, 0

    raise_flags(status, Flags.INEXACT)
    return normalize(sign, exponent, approx, precision, status), 0


def _ziv(approximate, precision, status, name):
    '''Evaluate approximate(bits) -> (approx, exponent, err) at increasing working
    precisions until the correctly-rounded result is determined.

    An approximation with too few significant bits is always retried; the working
    precision doubles while nothing significant survives.  Only retries caused by a
    nearby rounding boundary are limited, to ZIV_MAX_ROUNDS evaluations.
    '''
    bits = precision + GUARD_BITS
    boundary_rounds = 0
    while True:
        approx, exponent, err = approximate(bits)
        result, extra = _round_approx(approx < 0, abs(approx), exponent, err, precision,
                                      status)
        if result is not None:
            return result
        if approx == 0:
            bits *= 2
        elif extra:
            bits += max(extra + GUARD_BITS, bits // 2)
        else:
            boundary_rounds += 1
            if boundary_rounds == ZIV_MAX_ROUNDS:
                break
            bits += bits // 2
        logger.debug('%s: retrying at %d bits', name, bits)

    logger.debug('%s: rounding without a guarantee at %d bits', name, bits)
    raise_flags(status, Flags.INEXACT)
    return normalize(approx < 0, exponent, abs(approx), precision, status)


def _is_tiny(x, precision):
    '''Return True if the cube of x is far below the last place of x at the larger of its
    precision and the given precision.'''
    return 2 * x.exponent < -(max(precision, x.precision) + 2)


def _nudge(x, precision, status, toward_zero):
    '''Return x rounded as if displaced by an infinitesimal towards or away from zero.'''
    guard = max(precision, x.precision) + 2
    tiny = Number(Tag.NORMAL, x.sign ^ toward_zero, x.exponent - guard - 1, 1, 1)
    raise_flags(status, Flags.INEXACT)
    return add(x, tiny, precision, status)


def _invalid(status):
    raise_flags(status, Flags.INVALID)
    return make_nan()


#
# Public functions
#

def constant(which, precision, status=None, cache=None):
    '''Return the constant correctly rounded to precision bits.'''
    check_precision(precision)
    which = Constant(which)

    def approximate(bits):
        return _constant_fixed(which, bits, cache), -bits, 2

    return _ziv(approximate, precision, status, which.name)


def const_pi(precision, status=None, cache=None):
    '''Return pi correctly rounded to precision bits.'''
    return constant(Constant.PI, precision, status, cache)


def const_ln2(precision, status=None, cache=None):
    '''Return ln(2) correctly rounded to precision bits.'''
    return constant(Constant.LN2, precision, status, cache)


def _half_pi(sign, precision, status, cache):
    result = const_pi(precision, status, cache)
    result = result._replace(exponent=result.exponent - 1)
    return neg(result) if sign else result


def exp(x, precision, status=None, cache=None):
    '''Return e^x correctly rounded to precision bits.'''
    check_precision(precision)
    if x.tag == Tag.NAN:
        return x
    if x.tag == Tag.INFINITY:
        return make_zero(False) if x.sign else x
    if x.tag == Tag.ZERO:
        return make_one(precision)
    return _ziv(lambda bits: _exp_approx(x, bits, cache), precision, status, 'exp')


def ln(x, precision, status=None, cache=None):
    '''Return the natural logarithm of x correctly rounded to precision bits.'''
    check_precision(precision)
    if x.tag == Tag.NAN:
        return x
    if x.tag == Tag.ZERO:
        raise_flags(status, Flags.DIV_BY_ZERO)
        return make_infinity(True)
    if x.sign:
        return _invalid(status)
    if x.tag == Tag.INFINITY:
        return x
    if _is_one(x):
        return make_zero(False)
    return _ziv(lambda bits: _ln_approx(x, bits, cache), precision, status, 'ln')


def sin(x, precision, status=None, cache=None):
    '''Return the sine of x (in radians) correctly rounded to precision bits.'''
    check_precision(precision)
    if x.tag == Tag.NAN:
        return x
    if x.tag == Tag.INFINITY:
        return _invalid(status)
    if x.tag == Tag.ZERO:
        return x
    if _is_tiny(x, precision):
        return _nudge(x, precision, status, True)

    def approximate(bits):
        s, _, work, err = _sin_cos_approx(x, bits, cache)
        return s, -work, err

    return _ziv(approximate, precision, status, 'sin')


def cos(x, precision, status=None, cache=None):
    '''Return the cosine of x (in radians) correctly rounded to precision bits.'''
    check_precision(precision)
    if x.tag == Tag.NAN:
        return x
    if x.tag == Tag.INFINITY:
        return _invalid(status)
    if x.tag == Tag.ZERO:
        return make_one(precision)

    def approximate(bits):
        _, c, work, err = _sin_cos_approx(x, bits, cache)
        return c, -work, err

    return _ziv(approximate, precision, status, 'cos')


def tan(x, precision, status=None, cache=None):
    '''Return the tangent of x (in radians) correctly rounded to precision bits.'''
    check_precision(precision)
    if x.tag == Tag.NAN:
        return x
    if x.tag == Tag.INFINITY:
        return _invalid(status)
    if x.tag == Tag.ZERO:
        return x
    if _is_tiny(x, precision):
        return _nudge(x, precision, status, False)
    return _ziv(lambda bits: _tan_approx(x, bits, cache), precision, status, 'tan')


def atan(x, precision, status=None, cache=None):
    '''Return the arc tangent of x correctly rounded to precision bits.'''
    check_precision(precision)
    if x.tag == Tag.NAN:
        return x
    if x.tag == Tag.INFINITY:
        return _half_pi(x.sign, precision, status, cache)
    if x.tag == Tag.ZERO:
        return x
    if _is_tiny(x, precision):
        return _nudge(x, precision, status, True)
    return _ziv(lambda bits: _atan_approx(x, bits, cache), precision, status, 'atan')


def asin(x, precision, status=None, cache=None):
    '''Return the arc sine of x correctly rounded to precision bits.'''
    check_precision(precision)
    if x.tag == Tag.NAN:
        return x
    if x.tag == Tag.INFINITY:
        return _invalid(status)
    if x.tag == Tag.ZERO:
        return x
    order = compare_abs(x, ONE)
    if order > 0:
        return _invalid(status)
    if order == 0:
        return _half_pi(x.sign, precision, status, cache)
    if _is_tiny(x, precision):
        return _nudge(x, precision, status, False)
    return _ziv(lambda bits: _asin_approx(x, bits, cache), precision, status, 'asin')


def acos(x, precision, status=None, cache=None):
    '''Return the arc cosine of x correctly rounded to precision bits.'''
    check_precision(precision)
    if x.tag == Tag.NAN:
        return x
    if x.tag == Tag.INFINITY:
        return _invalid(status)
    if x.tag == Tag.ZERO:
        return _half_pi(False, precision, status, cache)
    order = compare_abs(x, ONE)
    if order > 0:
        return _invalid(status)
    if order == 0:
        if x.sign:
            return const_pi(precision, status, cache)
        return make_zero(False)
    return _ziv(lambda bits: _acos_approx(x, bits, cache), precision, status, 'acos')


def _int_pow_approx(base, N, bits):
    '''Approximate base^N for positive finite base and non-zero integer N by repeated
    squaring.  The error is zero if no intermediate result was rounded.'''
    status = Status()
    work = bits + N.bit_length() + 2
    base = normalize(False, base.exponent_int(), base.significand, work, status)
    result = base
    for bit in bin(abs(N))[3:]:
        result = mul(result, result, work, status)
        if bit == '1':
            result = mul(result, base, work, status)
    if N < 0:
        result = div(ONE, result, work, status)
    err = 4 * abs(N) + 4 if status.flags & Flags.INEXACT else 0
    return result.significand, result.exponent_int(), err


def _pow_approx(base, exponent, bits, cache):
    '''Approximate exp(exponent * ln(base)) for positive finite base other than 1 and
    finite non-zero exponent.'''
    # |exponent * ln(base)| < 2^extra
    extra = max(0, exponent.exponent + (abs(base.exponent) + 1).bit_length())
    work = bits + extra + 8
    status = Status()
    t = mul(exponent, ln(base, work, status, cache), work, status)
    approx, exp_, err = _exp_approx(t, bits, cache)
    # t has a relative error below 2^(2 - work), which exp() turns into a relative error
    # of the result
    err += (approx >> (work - 2 - t.exponent)) + 1
    return approx, exp_, err


def pow(base, exponent, precision, status=None, cache=None):
    '''Return base raised to the power exponent, correctly rounded to precision bits.
    Special cases follow C99.'''
    check_precision(precision)
    if exponent.tag == Tag.ZERO or _is_one(base):
        return make_one(precision)
    if base.tag == Tag.NAN or exponent.tag == Tag.NAN:
        return make_nan()

    odd = is_odd_integer(exponent)
    if base.tag == Tag.ZERO:
        if exponent.sign:
            raise_flags(status, Flags.DIV_BY_ZERO)
            return make_infinity(base.sign and odd)
        return make_zero(base.sign and odd)

    if base.tag == Tag.INFINITY:
        if base.sign:
            return make_zero(odd) if exponent.sign else make_infinity(odd)
        return make_zero(False) if exponent.sign else base

    if exponent.tag == Tag.INFINITY:
        order = compare_abs(base, ONE)
        if order == 0:
            return make_one(precision)
        if (order > 0) != exponent.sign:
            return make_infinity(False)
        return make_zero(False)

    integral = is_integer(exponent)
    if base.sign and not integral:
        return _invalid(status)
    magnitude = abs_(base)

    if integral and exponent.exponent <= INT_POW_MAX_BITS:
        N = _fixed(exponent, 0)
        if exponent.sign:
            N = -N

        def approximate(bits):
            return _int_pow_approx(magnitude, N, bits)

        result = _ziv(approximate, precision, status, 'pow')
    elif _is_half(exponent):
        result = sqrt(magnitude, precision, status)
    else:
        result = _ziv(lambda bits: _pow_approx(magnitude, exponent, bits, cache),
                      precision, status, 'pow')

    return neg(result) if base.sign and odd else result
