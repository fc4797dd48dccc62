#
# Correctly-rounded arithmetic on arbitrary-precision binary floating point numbers
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

from math import isqrt

from .errors import Flags
from .number import (
    Tag, check_precision, normalize, make_zero, make_infinity, make_nan, raise_flags,
    PREC_MIN,
)

__all__ = ('add', 'sub', 'mul', 'div', 'rem', 'divrem', 'sqrt', 'round_to', 'neg',
           'abs_', 'scaleb', 'exact_add', 'exact_sub', 'exact_mul', 'is_integer',
           'is_odd_integer')


def _invalid(status):
    '''Return a NaN for an invalid operation on non-NaN operands.'''
    raise_flags(status, Flags.INVALID)
    return make_nan()


def _resize(number, precision, status):
    '''Return the number rounded or padded to the given working precision.'''
    if number.tag != Tag.NORMAL or number.precision == precision:
        return number
    return normalize(number.sign, number.exponent_int(), number.significand, precision,
                     status)


def neg(number):
    '''Return the number with its sign flipped.  NaNs are returned unchanged.'''
    if number.tag == Tag.NAN:
        return number
    return number._replace(sign=not number.sign)


def abs_(number):
    '''Return the number with its sign cleared.'''
    if number.sign:
        return number._replace(sign=False)
    return number


def scaleb(number, N):
    '''Return number * 2^N exactly.'''
    if number.tag != Tag.NORMAL:
        return number
    return number._replace(exponent=number.exponent + N)


def is_integer(number):
    '''Return True if the number is a finite integer.'''
    if number.tag == Tag.ZERO:
        return True
    if number.tag != Tag.NORMAL:
        return False
    exp = number.exponent_int()
    if exp >= 0:
        return True
    return not number.significand & ((1 << -exp) - 1)


def is_odd_integer(number):
    '''Return True if the number is an odd integer.'''
    if number.tag != Tag.NORMAL or not is_integer(number):
        return False
    exp = number.exponent_int()
    if exp > 0:
        return False
    return bool((number.significand >> -exp) & 1)


def round_to(number, precision, status=None):
    '''Return the number rounded to precision bits, ties to even.  A precision at or above
    the working precision of number returns it unchanged.'''
    check_precision(precision)
    if number.tag != Tag.NORMAL or precision >= number.precision:
        return number
    return normalize(number.sign, number.exponent_int(), number.significand, precision,
                     status)


def add(lhs, rhs, precision, status=None):
    '''Return the sum lhs + rhs rounded to precision bits.'''
    check_precision(precision)
    return _add_sub(lhs, rhs, False, precision, status)


def sub(lhs, rhs, precision, status=None):
    '''Return the difference lhs - rhs rounded to precision bits.'''
    check_precision(precision)
    return _add_sub(lhs, rhs, True, precision, status)


def _add_sub(lhs, rhs, is_subtract, precision, status):
    # Handle either being NaN
    if lhs.tag == Tag.NAN or rhs.tag == Tag.NAN:
        return make_nan()

    rhs_sign = rhs.sign ^ is_subtract

    # Handle either being infinite
    if lhs.tag == Tag.INFINITY:
        if rhs.tag == Tag.INFINITY and lhs.sign != rhs_sign:
            return _invalid(status)
        return lhs
    if rhs.tag == Tag.INFINITY:
        return make_infinity(rhs_sign)

    # Zeroes.  Exact zero sums are +0 except that like-signed zeroes keep their sign.
    if lhs.tag == Tag.ZERO:
        if rhs.tag == Tag.ZERO:
            return make_zero(lhs.sign and rhs_sign)
        return _resize(rhs._replace(sign=rhs_sign), precision, status)
    if rhs.tag == Tag.ZERO:
        return _resize(lhs, precision, status)

    lhs_sig, lhs_exp = lhs.significand, lhs.exponent_int()
    rhs_sig, rhs_exp = rhs.significand, rhs.exponent_int()

    # An operand far below the other only affects rounding as a sticky bit.  Replace it
    # with a single bit just below the guard region of the larger so that the alignment
    # shift below stays bounded.
    if lhs.exponent >= rhs.exponent:
        limit = lhs.exponent - max(precision, lhs.precision) - 2
        if rhs.exponent < limit:
            rhs_sig, rhs_exp = 1, limit - 1
    else:
        limit = rhs.exponent - max(precision, rhs.precision) - 2
        if lhs.exponent < limit:
            lhs_sig, lhs_exp = 1, limit - 1

    exponent = min(lhs_exp, rhs_exp)
    lhs_sig <<= lhs_exp - exponent
    rhs_sig <<= rhs_exp - exponent
    if lhs.sign:
        lhs_sig = -lhs_sig
    if rhs_sign:
        rhs_sig = -rhs_sig

    significand = lhs_sig + rhs_sig
    if significand == 0:
        return make_zero(False)
    return normalize(significand < 0, exponent, abs(significand), precision, status)


def mul(lhs, rhs, precision, status=None):
    '''Return the product lhs * rhs rounded to precision bits.'''
    check_precision(precision)
    sign = lhs.sign ^ rhs.sign

    if lhs.tag == Tag.NAN or rhs.tag == Tag.NAN:
        return make_nan()

    if lhs.tag == Tag.INFINITY or rhs.tag == Tag.INFINITY:
        if lhs.tag == Tag.ZERO or rhs.tag == Tag.ZERO:
            return _invalid(status)
        return make_infinity(sign)

    if lhs.tag == Tag.ZERO or rhs.tag == Tag.ZERO:
        return make_zero(sign)

    return normalize(sign, lhs.exponent_int() + rhs.exponent_int(),
                     lhs.significand * rhs.significand, precision, status)


def div(lhs, rhs, precision, status=None):
    '''Return the quotient lhs / rhs rounded to precision bits.'''
    check_precision(precision)
    sign = lhs.sign ^ rhs.sign

    if lhs.tag == Tag.NAN or rhs.tag == Tag.NAN:
        return make_nan()

    if lhs.tag == Tag.INFINITY:
        if rhs.tag == Tag.INFINITY:
            return _invalid(status)
        return make_infinity(sign)

    if rhs.tag == Tag.INFINITY:
        return make_zero(sign)

    if rhs.tag == Tag.ZERO:
        if lhs.tag == Tag.ZERO:
            return _invalid(status)
        raise_flags(status, Flags.DIV_BY_ZERO)
        return make_infinity(sign)

    if lhs.tag == Tag.ZERO:
        return make_zero(sign)

    lhs_sig, exponent = lhs.significand, lhs.exponent_int()
    rhs_sig = rhs.significand

    # Shift the dividend so the integer quotient has at least precision + 2 bits
    shift = precision + 2 + rhs_sig.bit_length() - lhs_sig.bit_length()
    if shift > 0:
        lhs_sig <<= shift
        exponent -= shift
    quotient, remainder = divmod(lhs_sig, rhs_sig)
    exponent -= rhs.exponent_int()

    # A non-zero remainder becomes a sticky bit below the rounding bit
    if remainder:
        quotient = (quotient << 1) | 1
        exponent -= 1

    return normalize(sign, exponent, quotient, precision, status)


def rem(lhs, rhs, precision, status=None):
    '''Return the remainder of truncating division, lhs - trunc(lhs / rhs) * rhs, rounded to
    precision bits.  A non-zero remainder has the sign of lhs, as does a zero one.'''
    check_precision(precision)

    if lhs.tag == Tag.NAN or rhs.tag == Tag.NAN:
        return make_nan()

    if lhs.tag == Tag.INFINITY:
        return _invalid(status)

    if rhs.tag == Tag.ZERO:
        if lhs.tag == Tag.ZERO:
            return _invalid(status)
        raise_flags(status, Flags.DIV_BY_ZERO)
        return make_infinity(lhs.sign ^ rhs.sign)

    if lhs.tag == Tag.ZERO:
        return lhs

    # |lhs| < |rhs| means the truncated quotient is zero
    if rhs.tag == Tag.INFINITY or lhs.exponent < rhs.exponent:
        return _resize(lhs, precision, status)

    lhs_exp, rhs_exp = lhs.exponent_int(), rhs.exponent_int()
    if lhs_exp >= rhs_exp:
        # Reduce 2^(lhs_exp - rhs_exp) modulo the divisor so huge exponent differences
        # stay cheap
        remainder = lhs.significand * pow(2, lhs_exp - rhs_exp, rhs.significand)
        remainder %= rhs.significand
        exponent = rhs_exp
    else:
        remainder = lhs.significand % (rhs.significand << (rhs_exp - lhs_exp))
        exponent = lhs_exp

    if remainder == 0:
        return make_zero(lhs.sign)
    return normalize(lhs.sign, exponent, remainder, precision, status)


def divrem(lhs, rhs, precision, status=None):
    '''Return a pair (quotient, remainder).  The quotient is trunc(lhs / rhs) rounded to
    precision bits, and the remainder lhs - quotient * rhs rounded to precision bits.'''
    check_precision(precision)
    sign = lhs.sign ^ rhs.sign

    if lhs.tag == Tag.NAN or rhs.tag == Tag.NAN:
        return make_nan(), make_nan()

    if lhs.tag == Tag.INFINITY:
        return _invalid(status), make_nan()

    if rhs.tag == Tag.ZERO:
        if lhs.tag == Tag.ZERO:
            return _invalid(status), make_nan()
        raise_flags(status, Flags.DIV_BY_ZERO | Flags.INVALID)
        return make_infinity(sign), make_nan()

    if lhs.tag == Tag.ZERO:
        return make_zero(sign), lhs

    if rhs.tag == Tag.INFINITY or lhs.exponent < rhs.exponent:
        return make_zero(sign), _resize(lhs, precision, status)

    lhs_exp, rhs_exp = lhs.exponent_int(), rhs.exponent_int()
    lhs_sig, rhs_sig = lhs.significand, rhs.significand

    # Shift the dividend so the leading part of the integer quotient has at least
    # precision + 2 bits; the remaining low bits of the quotient are dropped
    shift = max(0, precision + 2 + rhs_sig.bit_length() - lhs_sig.bit_length())
    dropped = lhs_exp - rhs_exp - shift
    if dropped >= rhs_sig.bit_length():
        # The dropped bits are all zero exactly when the division is exact
        high, remainder = divmod(lhs_sig << shift, rhs_sig)
        if remainder:
            quotient = normalize(sign, dropped - 1, (high << 1) | 1, precision, status)
        else:
            quotient = normalize(sign, dropped, high, precision, status)
    else:
        exponent = min(lhs_exp, rhs_exp)
        quotient = (lhs_sig << (lhs_exp - exponent)) // (rhs_sig << (rhs_exp - exponent))
        if quotient == 0:
            return make_zero(sign), _resize(lhs, precision, status)
        quotient = normalize(sign, 0, quotient, precision, status)

    # The remainder is taken against the rounded quotient so the pair reconstructs lhs
    q_exp = quotient.exponent_int()
    low = min(lhs_exp, q_exp + rhs_exp)
    product = (quotient.significand * rhs.significand) << (q_exp + rhs_exp - low)
    difference = (lhs.significand << (lhs_exp - low)) - product
    if difference == 0:
        return quotient, make_zero(lhs.sign)
    remainder = normalize(lhs.sign ^ (difference < 0), low, abs(difference), precision,
                          status)
    return quotient, remainder


def sqrt(number, precision, status=None):
    '''Return the square root of the number rounded to precision bits.'''
    check_precision(precision)

    if number.tag == Tag.NAN:
        return number

    if number.tag == Tag.ZERO:
        return number

    if number.sign:
        return _invalid(status)

    if number.tag == Tag.INFINITY:
        return number

    significand, exponent = number.significand, number.exponent_int()
    # Make the exponent even and give the integer root at least precision + 2 bits
    shift = max(0, 2 * (precision + 2) - significand.bit_length())
    if (exponent - shift) & 1:
        shift += 1
    significand <<= shift
    exponent -= shift

    root = isqrt(significand)
    exponent //= 2
    # An inexact root becomes a sticky bit below the rounding bit
    if root * root != significand:
        root = (root << 1) | 1
        exponent -= 1

    return normalize(False, exponent, root, precision, status)


def _exact_precision(lhs, rhs):
    '''Return a precision wide enough to hold the exact sum of two normal numbers.'''
    top = max(lhs.exponent, rhs.exponent) + 1
    bottom = min(lhs.exponent_int(), rhs.exponent_int())
    return max(PREC_MIN, top - bottom)


def exact_add(lhs, rhs):
    '''Return the exact sum of two finite numbers.'''
    if lhs.tag != Tag.NORMAL or rhs.tag != Tag.NORMAL:
        precision = max(PREC_MIN, lhs.precision, rhs.precision)
    else:
        precision = _exact_precision(lhs, rhs)
    return add(lhs, rhs, precision)


def exact_sub(lhs, rhs):
    '''Return the exact difference of two finite numbers.'''
    return exact_add(lhs, neg(rhs))


def exact_mul(lhs, rhs):
    '''Return the exact product of two finite numbers.'''
    return mul(lhs, rhs, max(PREC_MIN, lhs.precision + rhs.precision))
