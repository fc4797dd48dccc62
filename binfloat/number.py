#
# Representation of arbitrary-precision binary floating point numbers
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

from collections import namedtuple
from enum import IntEnum
from math import copysign, isinf

from .errors import Flags

__all__ = ('Tag', 'Number', 'Status', 'make_zero', 'make_infinity', 'make_nan', 'make_one',
           'normalize', 'from_int', 'from_float', 'to_float', 'check_precision',
           'raise_flags', 'LIMB_BITS', 'PREC_MIN', 'PREC_MAX',
           'ROUND_HALF_EVEN', 'ROUND_CEILING', 'ROUND_FLOOR')


# Rounding modes.  Public operations always round to nearest with ties to even; the
# directed modes are used internally to bound exact values from below and above.
ROUND_CEILING   = 'ROUND_CEILING'       # Towards +infinity
ROUND_FLOOR     = 'ROUND_FLOOR'         # Towards -infinity
ROUND_HALF_EVEN = 'ROUND_HALF_EVEN'     # To nearest with ties towards even

# Width of one mantissa limb in bits
LIMB_BITS = 64
# Valid precisions (in bits) of a rounding operation
PREC_MIN = 2
PREC_MAX = (1 << 62) - 2


class Tag(IntEnum):
    '''The class of a number.'''
    NORMAL = 0
    ZERO = 1
    INFINITY = 2
    NAN = 3


# When precision is lost during a calculation these indicate what fraction of the LSB the
# lost bits represented.  It essentially combines the roles of 'guard' and 'sticky' bits.
LF_EXACTLY_ZERO = 0           # 000000
LF_LESS_THAN_HALF = 1         # 0xxxxx  x's not all zero
LF_EXACTLY_HALF = 2           # 100000
LF_MORE_THAN_HALF = 3         # 1xxxxx  x's not all zero


class Number(namedtuple('Number', 'tag sign exponent significand precision')):
    '''Internal Representation
       -----------------------

    A normal number has the value

            (-1)^sign * 0.b1b2...bp * 2^exponent

    where b1b2...bp are the precision bits of significand read as a binary fraction, so
    that 1/2 <= 0.b1b2...bp < 1.  Equivalently value = significand * 2^(exponent -
    precision).  The significand is normalized: it has exactly precision bits and its
    leading bit is set.  The precision is the working precision of the number; it is
    fixed by the rounding operation that produced it and trailing zero bits are kept.

    The exponent is an unbounded Python integer, so there is no overflow, underflow or
    subnormal range.

    Zeroes, infinities and NaNs are distinguished by tag and have exponent, significand
    and precision all zero.  Zeroes and infinities are signed; NaNs always have a clear
    sign bit.
    '''

    def __new__(cls, tag, sign, exponent, significand, precision):
        '''Validate and create a number with the given parts.'''
        if not isinstance(tag, Tag):
            raise TypeError('tag must be a Tag')
        if not isinstance(sign, bool):
            raise TypeError('sign must be a bool')
        if not all(isinstance(arg, int) for arg in (exponent, significand, precision)):
            raise TypeError('exponent, significand and precision must be integers')
        if tag == Tag.NORMAL:
            if precision < 1:
                raise ValueError(f'precision {precision:,d} out of range')
            if significand.bit_length() != precision or significand < 0:
                raise ValueError(f'significand is not normalized to {precision:,d} bits')
        elif exponent or significand or precision:
            raise ValueError(f'{tag.name} must have zero exponent, significand and precision')
        elif tag == Tag.NAN and sign:
            raise ValueError('NaNs do not carry a sign')
        return super().__new__(cls, tag, sign, exponent, significand, precision)

    def is_finite(self):
        '''Return True if the value is finite.'''
        return self.tag in (Tag.NORMAL, Tag.ZERO)

    def is_zero(self):
        '''Return True if the value is zero regardless of sign.'''
        return self.tag == Tag.ZERO

    def is_infinite(self):
        '''Return True if the value is infinite.'''
        return self.tag == Tag.INFINITY

    def is_nan(self):
        '''Return True if this is a NaN.'''
        return self.tag == Tag.NAN

    def is_normal(self):
        '''Return True if the value is finite and non-zero.'''
        return self.tag == Tag.NORMAL

    def exponent_int(self):
        '''Return the arithmetic exponent of our significand interpreted as an integer.'''
        assert self.tag == Tag.NORMAL
        return self.exponent - self.precision

    def limbs(self):
        '''Return the mantissa as a tuple of LIMB_BITS-wide limbs, most significant first.
        The significand is left-aligned, so trailing padding bits of the last limb are
        zero.  Non-normal numbers have no limbs.
        '''
        if self.tag != Tag.NORMAL:
            return ()
        count = -(-self.precision // LIMB_BITS)
        value = self.significand << (count * LIMB_BITS - self.precision)
        mask = (1 << LIMB_BITS) - 1
        return tuple((value >> (LIMB_BITS * n)) & mask for n in reversed(range(count)))

    def as_integer_ratio(self):
        '''Return a pair (n, d) of integers that represent the value as a fraction in lowest
        terms and with a positive denominator.'''
        if self.tag == Tag.NAN:
            raise ValueError('cannot convert a NaN to an integer ratio')
        if self.tag == Tag.INFINITY:
            raise OverflowError('cannot convert an infinity to an integer ratio')
        if self.tag == Tag.ZERO:
            return (0, 1)
        exp = self.exponent_int()
        significand = self.significand
        # Strip trailing zeroes in one step
        if exp < 0:
            zeroes = min((significand & -significand).bit_length() - 1, -exp)
            significand >>= zeroes
            exp += zeroes

        if exp >= 0:
            n, d = significand << exp, 1
        else:
            n, d = significand, 1 << -exp
        return (-n if self.sign else n), d


class Status:
    '''Accumulates status flags.  Operations accept any object with a flags attribute; a
    Context is the usual one, this is for scratch calculations.'''

    __slots__ = ('flags', )

    def __init__(self):
        self.flags = Flags(0)

    def __repr__(self):
        return f'<Status flags={self.flags!r}>'


def raise_flags(status, flags):
    '''Raise flags on status, if there is one.'''
    if status is not None:
        status.flags |= flags


def check_precision(precision):
    '''Raise an exception if precision is not a valid precision in bits.'''
    if not isinstance(precision, int) or isinstance(precision, bool):
        raise TypeError('precision must be an integer')
    if not PREC_MIN <= precision <= PREC_MAX:
        raise ValueError(f'precision {precision:,d} out of range [{PREC_MIN}, {PREC_MAX:,d}]')


def make_zero(sign):
    '''Return a zero of the given sign.'''
    return Number(Tag.ZERO, sign, 0, 0, 0)


def make_infinity(sign):
    '''Return an infinity of the given sign.'''
    return Number(Tag.INFINITY, sign, 0, 0, 0)


def make_nan():
    '''Return the NaN.'''
    return Number(Tag.NAN, False, 0, 0, 0)


def make_one(precision):
    '''Return +1 with the given working precision.'''
    return Number(Tag.NORMAL, False, 1, 1 << (precision - 1), precision)


def lost_bits_from_rshift(significand, bits):
    '''Return what the lost bits would be were the significand shifted right the given number
    of bits (negative is a left shift).
    '''
    if bits <= 0:
        return LF_EXACTLY_ZERO
    # Prevent over-large shifts consuming memory
    bits = min(bits, significand.bit_length() + 2)
    bit_mask = 1 << (bits - 1)
    first_bit = bool(significand & bit_mask)
    second_bit = bool(significand & (bit_mask - 1))
    return first_bit * 2 + second_bit


def shift_right(significand, bits):
    '''Return the significand shifted right a given number of bits (left if bits is negative),
    and the fraction that is lost doing so.
    '''
    if bits <= 0:
        result = significand << -bits
    else:
        result = significand >> bits

    return result, lost_bits_from_rshift(significand, bits)


def round_up(rounding, lost_fraction, sign, is_odd):
    '''Return True if, when an operation is inexact, the result should be rounded up (i.e.,
    away from zero by incrementing the significand).

    sign is the sign of the number, and is_odd indicates if the LSB of the new
    significand is set, which is needed for ties-to-even rounding.
    '''
    if lost_fraction == LF_EXACTLY_ZERO:
        return False

    if rounding == ROUND_HALF_EVEN:
        if lost_fraction == LF_EXACTLY_HALF:
            return is_odd
        else:
            return lost_fraction == LF_MORE_THAN_HALF
    elif rounding == ROUND_CEILING:
        return not sign
    elif rounding == ROUND_FLOOR:
        return sign
    raise ValueError(f'unknown rounding mode {rounding!r}')


def normalize(sign, exponent, significand, precision, status=None, rounding=ROUND_HALF_EVEN):
    '''Return a normalized number that is the correctly-rounded value of the infinitely
    precise result

           ± 2^exponent * significand

    with the given working precision.  Narrow significands are padded with zero bits.
    Raises INEXACT on status if bits are lost.
    '''
    if significand == 0:
        return make_zero(sign)

    rshift = significand.bit_length() - precision
    significand, lost_fraction = shift_right(significand, rshift)
    exponent += rshift

    if round_up(rounding, lost_fraction, sign, bool(significand & 1)):
        # Increment the significand.  If it now overflows, halve it and increment the
        # exponent.
        significand += 1
        if significand.bit_length() > precision:
            significand >>= 1
            exponent += 1

    if lost_fraction != LF_EXACTLY_ZERO:
        raise_flags(status, Flags.INEXACT)

    return Number(Tag.NORMAL, sign, exponent + precision, significand, precision)


def from_int(value, precision=None, status=None):
    '''Return the integer value as a number.  If precision is None the conversion is exact
    with working precision the bit length of the integer.'''
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError('from_int requires an integer')
    if precision is None:
        precision = max(PREC_MIN, abs(value).bit_length())
    return normalize(value < 0, 0, abs(value), precision, status)


def from_float(value):
    '''Return the exact value of a Python float with a working precision of 53 bits.
    Signed zeroes and infinities are preserved.'''
    if not isinstance(value, float):
        raise TypeError('from_float requires a float')
    if value != value:
        return make_nan()
    sign = copysign(1.0, value) < 0
    if isinf(value):
        return make_infinity(sign)
    if value == 0:
        return make_zero(sign)
    n, d = abs(value).as_integer_ratio()
    return normalize(sign, 1 - d.bit_length(), n, 53)


def to_float(number):
    '''Return the number converted to the nearest Python float, ties to even.  Values too
    large become infinities, values too small become zeroes.'''
    if number.tag == Tag.NAN:
        return float('nan')
    if number.tag == Tag.INFINITY:
        result = float('inf')
    elif number.tag == Tag.ZERO:
        result = 0.0
    elif number.exponent > 1025:
        result = float('inf')
    elif number.exponent < -1080:
        result = 0.0
    else:
        exp = number.exponent_int()
        try:
            if exp >= 0:
                result = float(number.significand << exp)
            else:
                # True division of integers is correctly rounded, including subnormals
                result = number.significand / (1 << -exp)
        except OverflowError:
            result = float('inf')
    return -result if number.sign else result
