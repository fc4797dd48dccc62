#
# Ordering of arbitrary-precision binary floating point numbers
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

from .errors import StrictCompareViolation
from .number import Tag

__all__ = ('compare', 'compare_abs', 'compare_full')


def _compare_quiet(lhs, rhs, order_zeroes):
    '''Return LHS vs RHS as -1, 0 or 1, or None if they are unordered.

    If order_zeroes is True then -0 compares less than +0.
    '''
    if lhs.tag == Tag.NAN or rhs.tag == Tag.NAN:
        return None

    if lhs.tag == Tag.INFINITY:
        # Comparing two infinities
        if rhs.tag == Tag.INFINITY and lhs.sign == rhs.sign:
            return 0
        # RHS is finite or a differently-signed infinity
        return -1 if lhs.sign else 1

    if rhs.tag == Tag.INFINITY:
        # Finite vs infinity
        return 1 if rhs.sign else -1

    if lhs.tag == rhs.tag == Tag.ZERO:
        if order_zeroes and lhs.sign != rhs.sign:
            return -1 if lhs.sign else 1
        return 0

    # Finite vs Finite, at least one non-zero.  If signs differ it's easy.  Also get the
    # either-is-a-zero case out the way as zeroes cannot have their exponents compared.
    if lhs.sign != rhs.sign or rhs.tag == Tag.ZERO:
        return -1 if lhs.sign else 1
    if lhs.tag == Tag.ZERO:
        return 1 if rhs.sign else -1

    # Finally, two non-zero finite numbers with equal signs
    result = _compare_magnitudes(lhs, rhs)
    return -result if lhs.sign else result


def _compare_magnitudes(lhs, rhs):
    '''Compare the magnitudes of two normal numbers.'''
    if lhs.exponent != rhs.exponent:
        return 1 if lhs.exponent > rhs.exponent else -1

    # Exponents are the same.  We need to make their significands comparable.
    lhs_sig, rhs_sig = lhs.significand, rhs.significand
    length_diff = lhs.precision - rhs.precision
    if length_diff > 0:
        rhs_sig <<= length_diff
    elif length_diff < 0:
        lhs_sig <<= -length_diff

    # At last we have an apples-for-apples comparison
    if lhs_sig == rhs_sig:
        return 0
    return 1 if lhs_sig > rhs_sig else -1


def compare(lhs, rhs):
    '''Return -1, 0 or 1 as lhs is less than, equal to or greater than rhs.  The zeroes
    compare equal.  Raises StrictCompareViolation if either operand is a NaN.'''
    result = _compare_quiet(lhs, rhs, False)
    if result is None:
        raise StrictCompareViolation('NaN cannot be compared', (lhs, rhs))
    return result


def compare_abs(lhs, rhs):
    '''Like compare() but orders the absolute values of the operands.'''
    return compare(lhs._replace(sign=False), rhs._replace(sign=False))


def compare_full(lhs, rhs):
    '''Return -1, 0 or 1 ordering lhs and rhs by the total order

         -Inf < negative numbers < -0 < +0 < positive numbers < +Inf < NaN

    NaNs compare equal to each other.  Never raises.'''
    if lhs.tag == Tag.NAN:
        return 0 if rhs.tag == Tag.NAN else 1
    if rhs.tag == Tag.NAN:
        return -1
    return _compare_quiet(lhs, rhs, True)
