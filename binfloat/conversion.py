#
# Conversion of arbitrary-precision binary floating point numbers to and from decimal
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

import logging
import re

import attr

from .arith import mul, div, scaleb
from .errors import Flags, ParseError
from .number import (
    Tag, check_precision, normalize, make_zero, make_infinity, make_nan,
    from_int, raise_flags, PREC_MIN,
)

__all__ = ('TextFormat', 'DefaultFormat', 'parse_decimal', 'decimal_to_binary',
           'to_fixed', 'to_fraction', 'to_free', 'DEFAULT_PRECISION')

logger = logging.getLogger(__name__)

# Precision of parsed text when none is given
DEFAULT_PRECISION = 64
# Decimal exponents up to this magnitude (or up to the precision if larger) are converted
# with exact integer arithmetic; beyond it 5^n is bounded at increasing precisions
EXACT_POW5_LIMIT = 1000
# Integers with more bits than this are converted to and from decimal by divide and conquer
SPLIT_BITS = 8192
SPLIT_DIGITS = 2000

# log10(2) to 56 places
LOG10_2 = 30102999566398119521373889472449302676818988146210854131
LOG10_2_SCALE = 10 ** 56

DEC_FLOAT_REGEX = re.compile(
    # sign[opt]
    '[-+]?('
    # (dec-integer[opt].fraction or dec-integer.[opt])
    '(([0-9]*)\\.([0-9]+)|([0-9]+)\\.?)'
    # e sign[opt]dec-exponent   [opt]
    '(e([-+]?[0-9]+))?|'
    # inf or infinity
    '(inf(inity)?)|'
    # nan
    '(nan))',
    re.ASCII | re.IGNORECASE
)


@attr.s(slots=True, kw_only=True, eq=False)
class TextFormat:
    '''Controls the output of conversion to decimal strings.'''

    # The minimum number of digits to output in the exponent of a finite number.  0
    # suppresses the exponent by adding leading or trailing zeroes to the significand as
    # needed (as for the printf 'f' format specifier in the C programming language).  If
    # negative, apply the rule for the printf 'g' format specifier to decide whether to
    # display an exponent or not, in which case the minimum number of digits in the
    # exponent is the absolute value.
    exp_digits = attr.ib(default=0)
    # If True positive exponents display a '+'.
    force_exp_sign = attr.ib(default=True)
    # If True, numbers with a clear sign bit are preceded with a '+'.
    force_leading_sign = attr.ib(default=False)
    # If True, display a decimal point followed by a zero even though none is needed.  For
    # example, "5" and "1e2" would display as "5.0" and "1.0e2".
    force_point = attr.ib(default=False)
    # If True, the exponent character is in upper case.  This does not affect the zero,
    # inf and nan strings below which are copied unmodified.
    upper_case = attr.ib(default=False)
    # If True, trailing insignificant zeroes are stripped
    rstrip_zeroes = attr.ib(default=False)
    # The string output for zeroes
    zero = attr.ib(default='0')
    # The string output for infinity
    inf = attr.ib(default='Infinity')
    # The string output for NaNs, which are never signed
    nan = attr.ib(default='NaN')

    def leading_sign(self, sign):
        '''Return the leading sign string.'''
        return '-' if sign else '+' if self.force_leading_sign else ''

    def exponent_str(self, exponent):
        '''Return the formatted exponent.'''
        sign = '-' if exponent < 0 else '+' if self.force_exp_sign else ''
        main = str(abs(exponent))
        zeroes = '0' * (abs(self.exp_digits) - len(main))
        return f'{sign}{zeroes}{main}'

    def format_special(self, number):
        '''Returns the output text for zeroes, infinities and NaNs.'''
        if number.tag == Tag.NAN:
            return self.nan
        special = self.inf if number.tag == Tag.INFINITY else self.zero
        return self.leading_sign(number.sign) + special

    def format_decimal(self, sign, exponent, digits, precision=None):
        '''sign is True if the number has a negative sign.  digits is a string of significant
        digits of a number converted to decimal.  exponent is the exponent of the leading
        digit, i.e. the decimal point appears exponent digits after the leading digit.
        '''
        precision = precision or len(digits)
        assert precision > 0

        if self.rstrip_zeroes:
            digits = digits.rstrip('0') or '0'

        parts = [self.leading_sign(sign)]

        exp_digits = self.exp_digits
        if exp_digits < 0:
            # Apply the fprintf 'g' format specifier rule
            if precision > exponent >= -4:
                exp_digits = 0

        if exp_digits:
            if len(digits) > 1:
                parts.extend((digits[0], '.', digits[1:]))
            elif self.force_point:
                parts.extend((digits, '.0'))
            else:
                parts.append(digits)
            parts.append('E' if self.upper_case else 'e')
            parts.append(self.exponent_str(exponent))
        else:
            point = exponent + 1
            if point <= 0:
                parts.extend(('0.', '0' * -point, digits))
            else:
                if point > len(digits):
                    digits += (point - len(digits)) * '0'
                if point < len(digits):
                    parts.extend((digits[:point], '.', digits[point:]))
                elif self.force_point:
                    parts.extend((digits, '.0'))
                else:
                    parts.append(digits)

        return ''.join(parts)


# Positional output with the tokens 0, Infinity and NaN
DefaultFormat = TextFormat()


#
# Decimal digit strings of huge integers
#

def _int_to_digits(value, width=0):
    '''Return the decimal digits of a non-negative integer, zero-padded on the left to
    width.'''
    if value.bit_length() <= SPLIT_BITS:
        return str(value).rjust(width, '0')
    half = (value.bit_length() * LOG10_2 // LOG10_2_SCALE) // 2
    high, low = divmod(value, 10 ** half)
    return _int_to_digits(high, width - half) + _int_to_digits(low, half)


def _digits_to_int(digits):
    '''Return the integer value of a string of decimal digits.'''
    if len(digits) <= SPLIT_DIGITS:
        return int(digits)
    half = len(digits) // 2
    return _digits_to_int(digits[:-half]) * 10 ** half + _digits_to_int(digits[-half:])


def _decimal_exponent(number):
    '''Return an estimate, possibly one too small or too large, of floor(log10(|number|))
    for a normal number.'''
    return (number.exponent - 1) * LOG10_2 // LOG10_2_SCALE


def _exact_ratio(number):
    '''Return a pair (n, d) of positive integers with n / d the magnitude of the normal
    number.'''
    exp = number.exponent_int()
    if exp >= 0:
        return number.significand << exp, 1
    return number.significand, 1 << -exp


#
# Decimal to binary
#

def parse_decimal(text, precision=None, status=None):
    '''Convert decimal text to a number correctly rounded to precision bits, ties to even.

    The accepted syntax is an optional sign followed by digits with an optional decimal
    point and optional exponent, or "inf", "infinity" or "nan" in any case.  A missing or
    non-positive precision means DEFAULT_PRECISION.  Raises ParseError if the text is
    malformed.
    '''
    if not isinstance(text, str):
        raise TypeError('text must be a string')
    if precision is None or (isinstance(precision, int) and precision <= 0):
        precision = DEFAULT_PRECISION
    check_precision(precision)

    match = DEC_FLOAT_REGEX.fullmatch(text)
    if match is None:
        raise ParseError(f'invalid decimal number: {text!r}', text)

    sign = text[0] == '-'

    # Decimal float?
    if match.group(2) is not None:
        # Read the optional exponent first
        exponent = 0
        if match.group(7) is not None:
            exp_str = match.group(7)
            exponent = _digits_to_int(exp_str.lstrip('+-'))
            if exp_str[0] == '-':
                exponent = -exponent

        # If a fraction was specified, the integer and fraction parts are in groups 3 and
        # 4.  If no fraction was specified the integer is in group 5.
        if match.group(3) is None:
            int_str, frac_str = match.group(5), ''
        else:
            int_str, frac_str = match.group(3), match.group(4)

        # Combine them into sig_str removing all insignificant zeroes.  Viewing that as an
        # integer, calculate the exponent adjustment to the true decimal point.
        sig_str = int_str + frac_str.rstrip('0')
        exponent += len(int_str) - len(sig_str)
        sig_str = sig_str.lstrip('0') or '0'

        # Now the value is significand * 10^exponent
        return decimal_to_binary(sign, _digits_to_int(sig_str), exponent, precision, status)

    # Group 8 matches infinities
    if match.group(8) is not None:
        return make_infinity(sign)

    return make_nan()


def decimal_to_binary(sign, significand, exponent, precision, status=None):
    '''Return the correctly-rounded binary value of

         (-1)^sign * significand * 10^exponent
    '''
    check_precision(precision)
    # Exponent doesn't matter if zero
    if significand == 0:
        return make_zero(sign)

    # The value is significand * 5^pow5 * 2^exponent
    pow5 = exponent
    if pow5 < 0:
        # Cancel factors of five so an exact quotient is seen to be one
        while pow5 and significand % 5 == 0:
            significand //= 5
            pow5 += 1

    if abs(pow5) <= max(EXACT_POW5_LIMIT, precision):
        result = _exact_decimal(significand, pow5, precision, status)
    else:
        result = _bounded_decimal(significand, pow5, precision, status)

    result = scaleb(result, exponent)
    return result._replace(sign=sign)


def _exact_decimal(significand, pow5, precision, status):
    '''Return significand * 5^pow5 correctly rounded using exact integer arithmetic.'''
    if pow5 >= 0:
        return normalize(False, 0, significand * 5 ** pow5, precision, status)
    return div(from_int(significand), from_int(5 ** -pow5), precision, status)


def _pow5_bounds(N, bits):
    '''Return a triple (lo, hi, shift) such that lo * 2^shift <= 5^N <= hi * 2^shift, where
    hi has at most bits bits.'''
    lo = hi = 1
    shift = 0
    for bit in bin(N)[2:]:
        lo, hi, shift = lo * lo, hi * hi, shift * 2
        if bit == '1':
            lo, hi = lo * 5, hi * 5
        excess = hi.bit_length() - bits
        if excess > 0:
            lo >>= excess
            hi = -(-hi >> excess)
            shift += excess
    return lo, hi, shift


def _bounded_decimal(significand, pow5, precision, status):
    '''Return significand * 5^pow5 correctly rounded, for large |pow5|.

    5^|pow5| is bounded from below and above at increasing precisions until both bounds of
    the result round to the same number.  The true value is never exactly half-way between
    two representable numbers as it is not a dyadic rational of that size.'''
    sig = from_int(significand)
    bits = precision + 64
    while True:
        lo, hi, shift = _pow5_bounds(abs(pow5), bits)
        lo = normalize(False, shift, lo, max(PREC_MIN, lo.bit_length()))
        hi = normalize(False, shift, hi, max(PREC_MIN, hi.bit_length()))
        if pow5 > 0:
            low, high = mul(sig, lo, precision), mul(sig, hi, precision)
        else:
            low, high = div(sig, hi, precision), div(sig, lo, precision)
        if low == high:
            raise_flags(status, Flags.INEXACT)
            return low
        bits += bits // 2
        logger.debug('decimal conversion: retrying at %d bits', bits)


#
# Binary to decimal
#

def _check_digits(digits, minimum):
    if not isinstance(digits, int) or isinstance(digits, bool):
        raise TypeError('digits must be an integer')
    if digits < minimum:
        raise ValueError(f'digits must be at least {minimum}')


def _fixed_digits(number, count):
    '''Return a pair (exponent, digits) where digits is a string of exactly count decimal
    digits, correctly rounded (ties to even), and exponent is that of the leading digit.'''
    num, den = _exact_ratio(number)
    ceiling = 10 ** count
    floor = ceiling // 10
    exponent = _decimal_exponent(number)
    while True:
        shift = count - 1 - exponent
        if shift >= 0:
            quotient, remainder = divmod(num * 10 ** shift, den)
            scale = den
        else:
            scale = den * 10 ** -shift
            quotient, remainder = divmod(num, scale)
        # Correct a wrong exponent estimate
        if quotient >= ceiling:
            exponent += 1
        elif quotient < floor:
            exponent -= 1
        else:
            break

    # Round to nearest, ties to even
    remainder *= 2
    if remainder > scale or (remainder == scale and quotient & 1):
        quotient += 1
        if quotient == ceiling:
            quotient = floor
            exponent += 1

    return exponent, _int_to_digits(quotient)


def _shortest_digits(number):
    '''Returns a pair (exponent, digits): the shortest string of decimal digits that reads
    back as the number at its working precision, and the exponent of the leading digit.

    See "How to Print Floating-Point Numbers Accurately" by Steele and White, in
    particular Table 3.  This is an optimized implementation of their algorithm.
    '''
    e_p = number.exponent_int()
    R = number.significand << max(0, e_p)
    M = 1 << max(0, e_p)
    S = 1 << max(0, -e_p)

    # Scale by our estimate of the decimal exponent so that the loops below only have to
    # correct it
    exponent = _decimal_exponent(number)
    if exponent >= 0:
        S *= 10 ** (exponent + 1)
    else:
        scale = 10 ** -(exponent + 1)
        R *= scale
        M *= scale

    # This loop is for negative exponents H. It scales R until divmod() delivers the
    # first significant digit.
    while R * 10 < S:
        exponent -= 1
        R *= 10
        M *= 10

    # This loop is for positive exponents H.  It scales S until digits can be reliably
    # delivered.
    while 2 * R + M >= 2 * S:
        S *= 10
        exponent += 1

    # Now the arithmetic value is R / S.  M is the value of one high-ulp, and hence is
    # always scaled alongside the significand remainder R.  A low-ulp is almost always the
    # same size as a high-ulp; the exception is when our value is on an exponent boundary
    # in which case a low-ulp is half the size of a high-ulp.  M is used to detect when we
    # can stop generating digits.  When the remainder R is strictly less than half a
    # low-ulp, or when it is strictly greater than S less half a high-ulp we can stop
    # generating digits.  At that point round-to-nearest of the output is guaranteed to
    # give our target value.  The 'strictly' condition can be removed if we are even,
    # because then round-to-even will round correctly.
    low_shift = 2 if number.significand == 1 << (number.precision - 1) else 1
    is_even = (number.significand & 1) == 0

    digits = bytearray()
    while True:
        U, R = divmod(R * 10, S)
        M *= 10
        # If we have equality with M then the decimal we output is exactly half-an-ulp
        # from the target value.  If the target value is even then it will be rounded to
        # and we can stop.
        low = (R << low_shift) < M + is_even
        high = 2 * (S - R) < M + is_even
        if low or high:
            break
        digits.append(U + 48)

    if low and not high:
        pass
    elif high and not low:
        U += 1
    elif 2 * R < S:
        pass
    elif 2 * R > S:
        U += 1
    else:
        U += (U & 1)
    digits.append(U + 48)

    return exponent, digits.decode()


def to_fixed(number, digits, text_format=None):
    '''Return the number as text with exactly digits significant digits, correctly rounded
    with ties to even.'''
    _check_digits(digits, 1)
    text_format = text_format or DefaultFormat
    if number.tag != Tag.NORMAL:
        return text_format.format_special(number)
    exponent, digit_str = _fixed_digits(number, digits)
    return text_format.format_decimal(number.sign, exponent, digit_str)


def to_fraction(number, digits, text_format=None):
    '''Return the number as positional text with exactly digits digits after the decimal
    point, correctly rounded with ties to even.'''
    _check_digits(digits, 0)
    text_format = text_format or DefaultFormat
    if number.tag != Tag.NORMAL:
        return text_format.format_special(number)

    num, den = _exact_ratio(number)
    quotient, remainder = divmod(num * 10 ** digits, den)
    remainder *= 2
    if remainder > den or (remainder == den and quotient & 1):
        quotient += 1

    text = _int_to_digits(quotient, digits + 1)
    point = len(text) - digits
    int_part, frac_part = text[:point], text[point:]
    if text_format.rstrip_zeroes:
        frac_part = frac_part.rstrip('0')
    if frac_part:
        body = f'{int_part}.{frac_part}'
    elif text_format.force_point:
        body = f'{int_part}.0'
    else:
        body = int_part
    return text_format.leading_sign(number.sign) + body


def to_free(number, precision, text_format=None):
    '''Return the shortest decimal text that reads back as the number rounded (or padded)
    to precision bits.'''
    check_precision(precision)
    text_format = text_format or DefaultFormat
    if number.tag != Tag.NORMAL:
        return text_format.format_special(number)
    if number.precision != precision:
        number = normalize(number.sign, number.exponent_int(), number.significand,
                           precision)
    exponent, digits = _shortest_digits(number)
    return text_format.format_decimal(number.sign, exponent, digits)
