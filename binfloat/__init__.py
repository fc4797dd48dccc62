#
# An implementation of arbitrary-precision binary floating-point arithmetic
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

from .arith import add, sub, mul, div, rem, divrem, sqrt, round_to
from .compare import compare, compare_abs, compare_full
from .context import Context, Value
from .conversion import (
    TextFormat, DefaultFormat, parse_decimal, to_fixed, to_fraction, to_free,
    DEFAULT_PRECISION,
)
from .errors import (
    Flags, BinFloatError, UseAfterClose, ParseError, StrictCompareViolation,
    ContextMismatch, AllocationFailure,
)
from .number import (
    Tag, Number, Status, from_int, from_float, to_float, LIMB_BITS, PREC_MIN, PREC_MAX,
)
from .transcendental import (
    Constant, ConstantCache, exp, ln, pow, sin, cos, tan, asin, acos, atan,
    const_pi, const_ln2, GUARD_BITS, ZIV_MAX_ROUNDS, INT_POW_MAX_BITS,
)

__all__ = ('Context', 'Value', 'Number', 'Tag', 'Status', 'Constant', 'ConstantCache',
           'Flags', 'BinFloatError', 'UseAfterClose', 'ParseError',
           'StrictCompareViolation', 'ContextMismatch', 'AllocationFailure',
           'TextFormat', 'DefaultFormat',
           'add', 'sub', 'mul', 'div', 'rem', 'divrem', 'sqrt', 'round_to',
           'compare', 'compare_abs', 'compare_full',
           'exp', 'ln', 'pow', 'sin', 'cos', 'tan', 'asin', 'acos', 'atan',
           'const_pi', 'const_ln2',
           'parse_decimal', 'to_fixed', 'to_fraction', 'to_free',
           'from_int', 'from_float', 'to_float',
           'DEFAULT_PRECISION', 'GUARD_BITS', 'LIMB_BITS', 'PREC_MIN', 'PREC_MAX',
           'ZIV_MAX_ROUNDS', 'INT_POW_MAX_BITS')
