#
# Contexts and the mutable Value cells they own
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

import logging

from . import arith, conversion, transcendental
from .compare import compare as _compare, compare_abs as _compare_abs, compare_full as _compare_full
from .errors import Flags, UseAfterClose, ContextMismatch, AllocationFailure
from .number import Tag, make_zero, from_float, from_int, to_float

__all__ = ('Context', 'Value')

logger = logging.getLogger(__name__)


class Context:
    '''An arena owning the Values created through it.  Carries the status flags raised by
    operations on its Values and a cache of constants.

    Destroying a Context invalidates every Value it ever created.  A Context is not
    thread-safe; callers must serialize access to it.
    '''

    __slots__ = ('flags', 'cache', 'max_values', '_numbers', '_generations', '_free',
                 '_closed')

    def __init__(self, *, max_values=None):
        '''max_values, if not None, bounds the number of live Values.'''
        if max_values is not None:
            if not isinstance(max_values, int) or isinstance(max_values, bool):
                raise TypeError('max_values must be an integer')
            if max_values < 1:
                raise ValueError('max_values must be positive')
        self.flags = Flags(0)
        self.cache = transcendental.ConstantCache()
        self.max_values = max_values
        # Slot contents; None marks a free slot
        self._numbers = []
        # Bumped each time a slot is released so stale handles can be detected
        self._generations = []
        self._free = []
        self._closed = False
        logger.debug('created context %#x', id(self))

    def __enter__(self):
        self._check_open()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.destroy()

    def __len__(self):
        '''The number of live Values.'''
        return len(self._numbers) - len(self._free)

    def __repr__(self):
        if self._closed:
            return '<Context closed>'
        return f'<Context values={len(self)} flags={self.flags!r}>'

    @property
    def is_closed(self):
        return self._closed

    def destroy(self):
        '''Release all Values and the constant cache.  Calling this again does nothing.'''
        if self._closed:
            return
        count = len(self)
        self._numbers.clear()
        self._generations.clear()
        self._free.clear()
        self.cache.clear()
        self._closed = True
        logger.debug('destroyed context %#x with %d live values', id(self), count)

    close = destroy

    def clear_cache(self):
        '''Drop memoized constants.  Results are unaffected.'''
        self._check_open()
        self.cache.clear()
        logger.debug('cleared constant cache of context %#x', id(self))

    def clear_flags(self):
        self._check_open()
        self.flags = Flags(0)

    def create_value(self):
        '''Return a new Value initialized to +0.'''
        self._check_open()
        if self.max_values is not None and len(self) >= self.max_values:
            raise AllocationFailure(f'context limited to {self.max_values:,d} values')
        zero = make_zero(False)
        try:
            if self._free:
                index = self._free.pop()
                self._numbers[index] = zero
            else:
                index = len(self._numbers)
                self._numbers.append(zero)
                self._generations.append(0)
        except MemoryError as e:
            raise AllocationFailure('out of memory creating a value') from e
        return Value(self, index, self._generations[index])

    def from_float(self, value):
        '''Return a new Value holding the exact value of a float.'''
        return self._new_value(Value.set_float, value)

    def from_int(self, value):
        '''Return a new Value holding the exact value of an integer.'''
        return self._new_value(Value.set_int, value)

    def from_string(self, text, precision=None):
        '''Return a new Value holding decimal text rounded to precision bits.'''
        return self._new_value(Value.set_string, text, precision)

    def _new_value(self, setter, *args):
        result = self.create_value()
        try:
            setter(result, *args)
        except Exception:
            result.destroy()
            raise
        return result

    # Slot management for Value

    def _check_open(self):
        if self._closed:
            raise UseAfterClose('context has been destroyed')

    def _check(self, value):
        self._check_open()
        index = value._index
        if self._generations[index] != value._generation or self._numbers[index] is None:
            raise UseAfterClose('value has been destroyed')
        return index

    def _load(self, value):
        return self._numbers[self._check(value)]

    def _store(self, value, number):
        self._numbers[self._check(value)] = number

    def _release(self, value):
        if self._closed:
            return
        index = value._index
        if self._generations[index] != value._generation or self._numbers[index] is None:
            return
        self._numbers[index] = None
        self._generations[index] += 1
        self._free.append(index)


class Value:
    '''A mutable cell holding a Number, owned by a Context.

    Operations take the result precision in bits explicitly.  They write into the out
    Value if given, otherwise into a new Value of the same Context, and return it.
    '''

    __slots__ = ('_context', '_index', '_generation')

    def __init__(self, context, index, generation):
        '''Values are created by Context.create_value(), not directly.'''
        self._context = context
        self._index = index
        self._generation = generation

    @property
    def context(self):
        return self._context

    @property
    def number(self):
        '''The current value as an immutable Number.'''
        return self._context._load(self)

    @property
    def precision(self):
        '''The working precision of the current value.'''
        return self.number.precision

    @property
    def is_closed(self):
        context = self._context
        return (context.is_closed or context._generations[self._index] != self._generation
                or context._numbers[self._index] is None)

    def destroy(self):
        '''Release the Value.  Calling this again does nothing.'''
        self._context._release(self)

    close = destroy

    def _set(self, number):
        self._context._store(self, number)
        return self

    def _peer(self, other):
        '''Return the Number held by other, which must belong to our Context.'''
        if not isinstance(other, Value):
            raise TypeError(f'expected a Value, got {type(other).__name__}')
        if other._context is not self._context:
            raise ContextMismatch('values belong to different contexts')
        return other.number

    def _check_output(self, out):
        if out is not None:
            self._peer(out)

    def _deliver(self, number, out):
        '''Store a result in out, or a new Value if out is None, and return it.'''
        if out is None:
            out = self._context.create_value()
        return out._set(number)

    def _unary(self, operation, precision, out):
        number = self.number
        self._check_output(out)
        return self._deliver(operation(number, precision, self._context), out)

    def _binary(self, operation, other, precision, out):
        lhs, rhs = self.number, self._peer(other)
        self._check_output(out)
        return self._deliver(operation(lhs, rhs, precision, self._context), out)

    def _transcendental(self, function, precision, out):
        number = self.number
        self._check_output(out)
        context = self._context
        return self._deliver(function(number, precision, context, context.cache), out)

    #
    # Setting
    #

    def set_float(self, value):
        '''Set to the exact value of a float, with a working precision of 53 bits.'''
        return self._set(from_float(value))

    def set_int(self, value):
        '''Set to the exact value of an integer.'''
        return self._set(from_int(value))

    def set_string(self, text, precision=None):
        '''Set to decimal text rounded to precision bits (DEFAULT_PRECISION if None or not
        positive).  Raises ParseError if the text is malformed, leaving the Value
        unchanged.'''
        self._context._check(self)
        return self._set(conversion.parse_decimal(text, precision, self._context))

    def set(self, src):
        '''Set to an identical copy of src.'''
        return self._set(self._peer(src))

    def set_constant(self, which, precision):
        '''Set to a named Constant correctly rounded to precision bits.'''
        context = self._context
        context._check(self)
        return self._set(transcendental.constant(which, precision, context, context.cache))

    def set_pi(self, precision):
        return self.set_constant(transcendental.Constant.PI, precision)

    def set_ln2(self, precision):
        return self.set_constant(transcendental.Constant.LN2, precision)

    def negate(self):
        '''Flip the sign in place.  NaNs are unchanged.'''
        return self._set(arith.neg(self.number))

    def round(self, precision):
        '''Round in place to precision bits.  Precision is never increased.'''
        return self._set(arith.round_to(self.number, precision, self._context))

    #
    # Queries
    #

    def is_finite(self):
        return self.number.is_finite()

    def is_nan(self):
        return self.number.tag == Tag.NAN

    def is_zero(self):
        return self.number.tag == Tag.ZERO

    def compare(self, other):
        '''Return -1, 0 or 1.  Raises StrictCompareViolation if either is a NaN.'''
        return _compare(self.number, self._peer(other))

    def compare_abs(self, other):
        return _compare_abs(self.number, self._peer(other))

    def compare_full(self, other):
        '''Return -1, 0 or 1 in a total order where NaNs come last.'''
        return _compare_full(self.number, self._peer(other))

    def equal(self, other):
        return self.compare(other) == 0

    def less_than(self, other):
        return self.compare(other) < 0

    def less_equal(self, other):
        return self.compare(other) <= 0

    def greater_than(self, other):
        return self.compare(other) > 0

    def greater_equal(self, other):
        return self.compare(other) >= 0

    def __lt__(self, other):
        if not isinstance(other, Value):
            return NotImplemented
        return self.less_than(other)

    def __le__(self, other):
        if not isinstance(other, Value):
            return NotImplemented
        return self.less_equal(other)

    def __gt__(self, other):
        if not isinstance(other, Value):
            return NotImplemented
        return self.greater_than(other)

    def __ge__(self, other):
        if not isinstance(other, Value):
            return NotImplemented
        return self.greater_equal(other)

    #
    # Arithmetic
    #

    def add(self, other, precision, out=None):
        return self._binary(arith.add, other, precision, out)

    def sub(self, other, precision, out=None):
        return self._binary(arith.sub, other, precision, out)

    def mul(self, other, precision, out=None):
        return self._binary(arith.mul, other, precision, out)

    def div(self, other, precision, out=None):
        return self._binary(arith.div, other, precision, out)

    def rem(self, other, precision, out=None):
        '''Remainder of truncating division; it has the sign of self.'''
        return self._binary(arith.rem, other, precision, out)

    def divrem(self, other, precision, quotient=None, remainder=None):
        '''Return a pair (quotient, remainder) of Values.'''
        lhs, rhs = self.number, self._peer(other)
        self._check_output(quotient)
        self._check_output(remainder)
        q, r = arith.divrem(lhs, rhs, precision, self._context)
        return self._deliver(q, quotient), self._deliver(r, remainder)

    def sqrt(self, precision, out=None):
        return self._unary(arith.sqrt, precision, out)

    def pow(self, exponent, precision, out=None):
        '''Raise to the power exponent, another Value.'''
        base, power = self.number, self._peer(exponent)
        self._check_output(out)
        context = self._context
        return self._deliver(transcendental.pow(base, power, precision, context,
                                                context.cache), out)

    def exp(self, precision, out=None):
        return self._transcendental(transcendental.exp, precision, out)

    def ln(self, precision, out=None):
        return self._transcendental(transcendental.ln, precision, out)

    def sin(self, precision, out=None):
        return self._transcendental(transcendental.sin, precision, out)

    def cos(self, precision, out=None):
        return self._transcendental(transcendental.cos, precision, out)

    def tan(self, precision, out=None):
        return self._transcendental(transcendental.tan, precision, out)

    def asin(self, precision, out=None):
        return self._transcendental(transcendental.asin, precision, out)

    def acos(self, precision, out=None):
        return self._transcendental(transcendental.acos, precision, out)

    def atan(self, precision, out=None):
        return self._transcendental(transcendental.atan, precision, out)

    #
    # Conversion
    #

    def to_float(self):
        '''Return the nearest float.'''
        return to_float(self.number)

    def to_fixed(self, digits, text_format=None):
        '''Return decimal text with exactly digits significant digits.'''
        return conversion.to_fixed(self.number, digits, text_format)

    def to_fraction(self, digits, text_format=None):
        '''Return decimal text with exactly digits digits after the point.'''
        return conversion.to_fraction(self.number, digits, text_format)

    def to_free(self, precision=None, text_format=None):
        '''Return the shortest decimal text that reads back as the value at precision bits,
        by default its working precision.'''
        number = self.number
        if precision is None:
            precision = number.precision or conversion.DEFAULT_PRECISION
        return conversion.to_free(number, precision, text_format)

    def __float__(self):
        return self.to_float()

    def __str__(self):
        return self.to_free()

    def __repr__(self):
        if self.is_closed:
            return '<Value closed>'
        return f'<Value {self.to_free()} precision={self.precision}>'
