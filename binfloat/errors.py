#
# Exceptions and status flags of the binary floating-point engine
#
# (c) Neil Booth 2007-2021.  All rights reserved.
#

from enum import IntFlag

__all__ = ('Flags', 'BinFloatError', 'UseAfterClose', 'ParseError',
           'StrictCompareViolation', 'ContextMismatch', 'AllocationFailure')


# Operation status flags.  Operations never raise for these; they are accumulated on
# whatever status object the caller passes, typically a Context.
class Flags(IntFlag):
    INVALID     = 0x01
    DIV_BY_ZERO = 0x02
    INEXACT     = 0x10


class BinFloatError(Exception):
    '''All exceptions raised by this package subclass from this.

    Exceptions derived from BinFloatError must have a linear inheritance from it and
    through the first base class if an exception has multiple base classes.  See, for
    example, UseAfterClose.
    '''


class UseAfterClose(BinFloatError, RuntimeError):
    '''Raised on any use of a Value or Context that has been destroyed.  This is a caller
    bug; there is no way to recover the lost value.'''


class ParseError(BinFloatError, ValueError):
    '''Raised when text is not a valid decimal floating point number.'''

    @property
    def text(self):
        return self.args[1]


class StrictCompareViolation(BinFloatError, ArithmeticError):
    '''Raised when compare() or compare_abs() is given a NaN operand.  Use compare_full()
    for an ordering that includes NaNs.'''

    @property
    def operands(self):
        return self.args[1]


class ContextMismatch(BinFloatError, ValueError):
    '''Raised when the operands of an operation belong to different Contexts.'''


class AllocationFailure(BinFloatError, MemoryError):
    '''Raised when a Context cannot allocate another Value.'''
