r"""@package spectralbvp.exprs.numexpr

Base of the function representation system.

A function representation is a 'self aware' numeric approximation of a
function on a domain, which can produce exact derivatives of itself and can be
combined with numbers and other representations on the same domain. All
representations are immutable: every operation creates a new object.

Evaluation is possible directly via evaluate() (or calling the object), which
uses fast vectorized floating point operations. For point-wise evaluation
using either floating point or `mpmath` arbitrary precision arithmetics,
create an *evaluator* via evaluator().

~~~.py
f = ChebyshevFunction.from_function(np.exp, domain=(0, 1))
g = f * f + 1
print("g(.5) =", g(.5))
ev = g.evaluator(use_mp=True)
print("g'(.5) =", ev.diff(mp.mpf('0.5')))
~~~
"""

from contextlib import contextmanager
from abc import ABCMeta, abstractmethod
import numbers

from mpmath import mp, fp


__all__ = [
    "FunctionRepresentation",
]


class FunctionRepresentation(metaclass=ABCMeta):
    """Parent class for numeric function representations.

    Sub classes need to implement:
        * _expr_str() returning a representation of the function and its
          settings
        * _evaluator() creating callable evaluator objects
        * evaluate(), differentiate(), compose(), norm(), add() and
          multiply()

    The arithmetic operators `+`, `-`, `*`, `/` and unary `-` are mapped onto
    add() and multiply(). Calling the object with a number or array evaluates
    it, while calling it with another representation composes the two.
    """
    # Make NumPy scalars and arrays defer to our reflected operators.
    __array_ufunc__ = None

    def __init__(self, domain, name=None):
        r"""Base class init for function representations.

        Args:
            domain: (2-tuple/list)
                Interval `(a, b)` on which the function is defined.
            name: (string, optional)
                Name for the function. Can be useful to label e.g. solutions
                of a system. By default, the class name is used.
        """
        a, b = map(float, domain)
        if not a < b:
            raise ValueError("Invalid domain: %s" % (domain,))
        self._domain = (a, b)
        self.__name = name if name else self.__class__.__name__

    @property
    def domain(self):
        r"""Domain on which this function is defined."""
        return self._domain

    @property
    def name(self):
        r"""Name given to this instance of the function."""
        return self.__name

    def __repr__(self):
        r"""Return a string representing the function and its data.

        This string may become relatively large for series expansions with
        many coefficients.
        """
        cls = self.__class__.__name__
        return "<%s(%s) on [%r, %r]>" % (cls, self._expr_str(), *self.domain)

    def __call__(self, x):
        if isinstance(x, FunctionRepresentation):
            return self.compose(x)
        return self.evaluate(x)

    def evaluator(self, use_mp=False):
        r"""Create a point evaluator for the function.

        Args:
            use_mp: Boolean indicating whether the evaluator should use
                `mpmath` math operations or standard (and faster) floating
                point operations.
        """
        return self._evaluator(use_mp=use_mp)

    def store_domain(self, obj):
        r"""Store the domain of this function on the given object."""
        obj.domain = self.domain

    @abstractmethod
    def _expr_str(self):
        """String representing the function with any parameter values.

        For example, for a series this could be:

            "sum a_n T_n(x), where a_n=[0.3, 0.5]"
        """
        pass

    @abstractmethod
    def _evaluator(self, use_mp):
        r"""Child classes need to implement this and create their evaluator here."""
        pass

    @abstractmethod
    def evaluate(self, x):
        r"""Evaluate at a point or an array of points inside the domain."""
        pass

    @abstractmethod
    def differentiate(self, order=1):
        r"""Return the derivative of the given order as a new object."""
        pass

    @abstractmethod
    def compose(self, inner):
        r"""Return the composition `self(inner(x))` defined on `inner.domain`."""
        pass

    @abstractmethod
    def norm(self, p=2):
        r"""Return the L^p norm of the function on its domain."""
        pass

    @abstractmethod
    def add(self, other):
        r"""Return the sum with a number or a function on the same domain."""
        pass

    @abstractmethod
    def multiply(self, other):
        r"""Return the product with a number or a function on the same domain."""
        pass

    def subtract(self, other):
        r"""Return the difference with a number or a function on the same domain."""
        return self.add(-other)

    def __add__(self, other):
        if not self._is_operand(other):
            return NotImplemented
        return self.add(other)

    __radd__ = __add__

    def __sub__(self, other):
        if not self._is_operand(other):
            return NotImplemented
        return self.subtract(other)

    def __rsub__(self, other):
        if not self._is_operand(other):
            return NotImplemented
        return (-self).add(other)

    def __mul__(self, other):
        if not self._is_operand(other):
            return NotImplemented
        return self.multiply(other)

    __rmul__ = __mul__

    def __truediv__(self, other):
        if not isinstance(other, numbers.Number):
            return NotImplemented
        return self.multiply(1.0 / other)

    def __neg__(self):
        return self.multiply(-1.0)

    def __pos__(self):
        return self

    @staticmethod
    def _is_operand(other):
        return isinstance(other, (numbers.Number, FunctionRepresentation))

    @classmethod
    def mpmath_context(cls, use_mp):
        r"""Return the `mpmath.mp` or `mpmath.fp` contexts."""
        return mp if use_mp else fp

    @classmethod
    @contextmanager
    def context(cls, use_mp, dps):
        r"""Convenience function to be used as context manager.

        This will automatically choose the correct context (`mp` or `fp`)
        based on the choice of `use_mp` and configure the desired decimal
        places.

        Args:
            use_mp: Whether to use `mp` (if `True`) or `fp`.
            dps:    Decimal places to use in `mp` computations.
        """
        if not use_mp:
            yield fp
            return
        with mp.workdps(dps or mp.dps):
            yield mp
