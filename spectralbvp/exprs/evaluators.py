r"""@package spectralbvp.exprs.evaluators

Base classes for point evaluators of numexpr.FunctionRepresentation sub
classes.

Evaluators are light-weight snapshots of a function representation which may
use either fast floating point operations or `mpmath` arbitrary precision
arithmetics. They cache interim results (like the values of all basis
functions at a point) so that a function and its derivatives can be evaluated
at the same point cheaply.
"""

from abc import ABCMeta, abstractmethod

import numpy as np
from mpmath import mp


__all__ = [
    "EvaluatorBase",
]


class _Evaluator(object):
    r"""Base class for all evaluator classes.

    Evaluators are expected to be callable, which should evaluate the function
    and return a numeric value. They also have a `diff(x, n=1)` method
    evaluating the n'th derivative at the point `x` and a `function(n=0)`
    method returning a callable for the n'th derivative.

    Each evaluator has a `domain` attribute, which is populated with the
    original function's domain at initialization time.
    """
    def __init__(self, expr):
        r"""Base class init for evaluators.

        @param expr
            The function representation for which this evaluator is created.
        """
        ## Domain of the function this evaluator was created for.
        self.domain = expr.domain

    def store_domain(self, obj):
        r"""Store the domain of this evaluator on the given object."""
        obj.domain = self.domain


class EvaluatorBase(_Evaluator, metaclass=ABCMeta):
    r"""Base class for custom evaluator classes.

    Sub classes need to implement only _x_changed() and _eval(). Evaluation at
    a point `x` often requires interim results that are usable for computing
    derivatives too. This class intercepts the evaluation (#__call__()) and
    diff() calls to check whether `x` has changed. If it has, the sub class
    can recompute its interim results in _x_changed(), which is skipped if
    `x` is the same as in the previous call. The requested value is then
    computed in \ref _eval() "_eval(n=0)" using the protected member
    EvaluatorBase._x.
    """
    def __init__(self, expr, use_mp):
        super(EvaluatorBase, self).__init__(expr)
        ## Boolean indicating if computation should use `mpmath` (if `True`)
        ## or floating point operations.
        self.use_mp = use_mp
        ## Either `mpmath.mp` or `mpmath.fp`, depending on `use_mp`.
        self.ctx = expr.mpmath_context(use_mp)
        ## Converts scalar values to floats or `mp.mpf`.
        self.converter = mp.mpf if use_mp else float
        ## Point at which the next evaluation(s) should compute their values.
        self._x = None

    def __call__(self, x):
        r"""Compute the result of this evaluator at a given point x."""
        return self.diff(x, 0)

    def diff(self, x, n=1):
        r"""Evaluate the n'th derivative of the function at a point x."""
        self.set_x(x)
        return self._eval(n)

    def set_x(self, x):
        r"""Check if x has changed since the last call and trigger an update."""
        if isinstance(x, np.ndarray) or isinstance(self._x, np.ndarray):
            if np.array_equal(x, self._x):
                return False
        elif self._x is not None and self._x == x:
            return False
        self._x_changed(x)
        self._x = x
        return True

    @abstractmethod
    def _x_changed(self, x):
        r"""Triggered to signal evaluation at x is about to happen.

        This is skipped if the previous evaluation was at `x` too, so that sub
        classes can recompute reusable interim results here.
        """
        pass

    @abstractmethod
    def _eval(self, n=0):
        r"""Compute the n'th derivative using previously cached interim results."""
        pass

    def function(self, n=0):
        r"""Return a callable for the n'th derivative."""
        fn = lambda x: self.diff(x, n)
        self.store_domain(fn)
        return fn
