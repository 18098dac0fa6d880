r"""@package spectralbvp.ndsolve.problem

Definition of a (nonlinear) boundary value problem with unknown parameters.

A problem consists of a differential operator `op(x, u_1, ..., u_m, p_1, ...,
p_k)`, the domain, conditions at the left and right end (and/or anywhere
else) and optionally an initial guess for the functions and parameters. The
number of parameters is inferred from the signature of `op` unless given
explicitly.

@b Examples

```
    # Newton's law of cooling with unknown time scale T:
    #   y' = -T (y - 15) on [0, 1], y(0) = 37, y(1) = 20
    problem = BVP(
        op=lambda x, y, T: y.diff() + T*(y - 15),
        domain=(0, 1),
        lbc=lambda y, T: y - 37,
        rbc=lambda y, T: y - 20,
        init_params=[1000],
    )
```
"""

import inspect
import numbers

import numpy as np

from .bcs import BoundaryCondition, PointCondition


__all__ = [
    "BVP",
]


class BVP(object):
    r"""Boundary value problem for `m` functions and `k` scalar parameters.

    All attributes are read-only after construction.
    """
    def __init__(self, op, domain=(-1, 1), lbc=None, rbc=None, bcs=(),
                 init=None, init_params=None, num_functions=None,
                 num_params=None):
        r"""Create the problem.

        @param op
            Callable `op(x, u_1, ..., u_m, p_1, ..., p_k)` returning the
            residual of the differential equation(s). It receives the
            collocation points `x` and array-like samples (see
            samples.FunctionSample) of the unknowns. For `m > 1`, it must
            return a list of `m` residuals.
        @param domain
            Interval `(a, b)` with `a < b`.
        @param lbc,rbc
            Conditions at the left/right end of the domain. Either a callable
            `f(u_1, ..., u_m, p_1, ..., p_k)` returning the residual(s), a
            bcs.BoundaryCondition, or a number `c` meaning `u_i = c` for all
            functions.
        @param bcs
            Further conditions (bcs.BoundaryCondition objects), e.g. interior
            point conditions or bcs.FunctionalCondition objects.
        @param init
            Initial guess for the function(s). Each may be a callable, a
            constant or a function representation. A list is used for
            multiple functions. If not given (or `None`), a straight line
            fitted to the conditions is used.
        @param init_params
            Initial guess for the parameters. Zero if not given.
        @param num_functions
            Number of unknown functions. Default is the length of `init` if
            that is a list/tuple or `1` otherwise.
        @param num_params
            Number of unknown parameters. By default, this is inferred from
            the number of positional arguments of `op`.
        """
        if not callable(op):
            raise TypeError("Operator must be callable.")
        a, b = map(float, domain)
        if not a < b:
            raise ValueError("Invalid domain: [%r, %r]" % (a, b))
        if num_functions is None:
            num_functions = len(init) if isinstance(init, (list, tuple)) else 1
        num_functions = int(num_functions)
        if num_functions < 1:
            raise ValueError("Need at least one unknown function.")
        if num_params is None:
            num_params = self._infer_num_params(op, num_functions)
        num_params = int(num_params)
        if num_params < 0:
            raise ValueError("Invalid number of parameters: %d" % num_params)
        self._op = op
        self._domain = (a, b)
        self._m = num_functions
        self._k = num_params
        self._lbc = self._to_condition(lbc, a)
        self._rbc = self._to_condition(rbc, b)
        bcs = tuple(bcs)
        for bc in bcs:
            if not isinstance(bc, BoundaryCondition):
                raise TypeError("Not a boundary condition: %r" % (bc,))
        self._bcs = bcs
        self._init = self._prepare_init(init)
        self._init_params = self._prepare_init_params(init_params)

    @staticmethod
    def _infer_num_params(op, m):
        r"""Count positional arguments of `op` beyond `x` and the functions."""
        try:
            sig = inspect.signature(op)
        except (TypeError, ValueError):
            raise ValueError("Cannot inspect operator signature; please "
                             "specify `num_params` explicitly.")
        num = 0
        for p in sig.parameters.values():
            if p.kind == p.VAR_POSITIONAL:
                raise ValueError("Operator takes variable arguments; please "
                                 "specify `num_params` explicitly.")
            if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD):
                num += 1
        if num < 1 + m:
            raise ValueError("Operator must take `x` and %d function(s) as "
                             "arguments." % m)
        return num - 1 - m

    def _to_condition(self, bc, x):
        if bc is None or isinstance(bc, BoundaryCondition):
            return bc
        if isinstance(bc, numbers.Real):
            value = float(bc)
            return PointCondition(x, lambda *args: [u - value for u in args[:self._m]])
        if callable(bc):
            return PointCondition(x, bc)
        raise TypeError("Invalid boundary condition: %r" % (bc,))

    def _prepare_init(self, init):
        if not isinstance(init, (list, tuple)):
            init = [init] * self._m
        if len(init) != self._m:
            raise ValueError("Expected %d initial guesses, got %d."
                             % (self._m, len(init)))
        return tuple(init)

    def _prepare_init_params(self, init_params):
        if init_params is None:
            return tuple([0.0] * self._k)
        init_params = np.atleast_1d(np.asarray(init_params, dtype=float))
        if init_params.shape != (self._k,):
            raise ValueError("Expected %d initial parameter values, got %d."
                             % (self._k, init_params.size))
        return tuple(float(p) for p in init_params)

    @property
    def op(self):
        r"""The differential operator callable."""
        return self._op

    @property
    def domain(self):
        return self._domain

    @property
    def lbc(self):
        return self._lbc

    @property
    def rbc(self):
        return self._rbc

    @property
    def bcs(self):
        r"""Additional conditions (beyond `lbc` and `rbc`)."""
        return self._bcs

    @property
    def conditions(self):
        r"""All conditions in the order `lbc`, `rbc`, further conditions."""
        return tuple(c for c in (self._lbc, self._rbc) if c is not None) + self._bcs

    @property
    def init(self):
        r"""Tuple of initial guesses (one per function, `None` if not given).

        Functions without a guess are seeded with a straight line fitted to
        the conditions, see discretize.DiscreteOperator.initial_state().
        """
        return self._init

    @property
    def init_params(self):
        return self._init_params

    @property
    def num_functions(self):
        return self._m

    @property
    def num_params(self):
        return self._k

    def __repr__(self):
        return ("<BVP on [%r, %r] with %d function(s), %d parameter(s) and "
                "%d condition(s)>" % (self._domain + (self._m, self._k,
                                                      len(self.conditions))))
