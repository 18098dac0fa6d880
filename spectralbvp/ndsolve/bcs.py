r"""@package spectralbvp.ndsolve.bcs

Classes for imposing boundary (and other side) conditions.

A condition contributes one or more equations to the discrete nonlinear
system. It is evaluated on the nodal values of the unknown functions and the
current parameter values and must vanish at the solution.

Point conditions (PointCondition and the linear convenience forms
RobinCondition, DirichletCondition and NeumannCondition) act at a single point
`x` and additionally define where collocation equations of the operator are
replaced by condition equations (namely at the collocation points closest to
`x`). A FunctionalCondition instead acts on the whole functions, e.g. to
impose a normalization integral.

@b Examples

```
    # u(0) = 1 and u'(1) + u(1) = 0 for a single unknown u
    bcs = [DirichletCondition(0.0, 1.0), RobinCondition(1.0, 1, 1, 0)]

    # Nonlinear condition involving a parameter `a`: u(-1) u'(-1) = a
    cond = PointCondition(-1.0, lambda u, a: u*u.diff() - a)

    # Normalization of the first of two unknowns
    norm = FunctionalCondition(lambda u, v: (u*u).integral() - 1)
```
"""

from abc import ABCMeta, abstractmethod

import numpy as np

from ..numutils import NumericalError, DomainError
from .common import _make_callable, _fd_step, _as_equations
from .samples import FunctionSample, GridSample
from .samples import GridDerivatives, PointDerivatives


__all__ = [
    "NDSolveError",
    "UnderdeterminedSystem",
    "OverdeterminedSystem",
    "BoundaryCondition",
    "PointCondition",
    "RobinCondition",
    "DirichletCondition",
    "NeumannCondition",
    "FunctionalCondition",
]


class NDSolveError(NumericalError):
    r"""Raised for problems of the numerical task (like ill-conditioned
    boundary conditions)."""
    pass


class UnderdeterminedSystem(NDSolveError):
    r"""Raised when there are fewer condition equations than needed."""
    pass


class OverdeterminedSystem(NDSolveError):
    r"""Raised when there are more condition equations than can be imposed."""
    pass


class BoundaryCondition(metaclass=ABCMeta):
    r"""Base class for conditions on the unknown functions and parameters.

    Subclasses implement evaluate() returning the condition residuals as a 1D
    array and linearize() returning their derivative with respect to the
    nodal values of all unknown functions.
    """

    @property
    def location(self):
        r"""Physical point the condition is associated with (or `None`)."""
        return None

    @abstractmethod
    def evaluate(self, basis, values, params, recorder=None):
        r"""Evaluate the condition residuals.

        @param basis
            Spectral basis defining the collocation grid.
        @param values
            List of nodal value arrays, one for each unknown function.
        @param params
            Sequence of current parameter values.
        @param recorder
            Optional dictionary to store the highest derivative order used
            per function index.

        @return 1D NumPy array of residuals.
        """
        pass

    @abstractmethod
    def linearize(self, basis, values, params):
        r"""Matrix of derivatives of the residuals w.r.t. all nodal values.

        The result has one row per equation of this condition and
        `len(values) * basis.num` columns.
        """
        pass


class PointCondition(BoundaryCondition):
    r"""General (nonlinear) condition imposed at a point.

    The callable `func` receives the unknown functions sampled at `x` followed
    by the parameters. The samples behave like floats and provide
    derivatives via `u.diff(n)`. It may return a single value or a list of
    values, each of which is one equation.
    """
    def __init__(self, x, func):
        r"""Define the condition.

        @param x
            (float)
            Point (in the physical domain) to impose the condition at.
        @param func
            (callable)
            Callable `func(u_1, ..., u_m, p_1, ..., p_k)` returning the
            residual(s).
        """
        if not callable(func):
            raise TypeError("Condition function must be callable.")
        ## Point to impose the condition at.
        self._x = float(x)
        ## Condition function.
        self._func = func

    @property
    def location(self):
        return self._x

    @property
    def func(self):
        r"""The condition callable."""
        return self._func

    def _derivatives(self, basis, values):
        a, b = basis.domain
        slack = 1e-12 * max(abs(a), abs(b), b-a)
        if not a - slack <= self._x <= b + slack:
            raise DomainError("Condition point %r outside domain [%r, %r]."
                              % (self._x, a, b))
        return [PointDerivatives(basis, v, self._x) for v in values]

    def _evaluate(self, derivs, params, recorder=None, perturbation=None):
        samples = []
        for i, d in enumerate(derivs):
            pert = None
            if perturbation is not None and perturbation[0] == i:
                pert = perturbation[1:]
            samples.append(FunctionSample(d, index=i, recorder=recorder,
                                          perturbation=pert))
        with np.errstate(all='ignore'):
            return _as_equations(self._func(*samples, *params))

    def evaluate(self, basis, values, params, recorder=None):
        derivs = self._derivatives(basis, values)
        return self._evaluate(derivs, params, recorder=recorder)

    def linearize(self, basis, values, params):
        r"""Linearize w.r.t. the values of the derivatives at the point.

        The condition residuals depend on the nodal values only via the
        derivatives \f$ u_i^{(n)}(x) \f$, each of which is a linear functional
        of the nodal values (see the basis' `evaluate_all_at()`). We hence
        need one perturbed evaluation per function and derivative order.
        """
        num = basis.num
        derivs = self._derivatives(basis, values)
        orders = dict()
        g0 = self._evaluate(derivs, params, recorder=orders)
        rows = np.zeros((len(g0), len(values) * num))
        for i in range(len(values)):
            for n in range(orders.get(i, 0) + 1):
                h = _fd_step(derivs[i](n))
                g1 = self._evaluate(derivs, params, perturbation=(i, n, h))
                dg = (g1 - g0) / h
                if np.any(dg):
                    rows[:, i*num:(i+1)*num] += np.outer(
                        dg, basis.evaluate_all_at(self._x, n)
                    )
        return rows


class RobinCondition(PointCondition):
    r"""General Robin-type (linear) boundary condition.

    The general form of this boundary condition is \f[
        \alpha(x) u(x) + \beta(x) u'(x) = g(x),
    \f]
    where \f$ x \f$ is specified by the `x` argument and \f$ g(x) \f$ is given
    by `value`.

    For a pure Dirichlet condition, set ``alpha=1, beta=0`` and for a pure
    Neumann condition ``alpha=0, beta=1``.
    """
    def __init__(self, x, alpha, beta, value, index=0):
        r"""Define the boundary condition.

        Args:
            x: (float)
                Value at which to impose the condition.
            alpha: (float or callable)
                Coefficient of the 'Dirichlet' part of the condition (see
                above).
            beta: (float or callable)
                Coefficient of the 'Neumann' part of the condition (see
                above).
            value: (float or callable)
                Value of the condition (see above).
            index: (int, optional)
                Index of the unknown function to impose the condition on.
                Default is `0`, i.e. the first (or only) function.
        """
        x = float(x)
        a = float(_make_callable(alpha)(x))
        b = float(_make_callable(beta)(x))
        v = float(_make_callable(value)(x))
        if a == b == 0:
            raise NDSolveError("Boundary condition with alpha = beta = 0 "
                               "does not constrain the solution.")
        ## Coefficients and value of the condition evaluated at `x`.
        self._coeffs = a, b, v
        ## Unknown function to impose the condition on.
        self._index = index
        def func(*args):
            u = args[index]
            result = a * u - v
            if b != 0:
                result = result + b * u.diff()
            return result
        super(RobinCondition, self).__init__(x, func)

    @property
    def index(self):
        return self._index


class DirichletCondition(RobinCondition):
    r"""A Dirichlet boundary condition.

    This represents a RobinCondition with `alpha==1` and `beta==0`.
    """
    def __init__(self, x, value=0, index=0):
        super(DirichletCondition, self).__init__(x, 1, 0, value, index=index)


class NeumannCondition(RobinCondition):
    r"""A Neumann boundary condition.

    This represents a RobinCondition with `alpha==0` and `beta==1`.
    """
    def __init__(self, x, value=0, index=0):
        super(NeumannCondition, self).__init__(x, 0, 1, value, index=index)


class FunctionalCondition(BoundaryCondition):
    r"""Condition on the unknown functions as a whole.

    The callable receives one samples.GridSample per unknown function
    (providing `integral()` and `at(x, n)` in addition to array behaviour)
    followed by the parameters.

    Since such a condition may couple all nodal values, its Jacobian rows are
    computed by forward differences with respect to each nodal value.
    """
    def __init__(self, func):
        if not callable(func):
            raise TypeError("Condition function must be callable.")
        self._func = func

    @property
    def func(self):
        r"""The condition callable."""
        return self._func

    def evaluate(self, basis, values, params, recorder=None):
        samples = [GridSample(GridDerivatives(basis, v), index=i)
                   for i, v in enumerate(values)]
        with np.errstate(all='ignore'):
            return _as_equations(self._func(*samples, *params))

    def linearize(self, basis, values, params):
        num = basis.num
        values = [np.asarray(v, dtype=float) for v in values]
        g0 = self.evaluate(basis, values, params)
        rows = np.zeros((len(g0), len(values) * num))
        for i, v in enumerate(values):
            for j in range(num):
                vp = v.copy()
                vp[j] += _fd_step(v[j])
                h = vp[j] - v[j]
                perturbed = values[:i] + [vp] + values[i+1:]
                rows[:, i*num + j] = (self.evaluate(basis, perturbed, params) - g0) / h
        return rows
