r"""@package spectralbvp.ndsolve.newton

Damped Newton solver for nonlinear boundary value problems.

This module contains the high-level function solvebvp() and the NewtonSolver
class doing the actual work. Starting from the initial guess on a coarse
Chebyshev grid, Newton steps are taken on the discrete system (see
discretize.DiscreteOperator) until the corrections fall below the tolerance.
Then, the Chebyshev coefficients of the solution are checked for decay. If
they have not decayed sufficiently, the grid is refined (the degree is
doubled) and the Newton iteration resumes from the interpolated solution.

Steps are damped using the natural monotonicity test: a step with damping
factor \f$ \lambda \f$ is accepted if the simplified Newton correction
\f$ \bar\delta = -J^{-1} F(s + \lambda\delta) \f$ (using the factorization of
the current Jacobian \f$ J \f$) satisfies
\f$ \Vert\bar\delta\Vert \leq (1 - \lambda/2) \Vert\delta\Vert \f$. Otherwise,
\f$ \lambda \f$ is halved. See \ref deuflhard2011 "[1]" for details.

@b Examples

```
    problem = BVP(
        op=lambda x, y, T: y.diff() + 1e-3*T*(y - 15),
        domain=(0, 1),
        lbc=lambda y, T: y - 37,
        rbc=lambda y, T: y - 20,
        init=lambda x: 37 - 17*x,
        init_params=[1000],
    )
    (y,), (T,) = solvebvp(problem, verbose=True)
```

@b References

\anchor deuflhard2011 [1] Deuflhard, P. "Newton Methods for Nonlinear
    Problems: Affine Invariance and Adaptive Algorithms." Springer, Berlin
    (2011).
"""

from scipy import linalg
from scipy.linalg import LinAlgWarning, LinAlgError
import numpy as np
from mpmath import mp

from ..utils import timethis
from ..numutils import NumericalError, ConvergenceFailure
from ..numutils import raise_all_warnings, inf_norm
from .bases.cheby import ChebyBasis
from .discretize import DiscreteOperator


__all__ = [
    "solvebvp",
    "NewtonSolver",
    "NoConvergence",
    "DidNotConverge",
    "SingularJacobian",
    "InsufficientResolution",
]


class NoConvergence(NumericalError):
    r"""Base for exceptions indicating failed convergence of Newton steps.

    This exception is raised directly when the residual at the initial guess
    cannot be evaluated (i.e. is not finite). The attributes carry the
    diagnostics at the time of failure.
    """
    def __init__(self, msg, residual_norm=None, iterations=None, state=None,
                 resolution=None):
        super(NoConvergence, self).__init__(msg)
        ## Maximum absolute residual (or `None` if not available).
        self.residual_norm = residual_norm
        ## Total number of Newton iterations taken.
        self.iterations = iterations
        ## Discrete state (nodal values and parameters) at failure.
        self.state = state
        ## Polynomial degree of the grid at failure.
        self.resolution = resolution


class DidNotConverge(NoConvergence):
    r"""Raised when the iteration limit is reached or damping fails."""
    pass


class SingularJacobian(NoConvergence):
    r"""Raised when the Jacobian is singular or the Newton step not finite."""
    pass


class InsufficientResolution(NoConvergence, ConvergenceFailure):
    r"""Raised when the solution is not resolved at the maximum degree."""
    pass


def solvebvp(problem, rhs=0, tol=1e-10, max_iterations=50, max_degree=512,
             damping='linesearch', verbose=False, **kw):
    r"""Solve a (nonlinear) boundary value problem.

    @param problem
        problem.BVP object defining the operator, conditions and initial
        guess.
    @param rhs
        (float, callable or list, optional)
        Right-hand side of the equation(s), i.e. we solve `op(...) = rhs`.
        Default is `0`.
    @param tol
        Tolerance for the Newton corrections (relative to the size of the
        state, but at least absolute) and for the decay of the Chebyshev
        coefficients of the solution. Default is `1e-10`.
    @param max_iterations
        Maximum total number of Newton steps (over all resolutions). Default
        is `50`.
    @param max_degree
        Maximum polynomial degree of the grid. Default is `512`.
    @param damping
        ``'linesearch'`` (default) for damped Newton steps or ``'none'`` to
        always take full steps.
    @param verbose
        Whether to print status information during the solve. Default is
        `False`.
    @param **kw
        Remaining keyword arguments are set as attributes on the solver
        object. They are documented as public attributes of NewtonSolver.

    @return A 2-tuple `(functions, params)` containing a list of
        exprs.cheby.ChebyshevFunction objects (one per unknown function) and
        a list of the parameter values.
    """
    solver = NewtonSolver(tol=tol, max_iterations=max_iterations,
                          max_degree=max_degree, damping=damping,
                          verbose=verbose)
    for key, val in kw.items():
        setattr(solver, key, val)
    return solver.solve(problem, rhs=rhs)


class _LinearSolver(object):
    r"""Factorization of the Jacobian for repeated solves."""
    def __init__(self, J, method):
        self._method = method
        if method == 'scipy.lu':
            self._lu = linalg.lu_factor(J)
        elif method == 'scipy.lstsq':
            self._J = J
        elif method == 'mp.lu_solve':
            self._J = mp.matrix(J.tolist())
        else:
            raise NotImplementedError("Solver method '%s' not implemented." % method)

    def solve(self, b):
        r"""Solve J x = b for x using the chosen solving method."""
        method = self._method
        if method == 'scipy.lu':
            return linalg.lu_solve(self._lu, b)
        if method == 'scipy.lstsq':
            x, _residues, _rank, _sigma = linalg.lstsq(self._J, b)
            return x
        x = mp.lu_solve(self._J, mp.matrix(np.asarray(b).tolist()))
        return np.array([float(x[i]) for i in range(x.rows)], dtype=float)


class NewtonSolver(object):
    r"""Class implementing the damped Newton iteration with grid refinement.

    The docstring of solvebvp() explains the main parameters.

    After constructing a NewtonSolver object, configure it using its public
    instance attributes. Then, call solve() to perform the iteration. Since
    the class uses ``__slots__``, there is no chance that typos in these
    attributes go by undetected.

    After a successful solve, the attributes `iterations`, `residual_norm`
    and `resolution` describe the result.
    """

    __slots__ = ("tol", "max_iterations", "max_degree", "min_degree",
                 "damping", "min_damping", "mat_solver", "jacobian",
                 "verbose", "iterations", "residual_norm", "resolution")

    def __init__(self, tol=1e-10, max_iterations=50, max_degree=512,
                 damping='linesearch', verbose=False):
        ## Tolerance for Newton corrections and coefficient decay.
        self.tol = tol
        ## Maximum number of Newton steps, counted over all resolutions.
        self.max_iterations = max_iterations
        ## Maximum polynomial degree of the grid.
        self.max_degree = max_degree
        ## Degree of the first grid.
        self.min_degree = 16
        ## Either ``'linesearch'`` or ``'none'``.
        self.damping = damping
        ## Smallest damping factor to try before giving up.
        self.min_damping = 2.0**-10
        ## Matrix solver method to use. One of ``'scipy.lu'`` (default),
        ## ``'scipy.lstsq'`` or ``'mp.lu_solve'`` (slow, mainly for testing).
        self.mat_solver = 'scipy.lu'
        ## Jacobian computation method, ``'local'`` (default) or
        ## ``'nodal'``. See discretize.DiscreteOperator.jacobian().
        self.jacobian = 'local'
        ## Whether to print status information.
        self.verbose = verbose
        ## Total number of Newton steps of the last solve.
        self.iterations = 0
        ## Maximum absolute residual at the final state of the last solve.
        self.residual_norm = None
        ## Polynomial degree of the final grid of the last solve.
        self.resolution = None

    def _p(self, msg):
        if self.verbose:
            print(msg)

    def _check_options(self):
        if self.damping not in ('linesearch', 'none'):
            raise ValueError("Unknown damping strategy: %s" % self.damping)
        if self.mat_solver not in ('scipy.lu', 'scipy.lstsq', 'mp.lu_solve'):
            raise ValueError("Unknown matrix solver: %s" % self.mat_solver)
        if not self.tol > 0:
            raise ValueError("Tolerance must be positive.")
        if not 1 <= self.min_degree <= self.max_degree:
            raise ValueError("Need 1 <= min_degree <= max_degree.")

    def solve(self, problem, rhs=0):
        r"""Solve the problem and return `(functions, params)`.

        See the docstring of solvebvp() for more information.
        """
        self._check_options()
        self.iterations = 0
        self.residual_norm = None
        self.resolution = None
        with timethis("Solving %r..." % (problem,), silent=not self.verbose):
            with raise_all_warnings():
                try:
                    return self._solve(problem, rhs)
                except NumericalError:
                    raise
                except (LinAlgWarning, LinAlgError, FloatingPointError) as e:
                    raise NoConvergence(str(e), iterations=self.iterations,
                                        resolution=self.resolution)

    def _solve(self, problem, rhs):
        r"""Wrapped function for performing the Newton steps."""
        basis = ChebyBasis(problem.domain, self.min_degree + 1)
        disc = DiscreteOperator(problem, basis, rhs=rhs)
        state = disc.initial_state()
        while True:
            self.resolution = disc.num - 1
            self._p("Resolution N=%d (%d unknowns)" % (disc.num - 1, disc.size))
            state = self._newton(disc, state)
            if self._is_resolved(disc, state):
                break
            degree = disc.num - 1
            if degree >= self.max_degree:
                self._fail(InsufficientResolution,
                           "Solution not resolved at maximum degree %d."
                           % self.max_degree,
                           disc, state)
            new_degree = min(2 * degree, self.max_degree)
            self._p("  Coefficients not decayed, increasing resolution.")
            disc, state = disc.resample(state, new_degree + 1)
        values, params = disc.split(state)
        # Chop at roundoff level only, conditions on derivatives must still
        # hold to within `tol`.
        chop_tol = disc.basis.get_series_cls().default_tol
        functions = [disc.basis.solution_function(v, chop_tol=chop_tol)
                     for v in values]
        self._p("Converged after %d steps at N=%d, max residual %g"
                % (self.iterations, self.resolution, self.residual_norm))
        return functions, [float(p) for p in params]

    def _is_resolved(self, disc, state):
        values, _ = disc.split(state)
        return all(disc.basis.is_resolved(v, self.tol) for v in values)

    def _fail(self, ex_cls, msg, disc, state, F=None):
        r"""Raise an exception with the current diagnostics attached."""
        raise ex_cls(
            msg,
            residual_norm=None if F is None else inf_norm(F),
            iterations=self.iterations,
            state=np.array(state, dtype=float),
            resolution=disc.num - 1,
        )

    def _newton(self, disc, state):
        r"""Perform Newton steps at the current resolution until converged."""
        F = disc.residual(state)
        if not np.all(np.isfinite(F)):
            self._fail(NoConvergence, "Residual not finite at initial guess.",
                       disc, state, F)
        while True:
            if self.iterations >= self.max_iterations:
                self._fail(DidNotConverge,
                           "Newton iteration did not converge within %d steps."
                           % self.max_iterations, disc, state, F)
            self.iterations += 1
            try:
                new_state, new_F, converged = self._step(disc, state, F)
            except (LinAlgWarning, LinAlgError, ZeroDivisionError) as e:
                # mpmath signals singular matrices with ZeroDivisionError
                self._fail(SingularJacobian, "Singular Jacobian: %s" % e,
                           disc, state, F)
            except FloatingPointError as e:
                self._fail(NoConvergence, "Floating point error: %s" % e,
                           disc, state, F)
            state, F = new_state, new_F
            if converged:
                return state

    def _step(self, disc, state, F):
        r"""Perform one (damped) Newton step.

        @return A 3-tuple `(state, F, converged)` of the new state, its residual
            and whether the tolerance has been met.
        """
        solver = self._linearize(disc, state, F)
        delta = -solver.solve(F)
        if not np.all(np.isfinite(delta)):
            self._fail(SingularJacobian, "Newton step not finite.",
                       disc, state, F)
        delta_norm = inf_norm(delta)
        if delta_norm <= self.tol * max(1.0, inf_norm(state)):
            state = state + delta
            F = disc.residual(state)
            self.residual_norm = inf_norm(F)
            self._p("%02d: |F| = %g, |delta| = %g, converged"
                    % (self.iterations, self.residual_norm, delta_norm))
            return state, F, True
        state, F, lam, converged = self._damped_step(
            disc, solver, state, F, delta
        )
        self.residual_norm = inf_norm(F)
        self._p("%02d: |F| = %g, |delta| = %g, damping = %g"
                % (self.iterations, self.residual_norm, delta_norm, lam))
        return state, F, converged

    def _linearize(self, disc, state, F):
        r"""Compute and factorize the Jacobian."""
        try:
            J = disc.jacobian(state, F0=F, method=self.jacobian)
        except FloatingPointError as e:
            self._fail(SingularJacobian, "Jacobian not finite: %s" % e,
                       disc, state, F)
        if not np.all(np.isfinite(J)):
            self._fail(SingularJacobian, "Jacobian not finite.", disc, state, F)
        return _LinearSolver(J, self.mat_solver)

    def _damped_step(self, disc, solver, state, F, delta):
        r"""Find an acceptable damping factor and take the step.

        @return A 4-tuple `(state, F, lam, converged)` of the new state, its
            residual, the damping factor used and whether the simplified
            correction after a full step already meets the tolerance (in which
            case it has been applied to the returned state).
        """
        delta_norm = inf_norm(delta)
        lam = 1.0
        while True:
            trial = state + lam * delta
            F_trial = disc.residual(trial)
            if np.all(np.isfinite(F_trial)):
                delta_bar = -solver.solve(F_trial)
                bar_norm = inf_norm(delta_bar)
                if not np.isfinite(bar_norm):
                    bar_norm = np.inf
                if (lam == 1.0 and
                        bar_norm <= self.tol * max(1.0, inf_norm(trial))):
                    final = trial + delta_bar
                    F_final = disc.residual(final)
                    if np.all(np.isfinite(F_final)):
                        return final, F_final, lam, True
                    return trial, F_trial, lam, True
                if self.damping == 'none' or bar_norm <= (1.0 - lam/2.0) * delta_norm:
                    return trial, F_trial, lam, False
            elif self.damping == 'none':
                self._fail(SingularJacobian,
                           "Residual not finite after full Newton step.",
                           disc, trial, F_trial)
            lam /= 2.0
            if lam < self.min_damping:
                self._fail(DidNotConverge,
                           "Damping factor fell below %g." % self.min_damping,
                           disc, state, F)
