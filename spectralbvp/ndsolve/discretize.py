r"""@package spectralbvp.ndsolve.discretize

Discretization of a boundary value problem into a nonlinear system.

The unknown *state* is a 1D array containing the nodal values of all `m`
unknown functions on the collocation grid followed by the `k` parameters,
i.e. `[u_1(x_0), ..., u_1(x_N), ..., u_m(x_N), p_1, ..., p_k]`.

The residual map `F(state)` has the same length. It consists of the operator
residuals at the collocation points, where for each equation `j`, `d_j`
rows (`d_j` being the highest derivative of `u_j` used in the operator) are
removed, followed by all condition equations. The removed rows are those
closest to the points at which conditions are imposed (alternating between
these points). Since the number of condition equations has to be
`sum(d_j) + k`, the resulting system is square.

The Jacobian is computed using forward differences. For the operator, we use
that it acts point-wise on the sampled derivatives, i.e. the residual at
`x_i` depends only on \f$ u_j^{(n)}(x_i) \f$ and the parameters. Perturbing
each derivative array as a whole then gives the local coefficients of the
linearized operator, which are combined with the exact differentiation
matrices. This is much more accurate than differencing each nodal value, for
which the roundoff error of the (large) differentiation matrices is amplified
by `1/h`. The latter is still available as `method='nodal'`.
"""

from scipy import linalg
import numpy as np

from .common import _fd_step
from .bcs import NDSolveError, UnderdeterminedSystem, OverdeterminedSystem
from .samples import FunctionSample, GridDerivatives


__all__ = [
    "DiscreteOperator",
]


def _find_free_index(i, max_i, blocked):
    r"""Return an index of a row we should remove next.

    This is called after the desired row to remove has been determined. It is
    responsible for checking that we don't remove a row twice. If the desired
    row is blocked, the nearest free row is returned (preferring larger
    indices).

    Args:
        i: Desired row that should be removed if it is free.
        max_i: Maximum valid row index (total number of rows minus 1).
        blocked: List of row indices that are blocked and cannot be removed.

    Returns:
        The row index or `None` if all rows are blocked.
    """
    if len(blocked) > max_i:
        return None
    if i not in blocked:
        return i
    add = 1
    while add <= max_i:
        if i+add <= max_i and i+add not in blocked:
            return i+add
        if i-add >= 0 and i-add not in blocked:
            return i-add
        add += 1


class DiscreteOperator(object):
    r"""Residual map and Jacobian of a problem on a fixed collocation grid.

    @b Examples

    ```
        basis = ChebyBasis(problem.domain, 33)
        disc = DiscreteOperator(problem, basis)
        state = disc.initial_state()
        F = disc.residual(state)
        J = disc.jacobian(state, F0=F)
    ```
    """
    def __init__(self, problem, basis, rhs=0):
        r"""Discretize a problem.

        @param problem
            The problem.BVP to discretize.
        @param basis
            Spectral basis (e.g. bases.cheby.ChebyBasis) on the problem's
            domain defining the collocation grid.
        @param rhs
            Right-hand side subtracted from the operator residuals. May be a
            constant, a callable or a function representation, or a list of
            those (one per equation).

        @b Raises
            UnderdeterminedSystem or OverdeterminedSystem if the number of
            condition equations does not match the number of removed rows
            plus the number of parameters.
        """
        self._problem = problem
        self._basis = basis
        self._m = problem.num_functions
        self._k = problem.num_params
        self._conditions = problem.conditions
        self._rhs_arg = rhs
        self._rhs = self._sample_rhs(rhs)
        ## Highest derivative order per function used in the operator.
        self._orders = None
        ## Number of equations per condition.
        self._counts = None
        self._probe()
        self._check_equation_count()
        ## Per equation, indices of operator rows kept in the system.
        self._kept = self._select_rows()

    @property
    def problem(self):
        return self._problem

    @property
    def basis(self):
        return self._basis

    @property
    def num(self):
        r"""Number of collocation points."""
        return self._basis.num

    @property
    def size(self):
        r"""Length of the state vector (and residual)."""
        return self._m * self._basis.num + self._k

    @property
    def orders(self):
        r"""Highest derivative order of each function used by the operator."""
        return self._orders

    @property
    def kept_rows(self):
        r"""Per equation, the collocation indices at which it is imposed."""
        return self._kept

    def _sample_rhs(self, rhs):
        if not isinstance(rhs, (list, tuple)):
            rhs = [rhs] * self._m
        if len(rhs) != self._m:
            raise ValueError("Expected %d right-hand sides, got %d."
                             % (self._m, len(rhs)))
        return [self._basis.sample(r) for r in rhs]

    def _probe(self):
        r"""Evaluate everything once to find derivative orders and sizes."""
        values, params = self.split(self._sampled_state())
        derivs = [GridDerivatives(self._basis, v) for v in values]
        orders = dict()
        self._eval_op(derivs, params, recorder=orders)
        self._orders = tuple(orders.get(i, 0) for i in range(self._m))
        self._counts = tuple(
            len(c.evaluate(self._basis, values, params))
            for c in self._conditions
        )

    def _check_equation_count(self):
        required = sum(self._orders) + self._k
        total = sum(self._counts)
        if total != required:
            msg = ("Got %d condition equations, but need %d (derivative "
                   "orders %s and %d parameter(s))."
                   % (total, required, list(self._orders), self._k))
            if total < required:
                raise UnderdeterminedSystem(msg)
            raise OverdeterminedSystem(msg)

    def _select_rows(self):
        r"""Choose the operator rows to replace by condition equations."""
        basis = self._basis
        num = basis.num
        locations = [c.location for c in self._conditions
                     if c.location is not None]
        if not locations:
            locations = list(basis.domain)
        counter = 0
        kept = []
        for j in range(self._m):
            blocked = []
            for _ in range(self._orders[j]):
                x = locations[counter % len(locations)]
                counter += 1
                i = basis.get_closest_collocation_point(x)[0]
                i = _find_free_index(i, num-1, blocked)
                if i is None:
                    raise NDSolveError("Resolution too low for derivative "
                                       "order %d." % self._orders[j])
                blocked.append(i)
            rows = np.array([i for i in range(num) if i not in blocked],
                            dtype=int)
            kept.append(rows)
        return kept

    def split(self, state):
        r"""Split a state into a list of nodal value arrays and parameters."""
        num = self._basis.num
        state = np.asarray(state, dtype=float)
        values = [state[i*num:(i+1)*num] for i in range(self._m)]
        params = state[self._m*num:]
        return values, params

    def join(self, values, params):
        r"""Inverse of split()."""
        return np.concatenate(
            [np.asarray(v, dtype=float) for v in values]
            + [np.asarray(params, dtype=float).reshape(-1)]
        )

    def initial_state(self):
        r"""Sample the problem's initial guess on the grid.

        Functions without an initial guess are seeded with the straight line
        best fitting the conditions at the initial parameter values. For
        linear conditions like `u(a) = 37, u(b) = 20`, this is the linear
        interpolant of the boundary values. If the conditions are not finite
        for the zero function, it is used as seed instead.
        """
        state = self._sampled_state()
        missing = [i for i, f in enumerate(self._problem.init) if f is None]
        if missing and self._conditions:
            state = self._linear_seed(state, missing)
        return state

    def _sampled_state(self):
        values = [self._basis.sample(f) for f in self._problem.init]
        return self.join(values, self._problem.init_params)

    def _linear_seed(self, state, missing):
        r"""Fit `c_0 + c_1 t` to the conditions for each function in `missing`.

        The conditions are linearized at `state` and the coefficients are
        found in the least squares sense (minimal norm for underdetermined
        fits).
        """
        basis = self._basis
        num = basis.num
        values, params = self.split(state)
        with np.errstate(all='ignore'):
            g = np.concatenate([c.evaluate(basis, values, params)
                                for c in self._conditions])
            G = np.vstack([c.linearize(basis, values, params)
                           for c in self._conditions])
        if not (np.all(np.isfinite(g)) and np.all(np.isfinite(G))):
            return state
        t = basis.pts_internal
        P = np.zeros((len(values) * num, 2 * len(missing)))
        for k, i in enumerate(missing):
            P[i*num:(i+1)*num, 2*k] = 1.0
            P[i*num:(i+1)*num, 2*k+1] = t
        coeffs = linalg.lstsq(G.dot(P), -g)[0]
        if not np.all(np.isfinite(coeffs)):
            return state
        seeded = np.array(state, dtype=float)
        seeded[:len(values) * num] += P.dot(coeffs)
        return seeded

    def resample(self, state, num):
        r"""Discretize at a different resolution and transfer the state.

        @return A 2-tuple `(disc, state)` of the new DiscreteOperator and the
            state interpolated onto its grid.
        """
        values, params = self.split(state)
        basis = type(self._basis)(self._basis.domain, num)
        disc = DiscreteOperator(self._problem, basis, rhs=self._rhs_arg)
        values = [self._basis.resample_values(v, num) for v in values]
        return disc, disc.join(values, params)

    def _eval_op(self, derivs, params, recorder=None, perturbation=None):
        r"""Evaluate the operator, returning one full residual per equation.

        @param derivs
            List of samples.GridDerivatives objects, one per function.
        @param params
            Parameter values.
        @param recorder
            Optional dictionary to record the derivative orders in.
        @param perturbation
            Optional 3-tuple `(i, n, h)` to add `h` to the n'th derivative of
            the i'th function.
        """
        num = self._basis.num
        samples = []
        for i, d in enumerate(derivs):
            pert = None
            if perturbation is not None and perturbation[0] == i:
                pert = perturbation[1:]
            samples.append(FunctionSample(d, index=i, recorder=recorder,
                                          perturbation=pert))
        with np.errstate(all='ignore'):
            result = self._problem.op(self._basis.pts, *samples, *params)
            if self._m == 1:
                if isinstance(result, (list, tuple)) and len(result) == 1:
                    result = result[0]
                result = [result]
            elif (not isinstance(result, (list, tuple))
                  or len(result) != self._m):
                raise ValueError("Operator must return a list of %d residuals."
                                 % self._m)
            return [np.broadcast_to(np.asarray(r, dtype=float), (num,)) - rhs
                    for r, rhs in zip(result, self._rhs)]

    def residual(self, state):
        r"""Evaluate the nonlinear residual map `F(state)`."""
        values, params = self.split(state)
        derivs = [GridDerivatives(self._basis, v) for v in values]
        op_res = self._eval_op(derivs, params)
        parts = [r[kept] for r, kept in zip(op_res, self._kept)]
        parts.extend(c.evaluate(self._basis, values, params)
                     for c in self._conditions)
        F = np.concatenate(parts)
        if len(F) != self.size:
            raise NDSolveError("Number of equations changed from %d to %d."
                               % (self.size, len(F)))
        return F

    def jacobian(self, state, F0=None, method='local'):
        r"""Forward difference Jacobian of the residual map.

        @param state
            State at which to linearize.
        @param F0
            Optional residual at `state` (to save one evaluation).
        @param method
            `'local'` (default) to linearize the operator and point
            conditions with respect to the sampled derivatives (see the
            module description) or `'nodal'` to difference every state
            entry individually.
        """
        if method == 'nodal':
            return self._nodal_jacobian(state, F0=F0)
        if method != 'local':
            raise ValueError("Unknown Jacobian method: %s" % method)
        basis = self._basis
        num = basis.num
        m = self._m
        values, params = self.split(state)
        derivs = [GridDerivatives(basis, v) for v in values]
        orders = dict()
        op0 = self._eval_op(derivs, params, recorder=orders)
        blocks = [np.zeros((num, m*num)) for _ in range(m)]
        for i in range(m):
            for n in range(orders.get(i, 0) + 1):
                h = _fd_step(derivs[i](n))
                op1 = self._eval_op(derivs, params, perturbation=(i, n, h))
                for j in range(m):
                    c = (op1[j] - op0[j]) / h
                    if np.any(c):
                        blocks[j][:, i*num:(i+1)*num] += (
                            c[:, np.newaxis] * basis.deriv_mat(n)
                        )
        rows = [blk[kept] for blk, kept in zip(blocks, self._kept)]
        rows.extend(c.linearize(basis, values, params)
                    for c in self._conditions)
        J = np.vstack(rows)
        if self._k:
            J = np.hstack([J, self._param_columns(state, F0=F0)])
        return J

    def _param_columns(self, state, F0=None):
        r"""Forward difference derivatives of `F` w.r.t. the parameters."""
        state = np.asarray(state, dtype=float)
        if F0 is None:
            F0 = self.residual(state)
        offset = self._m * self._basis.num
        cols = np.zeros((self.size, self._k))
        for p in range(self._k):
            cols[:, p] = self._fd_column(state, offset + p, F0)
        return cols

    def _nodal_jacobian(self, state, F0=None):
        state = np.asarray(state, dtype=float)
        if F0 is None:
            F0 = self.residual(state)
        J = np.zeros((self.size, self.size))
        for j in range(self.size):
            J[:, j] = self._fd_column(state, j, F0)
        return J

    def _fd_column(self, state, j, F0):
        s = state.copy()
        s[j] += _fd_step(state[j])
        h = s[j] - state[j]
        return (self.residual(s) - F0) / h
