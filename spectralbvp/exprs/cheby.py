r"""@package spectralbvp.exprs.cheby

Truncated Chebyshev polynomial series representing functions on an interval.

The main items in this module are the ChebyshevFunction class and a few helper
functions, like evaluate_Tn() for efficiently evaluating a potentially large
number of Chebyshev polynomials \f$ T_n \f$ at the same point using a
recursion relation, and values_to_coeffs() / coeffs_to_values() converting
between values at the Chebyshev-Lobatto points and coefficients using the
type-I discrete cosine transform.

The function diff() in this module computes the coefficients of derivatives
of truncated Chebyshev series exactly.

A significant part of the useful methods is inherited from
series.SeriesExpression and numexpr.FunctionRepresentation.

@b Examples

```
    # Create a function using some coefficients.
    # The default interval is (-1,1).
    f = ChebyshevFunction([1, -1, 0.5])
    print(f(0.3), f.differentiate()(0.3))

    # Create a series expansion from a known function.
    from math import cos, exp
    a, b = 10, 20
    def func(x):
        x = 2*(x-a)/(b-a) - 1
        return 1 - x**2 + .2*exp(-x) * cos(10*x**2) + .9
    f = ChebyshevFunction.from_function(func, domain=(a, b))
    print(f.degree, f.sum(), f.norm(np.inf))
```
"""

import numpy as np
from numpy.polynomial import chebyshev
from scipy.fft import dct
from mpmath import mp

from ..numutils import DomainError
from .evaluators import EvaluatorBase
from .numexpr import FunctionRepresentation
from .series import SeriesExpression, chop_coeffs, resize_coeffs


__all__ = [
    "ChebyshevFunction",
    "evaluate_Tn",
    "diff",
    "values_to_coeffs",
    "coeffs_to_values",
]


# Relative amount by which points may lie outside the domain and still be
# considered inside (e.g. due to rounding in domain transformations).
DOMAIN_SLACK = 1e-12


def _evaluate_Tn_mpmath(x, Tn):
    r"""mpmath implementation of evaluate_Tn()."""
    num = len(Tn)
    one = mp.one
    two = mp.mpf(2)
    if x == 1:
        return [one] * num
    if x == -1:
        return [(-one)**k for k in range(num)]
    x = mp.mpf(x)
    Tn[0] = one
    if num > 1:
        Tn[1] = x
    for n in range(2, num):
        Tn[n] = (two * x) * Tn[n-1] - Tn[n-2]
    return Tn


def _evaluate_Tn_double(x, Tn):
    r"""Floating point implementation of evaluate_Tn()."""
    x = float(x)
    num = len(Tn)
    if x == 1.0:
        return np.ones(num)
    if x == -1.0:
        return np.array([(-1.0)**k for k in range(num)], dtype=float)
    Tn[0] = 1.0
    if num > 1:
        Tn[1] = x
    for n in range(2, num):
        Tn[n] = (2.0 * x) * Tn[n-1] - Tn[n-2]
    return Tn


def evaluate_Tn(x, Tn, use_mp):
    r"""Efficiently evaluate multiple Chebyshev polynomials at one point.

    This method evaluates `T_n` at the given position `x`. How many of the
    polynomials are evaluated depends on the number of elements in `Tn`.
    In this process, `Tn` may or may not be modified, so it is best to assign
    the returned value to `Tn` afterwards.

    @param x (float or mp.mpf)
        Argument at which to evaluate the `T_n`. Must lie in the interval
        `[-1,1]`.
    @param Tn (list or numpy array)
        The list to possibly modify. The number of elements in this list
        determines the number of Chebyshev polynomials evaluated.
    @param use_mp (boolean)
        Whether to use `mpmath` computations.

    Returns:
        The Chebyshev polynomials evaluated at `x` as `list` (for
        `use_mp=True`) or NumPy array.
    """
    if use_mp:
        return _evaluate_Tn_mpmath(x, list(Tn))
    if not isinstance(Tn, np.ndarray):
        Tn = np.array(Tn, dtype=float)
    return _evaluate_Tn_double(x, Tn)


def diff(a_n, use_mp, scale):
    r"""Compute coefficients of the Chebyshev interpolation derivative.

    Given the coefficients `a_n` of a Chebyshev interpolation \f[
        u(x) = \sum_n a_n T_n(x),
    \f]
    this function computes the coefficients `b_n` of the derivative \f[
        u'(x) = \sum_n b_n T_n(x).
    \f]

    @param a_n (iterable)
        Coefficients of the original function.
    @param use_mp (boolean)
        Whether to use `mpmath` computations.
    @param scale (float or mp.mpf)
        Each coefficient will be multiplied with this scaling factor. This
        can be used to account for a physical domain `[a,b]` which is
        different from `[-1,1]`.

    Returns:
        Coefficients of the derivative of the function as a `list` (empty for
        constant functions).
    """
    num = len(a_n)
    N = num-1
    if N <= 0:
        return []
    zero = mp.zero if use_mp else 0.0
    one = mp.one if use_mp else 1.0
    two = mp.mpf(2) if use_mp else 2.0
    c = lambda k: (2 if k == 0 else 1)
    b_n = [zero] * N
    for k in reversed(range(N)): # k = N-1, N-2, ..., 0
        if k <= N-3:
            b_n[k] = one/c(k) * (b_n[k+2] + (two*(k+1)) * a_n[k+1])
        else:
            b_n[k] = one/c(k) * ((two*(k+1)) * a_n[k+1])
    if scale != 1.0:
        b_n = [scale * v for v in b_n]
    return b_n


def values_to_coeffs(values):
    r"""Transform values at the Chebyshev-Lobatto points to coefficients.

    The values are expected at the points \f$ x_i = \cos(i\pi/N) \f$,
    `i = 0, ..., N` (i.e. in descending order), and the result are the
    coefficients `a_n` of the interpolating polynomial
    \f$ \sum_{n=0}^N a_n T_n(x) \f$. This uses the type-I DCT.
    """
    values = np.asarray(values, dtype=float)
    num = len(values)
    if num == 1:
        return values.copy()
    N = num - 1
    a_n = dct(values, type=1) / N
    a_n[0] /= 2.0
    a_n[-1] /= 2.0
    return a_n


def coeffs_to_values(a_n):
    r"""Inverse of values_to_coeffs()."""
    b_n = np.array(a_n, dtype=float)
    if len(b_n) == 1:
        return b_n
    b_n[1:-1] /= 2.0
    return dct(b_n, type=1)


def _integrals_Tn(num):
    r"""Integrals of `T_0, ..., T_{num-1}` over `[-1, 1]`."""
    k = np.arange(num)
    weights = np.zeros(num)
    even = k[::2]
    weights[::2] = 2.0 / (1.0 - even**2)
    return weights


class ChebyshevFunction(SeriesExpression):
    r"""Function on an interval represented by a truncated Chebyshev series.

    Objects of this class are immutable. All operations return new objects.
    Most of them should be created via from_function(), which adaptively
    determines the number of coefficients needed to represent a function to
    (nearly) machine precision.
    """
    def __init__(self, a_n, domain=(-1, 1), name=None, tol=None):
        r"""Create a truncated Chebyshev series.

        @param a_n (iterable)
            The coefficients of the polynomials. May be empty to indicate a
            zero function.
        @param domain (2-tuple/list)
            The domain of this function. The Chebyshev polynomials are
            defined on `[-1,1]`. Specifying a different domain will map it to
            this domain, while also ensuring that derivatives take into
            account this coordinate change.
        @param name
            Name of the function.
        @param tol
            Relative tolerance for trimming results of arithmetic operations.
        """
        super(ChebyshevFunction, self).__init__(a_n=a_n, domain=domain,
                                                name=name, tol=tol)
        a, b = self.domain
        ## Derivative scaling due to the mapping to `[-1,1]`.
        self._scale = 2.0/(b-a)
        self._trans = -1.0 - 2.0*a/(b-a)

    @classmethod
    def internal_domain(cls):
        return (-1.0, 1.0)

    @classmethod
    def create_collocation_points(cls, num, use_mp=False, dps=None):
        r"""Chebyshev-Lobatto points \f$ \cos(i\pi/N) \f$ in descending order."""
        with cls.context(use_mp, dps) as ctx:
            if num == 1:
                return [ctx.zero] if use_mp else np.zeros(1)
            N = num - 1
            if use_mp:
                return [ctx.cos(i*ctx.pi/N) for i in range(N+1)]
            return np.cos(np.arange(N+1) * np.pi / N)

    @classmethod
    def _from_physical_space(cls, values):
        return values_to_coeffs(values)

    @classmethod
    def _to_physical_space(cls, a_n):
        return coeffs_to_values(a_n)

    def _expr_str(self):
        return "sum a_n T_n(x), where a_n=%r" % (self.a_n.tolist(),)

    def _evaluator(self, use_mp):
        return _ChebyEval(self, use_mp)

    def _check_domain(self, x):
        r"""Raise a DomainError if any of the points lies outside the domain."""
        a, b = self.domain
        slack = DOMAIN_SLACK * max(abs(a), abs(b), b-a)
        x = np.asarray(x, dtype=float)
        if x.size and (np.min(x) < a - slack or np.max(x) > b + slack):
            raise DomainError("Point(s) outside domain [%r, %r]." % (a, b))

    def to_internal(self, x):
        r"""Map physical points to `[-1,1]`, clipping rounding errors."""
        return np.clip(self._scale * np.asarray(x, dtype=float) + self._trans,
                       -1.0, 1.0)

    def evaluate(self, x):
        r"""Evaluate the function at a point or an array of points.

        Points outside the domain (beyond a small relative slack) raise a
        `DomainError`. Scalar input results in a `float`.
        """
        self._check_domain(x)
        result = chebyshev.chebval(self.to_internal(x), self.a_n)
        if np.ndim(result) == 0:
            return float(result)
        return result

    def differentiate(self, order=1):
        r"""Return the derivative of given order.

        Differentiation is done exactly in coefficient space. Derivatives of
        order larger than the degree result in the zero function.
        """
        if order < 0:
            raise ValueError("Invalid derivative order: %s" % order)
        a_n = self.a_n
        for _ in range(order):
            a_n = diff(a_n, use_mp=False, scale=self._scale)
            if not a_n:
                break
        return self._new(a_n)

    def _other_coeffs(self, other):
        r"""Coefficients of another function, checking domain compatibility."""
        if not isinstance(other, ChebyshevFunction):
            raise TypeError("Cannot combine with %r." % (other,))
        if other.domain != self.domain:
            raise DomainError("Domains %s and %s differ."
                              % (self.domain, other.domain))
        return other.a_n

    def _trim(self, a_n, vscale):
        r"""Remove trailing coefficients below the tolerance."""
        return self._new(chop_coeffs(a_n, self.tol * vscale))

    def add(self, other):
        if isinstance(other, FunctionRepresentation):
            b_n = self._other_coeffs(other)
            num = max(len(self.a_n), len(b_n))
            a_n = resize_coeffs(self.a_n, num) + resize_coeffs(b_n, num)
            vscale = max(np.max(np.absolute(self.a_n)), np.max(np.absolute(b_n)))
            return self._trim(a_n, vscale)
        a_n = self.a_n.copy()
        a_n[0] += other
        return self._new(a_n)

    def multiply(self, other):
        if isinstance(other, FunctionRepresentation):
            b_n = self._other_coeffs(other)
            a_n = chebyshev.chebmul(self.a_n, b_n)
            vscale = np.max(np.absolute(self.a_n)) * np.max(np.absolute(b_n))
            return self._trim(a_n, vscale)
        return self._new(float(other) * self.a_n)

    def compose(self, inner):
        r"""Return the function `x -> self(inner(x))` on the domain of `inner`.

        The range of `inner` must lie within the domain of this function.
        Otherwise, a `DomainError` is raised.
        """
        if not isinstance(inner, ChebyshevFunction):
            raise TypeError("Can only compose with Chebyshev functions.")
        a, b = self.domain
        slack = DOMAIN_SLACK * max(abs(a), abs(b), b-a)
        lo, hi = inner.minmax()
        if lo < a - slack or hi > b + slack:
            raise DomainError("Range [%r, %r] of inner function not within "
                              "domain [%r, %r]." % (lo, hi, a, b))
        return type(self).from_function(
            lambda x: self.evaluate(np.clip(inner.evaluate(x), a, b)),
            domain=inner.domain, tol=self.tol,
        )

    def sum(self):
        r"""Definite integral over the whole domain."""
        a, b = self.domain
        weights = _integrals_Tn(len(self.a_n))
        return float(weights.dot(self.a_n) * (b-a) / 2.0)

    def cumsum(self):
        r"""Indefinite integral vanishing at the left end of the domain."""
        a, b = self.domain
        a_n = chebyshev.chebint(self.a_n, m=1, lbnd=-1, scl=(b-a)/2.0)
        return self._new(a_n)

    def roots(self):
        r"""Sorted array of the real roots inside the domain.

        The zero function and non-zero constants result in an empty array.
        """
        a_n = np.trim_zeros(np.asarray(self.a_n), 'b')
        if len(a_n) <= 1:
            return np.array([])
        t = chebyshev.chebroots(a_n)
        t = t[np.absolute(np.imag(t)) <= 1e-8]
        t = np.real(t)
        t = np.clip(t[np.absolute(t) <= 1.0 + 1e-8], -1.0, 1.0)
        a, b = self.domain
        return np.unique(a + (t + 1.0) * (b-a) / 2.0)

    def minmax(self):
        r"""Return the minimum and maximum values on the domain as 2-tuple."""
        x = np.concatenate([self.domain, self.differentiate().roots()])
        values = self.evaluate(x)
        return float(np.min(values)), float(np.max(values))

    def norm(self, p=2):
        r"""L^p norm of the function for `p` in `(1, 2, inf)`."""
        if p == 2:
            return float(np.sqrt(max(0.0, (self * self).sum())))
        if p == 1:
            F = self.cumsum()
            x = np.concatenate([[self.a], self.roots(), [self.b]])
            return float(np.sum(np.absolute(np.diff(F.evaluate(x)))))
        if p == np.inf:
            lo, hi = self.minmax()
            return max(abs(lo), abs(hi))
        raise ValueError("Unsupported norm: %s" % (p,))


class _ChebyEval(EvaluatorBase):
    r"""Evaluator for the ChebyshevFunction class."""
    def __init__(self, expr, use_mp):
        super(_ChebyEval, self).__init__(expr, use_mp)
        ctx = self.ctx
        a, b = map(ctx.mpf, expr.domain)
        self._scale = 2/(b-a)
        self._trans = -1 - 2*a/(b-a)
        an = [ctx.mpf(v) for v in expr.a_n] if use_mp else expr.a_n
        self._coeffs = [self._vector(an)]
        self._xrel = None
        num = len(an)
        self._Tk = [ctx.zero] * num if use_mp else np.zeros(num)
        self._dirty = True

    def _vector(self, elements):
        if len(elements) == 0:
            return []
        return list(elements) if self.use_mp else np.array(elements, dtype=float)

    def _x_changed(self, x):
        a, b = self.domain
        slack = DOMAIN_SLACK * max(abs(a), abs(b), b-a)
        if x < a - slack or x > b + slack:
            raise DomainError("Point %s outside domain [%r, %r]." % (x, a, b))
        # Small rounding errors might push the value slightly outside the
        # range (-1,1).
        self._xrel = min(1, max(-1, self._scale * x + self._trans))
        self._dirty = True

    def _get_coeffs(self, n):
        r"""Return cached coefficients for a certain derivative order."""
        for i in range(len(self._coeffs), n+1):
            coeffs = diff(self._coeffs[i-1], self.use_mp, self._scale)
            self._coeffs.append(self._vector(coeffs))
        return self._coeffs[n]

    def _values(self):
        r"""Return the basis function values at the current point.

        Basis function values are only recomputed if required. This means that
        if you evaluate the series and its derivatives at the same point, the
        basis has to be evaluated only once.
        """
        if self._dirty:
            self._Tk = evaluate_Tn(self._xrel, self._Tk, self.use_mp)
            self._dirty = False
        return self._Tk

    def _eval(self, n=0):
        ctx = self.ctx
        an = self._get_coeffs(n)
        if len(an) == 0:
            return ctx.zero
        values = self._values()
        if self.use_mp:
            return ctx.fsum(an[k]*values[k] for k in range(len(an)))
        return float(values[:len(an)].dot(an))
