r"""@package spectralbvp.exprs.series

Base class for general truncated series expressions.

Apart from the SeriesExpression class, this module contains the helper
functions deciding when a truncated series resolves a function, i.e.
tail_length(), is_resolved() and chop_coeffs(), which are used both for
adaptively constructing series and by the nonlinear solver to decide whether
the collocation grid needs refinement.
"""

from abc import abstractmethod
import math

import numpy as np
from mpmath import mp

from ..numutils import ConvergenceFailure, inf_norm
from ..utils import isiterable
from .numexpr import FunctionRepresentation


__all__ = [
    "SeriesExpression",
    "transform_domains",
    "resize_coeffs",
    "tail_length",
    "is_resolved",
    "chop_coeffs",
    "sample_function",
]


def resize_coeffs(coeffs, num):
    r"""Truncate or zero-pad a 1D coefficient list to `num` elements.

    For orthogonal bases, this is equivalent to *resampling* the series
    expansion to a different resolution. Increasing the resolution and
    shrinking it afterwards is lossless.

    Returns:
        NumPy array of the new coefficients.
    """
    coeffs = np.asarray(coeffs, dtype=float)[:num]
    return np.pad(coeffs, (0, max(0, num-len(coeffs))), mode='constant',
                  constant_values=0.0)


def transform_domains(points, from_domain, to_domain, use_mp=False, dps=None):
    r"""Linearly transform a set of points between two intervals.

    The points are transformed bijectively, linearly, and orientation
    preserving. The values are guaranteed to lie in the target domain, i.e.
    any numerical noise will not lead to points lying slightly outside after
    the transformation.

    Args:
        points: Iterable of all points to transform. Points must be plain
                values, i.e. no vectors.
        from_domain: 2-tuple/list indicating the interval the points are
                currently living in.
        to_domain: 2-tuple/list indicating the target interval the returned
                points should live in.
        use_mp: Whether to use arbitrary precision math operations (`True`) or
                faster floating point precision operations (`False`, default).
        dps:    Number of decimal places to use in case of `use_mp==True`.

    Returns:
        A `list` of `mpf` values if `use_mp==True` and a NumPy array
        otherwise.
    """
    if not use_mp:
        a, b = map(float, to_domain)
        c, d = map(float, from_domain)
        scale = (b-a)/(d-c)
        trans = a - (b-a)*c/(d-c)
        return np.clip(scale * np.asarray(points, dtype=float) + trans, a, b)
    with mp.workdps(dps or mp.dps):
        a, b = map(mp.mpf, to_domain)
        c, d = map(mp.mpf, from_domain)
        scale = (b-a)/(d-c)
        trans = a - (b-a)*c/(d-c)
        return [min(b, max(a, scale*p + trans)) for p in points]


def tail_length(num):
    r"""Number of trailing coefficients that have to be negligible.

    For a series with `num` coefficients, the last `max(2, ceil(num/8))`
    coefficients are checked.
    """
    return max(2, int(math.ceil(num / 8.0)))


def is_resolved(a_n, tol, vscale=None):
    r"""Check whether a coefficient list has decayed to a given tolerance.

    @param a_n
        Coefficients of the series.
    @param tol
        Relative tolerance.
    @param vscale
        Scale of the function values. By default, the largest coefficient is
        used.

    @return `True` if the last tail_length() coefficients are all below
        `tol * vscale`.
    """
    a_n = np.absolute(np.asarray(a_n, dtype=float))
    if vscale is None:
        vscale = inf_norm(a_n)
    num = len(a_n)
    tail = tail_length(num)
    if num <= tail:
        return False
    return bool(np.all(a_n[-tail:] <= tol * vscale))


def chop_coeffs(a_n, threshold):
    r"""Remove all trailing coefficients not exceeding `threshold` in magnitude.

    At least one coefficient is always kept, i.e. a list of negligible
    coefficients results in the zero function `[0.0]`.
    """
    a_n = np.asarray(a_n, dtype=float)
    significant = np.nonzero(np.absolute(a_n) > threshold)[0]
    if len(significant) == 0:
        return np.zeros(1)
    return a_n[:significant[-1]+1]


def sample_function(f, x):
    r"""Evaluate a callable at all points of the array `x`.

    Vectorized callables are called once with the full array. Callables that
    do not accept arrays (or return something of a different shape) are called
    point-wise. Constant return values are broadcast.

    Returns:
        NumPy float array of the same shape as `x`.
    """
    x = np.asarray(x, dtype=float)
    try:
        values = np.asarray(f(x), dtype=float)
    except (TypeError, ValueError):
        values = None
    if values is None or values.shape not in ((), x.shape):
        values = np.array([float(f(xi)) for xi in x], dtype=float)
    return np.array(np.broadcast_to(values, x.shape), dtype=float)


class SeriesExpression(FunctionRepresentation):
    r"""Base class for truncated series expressions.

    This base class is responsible for managing the (read-only) coefficient
    array, domain transformations and the adaptive construction from
    callables. To perform its task, sub classes need to implement the
    following functions:

        _from_physical_space()      # compute coefficients from function values
        _to_physical_space()        # compute function values from coefficients
        internal_domain()           # the domain of the basis
        create_collocation_points() # collocation points of the basis

    ... plus the remaining abstract methods of
    numexpr.FunctionRepresentation.
    """

    ## Default relative tolerance for deciding when a function is resolved.
    default_tol = 1e-14
    ## Default maximum degree for the adaptive construction.
    default_max_degree = 2**16
    ## Default degree to start the adaptive construction with.
    default_min_degree = 16

    def __init__(self, a_n, domain, name=None, tol=None):
        r"""Parent init for series expressions.

        Args:
            a_n:    Iterable of coefficient values. An empty iterable
                    represents the zero function.
            domain: Domain on which this expansion should be defined. This is
                    independent of the domain the basis is defined on.
            name:   Optional name of the function.
            tol:    Relative tolerance used for trimming results of
                    arithmetic operations. Default is #default_tol.
        """
        super(SeriesExpression, self).__init__(domain=domain, name=name)
        self._check_a_n(a_n)
        a_n = np.array(a_n, dtype=float).reshape(-1)
        if len(a_n) == 0:
            a_n = np.zeros(1)
        a_n.setflags(write=False)
        self._a_n = a_n
        self._tol = self.default_tol if tol is None else tol

    def _check_a_n(self, a_n):
        r"""Make sure the coefficients are iterable."""
        if not isiterable(a_n):
            raise ValueError('Coefficient list must be an iterable.')

    @property
    def tol(self):
        r"""Relative tolerance for trimming arithmetic results."""
        return self._tol

    @property
    def a(self):
        r"""Left end of the domain."""
        return self.domain[0]

    @property
    def b(self):
        return self.domain[1]

    @property
    def a_n(self):
        r"""Read-only array of coefficients."""
        return self._a_n

    @property
    def coefficients(self):
        r"""Read-only array of coefficients (same as #a_n)."""
        return self._a_n

    def get_dof(self):
        r"""Return the degrees of freedom, \ie the current number of coefficients."""
        return len(self._a_n)

    @property
    def N(self):
        r"""Degrees of freedom, \ie current number of coefficients."""
        return self.get_dof()

    @property
    def degree(self):
        r"""Index of the last stored basis function."""
        return self.get_dof() - 1

    def _new(self, a_n, domain=None):
        r"""Create a new series of the same type with the given coefficients."""
        return type(self)(a_n, domain=self.domain if domain is None else domain,
                          tol=self.tol)

    def resample(self, num):
        r"""Return the expansion at a different resolution.

        For orthogonal bases, upsampling is lossless. Also in that case,
        increasing and then reducing the resolution to its original value is
        lossless and introduces no numerical noise.
        """
        if num < 1:
            raise ValueError("Cannot resample to %s coefficients." % num)
        return self._new(resize_coeffs(self._a_n, num))

    def values(self, num=None):
        r"""Return the function values at the `num` collocation points.

        By default, the current number of coefficients is used.
        """
        a_n = self._a_n if num is None else resize_coeffs(self._a_n, num)
        return self._to_physical_space(a_n)

    def chop(self, tol=None):
        r"""Return a copy with trailing coefficients below `tol * vscale` removed.

        Here, `vscale` is the largest absolute value at the collocation points.
        """
        if tol is None:
            tol = self.tol
        vscale = inf_norm(self.values())
        return self._new(chop_coeffs(self._a_n, tol * vscale))

    def collocation_points(self, num=None, internal_domain=False, use_mp=False,
                           dps=None):
        r"""Return the collocation points for this series.

        Args:
            num: (int, optional)
                Number of collocation points to create. Note that in most
                printed formulas, the points have indices `0, 1, ..., N`,
                i.e. there are `N+1` points. The default is the current number
                of coefficients.
            internal_domain: (boolean, optional)
                If `False` (the default), return the collocation points mapped
                to the range `[a,b]`. If `True`, use the internal domain.
            use_mp: (boolean, optional)
                Whether to compute the points using `mpmath` arbitrary
                precision calculations.
            dps: (int, optional)
                Number of decimal places to use when `use_mp==True`.
        """
        if num is None:
            num = self.get_dof()
        x = self.create_collocation_points(num, use_mp=use_mp, dps=dps)
        if not internal_domain:
            x = transform_domains(x, self.internal_domain(), self.domain,
                                  use_mp=use_mp, dps=dps)
        return x

    @classmethod
    def physical_collocation_points(cls, num, domain):
        r"""Collocation points (as NumPy array) mapped to the given domain."""
        x = cls.create_collocation_points(num)
        return transform_domains(x, cls.internal_domain(), domain)

    @classmethod
    def from_coefficients(cls, a_n, domain=(-1, 1), name=None, tol=None):
        r"""Create a series from given coefficients."""
        return cls(a_n, domain=domain, name=name, tol=tol)

    @classmethod
    def from_values(cls, values, domain=(-1, 1), chop_tol=None, name=None):
        r"""Create a series interpolating values at the collocation points.

        @param values
            Function values at the `len(values)` collocation points of the
            given domain.
        @param domain
            Physical domain.
        @param chop_tol
            If given, trailing coefficients below `chop_tol * vscale` are
            removed, `vscale` being the largest absolute value.
        @param name
            Optional name of the function.
        """
        values = np.asarray(values, dtype=float).reshape(-1)
        if len(values) == 0:
            raise ValueError("Cannot interpolate zero values.")
        a_n = cls._from_physical_space(values)
        if chop_tol is not None:
            a_n = chop_coeffs(a_n, chop_tol * inf_norm(values))
        return cls(a_n, domain=domain, name=name, tol=chop_tol)

    @classmethod
    def from_function(cls, f, domain=None, tol=None, max_degree=None,
                      min_degree=None, name=None):
        r"""Adaptively approximate a function.

        The function is sampled at the collocation points for degrees
        `N = min_degree, 2*min_degree, ...` until the coefficients have
        decayed (see is_resolved()) or `max_degree` is reached. The result is
        then chopped to the minimal length satisfying the tolerance.

        @param f
            Callable to approximate. Can be vectorized or not. May also be a
            constant or another function representation.
        @param domain
            Domain of the result. Taken from `f.domain` by default.
        @param tol
            Relative tolerance. The trailing coefficients need to be below
            `tol * vscale`, where `vscale` is the largest absolute sampled
            value. Default is #default_tol.
        @param max_degree
            Largest degree to try. Default is #default_max_degree.
        @param min_degree
            Degree to start with. Default is #default_min_degree.
        @param name
            Optional name of the function.

        @b Raises

        `ConvergenceFailure` if the coefficients did not decay before
        reaching `max_degree` or if the function is not finite at a sampled
        point.
        """
        if domain is None:
            domain = f.domain
        tol = cls.default_tol if tol is None else tol
        max_degree = cls.default_max_degree if max_degree is None else max_degree
        min_degree = cls.default_min_degree if min_degree is None else min_degree
        if isinstance(f, FunctionRepresentation):
            f = f.evaluate
        if not callable(f):
            return cls([float(f)], domain=domain, name=name, tol=tol)
        N = max(1, min(min_degree, max_degree))
        values = None
        while True:
            x = cls.physical_collocation_points(N+1, domain)
            if values is not None and 2 * (len(values)-1) == N:
                # Points of the coarser grid are every second point now.
                new_values = np.empty(N+1)
                new_values[::2] = values
                new_values[1::2] = sample_function(f, x[1::2])
                values = new_values
            else:
                values = sample_function(f, x)
            if not np.all(np.isfinite(values)):
                raise ConvergenceFailure("Function not finite at sample points.")
            a_n = cls._from_physical_space(values)
            vscale = inf_norm(values)
            if is_resolved(a_n, tol, vscale):
                return cls(chop_coeffs(a_n, tol * vscale), domain=domain,
                           name=name, tol=tol)
            if N >= max_degree:
                raise ConvergenceFailure(
                    "Function not resolved with degree %d (last coefficient "
                    "magnitude %g, tolerance %g)."
                    % (N, abs(a_n[-1]), tol * vscale)
                )
            N = min(2*N, max_degree)

    @classmethod
    @abstractmethod
    def _from_physical_space(cls, values):
        r"""Convert values at the collocation points to coefficients."""
        pass

    @classmethod
    @abstractmethod
    def _to_physical_space(cls, a_n):
        r"""Convert coefficients to values at the collocation points."""
        pass

    @classmethod
    @abstractmethod
    def internal_domain(cls):
        pass

    @classmethod
    @abstractmethod
    def create_collocation_points(cls, num, use_mp=False, dps=None):
        r"""Collocation points in the internal domain."""
        pass
