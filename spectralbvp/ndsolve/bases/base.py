r"""@package spectralbvp.ndsolve.bases.base

Base class(es) for spectral bases.

The unknowns of the collocation solver are the values of the solution
function(s) at the collocation points of a basis. The basis classes provide
everything needed to work with such nodal values: differentiation matrices,
rows evaluating (derivatives of) the interpolant at arbitrary points,
quadrature weights, conversion to function representations and resampling to
different resolutions.
"""

from abc import ABCMeta, abstractmethod

import numpy as np

from ...numutils import inf_norm
from ...exprs.series import transform_domains, resize_coeffs, is_resolved
from ...exprs.series import sample_function
from ...exprs.numexpr import FunctionRepresentation


__all__ = []


class _SpectralBasis(metaclass=ABCMeta):
    r"""Abstract basis class for pseudospectral bases.

    Sub classes should implement the following methods:
        * internal_domain() returning the native domain of the basis
        * _collocation_points() computing the collocation points in the native
          domain
        * _compute_deriv_mat() computing the matrix mapping nodal values to
          the values of the n'th derivative at the collocation points
        * evaluate_all_at() computing the row mapping nodal values to the
          n'th derivative at an arbitrary point
        * quadrature_weights() for integrating the interpolant
        * solution_function() constructing a function from nodal values
        * values_to_coeffs() and coeffs_to_values()
    """
    def __init__(self, domain, num):
        ## Physical domain of the problem.
        self._domain = tuple(map(float, domain))
        ## Number of collocation points (\ie resolution).
        self._num = num
        ## The collocation points in the basis' native domain.
        self._pts_internal = np.asarray(self._collocation_points(), dtype=float)
        ## The collocation points mapped to the physical domain.
        self._pts = transform_domains(self._pts_internal,
                                      self.internal_domain(), self._domain)
        self._pts.setflags(write=False)
        a, b = self.internal_domain()
        c, d = self._domain
        ## Scaling to apply due to derivatives being taken in the native
        ## domain instead of the physical one.
        self._scl = (b-a)/(d-c)
        ## Cached derivative matrices.
        self._deriv_mats = dict()

    def transform(self, x, back=False):
        r"""Transform a point between the physical and native/internal domain.

        Args:
            back: Whether to transform back from the physical to the native
                domain. Default is `False`, i.e. we transform from the native
                internal domain to the physical domain.
        """
        from_domain = self.internal_domain()
        to_domain = self.domain
        if back:
            from_domain, to_domain = to_domain, from_domain
        return float(transform_domains([x], from_domain, to_domain)[0])

    @property
    def pts(self):
        r"""All collocation points on the physical domain (read-only)."""
        return self._pts

    @property
    def pts_internal(self):
        r"""All collocation points on the internal domain."""
        return self._pts_internal

    @property
    def num(self):
        r"""Number of collocation points.

        This should NOT be confused with the formula symbol `N`, which is
        highly dependent on convention and often is chosen to be `num-1`,
        i.e. indices often run over `0, ..., N`.
        """
        return self._num

    @property
    def domain(self):
        r"""Physical domain of the basis.

        This is the domain on which to solve the problem.
        """
        return self._domain

    @abstractmethod
    def internal_domain(self):
        r"""Return the internal domain of the basis set."""
        pass

    @abstractmethod
    def _collocation_points(self):
        r"""Compute the collocation points on the internal (native) domain."""
        pass

    @abstractmethod
    def _compute_deriv_mat(self, n):
        r"""Compute the n'th derivative matrix acting on nodal values.

        Rows of the matrix correspond to the collocation points and columns
        to the nodal values.
        """
        pass

    @abstractmethod
    def evaluate_all_at(self, x, n=0):
        """Row `r` such that `r.dot(values)` is the n'th derivative at `x`.

        Args:
            x: Point in the physical domain.
            n: Derivative order.
        """
        pass

    @abstractmethod
    def quadrature_weights(self):
        r"""Weights `w` such that `w.dot(values)` integrates the interpolant."""
        pass

    @abstractmethod
    def values_to_coeffs(self, values):
        r"""Coefficients of the interpolant of the given nodal values."""
        pass

    @abstractmethod
    def coeffs_to_values(self, a_n):
        r"""Nodal values of the series with given coefficients."""
        pass

    @abstractmethod
    def solution_function(self, values, chop_tol=None, name=None):
        r"""Construct the solution function from nodal values."""
        pass

    def get_closest_collocation_point(self, point):
        """Return the collocation point closest to the given point.

        The index of this point and the point itself is returned. The `point`
        should be given in the physical domain.
        """
        idx = int(np.argmin(np.absolute(self._pts - point)))
        return idx, self._pts[idx]

    def deriv_mat(self, n):
        r"""Return derivative matrix of derivative order `n`."""
        try:
            return self._deriv_mats[n]
        except KeyError:
            M = self._compute_deriv_mat(n)
            M.setflags(write=False)
            self._deriv_mats[n] = M
            return M

    def sample(self, func):
        r"""Sample a function, callable or constant at all collocation points.

        `None` is interpreted as the zero function.
        """
        if func is None:
            return np.zeros(self._num)
        if isinstance(func, FunctionRepresentation):
            return np.asarray(func.evaluate(self._pts), dtype=float)
        if not callable(func):
            return np.full(self._num, float(func))
        return sample_function(func, self._pts)

    def resample_values(self, values, num):
        r"""Nodal values of the interpolant at `num` collocation points.

        This is lossless for increasing resolutions.
        """
        a_n = resize_coeffs(self.values_to_coeffs(values), num)
        return self.coeffs_to_values(a_n)

    def is_resolved(self, values, tol):
        r"""Whether the interpolant's coefficients have decayed to `tol`.

        The largest absolute nodal value is used as scale.
        """
        return is_resolved(self.values_to_coeffs(values), tol,
                           vscale=inf_norm(values))


class _SpectralSeriesBasis(_SpectralBasis):
    r"""Spectral basis base class utilizing implemented series expansions.

    This convenience base class simplifies implementation of spectral bases
    for which a series class has been implemented as a subclass of
    exprs.series.SeriesExpression.

    Child classes need only provide the methods:
        * get_series_cls()
        * evaluate_all_at()
        * quadrature_weights()
        * _compute_deriv_mat()
    """
    def __init__(self, domain, num):
        r"""Create a basis object with a given domain and resolution.

        @param domain
            (2-tuple/list)
            Physical domain as `(a, b)` of the problem. This is independent of
            the domain of the basis functions.
        @param num
            (int)
            Number of collocation points. This defines the resolution (and
            computational cost).
        """
        super(_SpectralSeriesBasis, self).__init__(domain=domain, num=num)

    @classmethod
    @abstractmethod
    def get_series_cls(cls):
        r"""The series class for creating new objects of the series type."""
        pass

    def _collocation_points(self):
        return self.get_series_cls().create_collocation_points(self._num)

    def internal_domain(self):
        return self.get_series_cls().internal_domain()

    def values_to_coeffs(self, values):
        return self.get_series_cls()._from_physical_space(
            np.asarray(values, dtype=float)
        )

    def coeffs_to_values(self, a_n):
        return self.get_series_cls()._to_physical_space(
            np.asarray(a_n, dtype=float)
        )

    def solution_function(self, values, chop_tol=None, name=None):
        return self.get_series_cls().from_values(
            values, domain=self._domain, chop_tol=chop_tol, name=name
        )
