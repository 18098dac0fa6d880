r"""@package spectralbvp.ndsolve.bases.cheby

Chebyshev polynomial basis for the pseudospectral solver.

The nodal values at the Chebyshev-Lobatto points are mapped to Chebyshev
coefficients, differentiated exactly in coefficient space and mapped back (or
evaluated at an arbitrary point). The resulting matrices are cached per
derivative order.
"""

import numpy as np
from numpy.polynomial import chebyshev

from ...exprs import cheby
from .base import _SpectralSeriesBasis


__all__ = [
    "ChebyBasis",
]


class ChebyBasis(_SpectralSeriesBasis):
    r"""Pseudospectral basis set of Chebyshev polynomials."""
    def __init__(self, domain, num):
        super(ChebyBasis, self).__init__(domain=domain, num=num)
        self._coeff_mat = None
        self._coeff_derivs = dict()
        self._weights = None

    @classmethod
    def get_series_cls(cls):
        return cheby.ChebyshevFunction

    def coeff_mat(self):
        r"""Matrix mapping nodal values to Chebyshev coefficients."""
        if self._coeff_mat is None:
            C = np.column_stack(
                [cheby.values_to_coeffs(col) for col in np.eye(self.num)]
            )
            C.setflags(write=False)
            self._coeff_mat = C
        return self._coeff_mat

    def _coeff_deriv(self, n):
        r"""Matrix mapping nodal values to coefficients of the n'th derivative.

        The result has `num-n` rows. For `n >= num`, `None` is returned to
        indicate that the derivative vanishes identically.
        """
        if n >= self.num:
            return None
        if n not in self._coeff_derivs:
            M = self.coeff_mat()
            if n > 0:
                M = chebyshev.chebder(np.array(M), m=n, scl=self._scl)
            self._coeff_derivs[n] = M
        return self._coeff_derivs[n]

    def evaluate_all_at(self, x, n=0):
        r"""Row `r` such that `r.dot(values)` is the n'th derivative at `x`."""
        num = self.num
        M = self._coeff_deriv(n)
        if M is None:
            return np.zeros(num)
        t = np.clip(self.transform(x, back=True), -1.0, 1.0)
        return chebyshev.chebvander(np.atleast_1d(t), M.shape[0]-1)[0].dot(M)

    def _compute_deriv_mat(self, n):
        num = self.num
        if n == 0:
            return np.eye(num)
        M = self._coeff_deriv(n)
        if M is None:
            return np.zeros((num, num))
        return chebyshev.chebvander(self.pts_internal, M.shape[0]-1).dot(M)

    def quadrature_weights(self):
        r"""Clenshaw-Curtis weights for the physical domain."""
        if self._weights is None:
            a, b = self.domain
            w = cheby._integrals_Tn(self.num).dot(self.coeff_mat())
            w = (b-a)/2.0 * w
            w.setflags(write=False)
            self._weights = w
        return self._weights
