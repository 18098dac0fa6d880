r"""@package spectralbvp.ndsolve.samples

Array-like views of the unknown functions passed to user callables.

The operator and condition callables of a problem (see problem.BVP) do not
receive function objects but *samples*: the values of an unknown function on
the collocation grid (or at a single point for point conditions). Samples
behave like NumPy arrays (or floats) under arithmetic and NumPy ufuncs, so
that e.g.

```
    op = lambda x, u, a: 0.001*u.diff(2) + x*u + a
```

works as expected. Derivatives are obtained via FunctionSample.diff() and are
computed lazily using the differentiation matrices of the basis. Samples also
record the highest derivative order requested for each unknown, which is used
to determine how many collocation rows need to be replaced by conditions.

Samples used during Jacobian construction may be *perturbed*: a fixed
increment is added to one of the derivative arrays, such that the user
callable can be linearized with respect to that derivative.
"""

import numbers

import numpy as np
from numpy.lib.mixins import NDArrayOperatorsMixin


__all__ = [
    "FunctionSample",
    "GridSample",
]


class GridDerivatives(object):
    r"""Lazily computed derivatives of nodal values on the collocation grid."""
    def __init__(self, basis, values):
        ## The spectral basis defining the grid.
        self.basis = basis
        ## Nodal values of the function.
        self.values = np.asarray(values, dtype=float)
        self._derivs = {0: self.values}

    def __call__(self, n):
        try:
            return self._derivs[n]
        except KeyError:
            result = self.basis.deriv_mat(n).dot(self.values)
            self._derivs[n] = result
            return result


class PointDerivatives(object):
    r"""Lazily computed derivatives of an interpolant at a single point."""
    def __init__(self, basis, values, x):
        self.basis = basis
        self.values = np.asarray(values, dtype=float)
        ## Physical point at which to evaluate.
        self.x = x
        self._derivs = dict()

    def __call__(self, n):
        try:
            return self._derivs[n]
        except KeyError:
            result = float(self.basis.evaluate_all_at(self.x, n).dot(self.values))
            self._derivs[n] = result
            return result


class FunctionSample(NDArrayOperatorsMixin):
    r"""Array-like samples of an unknown function and its derivatives.

    Arithmetic with other samples, arrays or numbers as well as NumPy ufuncs
    act on the sampled values and return plain NumPy arrays (or NumPy scalars
    for samples at a single point).
    """
    def __init__(self, derivatives, index=0, recorder=None, perturbation=None):
        r"""Create a sample.

        @param derivatives
            Callable returning the sampled n'th derivative for a given `n`,
            e.g. a GridDerivatives or PointDerivatives object.
        @param index
            Index of the unknown function this sample belongs to.
        @param recorder
            Optional dictionary into which the highest requested derivative
            order is written (key is `index`).
        @param perturbation
            Optional 2-tuple `(n, h)` for adding `h` to the n'th derivative.
        """
        self._derivatives = derivatives
        self._index = index
        self._recorder = recorder
        self._perturbation = perturbation
        self._values = self._get(0)

    def _get(self, n):
        value = self._derivatives(n)
        if self._perturbation is not None and self._perturbation[0] == n:
            value = value + self._perturbation[1]
        return value

    @property
    def index(self):
        r"""Index of the unknown function this sample belongs to."""
        return self._index

    @property
    def values(self):
        r"""The sampled values (do not modify)."""
        return self._values

    @property
    def shape(self):
        return np.shape(self._values)

    def diff(self, n=1):
        r"""Return the sampled n'th derivative as array (or float)."""
        if not isinstance(n, numbers.Integral) or n < 0:
            raise ValueError("Invalid derivative order: %r" % (n,))
        n = int(n)
        if self._recorder is not None:
            self._recorder[self._index] = max(self._recorder.get(self._index, 0), n)
        if n == 0:
            return self._values
        return self._get(n)

    def __array__(self, dtype=None, copy=None):
        return np.array(self._values, dtype=dtype)

    def __array_ufunc__(self, ufunc, method, *inputs, **kwargs):
        if any(isinstance(o, FunctionSample) for o in kwargs.get('out', ())):
            raise TypeError("Samples cannot be modified in-place.")
        inputs = tuple(i._values if isinstance(i, FunctionSample) else i
                       for i in inputs)
        return getattr(ufunc, method)(*inputs, **kwargs)

    def __float__(self):
        return float(self._values)

    def __len__(self):
        return len(self._values)

    def __getitem__(self, key):
        return self._values[key]

    def __repr__(self):
        return "<%s u_%d: %r>" % (type(self).__name__, self._index, self._values)


class GridSample(FunctionSample):
    r"""Sample on the full collocation grid supporting global functionals.

    This is what bcs.FunctionalCondition callables receive. In addition
    to the array behaviour, the interpolant can be integrated over the domain
    or evaluated at arbitrary points.
    """
    def __init__(self, derivatives, index=0):
        super(GridSample, self).__init__(derivatives, index=index)

    def integral(self):
        r"""Integral of the interpolant over the whole domain."""
        d = self._derivatives
        return float(d.basis.quadrature_weights().dot(d.values))

    def at(self, x, n=0):
        r"""Evaluate the n'th derivative of the interpolant at `x`."""
        d = self._derivatives
        return float(d.basis.evaluate_all_at(x, n).dot(d.values))
