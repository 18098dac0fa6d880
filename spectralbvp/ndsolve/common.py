r"""@package spectralbvp.ndsolve.common

Utils used by multiple modules in spectralbvp.ndsolve.
"""

import numpy as np


__all__ = []


def _make_callable(func, use_mp=False):
    r"""Make sure a given object is callable.

    If `func` is a `FunctionRepresentation`, an evaluator is returned. In this
    case, `use_mp` specifies whether the evaluator uses mpmath arbitrary
    precision arithmetics (if `True`) or faster floating point operations.

    `func` may also be a single numeric value, in which case a dummy function
    is created always evaluating to this value. If `func==None`, that value is
    set to zero.
    """
    try:
        func = func.evaluator(use_mp=use_mp)
    except AttributeError:
        pass
    if func is None:
        func = lambda x: 0.0
    if not callable(func):
        value = func
        func = lambda x: value
    return func


def _fd_step(values):
    r"""Forward difference step size suitable for perturbing `values`.

    This is \f$ \sqrt{\epsilon} \max(1, \Vert v \Vert_\infty) \f$.
    """
    scale = np.max(np.absolute(values)) if np.size(values) else 0.0
    return np.sqrt(np.finfo(float).eps) * max(1.0, float(scale))


def _as_equations(result):
    r"""Flatten the result of a condition function into a 1D float array.

    Conditions may return a single (scalar) value or a list/tuple of values,
    each of which may be a scalar or a sample.
    """
    if not isinstance(result, (list, tuple)):
        result = [result]
    if not result:
        return np.zeros(0)
    return np.concatenate([np.ravel(np.asarray(r, dtype=float)) for r in result])
