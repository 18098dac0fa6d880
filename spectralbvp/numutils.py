r"""@package spectralbvp.numutils

Miscellaneous numerical utilities, helpers and the base exceptions.


@b Examples

```
    >>> inf_norm([1.5, -3.0, 2.0])
    3.0
```
"""

from contextlib import contextmanager
import warnings

from scipy.linalg import LinAlgWarning
import numpy as np


__all__ = [
    "NumericalError",
    "ConvergenceFailure",
    "DomainError",
    "inf_norm",
    "raise_all_warnings",
]


class NumericalError(Exception):
    r"""Base exception for problems with numerical evaluation or solving."""
    pass


class ConvergenceFailure(NumericalError):
    r"""Raised when a function could not be resolved within a degree limit.

    This happens when the Chebyshev coefficients of the sampled function do
    not decay below the requested tolerance before the maximum degree is
    reached, e.g. because the function is not smooth enough.
    """
    pass


class DomainError(NumericalError, ValueError):
    r"""Raised for evaluation or composition outside a function's domain."""
    pass


def inf_norm(values):
    r"""Maximum absolute value of an array (zero for empty arrays)."""
    values = np.asarray(values)
    if values.size == 0:
        return 0.0
    return float(np.max(np.absolute(values)))


@contextmanager
def raise_all_warnings():
    r"""Context manager for turning numpy and linear algebra warnings into exceptions.

    For example:
    ```
        with raise_all_warnings():
            np.pi / np.linspace(0, 1, 10)
    ```
    Without the `raise_all_warnings()` context, the above code would just
    issue a warning but otherwise run fine. This allows catching the exception
    to act upon it, e.g.
    ```
        with raise_all_warnings():
            try:
                linalg.lu_factor(np.zeros((3, 3)))
            except LinAlgWarning:
                print("Singular matrix.")
    ```
    """
    old_settings = np.seterr(divide='raise', over='raise', invalid='raise')
    try:
        with warnings.catch_warnings():
            warnings.filterwarnings('error', category=LinAlgWarning)
            yield
    finally:
        np.seterr(**old_settings)
