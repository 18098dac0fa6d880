r"""@package spectralbvp.ndsolve.bases

Spectral bases for the collocation solver.
"""

from .cheby import ChebyBasis
