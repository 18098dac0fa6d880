r"""@package spectralbvp.exprs

Function representations for composing functions and efficiently evaluating
them and their derivatives.

Each representation approximates a function on an interval (like a truncated
series \f$ \sum_{n=0}^N a_n T_n(x) \f$) and supports evaluation, exact
differentiation, arithmetic, composition and norms. Representations are
immutable, i.e. every operation results in a new object.

For point-wise evaluation, in particular using `mpmath` arbitrary precision
arithmetics, a *snapshot* of a representation can be turned into a callable
object, here called an *evaluator* (subclasses of evaluators._Evaluator).
"""

from .cheby import ChebyshevFunction
from .numexpr import FunctionRepresentation
