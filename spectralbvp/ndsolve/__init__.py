r"""@package spectralbvp.ndsolve

Spectral collocation solver for nonlinear boundary value problems.

A problem is defined via problem.BVP, which collects the differential
operator, the domain, boundary (and other) conditions, and the initial guess.
It is solved by solvebvp() (or a configured newton.NewtonSolver), which
returns the solution functions as exprs.cheby.ChebyshevFunction objects
together with the values of any unknown scalar parameters.

The operator is given as a callable acting on array-like samples of the
unknowns (see samples.FunctionSample). Unknown parameters are simply further
arguments of the operator and condition callables.

@b Examples

```
    # u'' + u = 0, u(0) = 0, u(pi/2) = 1
    problem = BVP(lambda x, u: u.diff(2) + u, domain=(0, np.pi/2),
                  lbc=lambda u: u, rbc=lambda u: u - 1)
    (u,), params = solvebvp(problem)
```
"""

from .problem import BVP
from .newton import solvebvp, NewtonSolver
from .newton import NoConvergence, DidNotConverge, SingularJacobian
from .newton import InsufficientResolution
from .bcs import PointCondition, RobinCondition, DirichletCondition
from .bcs import NeumannCondition, FunctionalCondition
from .bcs import NDSolveError, UnderdeterminedSystem, OverdeterminedSystem
from .bases import ChebyBasis
from .discretize import DiscreteOperator
