r"""@package spectralbvp

Chebyshev spectral solver for nonlinear boundary value problems.

Functions are represented as adaptively truncated Chebyshev series in the
spectralbvp.exprs package (mainly exprs.cheby.ChebyshevFunction). The
spectralbvp.ndsolve package turns a nonlinear differential operator, its
boundary conditions and any unknown scalar parameters into a square system of
collocation equations and solves it with damped Newton steps, refining the
grid until the solution's Chebyshev coefficients have decayed.

@b Examples

```
    from spectralbvp.ndsolve import BVP, solvebvp

    problem = BVP(
        op=lambda x, u, a: 0.001*u.diff(2) + x*u + a,
        domain=(-1, 1),
        lbc=lambda u, a: [u + a + 1, u.diff()],
        rbc=lambda u, a: u - 1,
    )
    (u,), (a,) = solvebvp(problem)
```
"""
