#!/usr/bin/env python3

import unittest
import sys
import io
import math
from contextlib import redirect_stdout

import numpy as np

from testutils import NumericTestCase, slowtest
from ..numutils import ConvergenceFailure, inf_norm
from ..exprs.cheby import ChebyshevFunction
from .bcs import UnderdeterminedSystem, OverdeterminedSystem
from .bcs import DirichletCondition, NeumannCondition, FunctionalCondition
from .problem import BVP
from .newton import solvebvp, NewtonSolver
from .newton import NoConvergence, DidNotConverge, SingularJacobian
from .newton import InsufficientResolution


def _airy_problem():
    # 0.001 u'' + x u + a = 0 with u(-1) + a + 1 = 0, u'(-1) = 0, u(1) = 1
    return BVP(
        op=lambda x, u, a: 0.001*u.diff(2) + x*u + a,
        domain=(-1, 1),
        lbc=lambda u, a: [u + a + 1, u.diff()],
        rbc=lambda u, a: u - 1,
    )


def _cooling_problem():
    # Newton's law of cooling, y' + k T (y - S) = 0, rescaled to [0, 1]
    return BVP(
        op=lambda x, y, T: y.diff() + 1e-3*T*(y - 15),
        domain=(0, 1),
        lbc=lambda y, T: y - 37,
        rbc=lambda y, T: y - 20,
        init=lambda x: 37 - 17*x,
        init_params=[1000],
    )


COOLING_T = 1000 * math.log(22/5.0)


class TestScenarios(NumericTestCase):
    def test_airy_parameter(self):
        (u,), (a,) = solvebvp(_airy_problem())
        self.assertIsType(u, ChebyshevFunction)
        self.assertEqual(u.domain, (-1.0, 1.0))
        self.assertTrue(-1 < a < 0)
        du = u.differentiate()
        scale = max(1.0, inf_norm(du(np.linspace(-1, 1, 201))))
        self.assertAlmostEqual(u(-1) + a + 1, 0.0, delta=1e-10)
        self.assertAlmostEqual(du(-1), 0.0, delta=1e-10 * scale)
        self.assertAlmostEqual(u(1), 1.0, delta=1e-10)
        x = np.linspace(-0.9, 0.9, 37)
        res = 0.001*u.differentiate(2)(x) + x*u(x) + a
        self.assertLess(inf_norm(res), 1e-6)

    def test_cooling(self):
        solver = NewtonSolver()
        (y,), (T,) = solver.solve(_cooling_problem())
        self.assertAlmostEqual(T, COOLING_T, delta=1e-6)
        self.assertAlmostEqual(y(0), 37.0, delta=1e-8)
        self.assertAlmostEqual(y(1), 20.0, delta=1e-8)
        self.assertAlmostEqual(y(0.5), 15 + 22*math.exp(-0.5e-3*COOLING_T),
                               delta=1e-8)
        self.assertEqual(solver.resolution, 16)
        self.assertGreater(solver.iterations, 1)
        self.assertLessEqual(solver.iterations, 50)
        self.assertLess(solver.residual_norm, 1e-6)

    def test_cooling_without_guess(self):
        # No initial guess at all, neither for y nor for T.
        problem = BVP(
            op=lambda x, y, T: y.diff() + 1e-3*T*(y - 15),
            domain=(0, 1),
            lbc=lambda y, T: y - 37,
            rbc=lambda y, T: y - 20,
        )
        self.assertEqual(problem.init, (None,))
        self.assertEqual(problem.init_params, (0.0,))
        (y,), (T,) = solvebvp(problem)
        self.assertAlmostEqual(T, COOLING_T, delta=1e-6)
        self.assertAlmostEqual(y(0), 37.0, delta=1e-8)
        self.assertAlmostEqual(y(1), 20.0, delta=1e-8)

    def test_deterministic(self):
        (y1,), (T1,) = solvebvp(_cooling_problem())
        (y2,), (T2,) = solvebvp(_cooling_problem())
        self.assertEqual(T1, T2)
        self.assertListEqual(y1.a_n.tolist(), y2.a_n.tolist())

    def test_options(self):
        _, (T,) = solvebvp(_cooling_problem(), damping='none')
        self.assertAlmostEqual(T, COOLING_T, delta=1e-6)
        _, (T,) = solvebvp(_cooling_problem(), mat_solver='scipy.lstsq')
        self.assertAlmostEqual(T, COOLING_T, delta=1e-6)
        _, (T,) = solvebvp(_cooling_problem(), mat_solver='mp.lu_solve')
        self.assertAlmostEqual(T, COOLING_T, delta=1e-6)
        _, (T,) = solvebvp(_cooling_problem(), jacobian='nodal')
        self.assertAlmostEqual(T, COOLING_T, delta=1e-6)
        with self.assertRaises(AttributeError):
            solvebvp(_cooling_problem(), max_iteration=3)
        with self.assertRaises(ValueError):
            solvebvp(_cooling_problem(), damping='trust-region')
        with self.assertRaises(ValueError):
            solvebvp(_cooling_problem(), mat_solver='numpy')

    def test_system(self):
        # u' = v, v' = -u, u(0) = 0, u(pi/2) = 1
        problem = BVP(lambda x, u, v: [u.diff() - v, v.diff() + u],
                      domain=(0, np.pi/2), num_functions=2,
                      lbc=lambda u, v: u, rbc=lambda u, v: u - 1)
        (u, v), params = solvebvp(problem)
        self.assertEqual(params, [])
        x = np.linspace(0, np.pi/2, 20)
        self.assertAllClose(u(x), np.sin(x), atol=1e-9)
        self.assertAllClose(v(x), np.cos(x), atol=1e-9)

    def test_rhs(self):
        # u'' = -sin(x) on [0, pi] with u(0) = u(pi) = 0
        problem = BVP(lambda x, u: u.diff(2), domain=(0, np.pi),
                      lbc=0, rbc=0)
        (u,), _ = solvebvp(problem, rhs=lambda x: -np.sin(x))
        x = np.linspace(0, np.pi, 15)
        self.assertAllClose(u(x), np.sin(x), atol=1e-9)

    def test_nonlinear(self):
        # u'' = 6 u^2 on [1, 2], u(1) = 1, u(2) = 1/4 has solution 1/x^2
        problem = BVP(lambda x, u: u.diff(2) - 6*u**2, domain=(1, 2),
                      lbc=1.0, rbc=0.25, init=lambda x: 1.75 - 0.75*x)
        (u,), _ = solvebvp(problem)
        x = np.linspace(1, 2, 15)
        self.assertAllClose(u(x), 1/x**2, atol=1e-9)

    def test_interior_and_functional(self):
        # u'' = 0 with u'(0) = 2 and u(0.5) = 1
        problem = BVP(lambda x, u: u.diff(2), domain=(0, 1),
                      bcs=[NeumannCondition(0.0, 2.0),
                           DirichletCondition(0.5, 1.0)])
        (u,), _ = solvebvp(problem)
        self.assertAlmostEqual(u(1.0), 2.0, delta=1e-9)
        self.assertAlmostEqual(u(0.0), 0.0, delta=1e-9)
        # u' = a with u(0) = 0 and integral of u over [0, 1] equal to 1
        problem = BVP(lambda x, u, a: u.diff() - a, domain=(0, 1),
                      lbc=lambda u, a: u,
                      bcs=[FunctionalCondition(lambda u, a: u.integral() - 1)])
        (u,), (a,) = solvebvp(problem)
        self.assertAlmostEqual(a, 2.0, delta=1e-9)
        self.assertAlmostEqual(u(1.0), 2.0, delta=1e-9)

    def test_verbose(self):
        out = io.StringIO()
        with redirect_stdout(out):
            solvebvp(_cooling_problem(), verbose=True)
        text = out.getvalue()
        self.assertIn("01: |F| = ", text)
        self.assertIn("Resolution N=16", text)
        self.assertIn("Converged after", text)

    @slowtest
    def test_lane_emden(self):
        # x u'' + 2 u' + v^2 x u^n = 0 with the first root of u scaled to 1
        n = 4.5
        problem = BVP(
            op=lambda x, u, v: (x*u.diff(2) + 2*u.diff()
                                + x*v**2*(u + 1e-12)**n),
            domain=(0, 1),
            lbc=lambda u, v: [u - 1, u.diff()],
            rbc=lambda u, v: u,
            init=ChebyshevFunction.from_function(lambda x: np.cos(np.pi/2*x),
                                                 domain=(0, 1)),
            init_params=[3.0],
        )
        (u,), (v,) = solvebvp(problem, tol=1e-9)
        self.assertAlmostEqual(v, 31.836463244694285264, delta=1e-5)
        self.assertAlmostEqual(u(0), 1.0, delta=1e-8)
        self.assertAlmostEqual(u(1), 0.0, delta=1e-8)


class TestFailures(NumericTestCase):
    def test_iteration_limit(self):
        with self.assertRaises(DidNotConverge) as cm:
            solvebvp(_cooling_problem(), max_iterations=1)
        e = cm.exception
        self.assertEqual(e.iterations, 1)
        self.assertEqual(e.resolution, 16)
        self.assertEqual(len(e.state), 18)
        self.assertGreater(e.residual_norm, 0)
        self.assertIsInstance(e, NoConvergence)

    def test_insufficient_resolution(self):
        with self.assertRaises(InsufficientResolution) as cm:
            solvebvp(_airy_problem(), max_degree=32)
        self.assertIsInstance(cm.exception, ConvergenceFailure)
        self.assertIsInstance(cm.exception, NoConvergence)
        self.assertEqual(cm.exception.resolution, 32)

    def test_singular(self):
        # The parameter does not enter the problem at all.
        problem = BVP(lambda x, u, a: u.diff(2) + u, domain=(0, 1),
                      lbc=lambda u, a: u - 1,
                      rbc=lambda u, a: [u, u.diff()])
        for mat_solver in ('scipy.lu', 'mp.lu_solve'):
            with self.subTest(mat_solver=mat_solver):
                with self.assertRaises(SingularJacobian) as cm:
                    solvebvp(problem, mat_solver=mat_solver)
                e = cm.exception
                self.assertEqual(e.iterations, 1)
                self.assertEqual(e.resolution, 16)
                self.assertEqual(len(e.state), 18)
                self.assertIsNotNone(e.residual_norm)
                self.assertTrue(np.isfinite(e.residual_norm))

    def test_non_finite_initial_residual(self):
        problem = BVP(lambda x, u: u.diff(2) + np.log(u), lbc=1, rbc=1,
                      init=0.0)
        with self.assertRaises(NoConvergence) as cm:
            solvebvp(problem)
        e = cm.exception
        self.assertIs(type(e), NoConvergence)
        self.assertEqual(e.iterations, 0)
        self.assertEqual(e.resolution, 16)
        self.assertEqual(len(e.state), 17)
        self.assertEqual(e.residual_norm, np.inf)

    def test_equation_count(self):
        op = lambda x, u: u.diff(2) + u
        with self.assertRaises(UnderdeterminedSystem):
            solvebvp(BVP(op, lbc=0))
        with self.assertRaises(OverdeterminedSystem):
            solvebvp(BVP(op, lbc=lambda u: [u, u.diff()], rbc=0))


def run_tests():
    suite = unittest.TestLoader().loadTestsFromModule(sys.modules[__name__])
    return len(unittest.TextTestRunner(verbosity=2).run(suite).failures)


if __name__ == '__main__':
    unittest.main()
