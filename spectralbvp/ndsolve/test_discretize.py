#!/usr/bin/env python3

import unittest
import sys

import numpy as np

from testutils import NumericTestCase
from .bases.cheby import ChebyBasis
from .bcs import FunctionalCondition, UnderdeterminedSystem
from .bcs import OverdeterminedSystem, NDSolveError
from .problem import BVP
from .discretize import DiscreteOperator, _find_free_index


class TestRowSelection(NumericTestCase):
    def test_find_free_index(self):
        self.assertEqual(_find_free_index(3, 5, []), 3)
        self.assertEqual(_find_free_index(3, 5, [3]), 4)
        self.assertEqual(_find_free_index(5, 5, [5]), 4)
        self.assertEqual(_find_free_index(0, 2, [0, 1]), 2)
        self.assertIsNone(_find_free_index(0, 2, [0, 1, 2]))

    def test_kept_rows(self):
        problem = BVP(lambda x, u, a: 0.001*u.diff(2) + x*u + a,
                      lbc=lambda u, a: [u + a + 1, u.diff()],
                      rbc=lambda u, a: u - 1)
        disc = DiscreteOperator(problem, ChebyBasis((-1, 1), 9))
        self.assertEqual(disc.orders, (2,))
        self.assertEqual(disc.size, 10)
        # rows at x=-1 (last index) and x=1 (first index) removed
        self.assertListEqual(disc.kept_rows[0].tolist(), list(range(1, 8)))

    def test_kept_rows_system(self):
        problem = BVP(lambda x, u, v: [u.diff() - v, v.diff(2) + u],
                      domain=(0, 1), num_functions=2,
                      lbc=lambda u, v: [u, v], rbc=lambda u, v: v - 1)
        disc = DiscreteOperator(problem, ChebyBasis((0, 1), 9))
        self.assertEqual(disc.orders, (1, 2))
        self.assertListEqual(disc.kept_rows[0].tolist(), list(range(0, 8)))
        self.assertListEqual(disc.kept_rows[1].tolist(), list(range(1, 8)))

    def test_no_point_conditions(self):
        # Without point conditions, rows at both ends are removed.
        problem = BVP(lambda x, u, a: u.diff(2) - a,
                      bcs=[FunctionalCondition(lambda u, a: [u.integral(),
                                                             u.at(1.0),
                                                             u.at(-1.0) - a])])
        disc = DiscreteOperator(problem, ChebyBasis((-1, 1), 7))
        self.assertListEqual(disc.kept_rows[0].tolist(), list(range(1, 6)))

    def test_equation_count(self):
        op = lambda x, u: u.diff(2) + u
        with self.assertRaises(UnderdeterminedSystem):
            DiscreteOperator(BVP(op, lbc=lambda u: u),
                             ChebyBasis((-1, 1), 9))
        with self.assertRaises(OverdeterminedSystem):
            DiscreteOperator(BVP(op, lbc=lambda u: [u, u.diff()],
                                 rbc=lambda u: u),
                             ChebyBasis((-1, 1), 9))
        with self.assertRaises(NDSolveError):
            DiscreteOperator(BVP(lambda x, u: u.diff(4), lbc=lambda u: [u, u],
                                 rbc=lambda u: [u, u]),
                             ChebyBasis((-1, 1), 3))


class TestDiscreteOperator(NumericTestCase):
    def _problem(self):
        return BVP(lambda x, u, a: u.diff(2) + a*u**2 - x,
                   domain=(0, 2),
                   lbc=lambda u, a: u - 1,
                   rbc=lambda u, a: [u - a, u.diff()],
                   init=np.cos, init_params=[0.5])

    def test_split_join(self):
        disc = DiscreteOperator(self._problem(), ChebyBasis((0, 2), 9))
        state = disc.initial_state()
        self.assertEqual(len(state), disc.size)
        values, params = disc.split(state)
        self.assertAllClose(values[0], np.cos(disc.basis.pts))
        self.assertAllClose(params, [0.5])
        self.assertAllClose(disc.join(values, params), state)

    def test_linear_seed(self):
        problem = BVP(lambda x, y, T: y.diff() + 1e-3*T*(y - 15),
                      domain=(0, 1),
                      lbc=lambda y, T: y - 37, rbc=lambda y, T: y - 20)
        disc = DiscreteOperator(problem, ChebyBasis((0, 1), 9))
        values, params = disc.split(disc.initial_state())
        self.assertAllClose(values[0], 37 - 17*disc.basis.pts, atol=1e-4)
        self.assertAllClose(params, [0.0])
        # only functions without a guess are seeded
        problem = BVP(lambda x, u, v: [u.diff() - v, v.diff() + u],
                      domain=(0, 2), init=[None, np.cos],
                      lbc=lambda u, v: u - 1, rbc=lambda u, v: u + 1)
        disc = DiscreteOperator(problem, ChebyBasis((0, 2), 9))
        values, _ = disc.split(disc.initial_state())
        self.assertAllClose(values[0], 1 - disc.basis.pts, atol=1e-5)
        self.assertAllClose(values[1], np.cos(disc.basis.pts))

    def test_seed_fallback(self):
        # Conditions not finite for the zero function leave the zero seed.
        problem = BVP(lambda x, u: u.diff(2), domain=(0, 1),
                      lbc=lambda u: np.log(u), rbc=lambda u: u - 1)
        disc = DiscreteOperator(problem, ChebyBasis((0, 1), 9))
        self.assertAllClose(disc.initial_state(), np.zeros(9))

    def test_residual(self):
        # u = x^2 solves u'' - 2 = 0 exactly
        problem = BVP(lambda x, u: u.diff(2), domain=(0, 2),
                      lbc=lambda u: u, rbc=lambda u: u.diff() - 4,
                      init=lambda x: x**2)
        disc = DiscreteOperator(problem, ChebyBasis((0, 2), 9), rhs=2)
        F = disc.residual(disc.initial_state())
        self.assertEqual(len(F), 9)
        self.assertAllClose(F, np.zeros(9), atol=1e-11)
        disc = DiscreteOperator(problem, ChebyBasis((0, 2), 9),
                                rhs=lambda x: 2 + x)
        F = disc.residual(disc.initial_state())
        x = disc.basis.pts[disc.kept_rows[0]]
        self.assertAllClose(F[:7], -x, atol=1e-11)

    def test_jacobian_methods_agree(self):
        disc = DiscreteOperator(self._problem(), ChebyBasis((0, 2), 9))
        state = disc.initial_state()
        F = disc.residual(state)
        J_local = disc.jacobian(state, F0=F)
        J_nodal = disc.jacobian(state, F0=F, method='nodal')
        self.assertEqual(J_local.shape, (10, 10))
        scale = np.max(np.absolute(J_local))
        self.assertAllClose(J_local, J_nodal, atol=1e-6*scale)
        # parameter column: d/da (u'' + a u^2 - x) = u^2 at kept rows
        values, _ = disc.split(state)
        kept = disc.kept_rows[0]
        self.assertAllClose(J_local[:len(kept), -1], values[0][kept]**2,
                            atol=1e-6)
        with self.assertRaises(ValueError):
            disc.jacobian(state, method='exact')

    def test_linear_jacobian(self):
        # For a linear operator, the local Jacobian is the collocation matrix.
        problem = BVP(lambda x, u: u.diff(2) + x*u.diff() - 3*u,
                      lbc=0, rbc=lambda u: u.diff())
        basis = ChebyBasis((-1, 1), 8)
        disc = DiscreteOperator(problem, basis)
        J = disc.jacobian(disc.initial_state())
        x = basis.pts
        L = (basis.deriv_mat(2) + x[:, np.newaxis] * basis.deriv_mat(1)
             - 3*np.eye(8))
        kept = disc.kept_rows[0]
        self.assertAllClose(J[:len(kept)], L[kept],
                            atol=1e-7*np.max(np.absolute(L)))
        self.assertAllClose(J[-2], basis.evaluate_all_at(-1.0), atol=1e-7)
        self.assertAllClose(J[-1], basis.evaluate_all_at(1.0, 1),
                            atol=1e-7*np.max(np.absolute(J[-1])))

    def test_resample(self):
        disc = DiscreteOperator(self._problem(), ChebyBasis((0, 2), 9))
        state = disc.initial_state()
        fine, fine_state = disc.resample(state, 17)
        self.assertEqual(fine.num, 17)
        self.assertEqual(fine.size, 18)
        self.assertEqual(fine.orders, (2,))
        values, params = fine.split(fine_state)
        self.assertAllClose(params, [0.5])
        self.assertAllClose(values[0], np.cos(fine.basis.pts), atol=1e-5)

    def test_operator_result(self):
        problem = BVP(lambda x, u, v: u.diff() - v, num_functions=2,
                      lbc=lambda u, v: [u, v])
        with self.assertRaises(ValueError):
            DiscreteOperator(problem, ChebyBasis((-1, 1), 5))
        # scalar and one-element list results are broadcast
        problem = BVP(lambda x, u, a: [a - 2], lbc=lambda u, a: u,
                      num_params=1)
        disc = DiscreteOperator(problem, ChebyBasis((-1, 1), 5))
        F = disc.residual(disc.initial_state())
        self.assertAllClose(F, [-2]*5 + [0])


def run_tests():
    suite = unittest.TestLoader().loadTestsFromModule(sys.modules[__name__])
    return len(unittest.TextTestRunner(verbosity=2).run(suite).failures)


if __name__ == '__main__':
    unittest.main()
