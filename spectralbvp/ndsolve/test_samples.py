#!/usr/bin/env python3

import unittest
import sys

import numpy as np

from testutils import NumericTestCase
from .bases.cheby import ChebyBasis
from .samples import FunctionSample, GridSample
from .samples import GridDerivatives, PointDerivatives


class TestSamples(NumericTestCase):
    def setUp(self):
        super(TestSamples, self).setUp()
        self.basis = ChebyBasis(domain=(-1, 1), num=9)
        self.x = self.basis.pts
        self.u = self.x**3

    def test_arithmetic(self):
        s = FunctionSample(GridDerivatives(self.basis, self.u))
        x = self.x
        self.assertIsType(2*s, np.ndarray)
        self.assertAllClose(2*s + 1, 2*x**3 + 1)
        self.assertAllClose(x*s, x**4)
        self.assertAllClose(s*s - s, x**6 - x**3)
        self.assertAllClose(s**2, x**6)
        self.assertAllClose(-s, -x**3)
        self.assertAllClose(abs(s), np.absolute(x**3))
        self.assertAllClose(np.sin(s), np.sin(x**3))
        self.assertAllClose(np.asarray(s), x**3)
        self.assertEqual(len(s), 9)
        self.assertEqual(s.shape, (9,))
        self.assertAlmostEqual(s[0], 1.0)
        self.assertTrue(np.all((s > 0) == (x**3 > 0)))

    def test_no_inplace(self):
        s = FunctionSample(GridDerivatives(self.basis, self.u))
        with self.assertRaises(TypeError):
            np.add(1.0, 2.0, out=s)
        arr = np.asarray(s)
        arr[:] = 0.0
        self.assertAllClose(s.values, self.x**3)

    def test_diff(self):
        x = self.x
        orders = dict()
        s = FunctionSample(GridDerivatives(self.basis, self.u), index=1,
                           recorder=orders)
        self.assertAllClose(s.diff(), 3*x**2, atol=1e-12)
        self.assertAllClose(s.diff(2), 6*x, atol=1e-11)
        self.assertEqual(orders, {1: 2})
        s.diff(0)
        self.assertEqual(orders, {1: 2})
        s.diff(4)
        self.assertEqual(orders, {1: 4})
        with self.assertRaises(ValueError):
            s.diff(-1)
        with self.assertRaises(ValueError):
            s.diff(1.5)

    def test_perturbation(self):
        derivs = GridDerivatives(self.basis, self.u)
        s = FunctionSample(derivs, perturbation=(1, 0.5))
        self.assertAllClose(s.values, self.x**3)
        self.assertAllClose(s.diff(1), 3*self.x**2 + 0.5, atol=1e-12)
        s = FunctionSample(derivs, perturbation=(0, 0.5))
        self.assertAllClose(s + 0, self.x**3 + 0.5)
        # cached derivatives are not modified
        self.assertAllClose(derivs(0), self.x**3)
        self.assertAllClose(derivs(1), 3*self.x**2, atol=1e-12)

    def test_point_sample(self):
        s = FunctionSample(PointDerivatives(self.basis, self.u, 0.5))
        self.assertAlmostEqual(float(s), 0.125, delta=1e-14)
        self.assertAlmostEqual(s.diff(), 0.75, delta=1e-13)
        self.assertAlmostEqual(float(2*s - 1), -0.75, delta=1e-14)
        self.assertAlmostEqual(float(np.asarray(s, dtype=float)), 0.125,
                               delta=1e-14)

    def test_grid_sample(self):
        s = GridSample(GridDerivatives(self.basis, self.x**2))
        self.assertAlmostEqual(s.integral(), 2/3.0, delta=1e-14)
        self.assertAlmostEqual(s.at(0.3), 0.09, delta=1e-14)
        self.assertAlmostEqual(s.at(0.3, 1), 0.6, delta=1e-13)
        self.assertAllClose(s*2, 2*self.x**2)


def run_tests():
    suite = unittest.TestLoader().loadTestsFromModule(sys.modules[__name__])
    return len(unittest.TextTestRunner(verbosity=2).run(suite).failures)


if __name__ == '__main__':
    unittest.main()
