#!/usr/bin/env python3

import unittest
import sys

import numpy as np

from testutils import NumericTestCase
from .bases.cheby import ChebyBasis
from .bcs import PointCondition, DirichletCondition
from .problem import BVP


class TestBVP(NumericTestCase):
    def test_param_inference(self):
        p = BVP(lambda x, u: u.diff(2), domain=(0, 1))
        self.assertEqual(p.num_functions, 1)
        self.assertEqual(p.num_params, 0)
        p = BVP(lambda x, u, a, b: u.diff() - a*b, domain=(0, 1))
        self.assertEqual(p.num_params, 2)
        self.assertEqual(p.init_params, (0.0, 0.0))
        p = BVP(lambda x, u, v, a: [u.diff() - v, v.diff() - a],
                num_functions=2)
        self.assertEqual(p.num_params, 1)
        self.assertEqual(p.domain, (-1.0, 1.0))

    def test_varargs(self):
        def op(x, *args):
            return args[0].diff() - args[1]
        with self.assertRaises(ValueError):
            BVP(op)
        p = BVP(op, num_params=1)
        self.assertEqual(p.num_params, 1)
        with self.assertRaises(ValueError):
            BVP(lambda x: x)

    def test_invalid(self):
        with self.assertRaises(ValueError):
            BVP(lambda x, u: u, domain=(1, 1))
        with self.assertRaises(TypeError):
            BVP(None)
        with self.assertRaises(ValueError):
            BVP(lambda x, u, a: u, init_params=[1, 2])
        with self.assertRaises(ValueError):
            BVP(lambda x, u, v: [u, v], num_functions=2, init=[0, 1, 2])
        with self.assertRaises(TypeError):
            BVP(lambda x, u: u, bcs=[lambda u: u])
        with self.assertRaises(TypeError):
            BVP(lambda x, u: u, lbc="u=0")

    def test_conditions(self):
        extra = DirichletCondition(0.5, 1.0)
        p = BVP(lambda x, u: u.diff(2), domain=(0, 2),
                lbc=lambda u: u, rbc=3.0, bcs=[extra])
        self.assertIsType(p.lbc, PointCondition)
        self.assertEqual(p.lbc.location, 0.0)
        self.assertEqual(p.rbc.location, 2.0)
        self.assertEqual(p.conditions, (p.lbc, p.rbc, extra))
        basis = ChebyBasis((0, 2), 5)
        g = p.rbc.evaluate(basis, [basis.pts**2], [])
        self.assertAllClose(g, [1.0], atol=1e-13)
        p = BVP(lambda x, u: u.diff(2), rbc=lambda u: u)
        self.assertIsNone(p.lbc)
        self.assertEqual(len(p.conditions), 1)

    def test_init(self):
        p = BVP(lambda x, u, v, a: [u, v], init=[np.sin, 2.0], init_params=3)
        self.assertEqual(p.num_functions, 2)
        self.assertEqual(p.init, (np.sin, 2.0))
        self.assertEqual(p.init_params, (3.0,))
        p = BVP(lambda x, u, v: [u, v], num_functions=2, init=1.0)
        self.assertEqual(p.init, (1.0, 1.0))
        p = BVP(lambda x, u: u)
        self.assertEqual(p.init, (None,))
        with self.assertRaises(AttributeError):
            p.init = (1.0,)
        self.assertIn("1 function(s)", repr(p))


def run_tests():
    suite = unittest.TestLoader().loadTestsFromModule(sys.modules[__name__])
    return len(unittest.TextTestRunner(verbosity=2).run(suite).failures)


if __name__ == '__main__':
    unittest.main()
