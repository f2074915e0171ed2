import numpy as np
import pytest

from mpiga.functionspace import BSplineBasis, TensorBSplineBasis
from mpiga.topology import WEST, EAST, SOUTH, NORTH


class TestBSplineBasis:
    @pytest.mark.parametrize("p", range(0, 4))
    @pytest.mark.parametrize("interior", [0, 1, 3])
    def test_partition_of_unity(self, p, interior):
        basis = BSplineBasis.uniform(0.0, 1.0, interior, p)
        assert basis.size() == interior + p + 1
        assert basis.number_of_elements() == interior + 1
        for a, b in basis.elements():
            u = np.linspace(a, b, 5)[1:-1]
            ders = basis.eval_all_ders(u, 1)
            assert ders.shape == (2, 3, p + 1)
            np.testing.assert_allclose(ders[0].sum(axis=-1), 1.0)
            np.testing.assert_allclose(ders[1].sum(axis=-1), 0.0, atol=1e-12)

    @pytest.mark.parametrize("p", range(1, 4))
    def test_derivative(self, p):
        knots = np.concatenate([[0.0]*(p + 1), [0.3, 0.5, 0.5], [1.0]*(p + 1)])
        basis = BSplineBasis(knots, p)
        u, h = 0.4, 1e-6
        d = basis.eval_all_ders([u], 1)
        dp = basis.eval_all_ders([u + h], 0)[0]
        dm = basis.eval_all_ders([u - h], 0)[0]
        np.testing.assert_allclose(d[1, 0], (dp[0] - dm[0])/(2*h), atol=1e-6)

    @pytest.mark.parametrize("p", range(1, 4))
    def test_greville_reproduces_linear(self, p):
        basis = BSplineBasis.uniform(0.0, 2.0, 3, p)
        g = basis.greville()
        for u in [0.1, 0.75, 1.3, 2.0]:
            val = basis.eval_all_ders([u], 0)[0, 0]
            act = basis.active(u)
            np.testing.assert_allclose(val @ g[act], u)

    def test_end_point(self):
        basis = BSplineBasis.uniform(0.0, 1.0, 2, 2)
        np.testing.assert_array_equal(basis.active(1.0), [2, 3, 4])
        val = basis.eval_all_ders([1.0], 0)[0, 0]
        np.testing.assert_allclose(val, [0.0, 0.0, 1.0])

    def test_invalid(self):
        with pytest.raises(ValueError):
            BSplineBasis([0, 1, 0.5], 0)
        with pytest.raises(ValueError):
            BSplineBasis([0, 0, 1], 1)

    def test_uniform_refine(self):
        basis = BSplineBasis.uniform(0.0, 1.0, 1, 2)
        basis.uniform_refine()
        np.testing.assert_allclose(basis.breaks(), [0, 0.25, 0.5, 0.75, 1])
        assert basis.size() == 6

    @pytest.mark.parametrize("p", range(0, 4))
    def test_collocation_matrix(self, p):
        basis = BSplineBasis.uniform(0.0, 1.0, 3, p)
        C = basis.collocation_matrix()
        assert C.shape == (basis.size(), basis.size())
        np.testing.assert_allclose(C.sum(axis=1), 1.0)
        u = np.array([0.0, 0.4, 1.0])
        Cu = basis.collocation_matrix(u).toarray()
        np.testing.assert_allclose(Cu[1, basis.active(0.4)], basis.eval_all_ders([0.4], 0)[0, 0])
        np.testing.assert_allclose(Cu[[0, 2], [0, -1]], 1.0)


class TestTensorBSplineBasis:
    def test_interpolate(self):
        basis = TensorBSplineBasis.uniform(2, 2, 2)
        g = basis.greville()
        f = lambda p: np.stack([p[:, 0]**2 - p[:, 1], p[:, 0]*p[:, 1]**2], axis=1)
        coefs = basis.interpolate(f(g))
        assert coefs.shape == (basis.size(), 2)
        # quadratic data lies in the space and is reproduced
        pts = np.array([[0.1, 0.2], [0.55, 0.9], [1.0, 0.35]])
        np.testing.assert_allclose(basis.eval_points(pts, coefs)[0], f(pts), atol=1e-12)
        # the coefficients differ from the values
        assert np.max(np.abs(coefs - f(g))) > 1e-3
        with pytest.raises(ValueError):
            basis.interpolate(np.zeros(basis.size() + 1))

    def test_sizes(self):
        basis = TensorBSplineBasis(BSplineBasis.uniform(0, 1, 1, 2), BSplineBasis.uniform(0, 1, 0, 1))
        assert basis.dim() == 2
        assert basis.size_cwise() == (4, 2)
        assert basis.size() == 8
        assert basis.number_of_elements() == 2
        assert basis.index([1, 1]) == 5

    def test_boundary(self):
        basis = TensorBSplineBasis.uniform(2, 1, 0)
        np.testing.assert_array_equal(basis.boundary(WEST), [0, 2])
        np.testing.assert_array_equal(basis.boundary(EAST), [1, 3])
        np.testing.assert_array_equal(basis.boundary(SOUTH), [0, 1])
        np.testing.assert_array_equal(basis.boundary(NORTH), [2, 3])
        with pytest.raises(ValueError):
            basis.boundary(5)

    def test_element_iterator(self):
        basis = TensorBSplineBasis.uniform(2, 2, 2)
        elems = list(basis.element_iterator())
        assert len(elems) == 9
        assert len(list(basis.element_iterator())) == 9
        np.testing.assert_allclose(elems[1].lower, [1/3, 0.0])
        np.testing.assert_allclose(elems[3].lower, [0.0, 1/3])
        np.testing.assert_allclose(sum(e.volume() for e in elems), 1.0)

    @pytest.mark.parametrize("p", range(1, 4))
    def test_values_and_derivatives(self, p):
        basis = TensorBSplineBasis.uniform(2, p, 2)
        nodes = np.array([[0.4, 0.4], [0.45, 0.5], [0.5, 0.6]])
        act = basis.active_functions(nodes[0])
        assert act.shape == ((p + 1)**2,)
        val, grad = basis.evaluate_values_and_derivatives(nodes, 1)
        assert val.shape == (3, (p + 1)**2)
        assert grad.shape == (3, (p + 1)**2, 2)
        np.testing.assert_allclose(val.sum(axis=-1), 1.0)
        np.testing.assert_allclose(grad.sum(axis=1), 0.0, atol=1e-12)

        # x = sum greville_x * N reproduces the coordinates
        g = basis.greville()
        np.testing.assert_allclose(val @ g[act], nodes)
        np.testing.assert_allclose(grad[:, :, 0] @ g[act, 0], 1.0)
        np.testing.assert_allclose(grad[:, :, 1] @ g[act, 0], 0.0, atol=1e-12)

    def test_eval_points(self):
        basis = TensorBSplineBasis.uniform(2, 2, 1)
        g = basis.greville()
        coefs = 2*g[:, 0] - g[:, 1]
        pts = np.array([[0.1, 0.2], [0.9, 0.5], [1.0, 1.0]])
        val, grad = basis.eval_points(pts, coefs, 1)
        np.testing.assert_allclose(val, 2*pts[:, 0] - pts[:, 1], atol=1e-14)
        np.testing.assert_allclose(grad, np.tile([2.0, -1.0], (3, 1)), atol=1e-12)


if __name__ == "__main__":
    pytest.main(['./test_bspline_basis.py'])
