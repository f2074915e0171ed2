import numpy as np
import pytest

from mpiga.quadrature import GaussLegendreQuadrature, TensorGaussRule


class TestGaussLegendreQuadrature:
    @pytest.mark.parametrize("n", range(1, 6))
    def test_exactness(self, n):
        qf = GaussLegendreQuadrature(n)
        x, w = qf.get_quadrature_points_and_weights()
        np.testing.assert_allclose(w.sum(), 1.0)
        for k in range(2*n):
            np.testing.assert_allclose(np.dot(w, x**k), 1.0/(k + 1), atol=1e-14)

    def test_invalid(self):
        with pytest.raises(ValueError):
            GaussLegendreQuadrature(0)

    def test_map_to_interval(self):
        qf = GaussLegendreQuadrature(3)
        assert qf.dim() == 1
        s, w = qf.map_to([0.5], [2.0])
        assert s.shape == (3, 1)
        np.testing.assert_allclose(np.dot(w, s[:, 0]**3), (16 - 1/16)/4)


class TestTensorGaussRule:
    def test_ordering(self):
        rule = TensorGaussRule([2, 3])
        x, w = rule.get_quadrature_points_and_weights()
        assert x.shape == (6, 2)
        assert rule.number_of_quadrature_points() == 6
        # first direction fastest
        np.testing.assert_allclose(x[0, 1], x[1, 1])
        assert x[0, 0] < x[1, 0]
        np.testing.assert_allclose(w.sum(), 1.0)

    def test_map_to(self):
        rule = TensorGaussRule([3, 3])
        nodes, weights = rule.map_to([1.0, 0.0], [2.0, 0.5])
        np.testing.assert_allclose(weights.sum(), 0.5)
        assert np.all((nodes[:, 0] > 1.0) & (nodes[:, 0] < 2.0))
        # integrates x^2 y exactly
        val = np.dot(weights, nodes[:, 0]**2 * nodes[:, 1])
        np.testing.assert_allclose(val, (8 - 1)/3 * 0.125)

    def test_malformed_element(self):
        rule = TensorGaussRule([2, 2])
        with pytest.raises(ValueError):
            rule.map_to([1.0, 0.0], [0.0, 1.0])
        with pytest.raises(ValueError):
            rule.map_to([0.0], [1.0])


if __name__ == "__main__":
    pytest.main(['./test_tensor_gauss_rule.py'])
