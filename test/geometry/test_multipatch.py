import numpy as np
import pytest

from mpiga.functionspace import TensorBSplineBasis
from mpiga.geometry import BSplinePatch, MultiPatch, EvalFlag
from mpiga.topology import PatchSide, WEST, EAST, SOUTH, NORTH, NORTHEAST, SOUTHWEST


def affine_patch(A, b, degree=1):
    basis = TensorBSplineBasis.uniform(2, degree, 0)
    return BSplinePatch.from_map(basis, lambda u: u @ np.asarray(A).T + b)


class TestGeometryEvaluator:
    def test_affine_map(self):
        A = np.array([[2.0, 1.0], [0.0, 3.0]])
        b = np.array([1.0, -1.0])
        patch = affine_patch(A, b, 2)
        ge = patch.evaluator(EvalFlag.NEED_VALUE | EvalFlag.NEED_MEASURE | EvalFlag.NEED_GRAD_TRANSFORM)
        nodes = np.array([[0.2, 0.3], [0.5, 0.5], [0.7, 0.1]])
        ge.evaluate_at(nodes)
        np.testing.assert_allclose(ge.values(), nodes @ A.T + b)
        np.testing.assert_allclose(ge.measures(), 6.0)
        assert ge.measure(1) == pytest.approx(6.0)
        np.testing.assert_allclose(ge.jacobian(0), A, atol=1e-14)

        # u -> gradient of the physical function x
        g = np.array([[2.0, 1.0]])
        np.testing.assert_allclose(ge.transform_gradients(0, g), [[1.0, 0.0]], atol=1e-14)
        gall = np.tile(g, (3, 1, 1))
        np.testing.assert_allclose(ge.transform_all_gradients(gall)[:, 0], np.tile([1.0, 0.0], (3, 1)),
                                   atol=1e-14)

    def test_flags(self):
        patch = affine_patch(np.eye(2), np.zeros(2))
        ge = patch.evaluator(EvalFlag.NEED_VALUE)
        ge.evaluate_at(np.array([[0.5, 0.5]]))
        ge.values()
        with pytest.raises(RuntimeError):
            ge.measures()
        with pytest.raises(RuntimeError):
            ge.transform_gradients(0, np.ones((1, 2)))

    def test_surface_measure(self):
        basis = TensorBSplineBasis.uniform(2, 1, 0)
        coefs = np.array([[0, 0, 0], [1, 0, 1], [0, 1, 0], [1, 1, 1]], dtype=np.float64)
        patch = BSplinePatch(basis, coefs)
        ge = patch.evaluator(EvalFlag.NEED_MEASURE)
        ge.evaluate_at(np.array([[0.5, 0.5]]))
        np.testing.assert_allclose(ge.measures(), np.sqrt(2.0))

    def test_invalid_coefs(self):
        basis = TensorBSplineBasis.uniform(2, 1, 0)
        with pytest.raises(ValueError):
            BSplinePatch(basis, np.zeros((3, 2)))


class TestMultiPatch:
    def test_from_grid(self):
        mp = MultiPatch.from_grid(3, 2, (0.0, 3.0, 0.0, 1.0), degree=2)
        assert len(mp) == 6
        topo = mp.topology
        assert topo.n_interfaces() == 7
        assert topo.n_boundary() == 10
        assert topo.check_consistency() == []
        assert topo.get_neighbour(PatchSide(1, NORTH)) == PatchSide(4, SOUTH)
        np.testing.assert_allclose(mp.patch(4).corner_point(NORTHEAST), [2.0, 1.0])
        np.testing.assert_allclose(mp.patch(4).corner_point(SOUTHWEST), [1.0, 0.5])
        assert len(topo.regular_vertices()) == 2

    def test_compute_topology(self):
        mp = MultiPatch.from_grid(2, 2, degree=1)
        interfaces = set((bi.ps1, bi.ps2) for bi in mp.topology.interfaces)
        topo = MultiPatch([mp.patch(k) for k in range(4)]).compute_topology()
        assert topo.n_interfaces() == 4
        assert topo.n_boundary() == 8
        assert set((bi.ps1, bi.ps2) for bi in topo.interfaces) == interfaces
        assert all(bi.orientation == (True,) for bi in topo.interfaces)

    def test_compute_flipped_topology(self):
        p0 = affine_patch(np.eye(2), np.zeros(2))
        # the second unit square parametrized upside down
        p1 = affine_patch(np.array([[1.0, 0.0], [0.0, -1.0]]), np.array([1.0, 1.0]))
        mp = MultiPatch([p0, p1])
        topo = mp.compute_topology()
        assert topo.n_interfaces() == 1
        bi = topo.interfaces[0]
        assert (bi.ps1, bi.ps2) == (PatchSide(0, EAST), PatchSide(1, WEST))
        assert bi.orientation == (False,)

    def test_bases_are_copies(self):
        mp = MultiPatch.from_grid(1, 1)
        bases = mp.bases()
        bases[0].uniform_refine()
        assert mp.patch(0).basis.number_of_elements() == 1
        assert bases[0].number_of_elements() == 4


if __name__ == "__main__":
    pytest.main(['./test_multipatch.py'])
