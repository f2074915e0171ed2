from math import prod
from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray
from scipy.sparse import coo_matrix, csr_matrix, kron
from scipy.sparse.linalg import spsolve

from ..topology.boundary import number_of_sides

__all__ = ['BSplineBasis', 'TensorBSplineBasis', 'BoxElement']


class BoxElement(NamedTuple):
    """An element of a tensor-product parameter domain."""
    index: int
    lower: NDArray
    upper: NDArray

    def lower_corner(self) -> NDArray:
        return self.lower

    def upper_corner(self) -> NDArray:
        return self.upper

    def volume(self) -> float:
        return float(np.prod(self.upper - self.lower))


class BSplineBasis():
    """Univariate B-spline basis on a clamped knot vector.

    Parameters:
        knots (array_like): Non-decreasing knot vector with the first and
            the last knot repeated `degree + 1` times.
        degree (int): Polynomial degree.
    """
    def __init__(self, knots, degree: int) -> None:
        knots = np.asarray(knots, dtype=np.float64)
        if knots.ndim != 1:
            raise ValueError("The knot vector should be 1-D.")
        if np.any(np.diff(knots) < 0):
            raise ValueError("The knot vector should be non-decreasing.")
        if degree < 0:
            raise ValueError(f"The degree should be non-negative, but got {degree}.")
        if knots.shape[0] < 2 * degree + 2:
            raise ValueError(f"A degree {degree} basis needs at least {2*degree + 2} knots, "
                             f"but got {knots.shape[0]}.")
        self.knots = knots
        self.p = degree

    @classmethod
    def uniform(cls, u0: float = 0.0, u1: float = 1.0, interior: int = 0,
                degree: int = 1, mult_interior: int = 1):
        """A basis on `[u0, u1]` with `interior` equally spaced interior knots."""
        inner = np.linspace(u0, u1, interior + 2)[1:-1]
        knots = np.concatenate([
            np.full(degree + 1, u0),
            np.repeat(inner, mult_interior),
            np.full(degree + 1, u1)
        ])
        return cls(knots, degree)

    def __repr__(self) -> str:
        return f"BSplineBasis(degree={self.p}, size={self.size()}, knots={self.knots.tolist()})"

    def degree(self) -> int:
        return self.p

    def size(self) -> int:
        return self.knots.shape[0] - self.p - 1

    def support(self) -> Tuple[float, float]:
        return float(self.knots[self.p]), float(self.knots[-self.p - 1])

    def breaks(self) -> NDArray:
        """Distinct knot values inside the support."""
        a, b = self.support()
        u = np.unique(self.knots)
        return u[(u >= a) & (u <= b)]

    def elements(self) -> List[Tuple[float, float]]:
        br = self.breaks()
        return [(float(br[i]), float(br[i + 1])) for i in range(br.shape[0] - 1)]

    def number_of_elements(self) -> int:
        return self.breaks().shape[0] - 1

    def find_span(self, u) -> NDArray:
        """Knot span index `k` with `knots[k] <= u < knots[k+1]`, the end point included."""
        u = np.asarray(u, dtype=np.float64)
        span = np.searchsorted(self.knots, u, side='right') - 1
        return np.clip(span, self.p, self.size() - 1)

    def first_active(self, u) -> NDArray:
        return self.find_span(u) - self.p

    def active(self, u: float) -> NDArray:
        """Indices of the `p+1` functions not vanishing at `u`."""
        first = int(self.first_active(u))
        return np.arange(first, first + self.p + 1)

    def greville(self) -> NDArray:
        p = self.p
        if p == 0:
            return 0.5 * (self.knots[:-1] + self.knots[1:])
        return np.array([self.knots[i+1:i+p+1].mean() for i in range(self.size())])

    def collocation_matrix(self, u=None) -> csr_matrix:
        """Values of all functions at the points `u`, the Greville points by default.

        Returns:
            csr_matrix: Shaped (NP, size), entry [q, i] is function i at `u[q]`.
        """
        u = self.greville() if u is None else np.atleast_1d(np.asarray(u, dtype=np.float64))
        NP = u.shape[0]
        cols = np.stack([self.active(x) for x in u], axis=0)
        vals = np.concatenate([self.eval_all_ders(x, 0)[0] for x in u], axis=0)
        rows = np.broadcast_to(np.arange(NP)[:, None], cols.shape)
        return coo_matrix((vals.ravel(), (rows.ravel(), cols.ravel())),
                          shape=(NP, self.size())).tocsr()

    def eval_all_ders(self, u, n: int = 0) -> NDArray:
        """Values and derivatives up to order `n` of the active functions.

        All points must lie in the knot span of the first point.

        Returns:
            NDArray: Shaped (n+1, NQ, p+1). Entry [k, q, a] is the k-th
            derivative of function `first_active(u[0]) + a` at `u[q]`.
        """
        u = np.atleast_1d(np.asarray(u, dtype=np.float64))
        span = int(self.find_span(u[0]))
        return np.stack([self._ders_basis_funs(span, x, n) for x in u], axis=1)

    def _ders_basis_funs(self, span: int, u: float, n: int) -> NDArray:
        p = self.p
        U = self.knots
        ndu = np.zeros((p + 1, p + 1))
        left = np.zeros(p + 1)
        right = np.zeros(p + 1)
        ndu[0, 0] = 1.0
        for j in range(1, p + 1):
            left[j] = u - U[span + 1 - j]
            right[j] = U[span + j] - u
            saved = 0.0
            for r in range(j):
                ndu[j, r] = right[r + 1] + left[j - r]
                temp = ndu[r, j - 1] / ndu[j, r]
                ndu[r, j] = saved + right[r + 1] * temp
                saved = left[j - r] * temp
            ndu[j, j] = saved

        ders = np.zeros((n + 1, p + 1))
        ders[0] = ndu[:, p]
        a = np.zeros((2, p + 1))
        for r in range(p + 1):
            s1, s2 = 0, 1
            a[0, 0] = 1.0
            for k in range(1, n + 1):
                d = 0.0
                rk = r - k
                pk = p - k
                if r >= k:
                    a[s2, 0] = a[s1, 0] / ndu[pk + 1, rk]
                    d = a[s2, 0] * ndu[rk, pk]
                j1 = 1 if rk >= -1 else -rk
                j2 = k - 1 if r - 1 <= pk else p - r
                for j in range(j1, j2 + 1):
                    a[s2, j] = (a[s1, j] - a[s1, j - 1]) / ndu[pk + 1, rk + j]
                    d += a[s2, j] * ndu[rk + j, pk]
                if r <= pk:
                    a[s2, k] = -a[s1, k - 1] / ndu[pk + 1, r]
                    d += a[s2, k] * ndu[r, pk]
                ders[k, r] = d
                s1, s2 = s2, s1

        factor = float(p)
        for k in range(1, n + 1):
            ders[k] *= factor
            factor *= (p - k)
        return ders

    def insert_knots(self, knots: Sequence[float]) -> None:
        self.knots = np.sort(np.concatenate([self.knots, np.asarray(knots, dtype=np.float64)]))

    def uniform_refine(self, num_knots: int = 1) -> None:
        """Insert `num_knots` equally spaced knots into every element."""
        new = []
        for a, b in self.elements():
            new.extend(np.linspace(a, b, num_knots + 2)[1:-1])
        self.insert_knots(new)


class TensorBSplineBasis():
    """Tensor product of univariate B-spline bases.

    Functions and elements are numbered with the first direction running
    fastest, so function `(i, j)` of a 2-D basis has index `i + n0*j`.
    """
    def __init__(self, *bases: BSplineBasis) -> None:
        if len(bases) == 1 and isinstance(bases[0], (list, tuple)):
            bases = tuple(bases[0])
        if len(bases) == 0:
            raise ValueError("No component basis is given.")
        self.bases: Tuple[BSplineBasis, ...] = tuple(bases)

    @classmethod
    def uniform(cls, dim: int = 2, degree: int = 1, interior: int = 0):
        return cls(*[BSplineBasis.uniform(0.0, 1.0, interior, degree) for _ in range(dim)])

    def __repr__(self) -> str:
        return f"TensorBSplineBasis({', '.join(repr(b) for b in self.bases)})"

    def dim(self) -> int:
        return len(self.bases)

    def component(self, d: int) -> BSplineBasis:
        return self.bases[d]

    def degree(self, d: int = 0) -> int:
        return self.bases[d].p

    def max_degree(self) -> int:
        return max(b.p for b in self.bases)

    def size_cwise(self) -> Tuple[int, ...]:
        return tuple(b.size() for b in self.bases)

    def size(self) -> int:
        return prod(self.size_cwise())

    def number_of_elements(self) -> int:
        return prod(b.number_of_elements() for b in self.bases)

    def support(self) -> NDArray:
        """Parameter box as an array shaped (dim, 2)."""
        return np.array([b.support() for b in self.bases])

    def index(self, multi_index: Sequence[int]) -> int:
        idx = 0
        stride = 1
        for i, n in zip(multi_index, self.size_cwise()):
            idx += int(i) * stride
            stride *= n
        return idx

    def _tensor_indices(self, comps: Sequence[NDArray]) -> NDArray:
        """Flat indices of the tensor product of per-direction index arrays."""
        sizes = self.size_cwise()
        out = np.zeros(1, dtype=np.int64)
        stride = 1
        for c, n in zip(comps, sizes):
            out = (out[None, :] + stride * np.asarray(c, dtype=np.int64)[:, None]).ravel()
            stride *= n
        return out

    def active_functions(self, node) -> NDArray:
        """Indices of the functions not vanishing on the element containing `node`."""
        node = np.asarray(node, dtype=np.float64).reshape(-1)
        comps = [b.active(node[d]) for d, b in enumerate(self.bases)]
        return self._tensor_indices(comps)

    def evaluate_values_and_derivatives(self, nodes: NDArray, max_order: int = 1) -> List[NDArray]:
        """Values and first derivatives of the active functions at `nodes`.

        All nodes must lie in the element of the first node, as is the case
        for the nodes of a quadrature rule mapped to one element.

        Parameters:
            nodes (NDArray): Parametric points shaped (NQ, dim).
            max_order (int, optional): 0 for values only, 1 to add gradients.

        Returns:
            List[NDArray]: `[values]` shaped (NQ, nActive), followed by
            gradients shaped (NQ, nActive, dim) when `max_order >= 1`.
        """
        if max_order not in (0, 1):
            raise ValueError(f"max_order should be 0 or 1, but got {max_order}.")
        nodes = np.atleast_2d(np.asarray(nodes, dtype=np.float64))
        if nodes.shape[-1] != self.dim():
            raise ValueError(f"nodes should have {self.dim()} coordinates, "
                             f"but got shape {tuple(nodes.shape)}.")
        NQ = nodes.shape[0]
        ders = [b.eval_all_ders(nodes[:, d], max_order) for d, b in enumerate(self.bases)]

        def tensor(orders):
            val = np.ones((NQ, 1))
            for d, k in enumerate(orders):
                val = (ders[d][k][:, :, None] * val[:, None, :]).reshape(NQ, -1)
            return val

        dim = self.dim()
        result = [tensor([0] * dim)]
        if max_order >= 1:
            grads = [tensor([1 if d == k else 0 for d in range(dim)]) for k in range(dim)]
            result.append(np.stack(grads, axis=-1))
        return result

    def element_iterator(self) -> Iterator[BoxElement]:
        """Iterate over the elements, first direction fastest.

        Each call returns a fresh iterator.
        """
        elems = [b.elements() for b in self.bases]
        counts = [len(e) for e in elems]
        for index in range(prod(counts)):
            rem = index
            lower = np.empty(self.dim())
            upper = np.empty(self.dim())
            for d, c in enumerate(counts):
                a, b = elems[d][rem % c]
                rem //= c
                lower[d], upper[d] = a, b
            yield BoxElement(index, lower, upper)

    def boundary_grid(self, side: int) -> NDArray:
        """Indices of the functions on `side`, shaped by the tangential sizes.

        Axis k of the result runs along the k-th tangential direction.
        """
        dim = self.dim()
        if not (1 <= side <= number_of_sides(dim)):
            raise ValueError(f"Side {side} is out of range for a {dim}D basis.")
        direction = (side - 1) // 2
        parameter = (side - 1) % 2
        sizes = self.size_cwise()
        comps = [np.arange(n) for n in sizes]
        comps[direction] = np.array([0 if parameter == 0 else sizes[direction] - 1])
        flat = self._tensor_indices(comps)
        tsizes = [n for d, n in enumerate(sizes) if d != direction]
        return flat.reshape(tsizes, order='F') if tsizes else flat

    def boundary(self, side: int) -> NDArray:
        """Indices of the functions on `side`, first tangential direction fastest."""
        return self.boundary_grid(side).ravel(order='F')

    def greville(self) -> NDArray:
        """Greville abscissae shaped (size, dim), ordered like the functions."""
        grids = np.meshgrid(*[b.greville() for b in self.bases], indexing='ij')
        return np.stack([g.ravel(order='F') for g in grids], axis=-1)

    def collocation_matrix(self) -> csr_matrix:
        """Values of all functions at all Greville points, first direction fastest."""
        mat = self.bases[0].collocation_matrix()
        for b in self.bases[1:]:
            mat = kron(b.collocation_matrix(), mat, format='csr')
        return mat

    def interpolate(self, values: NDArray) -> NDArray:
        """Coefficients of the spline taking `values` at the Greville points.

        Parameters:
            values (NDArray): Shaped (size, ...), ordered like `greville()`.

        Returns:
            NDArray: Coefficients with the shape of `values`.
        """
        values = np.asarray(values, dtype=np.float64)
        if values.shape[0] != self.size():
            raise ValueError(f"Interpolation needs {self.size()} values, but got {values.shape[0]}.")
        rhs = values.reshape(values.shape[0], -1)
        coefs = spsolve(self.collocation_matrix().tocsc(), rhs)
        return np.asarray(coefs).reshape(values.shape)

    def uniform_refine(self, num_knots: int = 1) -> None:
        for b in self.bases:
            b.uniform_refine(num_knots)

    def eval_points(self, points: NDArray, coefs: NDArray, max_order: int = 0) -> List[NDArray]:
        """Evaluate the spline with coefficients `coefs` at arbitrary points.

        Returns:
            List[NDArray]: Values shaped (NP, ...) and, when `max_order >= 1`,
            parametric derivatives shaped (NP, ..., dim).
        """
        points = np.atleast_2d(np.asarray(points, dtype=np.float64))
        coefs = np.asarray(coefs)
        vals = []
        ders = []
        for pt in points:
            act = self.active_functions(pt)
            data = self.evaluate_values_and_derivatives(pt[None, :], max_order)
            c = coefs[act]
            vals.append(np.einsum('a, a... -> ...', data[0][0], c))
            if max_order >= 1:
                ders.append(np.einsum('ad, a... -> ...d', data[1][0], c))
        result = [np.stack(vals, axis=0)]
        if max_order >= 1:
            result.append(np.stack(ders, axis=0))
        return result
