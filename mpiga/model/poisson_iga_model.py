from typing import Callable, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray
from scipy.sparse import csr_matrix
from scipy.sparse.linalg import spsolve

from ..typing import SourceLike
from ..geometry import MultiPatch
from ..functionspace import MultiPatchField
from ..fem import (
    Assembler, AssemblerOptions, BoundaryConditions, PoissonVisitor,
    Norm, L2NormVisitor, H1SemiNormVisitor
)
from ..solver import ConjugateGradient, MinimalResidual, DiagonalOperator
from .computational_model import ComputationalModel

__all__ = ['PoissonIGAModel']

_SOLVERS = ('cg', 'minres', 'direct')


class PoissonIGAModel(ComputationalModel):
    """Isogeometric Poisson solver on a rectangle split into patches.

    Parameters:
        options (dict | None): Configuration options, as returned by
            :meth:`get_options`.

    Examples:
        >>> opts = PoissonIGAModel.get_options(nx=2, ny=2, degree=2)
        >>> model = PoissonIGAModel(opts)
        >>> model.set_pde(source, solution, solution=solution, gradient=gradient)
        >>> uh = model.solve()
        >>> l2, h1 = model.error()
    """
    def __init__(self, options: Optional[dict] = None) -> None:
        super().__init__(options)
        options = self.options
        if options['solver'] not in _SOLVERS:
            raise ValueError(f"Unknown solver '{options['solver']}', should be one of {_SOLVERS}.")

        self.source: Optional[SourceLike] = None
        self.dirichlet: Optional[Callable] = None
        self.solution: Optional[Callable] = None
        self.gradient: Optional[Callable] = None
        self.assembler: Optional[Assembler] = None
        self.uh: Optional[MultiPatchField] = None

        mp = MultiPatch.from_grid(options['nx'], options['ny'], options['box'], options['degree'])
        self.set_domain(mp)

    @classmethod
    def get_options(
        cls,
        nx: int = 2,
        ny: int = 2,
        box: Sequence[float] = (0.0, 1.0, 0.0, 1.0),
        degree: int = 2,
        refine: int = 2,
        solver: str = 'cg',
        tolerance: float = 1e-10,
        max_iterations: int = 1000,
        parallel: bool = False,
        pbar_log: bool = False,
        log_level: str = 'WARNING',
    ) -> dict:
        """Generate a dict of default configuration options for the model.

        Parameters:
            nx (int, optional): Patches in the x-direction. Defaults to 2.
            ny (int, optional): Patches in the y-direction. Defaults to 2.
            box (Sequence[float], optional): The rectangle `[x0, x1, y0, y1]`.
            degree (int, optional): Spline degree. Defaults to 2.
            refine (int, optional): Uniform refinement steps of the
                discretization bases. Defaults to 2.
            solver (str, optional): 'cg', 'minres' or 'direct'. Defaults to 'cg'.
            tolerance (float, optional): Iterative solver tolerance.
            max_iterations (int, optional): Iterative solver iteration bound.
            parallel (bool, optional): Assemble the patches on a thread pool.
            pbar_log (bool, optional): Show progress bars and route the log
                through them.
            log_level (str, optional): Level of the model logger.

        Returns:
            dict: A dictionary mapping each option name to its value.
        """
        return {
            'nx': nx,
            'ny': ny,
            'box': tuple(box),
            'degree': degree,
            'refine': refine,
            'solver': solver,
            'tolerance': tolerance,
            'max_iterations': max_iterations,
            'parallel': parallel,
            'pbar_log': pbar_log,
            'log_level': log_level,
        }

    def set_domain(self, multipatch: MultiPatch) -> None:
        """Use `multipatch` as domain, refining copies of its bases."""
        self.mp = multipatch
        self.bases = multipatch.bases()
        for basis in self.bases:
            for _ in range(self.options['refine']):
                basis.uniform_refine()
        NE = sum(b.number_of_elements() for b in self.bases)
        self.logger.info(f"Domain with {len(multipatch)} patches and {NE} elements.")

    def set_pde(self, source: SourceLike, dirichlet: Optional[Callable] = None, *,
                solution: Optional[Callable] = None,
                gradient: Optional[Callable] = None) -> None:
        """Set the source, the Dirichlet data on the whole boundary, and
        optionally the exact solution and its gradient."""
        self.source = source
        self.dirichlet = dirichlet if dirichlet is not None else solution
        self.solution = solution
        self.gradient = gradient

    def linear_system(self) -> Tuple[csr_matrix, NDArray]:
        """Assemble the condensed stiffness matrix and load vector."""
        options = AssemblerOptions(parallel=self.options['parallel'],
                                   progress=self.options['pbar_log'])
        bc = BoundaryConditions.on_boundary(self.mp.topology, self.dirichlet)
        self.assembler = Assembler(self.mp, self.bases, bc, options)
        A, F = self.assembler.assemble(PoissonVisitor(self.source))
        self.logger.info(f"free DOFs: {self.assembler.number_of_free_dofs()}, "
                         f"eliminated DOFs: {self.assembler.number_of_eliminated_dofs()}")
        return A, F

    def solve(self, A: Optional[csr_matrix] = None, F: Optional[NDArray] = None) -> MultiPatchField:
        """Solve the linear system and return the discrete solution."""
        if A is None or F is None:
            A, F = self.linear_system()
        elif self.assembler is None:
            raise RuntimeError("The system was not assembled by this model, call linear_system() first.")
        name = self.options['solver']

        if name == 'direct':
            x = spsolve(A.tocsc(), F) if A.shape[0] > 0 else np.zeros(0)
        else:
            Solver = ConjugateGradient if name == 'cg' else MinimalResidual
            solver = Solver(A, max_iterations=self.options['max_iterations'],
                            tolerance=self.options['tolerance'])
            precond = DiagonalOperator.jacobi(A) if A.shape[0] > 0 else None
            x = solver.solve(F, precond=precond)
            self.logger.info(f"{Solver.__name__} with {solver.iterations()} iterations "
                             f"and relative residual {solver.error():.4e}")

        self.uh = self.assembler.construct_solution(x)
        return self.uh

    def error(self) -> Tuple[float, float]:
        """L2 and H1 semi-norm errors against the exact solution."""
        if self.uh is None:
            raise RuntimeError("Call solve() before computing the error.")
        if self.solution is None:
            raise RuntimeError("The exact solution is not set.")
        norm = Norm(self.uh, self.solution, func2_grad=self.gradient)
        l2 = norm.apply(L2NormVisitor())
        h1 = norm.apply(H1SemiNormVisitor()) if self.gradient is not None else float('nan')
        return l2, h1

    def run(self) -> Tuple[float, float]:
        """Assemble, solve and report the errors."""
        self.stage("setup")
        A, F = self.linear_system()
        self.stage("assembly")
        self.solve(A, F)
        self.stage("solve")
        l2, h1 = self.error()
        self.stage("error")
        self.logger.info(f"L2 Error: {l2},  H1 Error: {h1}.")
        return l2, h1
