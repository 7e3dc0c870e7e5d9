"""Sparse finite-volume matrices and their solution."""

from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

import numpy as np
from scipy import sparse
from scipy.sparse import linalg as splinalg

try:  # Optional dependency for multigrid solves
    import pyamg  # type: ignore
except ImportError:  # pragma: no cover - optional path
    pyamg = None

from .mesh import Mesh


class FvMatrix:
    """Sparse matrix builder for finite-volume systems."""

    def __init__(self, mesh: Mesh) -> None:
        self.mesh = mesh
        self._diag = np.zeros(mesh.ncells)
        self._offdiag: Dict[Tuple[int, int], float] = {}
        self._rhs = np.zeros(mesh.ncells)

    def add_diag(self, cell_ids: Iterable[int], coeffs: Iterable[float]) -> None:
        np.add.at(self._diag, np.asarray(list(cell_ids), dtype=int), np.asarray(list(coeffs), dtype=float))

    def add_nb(
        self, cell_ids: Iterable[int], nb_ids: Iterable[int], coeffs: Iterable[float]
    ) -> None:
        for cid, nid, coeff in zip(cell_ids, nb_ids, coeffs):
            if cid == nid:
                self._diag[cid] += coeff
            else:
                key = (int(cid), int(nid))
                self._offdiag[key] = self._offdiag.get(key, 0.0) + float(coeff)

    def add_rhs(self, cell_ids: Iterable[int], values: Iterable[float]) -> None:
        np.add.at(self._rhs, np.asarray(list(cell_ids), dtype=int), np.asarray(list(values), dtype=float))

    def off_diagonal_sum(self) -> np.ndarray:
        """Row sums of the magnitudes of the off-diagonal coefficients."""

        sums = np.zeros(self.mesh.ncells)
        for (row, _col), coeff in self._offdiag.items():
            sums[row] += abs(coeff)
        return sums

    def relax(self, field_values: np.ndarray, alpha: float) -> None:
        """Implicit under-relaxation with diagonal dominance enforced first."""

        if alpha <= 0.0 or alpha > 1.0:
            raise ValueError("alpha must be in (0, 1]")
        if alpha == 1.0:
            return
        diag = np.maximum(np.abs(self._diag), self.off_diagonal_sum())
        relaxed = diag / alpha
        self._rhs += (relaxed - self._diag) * np.asarray(field_values, dtype=float)
        self._diag = relaxed

    def to_csr(self) -> sparse.csr_matrix:
        n = self.mesh.ncells
        rows: List[int] = list(range(n))
        cols: List[int] = list(range(n))
        data: List[float] = list(self._diag)
        for (row, col), coeff in self._offdiag.items():
            rows.append(row)
            cols.append(col)
            data.append(coeff)
        return sparse.csr_matrix((data, (rows, cols)), shape=(n, n))

    def solve(
        self,
        method: str = "direct",
        tol: float = 1e-10,
        maxiter: int = 500,
        initial_guess: np.ndarray | None = None,
        return_stats: bool = False,
    ) -> np.ndarray | tuple[np.ndarray, dict[str, float]]:
        method = method.lower()
        if method not in {"direct", "bicgstab", "amg"}:
            raise NotImplementedError(f"Unknown solver method '{method}'")

        A = self.to_csr()
        b = self._rhs
        x0 = np.zeros_like(b) if initial_guess is None else np.asarray(initial_guess, dtype=float)
        initial_res = float(np.linalg.norm(b - A @ x0))
        iterations = 1.0

        if method == "direct":
            solution = np.asarray(splinalg.spsolve(A.tocsc(), b))
        elif method == "amg":
            if pyamg is None:  # pragma: no cover - import guard
                raise RuntimeError("AMG solver requested but pyamg is not available.")
            residuals: List[float] = []
            ml = pyamg.smoothed_aggregation_solver(A)
            solution = np.asarray(ml.solve(b, x0=x0, tol=tol, maxiter=maxiter, residuals=residuals))
            iterations = float(len(residuals))
        else:
            diag = self._diag
            inv_diag = np.where(diag != 0.0, 1.0 / np.where(diag != 0.0, diag, 1.0), 1.0)
            precond = splinalg.LinearOperator(A.shape, matvec=lambda v: inv_diag * v)
            counter = {"n": 0}

            def _count(_xk) -> None:
                counter["n"] += 1

            solution, info = splinalg.bicgstab(A, b, x0=x0, rtol=tol, maxiter=maxiter, M=precond, callback=_count)
            if info < 0:
                raise RuntimeError(f"{method} breakdown (info={info})")
            iterations = float(counter["n"])

        if not return_stats:
            return solution
        final_res = float(np.linalg.norm(b - A @ solution))
        denom = initial_res if initial_res > 0.0 else float(np.linalg.norm(b)) or 1.0
        stats = {
            "initial": initial_res,
            "final": final_res,
            "relative": final_res / denom,
            "iterations": iterations,
        }
        return solution, stats
