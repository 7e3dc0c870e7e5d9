import pathlib
import sys

import numpy as np
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sstpans.core import FvSource, Mesh, ScalarEquation, ScalarField, bound
from sstpans.core.bc import FixedValue
from sstpans.core.fv_ops import grad


def test_structured_mesh_patches_and_volumes():
    mesh = Mesh.structured(4, 8, lengths=(1.0, 2.0))
    assert mesh.ncells == 32
    assert np.allclose(mesh.cell_volumes, 0.25 * 0.25)
    assert len(mesh.patch_faces("xmin")) == 8
    assert len(mesh.patch_faces("ymax")) == 4
    for fid in mesh.patch_faces("xmin"):
        assert mesh.faces[fid].area_vector[0] < 0.0
    for fid in mesh.patch_faces("ymax"):
        assert mesh.faces[fid].area_vector[1] > 0.0


def test_wall_distance_in_channel():
    mesh = Mesh.structured(4, 8)
    y = mesh.wall_distance(["ymin", "ymax"])
    yc = mesh.cell_centers[:, 1]
    assert np.allclose(y, np.minimum(yc, 1.0 - yc))
    assert np.isinf(mesh.wall_distance([])).all()


def test_gauss_gradient_of_linear_field_interior():
    mesh = Mesh.structured(6, 6)
    phi = ScalarField("phi", mesh, mesh.cell_centers[:, 0])
    g = grad(mesh, phi)
    nx, ny = 6, 6
    interior = [j * nx + i for j in range(ny) for i in range(1, nx - 1)]
    assert np.allclose(g[interior, 0], 1.0)
    assert np.allclose(g[:, 1], 0.0)


def test_scalar_equation_steady_diffusion_is_linear():
    mesh = Mesh.structured(10, 1)
    phi = ScalarField("phi", mesh, np.zeros(mesh.ncells))
    bcs = [
        FixedValue("xmin", mesh, mesh.patch_faces("xmin"), 0.0),
        FixedValue("xmax", mesh, mesh.patch_faces("xmax"), 1.0),
    ]
    equation = ScalarEquation(mesh, "phi", bcs)
    matrix = equation.assemble(phi, 1.0, FvSource.zero(mesh.ncells))
    solution = matrix.solve()
    assert np.allclose(solution, mesh.cell_centers[:, 0])


def test_linearised_source_splits_by_sign():
    phi = np.array([2.0, 2.0])
    source = FvSource.linearised(np.array([-1.0, 3.0]), phi)
    assert np.allclose(source.sp, [-1.0, 0.0])
    assert np.allclose(source.su, [0.0, 6.0])
    assert np.allclose(source.evaluate(phi), [-2.0, 6.0])


def test_bound_resets_negative_cells():
    mesh = Mesh.structured(2, 2)
    field = ScalarField("kU", mesh, [1.0, -0.5, 2.0, 1e-20])
    stats = bound(field, 1e-10)
    assert stats is not None
    assert stats["min"] == -0.5
    assert (field.values >= 1e-10).all()
    assert field.values[0] == 1.0
    assert bound(field, 1e-10) is None


@pytest.mark.parametrize("method", ["direct", "bicgstab", "amg"])
def test_solver_methods_agree(method):
    mesh = Mesh.structured(20, 2)
    phi = ScalarField("phi", mesh, np.zeros(mesh.ncells))
    bcs = [
        FixedValue("xmin", mesh, mesh.patch_faces("xmin"), 1.0),
        FixedValue("xmax", mesh, mesh.patch_faces("xmax"), 3.0),
    ]
    matrix = ScalarEquation(mesh, "phi", bcs).assemble(phi, 1.0, FvSource.zero(mesh.ncells))
    solution, stats = matrix.solve(method=method, return_stats=True)
    assert np.allclose(solution, 1.0 + 2.0 * mesh.cell_centers[:, 0], atol=1e-6)
    assert stats["relative"] < 1e-6


def test_unknown_solver_method():
    mesh = Mesh.structured(2, 1)
    phi = ScalarField("phi", mesh, np.zeros(mesh.ncells))
    bcs = [FixedValue("xmin", mesh, mesh.patch_faces("xmin"), 0.0)]
    matrix = ScalarEquation(mesh, "phi", bcs).assemble(phi, 1.0, FvSource.zero(mesh.ncells))
    with pytest.raises(NotImplementedError):
        matrix.solve(method="gmres")


def test_patch_aliases_rename_wall_patches():
    mesh = Mesh.structured(4, 8, patch_aliases={"ymin": "bottomWall"})
    assert len(mesh.patch_faces("bottomWall")) == 4
    with pytest.raises(KeyError):
        mesh.patch_faces("ymin")
    y = mesh.wall_distance(["bottomWall"])
    assert np.allclose(y, mesh.cell_centers[:, 1])
