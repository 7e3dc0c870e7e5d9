"""Finite-volume helper operations."""

from __future__ import annotations

from typing import Iterable

import numpy as np

from .field import Field
from .mesh import Mesh


def _values_array(field: Field | np.ndarray | Iterable[float]) -> np.ndarray:
    if isinstance(field, Field):
        return field.values
    return np.asarray(field, dtype=float)


def _face_geometry(mesh: Mesh):
    area_vectors = np.array([face.area_vector for face in mesh.faces])
    centers = np.array([face.center for face in mesh.faces])
    return area_vectors, centers


def interpolate(mesh: Mesh, field: Field | np.ndarray) -> np.ndarray:
    """Linear cell-to-face interpolation; boundary faces take the owner value."""

    values = _values_array(field)
    owners = mesh.owners
    neigh = mesh.neighbours
    internal = neigh >= 0
    face_vals = values[owners].copy()
    face_vals[internal] = 0.5 * (values[owners[internal]] + values[neigh[internal]])
    return face_vals


def grad(mesh: Mesh, field: Field | np.ndarray) -> np.ndarray:
    """Gauss gradient.

    Scalars give shape ``(ncells, 3)``; vectors give ``(ncells, 3, ncomp)``
    with ``[i, j, c] = d phi_c / d x_j``.
    """

    values = _values_array(field)
    face_vals = interpolate(mesh, values)

    area_vectors, _ = _face_geometry(mesh)
    owners = mesh.owners
    neigh = mesh.neighbours
    internal = neigh >= 0
    if values.ndim == 1:
        contrib = area_vectors * face_vals[:, None]
        grads = np.zeros((mesh.ncells, 3))
    else:
        contrib = area_vectors[:, :, None] * face_vals[:, None, :]
        grads = np.zeros((mesh.ncells, 3, values.shape[1]))
    np.add.at(grads, owners, contrib)
    np.subtract.at(grads, neigh[internal], contrib[internal])
    shape = (-1,) + (1,) * (grads.ndim - 1)
    return grads / mesh.cell_volumes.reshape(shape)


def laplacian(mesh: Mesh, gamma: Field | np.ndarray | float, field: Field | np.ndarray) -> np.ndarray:
    """Explicit laplacian over internal faces, zero flux through boundaries."""

    phi = _values_array(field)
    owners = mesh.owners
    neigh = mesh.neighbours
    fids = mesh.internal_faces()
    if isinstance(gamma, (float, int)):
        g_face = np.full(len(fids), float(gamma))
    else:
        g_face = interpolate(mesh, _values_array(gamma))[fids]
    own = owners[fids]
    nbr = neigh[fids]
    distance = np.linalg.norm(mesh.cell_centers[nbr] - mesh.cell_centers[own], axis=1)
    areas = np.array([mesh.faces[fid].area for fid in fids])
    coeff = g_face * areas / distance
    delta = phi[nbr] - phi[own]
    if phi.ndim > 1:
        coeff = coeff[:, None]
    flux = coeff * delta
    diffusion = np.zeros_like(phi, dtype=float)
    np.add.at(diffusion, own, flux)
    np.subtract.at(diffusion, nbr, flux)
    shape = (-1,) + (1,) * (phi.ndim - 1)
    return diffusion / mesh.cell_volumes.reshape(shape)


def face_flux(
    mesh: Mesh,
    density: float | np.ndarray,
    face_velocity: np.ndarray,
) -> np.ndarray:
    area_vectors, _ = _face_geometry(mesh)
    if isinstance(density, (float, int)):
        rho_f = float(density)
    else:
        rho_f = interpolate(mesh, _values_array(density))
    return rho_f * np.einsum("fi,fi->f", np.asarray(face_velocity, dtype=float), area_vectors)


def velocity_gradient(mesh: Mesh, velocity: Field | np.ndarray) -> np.ndarray:
    """Velocity gradient tensor per cell, ``[i, j, c] = d U_c / d x_j``."""

    return grad(mesh, velocity)


def symm(tensor: np.ndarray) -> np.ndarray:
    return 0.5 * (tensor + np.swapaxes(tensor, -1, -2))


def dev_two_symm(tensor: np.ndarray) -> np.ndarray:
    two_symm = tensor + np.swapaxes(tensor, -1, -2)
    trace = np.trace(two_symm, axis1=-2, axis2=-1)
    return two_symm - (trace / 3.0)[..., None, None] * np.eye(3)


def double_dot(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.einsum("...ij,...ij->...", a, b)


def mag_sqr(values: np.ndarray) -> np.ndarray:
    values = np.asarray(values, dtype=float)
    if values.ndim == 1:
        return values * values
    axes = tuple(range(1, values.ndim))
    return np.sum(values * values, axis=axes)
