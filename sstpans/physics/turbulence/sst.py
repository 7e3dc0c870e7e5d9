"""k-omega SST formulas and the plain RAS k-omega SST model.

``SSTFormulation`` holds the unmodified SST pieces (flow invariants,
blending, source terms, eddy-viscosity limiter, equation solve). The RAS
model below drives it directly; the PANS model drives it with its fK/fOmega
rescaling.

Reference: Menter, F.R., Kuntz, M. and Langtry, R. "Ten Years of Industrial
Experience with the SST Turbulence Model", 2003.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from ...core import fv_ops
from ...core.bounding import bound
from ...core.equation import FvSource, ScalarEquation
from ...core.field import ScalarField
from ...utils.logging import IterationLogger
from .base import TurbulenceModel, build_scalar_bcs, register_turbulence
from .blending import BlendingEvaluator
from .coefficients import ConfigurationError, PANSConfig
from .sources import SourceTermAssembler
from .viscosity import EddyViscosityCorrector


@dataclass
class FlowQuantities:
    """Velocity-derived invariants for one correction."""

    S2: np.ndarray
    GbyNu: np.ndarray
    div_u: np.ndarray
    mag_lap_u: np.ndarray
    face_flux: np.ndarray


class SSTFormulation:
    def __init__(self, config: PANSConfig) -> None:
        self.config = config
        self.coeffs = config.sst
        self.blending = BlendingEvaluator(config.sst)
        self.sources = SourceTermAssembler(
            config.sst, config.qsas, config.k_source, config.omega_source
        )
        self.viscosity = EddyViscosityCorrector(
            config.sst.a1, config.sst.b1, config.nut_min, config.nut_max
        )

    def flow_quantities(self, mesh, velocity) -> FlowQuantities:
        U = getattr(velocity, "values", velocity)
        grad_u = fv_ops.velocity_gradient(mesh, U)
        S2 = 2.0 * fv_ops.mag_sqr(fv_ops.symm(grad_u))
        GbyNu = fv_ops.double_dot(grad_u, fv_ops.dev_two_symm(grad_u))
        div_u = np.trace(grad_u, axis1=1, axis2=2)
        mag_lap_u = np.linalg.norm(fv_ops.laplacian(mesh, 1.0, U), axis=1)
        face_flux = fv_ops.face_flux(mesh, 1.0, fv_ops.interpolate(mesh, U))
        return FlowQuantities(S2=S2, GbyNu=GbyNu, div_u=div_u, mag_lap_u=mag_lap_u, face_flux=face_flux)

    def blend(self, mesh, k: ScalarField, omega: ScalarField, nu, y, diffusion_ratio=1.0):
        grad_k = fv_ops.grad(mesh, k)
        grad_omega = fv_ops.grad(mesh, omega)
        cd = self.blending.cd_k_omega(grad_k, grad_omega, omega.values, diffusion_ratio)
        fields = self.blending.evaluate(k.values, omega.values, nu, y, cd, diffusion_ratio)
        return fields, cd, grad_k, grad_omega

    def diffusivity(self, alpha, nut, nu, diffusion_ratio=1.0) -> np.ndarray:
        return diffusion_ratio * alpha * np.asarray(nut) + nu

    def solve(
        self,
        equation: ScalarEquation,
        field: ScalarField,
        gamma,
        source: FvSource,
        face_flux: np.ndarray,
        relax: float,
    ) -> Dict[str, float]:
        cfg = self.config
        matrix = equation.assemble(field, gamma, source, face_flux=face_flux, delta_t=cfg.delta_t)
        matrix.relax(field.values, relax)
        solution, stats = matrix.solve(method=cfg.solver, initial_guess=field.values, return_stats=True)
        field.values[:] = solution
        return stats


def log_bounding(logger: IterationLogger, name: str, stats: Optional[Dict[str, float]]) -> int:
    """Report a bounding event; returns the number of cells that were reset."""

    if stats is None:
        return 0
    logger.message(
        f"bounding {name}, min: {stats['min']:.6g} max: {stats['max']:.6g} "
        f"average: {stats['average']:.6g}"
    )
    return int(stats["cells"])


@register_turbulence("kOmegaSST")
class KOmegaSST(TurbulenceModel):
    """Plain RAS k-omega SST."""

    def __init__(self, mesh, fields, transport, config=None, wall_distance=None) -> None:
        super().__init__(mesh, fields, transport, config)
        if isinstance(config, PANSConfig):
            self.model_config = config
            raw = {}
        else:
            raw = dict(self.config)
            self.model_config = PANSConfig.from_dict(raw, require_delta=False)
        cfg = self.model_config
        if cfg.qsas.enabled:
            raise ConfigurationError("Qsas needs a filter width; use kOmegaSSTPANS")
        self.sst = SSTFormulation(cfg)
        self.logger = IterationLogger("kOmegaSST", verbose=cfg.verbose)
        self.k_ = self._field("k", raw.get("k0", 1.0e-3))
        self.omega_ = self._field("omega", raw.get("omega0", 1.0))
        self.y = self._wall_distance(wall_distance, cfg.wall_patches)
        boundary = raw.get("boundaryField", {}) or {}
        self._k_eqn = ScalarEquation(mesh, "k", build_scalar_bcs(mesh, boundary.get("k")))
        self._omega_eqn = ScalarEquation(mesh, "omega", build_scalar_bcs(mesh, boundary.get("omega")))
        self._F2 = ScalarField("F2", mesh, np.ones(mesh.ncells))
        self._iteration = 0
        self.correct_nut(np.zeros(mesh.ncells))

    def k(self) -> ScalarField:
        return self.k_

    def omega(self) -> ScalarField:
        return self.omega_

    def epsilon(self) -> ScalarField:
        return ScalarField("epsilon", self.mesh, self.model_config.sst.beta_star * self.k_.values * self.omega_.values)

    def F2(self) -> ScalarField:
        return self._F2

    def correct_nut(self, S2) -> None:
        blending = self.sst.blending
        nu = self.nu()
        F23 = blending.F2(self.k_.values, self.omega_.values, nu, self.y) * blending.F3(self.omega_.values, nu, self.y)
        self._F2.values[:] = F23
        self._nut.values[:] = self.sst.viscosity(self.k_.values, self.omega_.values, F23, S2)

    def correct(self, velocity_field) -> None:
        cfg = self.model_config
        sst = self.sst
        coeffs = cfg.sst
        nu = self.nu()
        flow = sst.flow_quantities(self.mesh, velocity_field)
        blend, cd, _, _ = sst.blend(self.mesh, self.k_, self.omega_, nu, self.y)
        F1 = blend.F1
        gamma = coeffs.gamma(F1)
        beta = coeffs.beta(F1)
        G = self._nut.values * flow.GbyNu

        k_src = sst.sources.k_equation(self.k_.values, self.omega_.values, G, flow.div_u)
        k_src = k_src + sst.sources.k_source(self.mesh.ncells)
        k_stats = sst.solve(
            self._k_eqn, self.k_, sst.diffusivity(coeffs.alpha_k(F1), self._nut.values, nu),
            k_src, flow.face_flux, cfg.relax_k,
        )
        log_bounding(self.logger, "k", bound(self.k_, cfg.k_min))

        omega_src = sst.sources.omega_equation(
            self.omega_.values, flow.GbyNu, flow.S2, F1, blend.F23, cd, gamma, beta, flow.div_u
        )
        omega_src = omega_src + sst.sources.omega_source(self.mesh.ncells)
        omega_stats = sst.solve(
            self._omega_eqn, self.omega_, sst.diffusivity(coeffs.alpha_omega(F1), self._nut.values, nu),
            omega_src, flow.face_flux, cfg.relax_omega,
        )
        log_bounding(self.logger, "omega", bound(self.omega_, cfg.omega_min))

        self.correct_nut(flow.S2)
        self._iteration += 1
        self.logger.log(
            self._iteration,
            {"k_res": k_stats["relative"], "omega_res": omega_stats["relative"], "nut_max": float(self._nut.values.max())},
        )
