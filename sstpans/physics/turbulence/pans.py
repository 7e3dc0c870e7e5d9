"""Partially-Averaged Navier-Stokes closure based on k-omega SST.

The transported quantities are the unresolved kinetic energy ``kU`` and
specific dissipation ``omegaU``. Their ratios to the total quantities,
``fK`` and ``fOmega``, follow from the local filter width, so the model
runs as RAS SST where the mesh is coarse (fK = 1) and resolves more of the
turbulence as the mesh is refined (fK -> fKlowerLimit).

References:
    Girimaji, S.S. and Abdol-Hamid, K.S. (2005). Partially-averaged
    Navier-Stokes model for turbulence: implementation and validation.
    AIAA paper 2005-502.

    Luo, D., Yan, C., Liu, H. and Zhao, R. (2014). Comparative assessment of
    PANS and DES for simulation of flow past a circular cylinder. Journal of
    Wind Engineering and Industrial Aerodynamics, 134, 65-77.

Default coefficients (``kOmegaSSTPANSCoeffs``)::

    alphaK1 0.85, alphaK2 1.0, alphaOmega1 0.5, alphaOmega2 0.856,
    beta1 0.075, beta2 0.0828, betaStar 0.09, gamma1 5/9, gamma2 0.44,
    a1 0.31, b1 1.0, c1 10.0, F3 no,
    fEpsilon 1.0, fKupperLimit 1.0, fKlowerLimit 0.1,
    delta cubeRootVol, cubeRootVolCoeffs {}
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from enum import Enum
from typing import Mapping, Optional

import numpy as np

from ...core import fv_ops
from ...core.bounding import bound
from ...core.equation import FvSource, ScalarEquation
from ...core.field import ScalarField
from ...utils.logging import IterationLogger
from .base import TurbulenceModel, build_scalar_bcs, register_turbulence
from .coefficients import ConfigurationError, PANSConfig
from .delta import FilterWidth, make_delta
from .resolution import ResolutionControl
from .sst import SSTFormulation, log_bounding


class CorrectionStage(Enum):
    IDLE = "idle"
    BLENDING_COMPUTED = "blendingComputed"
    SOURCES_ASSEMBLED = "sourcesAssembled"
    EQUATIONS_SOLVED = "equationsSolved"
    VISCOSITY_UPDATED = "viscosityUpdated"


@register_turbulence("kOmegaSSTPANS")
class KOmegaSSTPANS(TurbulenceModel):
    def __init__(self, mesh, fields, transport, config=None, wall_distance=None) -> None:
        super().__init__(mesh, fields, transport, config)
        self._lock = threading.Lock()
        self.stage = CorrectionStage.IDLE
        self.version = 0
        self.model_config: Optional[PANSConfig] = None
        self._delta: Optional[FilterWidth] = None
        self._supplied_y = wall_distance
        self.y: Optional[np.ndarray] = None
        self._configure(self._parse(config))
        cfg = self.model_config
        self.logger = IterationLogger("kOmegaSSTPANS", verbose=cfg.verbose)

        raw = {} if isinstance(config, PANSConfig) else dict(self.config)
        boundary = raw.get("boundaryField", {}) or {}
        self._kU_eqn = ScalarEquation(mesh, "kU", build_scalar_bcs(mesh, boundary.get("kU")))
        self._omegaU_eqn = ScalarEquation(mesh, "omegaU", build_scalar_bcs(mesh, boundary.get("omegaU")))

        restart = [name for name in ("kU", "omegaU") if name in fields]
        if len(restart) == 1:
            raise ConfigurationError(f"Restart needs both kU and omegaU, got only {restart[0]}")

        # total k/omega only seed kU/omegaU; they are not kept in sync afterwards
        k0 = self._initial("k", raw.get("k0", 1.0e-3))
        omega0 = self._initial("omega", raw.get("omega0", 1.0))
        if "fK" in fields:
            fK0 = np.clip(fields["fK"].values, cfg.pans.lo_lim, cfg.pans.u_lim)
        elif restart:
            fK0 = self._restart_fK(fields["kU"].values, fields["omegaU"].values)
        else:
            fK0 = self.resolution.fK(k0, omega0, self.delta().values)
        self._fK = ScalarField("fK", mesh, fK0)
        self._fOmega = ScalarField("fOmega", mesh, self.resolution.fOmega(fK0))
        self._kU = self._field("kU", self._fK.values * k0)
        self._omegaU = self._field("omegaU", self._fOmega.values * omega0)
        bound(self._kU, cfg.k_min)
        bound(self._omegaU, cfg.omega_min)

        self._F2 = ScalarField("F2", mesh, np.ones(mesh.ncells))
        self._iteration = 0
        self.correct_nut(np.zeros(mesh.ncells))

    def _initial(self, name: str, default) -> np.ndarray:
        if name in self.fields:
            return self.fields[name].values.copy()
        return np.broadcast_to(np.asarray(default, dtype=float), (self.mesh.ncells,)).copy()

    def _restart_fK(self, kU, omegaU, max_iter: int = 200, tol: float = 1.0e-12) -> np.ndarray:
        """fK consistent with given unresolved fields.

        Solves ``fK = fK(kU / fK, omegaU / fOmega(fK), delta)`` by fixed-point
        iteration, which contracts for ``fKExponent < 2``.
        """

        cfg = self.model_config
        kU = np.maximum(np.asarray(kU, dtype=float), cfg.k_min)
        omegaU = np.maximum(np.asarray(omegaU, dtype=float), cfg.omega_min)
        delta = self.delta().values
        fK = np.full(self.mesh.ncells, cfg.pans.u_lim)
        for _ in range(max_iter):
            updated = self.resolution.fK(kU / fK, omegaU / self.resolution.fOmega(fK), delta)
            converged = np.max(np.abs(updated - fK)) < tol
            fK = updated
            if converged:
                break
        return fK

    # Configuration

    @staticmethod
    def _parse(config) -> PANSConfig:
        if isinstance(config, PANSConfig):
            return config
        return PANSConfig.from_dict(config)

    def _configure(self, config: PANSConfig) -> None:
        previous = self.model_config
        delta = self._delta
        y = self.y
        if previous is None or (previous.delta, previous.delta_coeffs) != (config.delta, config.delta_coeffs):
            delta = make_delta(config.delta, self.mesh, config.delta_coeff_dict())
        if previous is None or previous.wall_patches != config.wall_patches:
            y = self._wall_distance(self._supplied_y, config.wall_patches)
        self.sst = SSTFormulation(config)
        self.resolution = ResolutionControl(config.pans, config.sst.beta_star)
        self._delta = delta
        self.y = y
        self.model_config = config

    @contextmanager
    def _exclusive(self, operation: str):
        if not self._lock.acquire(blocking=False):
            raise RuntimeError(f"{operation} called while kOmegaSSTPANS.correct() is in progress")
        try:
            yield
        finally:
            self._lock.release()

    def read(self, config: Optional[Mapping] = None) -> bool:
        """Re-read the coefficients from ``config`` (or the stored dictionary).

        Raises ``ConfigurationError`` and keeps the current coefficients when
        the new ones are invalid.
        """

        with self._exclusive("read()"):
            source = self.config if config is None else config
            new = self._parse(source)
            if new == self.model_config:
                return False
            self._configure(new)
            if config is not None:
                self.config = config
            self.version += 1
            self.logger.verbose = new.verbose
            self.logger.message(f"coefficients re-read, configuration version {self.version}")
            return True

    # Accessors

    def delta(self) -> ScalarField:
        return self._delta.delta()

    def kU(self) -> ScalarField:
        return self._kU

    def omegaU(self) -> ScalarField:
        return self._omegaU

    def fK(self) -> ScalarField:
        return self._fK

    def fOmega(self) -> ScalarField:
        return self._fOmega

    def F2(self) -> ScalarField:
        return self._F2

    def k(self) -> ScalarField:
        return ScalarField("k", self.mesh, self._kU.values / self._fK.values)

    def omega(self) -> ScalarField:
        return ScalarField("omega", self.mesh, self._omegaU.values / self._fOmega.values)

    def epsilon(self) -> ScalarField:
        beta_star = self.model_config.sst.beta_star
        return ScalarField("epsilon", self.mesh, beta_star * self.k().values * self.omega().values)

    def diffusion_ratio(self) -> np.ndarray:
        return self._fK.values / self._fOmega.values

    def DkUEff(self, F1) -> ScalarField:
        alpha = self.model_config.sst.alpha_k(np.asarray(F1))
        values = self.sst.diffusivity(alpha, self._nut.values, self.nu(), self.diffusion_ratio())
        return ScalarField("DkUEff", self.mesh, values)

    def DomegaUEff(self, F1) -> ScalarField:
        alpha = self.model_config.sst.alpha_omega(np.asarray(F1))
        values = self.sst.diffusivity(alpha, self._nut.values, self.nu(), self.diffusion_ratio())
        return ScalarField("DomegaUEff", self.mesh, values)

    # Source hooks

    def kSource(self) -> FvSource:
        return self.sst.sources.k_source(self.mesh.ncells, self._fK.values)

    def omegaSource(self) -> FvSource:
        return self.sst.sources.omega_source(self.mesh.ncells, self._fOmega.values)

    def Qsas(self, S2, gamma, beta, mag_lap_u) -> FvSource:
        sources = self.sst.sources
        if not sources.qsas_coeffs.enabled:
            return FvSource.zero(self.mesh.ncells)
        grad_k = fv_ops.grad(self.mesh, self._kU)
        grad_omega = fv_ops.grad(self.mesh, self._omegaU)
        return sources.qsas(
            S2, gamma, beta,
            self._kU.values, self._omegaU.values, grad_k, grad_omega,
            mag_lap_u, self.delta().values, self.model_config.delta_t,
        )

    # Correction

    def correct_nut(self, S2) -> None:
        """Eddy viscosity from the unresolved quantities with fresh F2 (x F3)."""

        blending = self.sst.blending
        nu = self.nu()
        kU = self._kU.values
        omegaU = self._omegaU.values
        F23 = blending.F2(kU, omegaU, nu, self.y) * blending.F3(omegaU, nu, self.y)
        self._F2.values[:] = F23
        self._nut.values[:] = self.sst.viscosity(kU, omegaU, F23, S2)

    def correct(self, velocity_field) -> None:
        with self._exclusive("correct()"):
            try:
                self._correct(velocity_field)
            finally:
                self.stage = CorrectionStage.IDLE

    def _correct(self, velocity_field) -> None:
        cfg = self.model_config
        sst = self.sst
        coeffs = cfg.sst
        mesh = self.mesh
        nu = self.nu()
        kU = self._kU
        omegaU = self._omegaU
        fK = self._fK.values.copy()
        fOmega = self._fOmega.values.copy()
        ratio = fK / fOmega

        flow = sst.flow_quantities(mesh, velocity_field)
        blend, cd, _, _ = sst.blend(mesh, kU, omegaU, nu, self.y, ratio)
        F1 = blend.F1
        gamma = coeffs.gamma(F1)
        beta = coeffs.beta(F1)
        G = self._nut.values * flow.GbyNu
        self.stage = CorrectionStage.BLENDING_COMPUTED

        k_src = sst.sources.k_equation(kU.values, omegaU.values, G, flow.div_u) + self.kSource()
        self.stage = CorrectionStage.SOURCES_ASSEMBLED
        k_stats = sst.solve(
            self._kU_eqn, kU, self.DkUEff(F1).values, k_src, flow.face_flux, cfg.relax_k
        )
        k_bounded = log_bounding(self.logger, "kU", bound(kU, cfg.k_min))

        omega_src = sst.sources.omega_equation(
            omegaU.values, flow.GbyNu, flow.S2, F1, blend.F23, cd, gamma, beta, flow.div_u, fOmega
        )
        omega_src = omega_src + self.Qsas(flow.S2, gamma, beta, flow.mag_lap_u) + self.omegaSource()
        omega_stats = sst.solve(
            self._omegaU_eqn, omegaU, self.DomegaUEff(F1).values, omega_src, flow.face_flux, cfg.relax_omega
        )
        omega_bounded = log_bounding(self.logger, "omegaU", bound(omegaU, cfg.omega_min))
        self.stage = CorrectionStage.EQUATIONS_SOLVED

        # total quantities with the ratios the equations were solved with
        k_total = np.maximum(kU.values / fK, cfg.k_min)
        omega_total = np.maximum(omegaU.values / fOmega, cfg.omega_min)
        fK_new, fOmega_new = self.resolution.evaluate(k_total, omega_total, self.delta().values)
        self._fK.values[:] = fK_new
        self._fOmega.values[:] = fOmega_new

        self.correct_nut(flow.S2)
        self.stage = CorrectionStage.VISCOSITY_UPDATED

        self._iteration += 1
        self.logger.log(
            self._iteration,
            {
                "kU_res": k_stats["relative"],
                "omegaU_res": omega_stats["relative"],
                "fK_min": float(fK_new.min()),
                "fK_mean": float(fK_new.mean()),
                "fK_max": float(fK_new.max()),
                "nut_max": float(self._nut.values.max()),
                "kU_bounded": k_bounded,
                "omegaU_bounded": omega_bounded,
            },
        )
