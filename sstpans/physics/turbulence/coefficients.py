"""Model coefficient sets and the F1 coefficient blend.

Coefficients are read from OpenFOAM-style dictionaries (``alphaK1``,
``gamma1: 5/9``, ``F3: no``) into frozen dataclasses, so a model holds one
immutable snapshot until it is explicitly reconfigured.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Any, Dict, Mapping, Optional, Tuple


class ConfigurationError(ValueError):
    """Missing or invalid model configuration."""


_TRUE = {"yes", "on", "true", "1"}
_FALSE = {"no", "off", "false", "0", "none"}


def read_scalar(cfg: Mapping[str, Any], key: str, default: Optional[float] = None) -> float:
    raw = cfg.get(key, default)
    if raw is None:
        raise ConfigurationError(f"Missing coefficient '{key}'")
    try:
        value = float(Fraction(raw.strip())) if isinstance(raw, str) else float(raw)
    except (TypeError, ValueError, ZeroDivisionError) as exc:
        raise ConfigurationError(f"Coefficient '{key}' is not a number: {raw!r}") from exc
    if not math.isfinite(value):
        raise ConfigurationError(f"Coefficient '{key}' must be finite, got {value}")
    return value


def read_switch(cfg: Mapping[str, Any], key: str, default: bool = False) -> bool:
    raw = cfg.get(key, default)
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"Switch '{key}' must be yes/no, got {raw!r}")


def require_positive(name: str, value: float) -> float:
    if value <= 0.0:
        raise ConfigurationError(f"Coefficient '{name}' must be positive, got {value}")
    return value


def blend(F1, psi1: float, psi2: float):
    """Linear F1 blend between the inner (1) and outer (2) coefficient."""

    return F1 * (psi1 - psi2) + psi2


@dataclass(frozen=True)
class SSTCoefficients:
    alpha_k1: float = 0.85
    alpha_k2: float = 1.0
    alpha_omega1: float = 0.5
    alpha_omega2: float = 0.856
    beta1: float = 0.075
    beta2: float = 0.0828
    beta_star: float = 0.09
    gamma1: float = 5.0 / 9.0
    gamma2: float = 0.44
    a1: float = 0.31
    b1: float = 1.0
    c1: float = 10.0
    F3: bool = False

    @classmethod
    def from_dict(cls, cfg: Optional[Mapping[str, Any]]) -> "SSTCoefficients":
        cfg = cfg or {}
        d = cls()
        coeffs = cls(
            alpha_k1=read_scalar(cfg, "alphaK1", d.alpha_k1),
            alpha_k2=read_scalar(cfg, "alphaK2", d.alpha_k2),
            alpha_omega1=read_scalar(cfg, "alphaOmega1", d.alpha_omega1),
            alpha_omega2=read_scalar(cfg, "alphaOmega2", d.alpha_omega2),
            beta1=read_scalar(cfg, "beta1", d.beta1),
            beta2=read_scalar(cfg, "beta2", d.beta2),
            beta_star=read_scalar(cfg, "betaStar", d.beta_star),
            gamma1=read_scalar(cfg, "gamma1", d.gamma1),
            gamma2=read_scalar(cfg, "gamma2", d.gamma2),
            a1=read_scalar(cfg, "a1", d.a1),
            b1=read_scalar(cfg, "b1", d.b1),
            c1=read_scalar(cfg, "c1", d.c1),
            F3=read_switch(cfg, "F3", d.F3),
        )
        positive = (
            "alpha_k1", "alpha_k2", "alpha_omega1", "alpha_omega2",
            "beta1", "beta2", "beta_star", "a1", "b1", "c1",
        )
        for name in positive:
            require_positive(name, getattr(coeffs, name))
        return coeffs

    def alpha_k(self, F1):
        return blend(F1, self.alpha_k1, self.alpha_k2)

    def alpha_omega(self, F1):
        return blend(F1, self.alpha_omega1, self.alpha_omega2)

    def beta(self, F1):
        return blend(F1, self.beta1, self.beta2)

    def gamma(self, F1):
        return blend(F1, self.gamma1, self.gamma2)


@dataclass(frozen=True)
class PANSCoefficients:
    """Resolution-control constants.

    ``fk_coeff`` and ``fk_exponent`` turn the filter-to-integral length ratio
    into the unclipped fK; ``fk_coeff`` defaults to ``1/sqrt(betaStar)``.
    """

    f_epsilon: float = 1.0
    u_lim: float = 1.0
    lo_lim: float = 0.1
    fk_coeff: Optional[float] = None
    fk_exponent: float = 2.0 / 3.0

    @classmethod
    def from_dict(cls, cfg: Optional[Mapping[str, Any]]) -> "PANSCoefficients":
        cfg = cfg or {}
        d = cls()
        coeffs = cls(
            f_epsilon=require_positive("fEpsilon", read_scalar(cfg, "fEpsilon", d.f_epsilon)),
            u_lim=read_scalar(cfg, "fKupperLimit", d.u_lim),
            lo_lim=require_positive("fKlowerLimit", read_scalar(cfg, "fKlowerLimit", d.lo_lim)),
            fk_coeff=None if cfg.get("fKCoeff") is None else require_positive("fKCoeff", read_scalar(cfg, "fKCoeff")),
            fk_exponent=require_positive("fKExponent", read_scalar(cfg, "fKExponent", d.fk_exponent)),
        )
        if coeffs.lo_lim > coeffs.u_lim:
            raise ConfigurationError(
                f"fKlowerLimit ({coeffs.lo_lim}) exceeds fKupperLimit ({coeffs.u_lim})"
            )
        return coeffs

    def fk_coefficient(self, beta_star: float) -> float:
        if self.fk_coeff is not None:
            return self.fk_coeff
        return 1.0 / math.sqrt(beta_star)


@dataclass(frozen=True)
class QsasCoefficients:
    enabled: bool = False
    Cs: float = 0.11
    kappa: float = 0.41
    zeta2: float = 3.51
    sigma_phi: float = 2.0 / 3.0
    C: float = 2.0

    @classmethod
    def from_dict(cls, enabled: bool, cfg: Optional[Mapping[str, Any]]) -> "QsasCoefficients":
        cfg = cfg or {}
        d = cls()
        return cls(
            enabled=enabled,
            Cs=require_positive("Cs", read_scalar(cfg, "Cs", d.Cs)),
            kappa=require_positive("kappa", read_scalar(cfg, "kappa", d.kappa)),
            zeta2=require_positive("zeta2", read_scalar(cfg, "zeta2", d.zeta2)),
            sigma_phi=require_positive("sigmaPhi", read_scalar(cfg, "sigmaPhi", d.sigma_phi)),
            C=read_scalar(cfg, "C", d.C),
        )


@dataclass(frozen=True)
class UniformSource:
    """User source ``explicit + implicit * phi`` for one equation."""

    explicit: float = 0.0
    implicit: float = 0.0

    @classmethod
    def from_dict(cls, cfg: Optional[Mapping[str, Any]]) -> "UniformSource":
        cfg = cfg or {}
        source = cls(explicit=read_scalar(cfg, "explicit", 0.0), implicit=read_scalar(cfg, "implicit", 0.0))
        if source.implicit > 0.0:
            raise ConfigurationError("Implicit source coefficient must be <= 0")
        return source

    @property
    def active(self) -> bool:
        return self.explicit != 0.0 or self.implicit != 0.0


def _items(cfg: Optional[Mapping[str, Any]]) -> Tuple[Tuple[str, Any], ...]:
    return tuple(sorted((cfg or {}).items()))


@dataclass(frozen=True)
class PANSConfig:
    """Complete, immutable configuration of a k-omega SST (PANS) closure."""

    sst: SSTCoefficients = field(default_factory=SSTCoefficients)
    pans: PANSCoefficients = field(default_factory=PANSCoefficients)
    qsas: QsasCoefficients = field(default_factory=QsasCoefficients)
    k_source: UniformSource = field(default_factory=UniformSource)
    omega_source: UniformSource = field(default_factory=UniformSource)
    delta: str = "cubeRootVol"
    delta_coeffs: Tuple[Tuple[str, Any], ...] = ()
    wall_patches: Tuple[str, ...] = ()
    k_min: float = 1.0e-15
    omega_min: float = 1.0e-15
    nut_min: float = 0.0
    nut_max: float = 1.0e5
    relax_k: float = 1.0
    relax_omega: float = 1.0
    delta_t: Optional[float] = None
    solver: str = "direct"
    verbose: bool = False

    @classmethod
    def from_dict(cls, cfg: Optional[Mapping[str, Any]], require_delta: bool = True) -> "PANSConfig":
        cfg = dict(cfg or {})
        delta = cfg.get("delta", "cubeRootVol" if not require_delta else None)
        if not delta:
            raise ConfigurationError("A filter width 'delta' must be specified for PANS")
        relaxation = cfg.get("relaxation", {}) or {}
        delta_t = cfg.get("deltaT")
        config = cls(
            sst=SSTCoefficients.from_dict(cfg),
            pans=PANSCoefficients.from_dict(cfg),
            qsas=QsasCoefficients.from_dict(read_switch(cfg, "Qsas", False), cfg.get("QsasCoeffs")),
            k_source=UniformSource.from_dict(cfg.get("kUSource")),
            omega_source=UniformSource.from_dict(cfg.get("omegaUSource")),
            delta=str(delta),
            delta_coeffs=_items(cfg.get(f"{delta}Coeffs")),
            wall_patches=tuple(cfg.get("wallPatches", ()) or ()),
            k_min=read_scalar(cfg, "kMin", 1.0e-15),
            omega_min=require_positive("omegaMin", read_scalar(cfg, "omegaMin", 1.0e-15)),
            nut_min=read_scalar(cfg, "nutMin", 0.0),
            nut_max=read_scalar(cfg, "nutMax", 1.0e5),
            relax_k=read_scalar(relaxation, "kU", 1.0),
            relax_omega=read_scalar(relaxation, "omegaU", 1.0),
            delta_t=None if delta_t is None else require_positive("deltaT", read_scalar(cfg, "deltaT")),
            solver=str(cfg.get("solver", "direct")),
            verbose=read_switch(cfg, "verbose", False),
        )
        if config.k_min < 0.0:
            raise ConfigurationError("kMin must be non-negative")
        if not 0.0 <= config.nut_min <= config.nut_max:
            raise ConfigurationError("Require 0 <= nutMin <= nutMax")
        for name, alpha in (("kU", config.relax_k), ("omegaU", config.relax_omega)):
            if not 0.0 < alpha <= 1.0:
                raise ConfigurationError(f"Relaxation factor for {name} must be in (0, 1]")
        return config

    def delta_coeff_dict(self) -> Dict[str, Any]:
        return dict(self.delta_coeffs)
