import pathlib
import sys

import numpy as np
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sstpans import (
    ConfigurationError,
    ConstantTransport,
    KOmegaSST,
    KOmegaSSTPANS,
    Mesh,
    ScalarField,
    VectorField,
    make_turbulence_model,
)
from sstpans.core import bound
from sstpans.physics.turbulence import CorrectionStage, load_turbulence_model
from sstpans.physics.turbulence.sst import log_bounding
from sstpans.utils.logging import IterationLogger

NX, NY = 4, 8


def _channel():
    mesh = Mesh.structured(NX, NY)
    y = mesh.cell_centers[:, 1]
    values = np.zeros((mesh.ncells, 3))
    values[:, 0] = 4.0 * y * (1.0 - y)
    return mesh, VectorField("U", mesh, values)


def _fields(mesh, k=1.0e-2, omega=10.0):
    return {
        "k": ScalarField("k", mesh, np.full(mesh.ncells, k)),
        "omega": ScalarField("omega", mesh, np.full(mesh.ncells, omega)),
    }


def _config(**overrides):
    cfg = {
        "delta": "cubeRootVol",
        "wallPatches": ["ymin", "ymax"],
        "deltaT": 0.01,
        "fKlowerLimit": 0.2,
    }
    cfg.update(overrides)
    return cfg


def _model(cfg=None, fields=None):
    mesh, velocity = _channel()
    transport = ConstantTransport(rho=1.0, mu=1.0e-3)
    model = KOmegaSSTPANS(mesh, fields or _fields(mesh), transport, cfg or _config())
    return model, velocity


def test_correct_keeps_state_bounded_and_finite():
    model, velocity = _model()
    for _ in range(3):
        model.correct(velocity)

    for field in (model.kU(), model.omegaU(), model.fK(), model.fOmega(), model.nut()):
        assert np.isfinite(field.values).all()
    assert (model.kU().values > 0.0).all()
    assert (model.omegaU().values > 0.0).all()
    assert (model.fK().values >= 0.2).all() and (model.fK().values <= 1.0).all()
    assert (model.nut().values >= 0.0).all()
    assert model.stage is CorrectionStage.IDLE
    assert len(model.logger.history) == 3
    assert model.logger.history[-1]["iter"] == 3


def test_total_quantities_follow_unresolved_ones():
    model, velocity = _model(_config(fEpsilon=0.8))
    model.correct(velocity)

    assert np.allclose(model.k().values * model.fK().values, model.kU().values)
    assert np.allclose(model.omega().values * model.fOmega().values, model.omegaU().values)
    assert np.allclose(model.fOmega().values, model.fK().values / 0.8)
    assert np.allclose(model.epsilon().values, 0.09 * model.k().values * model.omega().values)
    assert np.allclose(model.diffusion_ratio(), 0.8)

    F1 = np.full(model.mesh.ncells, 0.5)
    expected = 0.8 * (0.5 * 0.85 + 0.5 * 1.0) * model.nut().values + 1.0e-3
    assert np.allclose(model.DkUEff(F1).values, expected)


def test_initial_unresolved_fields_are_scaled_totals():
    mesh, _ = _channel()
    fields = _fields(mesh)
    fields["fK"] = ScalarField("fK", mesh, np.full(mesh.ncells, 0.5))
    model = KOmegaSSTPANS(mesh, fields, ConstantTransport(), _config(fKlowerLimit=0.1))
    assert np.allclose(model.fK().values, 0.5)
    assert np.allclose(model.kU().values, 0.5e-2)
    assert np.allclose(model.omegaU().values, 5.0)
    assert fields["kU"] is model.kU()


def test_reduces_to_ras_sst_when_fully_unresolved():
    cfg = _config(fEpsilon=1.0, fKupperLimit=1.0, fKlowerLimit=1.0)
    mesh, velocity = _channel()
    transport = ConstantTransport(rho=1.0, mu=1.0e-3)
    pans = KOmegaSSTPANS(mesh, _fields(mesh), transport, cfg)
    ras = KOmegaSST(mesh, _fields(mesh), transport, cfg)

    for _ in range(2):
        pans.correct(velocity)
        ras.correct(velocity)

    assert np.allclose(pans.fK().values, 1.0)
    assert np.allclose(pans.k().values, pans.kU().values)
    assert np.allclose(pans.kU().values, ras.k().values)
    assert np.allclose(pans.omegaU().values, ras.omega().values)
    assert np.allclose(pans.nut().values, ras.nut().values)
    assert np.allclose(pans.F2().values, ras.F2().values)


def test_fk_tracks_filter_width_coefficient():
    coarse, velocity = _model(_config(cubeRootVolCoeffs={"deltaCoeff": 10.0}))
    fine, _ = _model(_config(cubeRootVolCoeffs={"deltaCoeff": 0.01}))
    coarse.correct(velocity)
    fine.correct(velocity)
    assert coarse.fK().values.mean() > fine.fK().values.mean()
    assert np.allclose(coarse.delta().values, 1000.0 * fine.delta().values)


def test_missing_or_unknown_filter_width_is_rejected():
    mesh, _ = _channel()
    with pytest.raises(ConfigurationError):
        KOmegaSSTPANS(mesh, _fields(mesh), ConstantTransport(), {"wallPatches": ["ymin"]})
    with pytest.raises(ConfigurationError):
        KOmegaSSTPANS(mesh, _fields(mesh), ConstantTransport(), _config(delta="smooth"))


def test_unknown_model_patch_or_boundary_type_is_rejected():
    mesh, _ = _channel()
    with pytest.raises(ConfigurationError):
        make_turbulence_model("kOmegaSSTDES", mesh=mesh, fields=_fields(mesh), transport=ConstantTransport())
    with pytest.raises(ConfigurationError):
        KOmegaSSTPANS(mesh, _fields(mesh), ConstantTransport(), _config(wallPatches=["inlet"]))
    with pytest.raises(ConfigurationError):
        KOmegaSSTPANS(
            mesh, _fields(mesh), ConstantTransport(),
            _config(boundaryField={"kU": {"ymin": {"type": "kqRWallFunction"}}}),
        )


def test_fixed_value_boundaries_are_applied():
    cfg = _config(boundaryField={"kU": {"ymin": {"type": "fixedValue", "value": 0.0}}})
    model, velocity = _model(cfg)
    model.correct(velocity)
    bottom = model.kU().values[:NX]
    top = model.kU().values[-NX:]
    assert bottom.mean() < top.mean()


def test_make_turbulence_model_by_name():
    mesh, velocity = _channel()
    model = make_turbulence_model(
        "kOmegaSSTPANS", mesh=mesh, fields=_fields(mesh), transport=ConstantTransport(), config=_config()
    )
    assert isinstance(model, KOmegaSSTPANS)
    model.correct(velocity)


def test_read_reports_changes_and_keeps_valid_coefficients():
    model, velocity = _model()
    assert model.read() is False
    assert model.version == 0

    assert model.read(_config(fKlowerLimit=0.3)) is True
    assert model.version == 1
    assert model.resolution.lo_lim == pytest.approx(0.3)
    assert model.read() is False
    assert any("version 1" in message for message in model.logger.messages)

    current = model.model_config
    with pytest.raises(ConfigurationError):
        model.read(_config(fKlowerLimit=0.9, fKupperLimit=0.5))
    with pytest.raises(ConfigurationError):
        model.read(_config(delta="smooth"))
    assert model.model_config is current
    assert model.version == 1

    model.correct(velocity)
    assert (model.fK().values >= 0.3).all()


def test_read_switches_filter_width():
    model, _ = _model()
    before = model.delta().values.copy()
    assert model.read(_config(delta="maxDeltaxyz")) is True
    assert np.allclose(model.delta().values, 0.25)
    assert not np.allclose(before, model.delta().values)


def test_read_recomputes_wall_distance():
    model, _ = _model()
    mesh = model.mesh
    assert model.y[-1] == pytest.approx(0.0625)

    assert model.read(_config(wallPatches=["ymin"])) is True
    assert np.allclose(model.y, mesh.wall_distance(["ymin"]))
    assert model.y[-1] == pytest.approx(0.9375)

    current = model.model_config
    y = model.y
    with pytest.raises(ConfigurationError):
        model.read(_config(wallPatches=["inlet"]))
    assert model.model_config is current
    assert model.y is y


def test_restart_from_unresolved_fields_gives_consistent_fk():
    mesh, velocity = _channel()
    fields = {
        "kU": ScalarField("kU", mesh, np.full(mesh.ncells, 0.5)),
        "omegaU": ScalarField("omegaU", mesh, np.full(mesh.ncells, 50.0)),
    }
    cfg = _config(cubeRootVolCoeffs={"deltaCoeff": 0.01})
    model = KOmegaSSTPANS(mesh, fields, ConstantTransport(), cfg)

    assert np.allclose(model.kU().values, 0.5)
    assert np.allclose(model.omegaU().values, 50.0)
    expected = model.resolution.fK(model.k().values, model.omega().values, model.delta().values)
    assert np.allclose(model.fK().values, expected)
    assert (model.fK().values > 0.2).all()
    model.correct(velocity)

    partial = {"kU": ScalarField("kU", mesh, np.full(mesh.ncells, 0.5))}
    with pytest.raises(ConfigurationError):
        KOmegaSSTPANS(mesh, partial, ConstantTransport(), cfg)


def test_omega_production_limiter_uses_f3_blend():
    model, velocity = _model(_config(F3="yes"))
    blends = []
    limiter_blends = []
    blend = model.sst.blend
    omega_equation = model.sst.sources.omega_equation

    def record_blend(*args, **kwargs):
        result = blend(*args, **kwargs)
        blends.append(result[0])
        return result

    def record_omega_equation(*args, **kwargs):
        limiter_blends.append(args[4])
        return omega_equation(*args, **kwargs)

    model.sst.blend = record_blend
    model.sst.sources.omega_equation = record_omega_equation
    model.correct(velocity)

    assert not np.array_equal(blends[0].F23, blends[0].F2)
    assert np.array_equal(limiter_blends[0], blends[0].F23)


def test_ras_model_rejects_scale_adaptive_source():
    mesh, _ = _channel()
    with pytest.raises(ConfigurationError):
        KOmegaSST(mesh, _fields(mesh), ConstantTransport(), _config(Qsas="yes"))


def test_molecular_viscosity_from_transport_properties():
    mesh, _ = _channel()
    model = KOmegaSSTPANS(mesh, _fields(mesh), ConstantTransport(rho=2.0, mu=4.0e-3), _config())
    assert model.nu() == pytest.approx(2.0e-3)


def test_stages_advance_during_correct():
    model, velocity = _model()
    seen = []
    k_source = model.kSource
    omega_source = model.omegaSource

    def record_k():
        seen.append(model.stage)
        return k_source()

    def record_omega():
        seen.append(model.stage)
        return omega_source()

    model.kSource = record_k
    model.omegaSource = record_omega
    model.correct(velocity)
    assert seen == [CorrectionStage.BLENDING_COMPUTED, CorrectionStage.SOURCES_ASSEMBLED]
    assert model.stage is CorrectionStage.IDLE


def test_reentrant_correct_and_read_are_rejected():
    model, velocity = _model()

    def reenter():
        model.correct(velocity)

    model.kSource = reenter
    with pytest.raises(RuntimeError):
        model.correct(velocity)
    assert model.stage is CorrectionStage.IDLE

    def reread():
        model.read()

    model.kSource = reread
    with pytest.raises(RuntimeError):
        model.correct(velocity)

    del model.kSource
    model.correct(velocity)
    assert model.stage is CorrectionStage.IDLE


def test_user_sources_reach_the_unresolved_equations():
    model, _ = _model(_config(kUSource={"explicit": 2.0, "implicit": -0.5}))
    source = model.kSource()
    assert np.allclose(source.su, 2.0 * model.fK().values)
    assert np.allclose(source.sp, -0.5)
    assert model.omegaSource().is_zero()


def test_scale_adaptive_source_is_optional():
    plain, velocity = _model()
    mesh = plain.mesh
    S2 = np.full(mesh.ncells, 4.0)
    mag_lap_u = np.full(mesh.ncells, 8.0)
    assert plain.Qsas(S2, 0.5, 0.08, mag_lap_u).is_zero()

    sas, _ = _model(_config(Qsas="yes"))
    source = sas.Qsas(S2, 0.5, 0.08, mag_lap_u)
    assert np.isfinite(source.su).all()
    assert (source.su >= 0.0).all()
    assert (source.su <= sas.omegaU().values / (0.1 * 0.01) + 1e-12).all()
    sas.correct(velocity)
    assert np.isfinite(sas.omegaU().values).all()


def test_verbose_logging_prints_iteration_summary(capsys):
    model, velocity = _model(_config(verbose="yes"))
    model.correct(velocity)
    out = capsys.readouterr().out
    assert "kOmegaSSTPANS iter   1" in out
    assert "fK_min" in out


def test_bounding_is_reported():
    mesh = Mesh.structured(2, 2)
    field = ScalarField("kU", mesh, [1.0, -0.5, 2.0, 0.5])
    logger = IterationLogger("kOmegaSSTPANS", verbose=False)
    log_bounding(logger, "kU", bound(field, 1.0e-10))
    log_bounding(logger, "omegaU", None)
    assert logger.messages == ["bounding kU, min: -0.5 max: 2 average: 0.75"]


def test_load_model_from_properties_file(tmp_path):
    path = tmp_path / "turbulence.yaml"
    path.write_text(
        "\n".join(
            [
                "TurbulenceModel: kOmegaSSTPANS",
                "kOmegaSSTPANSCoeffs:",
                "  gamma1: 5/9",
                "  F3: no",
                "  fKlowerLimit: 0.2",
                "  delta: cubeRootVol",
                "  cubeRootVolCoeffs:",
                "    deltaCoeff: 2.0",
                "  wallPatches: [ymin, ymax]",
                "",
            ]
        ),
        encoding="utf-8",
    )
    mesh, velocity = _channel()
    model = load_turbulence_model(path, mesh, _fields(mesh), ConstantTransport())
    assert isinstance(model, KOmegaSSTPANS)
    assert model.model_config.sst.F3 is False
    assert model.model_config.sst.gamma1 == pytest.approx(5.0 / 9.0)
    assert np.allclose(model.delta().values, 2.0 * np.sqrt(0.25 * 0.125))
    model.correct(velocity)
