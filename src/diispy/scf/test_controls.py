import pytest

from diispy.io import InvalidInputException, yaml
from . import SCFControls, DIISAlgorithm


def test_defaults() -> None:
    controls = SCFControls()
    assert controls.extrap and controls.use_diis and controls.use_damp
    assert controls.diis is DIISAlgorithm.CDIIS
    assert controls.n_keep == 10


def test_equivalences() -> None:
    controls = SCFControls(damp_param=0.0)
    assert not controls.damp
    assert controls.extrap and controls.use_diis
    controls = SCFControls(damp=False, diis=False)
    assert not controls.extrap
    assert not (controls.use_diis or controls.use_damp)
    controls = SCFControls(damp_param=0.0, diis="none")
    assert not controls.extrap
    controls = SCFControls(extrap=False)
    assert not (controls.use_diis or controls.use_damp)


def test_diis_algorithm() -> None:
    assert SCFControls(diis="CDIIS").diis is DIISAlgorithm.CDIIS
    assert SCFControls(diis=True).diis is DIISAlgorithm.CDIIS
    assert SCFControls(diis=False).diis is DIISAlgorithm.NONE
    with pytest.raises(InvalidInputException):
        SCFControls(diis="ediis")


@pytest.mark.parametrize(
    "params", [{"n_keep": 0}, {"damp_param": 1.0}, {"damp_param": -0.1}]
)
def test_invalid(params: dict) -> None:
    with pytest.raises(InvalidInputException):
        SCFControls(**params)


def test_from_dict() -> None:
    controls = SCFControls.from_dict({"n-keep": 6, "damp-param": 0.5, "diis": "cdiis"})
    assert controls.n_keep == 6
    assert controls.damp_param == 0.5
    with pytest.raises(InvalidInputException):
        SCFControls.from_dict({"n-kept": 6})


def test_load(tmp_path, monkeypatch) -> None:
    base = tmp_path / "base.yaml"
    base.write_text("scf:\n  n-keep: 4\n  damp: no\n  n-iterations: 50\n")
    monkeypatch.setenv("DIISPY_TEST_BASE", str(base))
    monkeypatch.chdir(tmp_path)
    filename = tmp_path / "input.yaml"
    filename.write_text(
        "include: ${DIISPY_TEST_BASE}\n"
        "scf:\n"
        "  n-iterations: 80\n"
        "  diis: false\n"
    )
    controls = SCFControls.load(str(filename))
    assert controls.n_keep == 4  # included
    assert controls.n_iterations == 80  # overridden by including file
    assert not controls.extrap  # no damping and no DIIS
    # Round trip through a dumped input file:
    reloaded = tmp_path / "reloaded.yaml"
    reloaded.write_text(yaml.dump({"scf": controls.as_dict()}))
    assert SCFControls.load(str(reloaded)).as_dict() == controls.as_dict()


def test_load_missing_section(tmp_path) -> None:
    filename = tmp_path / "empty.yaml"
    filename.write_text("other:\n  key: 1\n")
    assert SCFControls.load(str(filename)).as_dict() == SCFControls().as_dict()


def test_cyclic_include(tmp_path) -> None:
    a = tmp_path / "a.yaml"
    b = tmp_path / "b.yaml"
    a.write_text(f"include: {b}\nscf:\n  n-keep: 3\n")
    b.write_text(f"include: {a}\n")
    with pytest.raises(RecursionError):
        SCFControls.load(str(a))
