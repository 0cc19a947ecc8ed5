from pathlib import Path

import pytest

from biosim.ecology.loader import run_sim_file
from biosim.ecology.run_simulation import main
from biosim.ecology.utils.param_files import read_population

DATA = Path(__file__).parent / "data"


def _write_sim(tmp_path, name="run.sim", **overrides):
    params = {
        "Geografi": DATA / "island.geo",
        "CelleParameter": DATA / "cells.par",
        "BytteParameter": DATA / "herbivore.par",
        "RovdyrParameter": DATA / "predator.par",
        "Populasjon": DATA / "start.pop",
        "StartAar": 0,
        "SluttAar": 3,
        "SlumptallFroe": 5,
        "UtdataStamme": tmp_path / "out" / "island",
        "DumpPopInterval": 2,
        "DumpForInterval": 1,
        "DumpDyrInterval": 3,
    }
    params.update(overrides)
    lines = [f"{key} {value}" for key, value in params.items() if value is not None]
    path = tmp_path / name
    path.write_text("# generated\n" + "\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_run_writes_reports(tmp_path):
    history = run_sim_file(_write_sim(tmp_path), overrides={"log_every": 0})
    assert history["year"] == [1, 2, 3, 4]

    out = tmp_path / "out"
    dat_lines = (out / "island.dat").read_text(encoding="utf-8").splitlines()
    assert dat_lines[1].split() == ["Geografi", "island.geo"]
    assert dat_lines[2].split() == ["#Year", "B/J", "R/J", "B/S", "R/S", "B/O", "R/O"]
    years = [int(line.split()[0]) for line in dat_lines[3:]]
    assert years == [0, 1, 2, 3, 4]
    # initial state: 3 prey and 1 predator in the jungle
    assert [int(v) for v in dat_lines[3].split()[1:]] == [3, 1, 0, 0, 0, 0]

    assert sorted(p.name for p in out.glob("*.pop")) == ["island.00002.pop", "island.00004.pop"]
    assert len(list(out.glob("*.for"))) == 4
    assert sorted(p.name for p in out.glob("*.dyr")) == ["island.00003.dyr"]


def test_food_report_layout(tmp_path):
    run_sim_file(_write_sim(tmp_path, SluttAar=0), overrides={"log_every": 0})
    lines = (tmp_path / "out" / "island.00001.for").read_text(encoding="utf-8").splitlines()
    values = [float(line) for line in lines if line and not line.startswith("#")]
    assert len(values) == 20
    # water border rows hold no food
    assert values[:5] == [0.0] * 5
    assert lines.count("") == 4


def test_population_report_is_readable_input(tmp_path):
    run_sim_file(_write_sim(tmp_path, SluttAar=1), overrides={"log_every": 0})
    path = tmp_path / "out" / "island.00002.pop"
    records = read_population(path)
    assert path.read_text(encoding="utf-8").startswith("# population year 2")
    assert {r.species_name for r in records} <= {"Bytte", "Rovdyr"}
    for record in records:
        assert all(age >= 0 and weight >= 0 for age, weight in record.animals)


def test_main_runs_every_file_and_counts_failures(tmp_path, capsys):
    good = _write_sim(tmp_path, "good.sim")
    broken = _write_sim(tmp_path, "broken.sim", Geografi=tmp_path / "missing.geo")
    assert main([str(broken), str(good), "--log-every", "0"]) == 1
    captured = capsys.readouterr()
    assert f"Error in {broken}: Could not open" in captured.err
    assert (tmp_path / "out" / "island.dat").exists()


def test_main_same_seed_same_output(tmp_path):
    sim_files = []
    for name in ("a", "b"):
        run_dir = tmp_path / name
        run_dir.mkdir()
        sim_files.append(str(_write_sim(run_dir)))
    assert main(sim_files + ["--log-every", "0"]) == 0
    dat_a = (tmp_path / "a" / "out" / "island.dat").read_text(encoding="utf-8")
    dat_b = (tmp_path / "b" / "out" / "island.dat").read_text(encoding="utf-8")
    assert dat_a == dat_b


def test_main_requires_a_file():
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 2
