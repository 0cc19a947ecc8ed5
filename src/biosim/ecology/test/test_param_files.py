from pathlib import Path

import pytest

from biosim.ecology.errors import ConfigError
from biosim.ecology.loader import load_simulation
from biosim.ecology.species import Herbivore, Predator, make_species
from biosim.ecology.utils.param_files import (
    read_cell_parameters,
    read_cell_spec,
    read_geography,
    read_parameters,
    read_population,
    read_sim_file,
    read_species_config,
)

DATA = Path(__file__).parent / "data"


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_read_parameters_skips_comments():
    params = read_parameters(DATA / "cells.par")
    assert params == {"alpha": "0.3", "fmax_sav": "300", "fmax_jngl": "800"}


def test_duplicate_parameter_is_an_error(tmp_path):
    path = _write(tmp_path, "dup.par", "alpha 0.3\nalpha 0.4\n")
    with pytest.raises(ConfigError, match="alpha given twice"):
        read_parameters(path)


def test_missing_file_is_a_config_error(tmp_path):
    with pytest.raises(ConfigError, match="Could not open"):
        read_parameters(tmp_path / "nowhere.par")


def test_species_files():
    prey = make_species(read_species_config(DATA / "herbivore.par"))
    predator = make_species(read_species_config(DATA / "predator.par"))
    assert isinstance(prey, Herbivore)
    assert prey.name == "Bytte"
    assert prey.food_desire == 10.0
    assert isinstance(predator, Predator)
    assert predator.delta_phi_max == 10.0
    assert predator.age_half == 60


def test_species_file_missing_parameter(tmp_path):
    path = _write(tmp_path, "bad.par", "v_fod 8\nF 10\n")
    with pytest.raises(ConfigError) as excinfo:
        make_species(read_species_config(path))
    assert "bad.par" in str(excinfo.value)
    assert "missing required parameter omega" in excinfo.value.problems


def test_cell_parameters_build_builtin_table():
    table = read_cell_parameters(DATA / "cells.par")
    assert table["S"].alpha == 0.3
    assert table["S"].max_food == 300.0
    assert table["J"].max_food == 800.0
    assert not table["H"].live


def test_cell_parameters_require_all_keys(tmp_path):
    path = _write(tmp_path, "cells.par", "alpha 0.3\nfmax_sav 300\n")
    with pytest.raises(ConfigError, match="fmax_jngl"):
        read_cell_parameters(path)


def test_cell_spec():
    table = read_cell_spec(DATA / "cells.spec")
    assert sorted(table) == ["H", "J", "O", "S"]
    assert table["O"].live
    assert table["J"].color == "008000"


def test_geography_rows():
    rows = read_geography(DATA / "island.geo")
    assert rows == ["HHHHH", "HJJSH", "HSOFH", "HHHHH"]


def test_geography_dimensions_in_any_order_and_free_layout(tmp_path):
    path = _write(tmp_path, "flat.geo", "Kolonner 3\nRader 2\nH J H\nHSH extra\n")
    assert read_geography(path) == ["HJH", "HSH"]


@pytest.mark.parametrize(
    "text, fragment",
    [
        ("Rader 2\nHHH\nHHH\n", "Malformed map dimensions"),
        ("Rader 2\nKolonner 0\n", "Kolonner must be > 0"),
        ("Rader 2\nKolonner 3\nHHH\nHH\n", "expected 2 x 3 = 6 cells, found 5"),
    ],
)
def test_malformed_geography(tmp_path, text, fragment):
    path = _write(tmp_path, "bad.geo", text)
    with pytest.raises(ConfigError) as excinfo:
        read_geography(path)
    assert fragment in str(excinfo.value)


def test_population_records():
    records = read_population(DATA / "start.pop")
    assert [(r.species_name, r.x, r.y, len(r.animals)) for r in records] == [
        ("Bytte", 1, 1, 3),
        ("Rovdyr", 2, 1, 1),
        ("Bytte", 0, 0, 1),
    ]
    assert records[0].animals[2] == (3, 15.5)


def test_truncated_population_file(tmp_path):
    path = _write(tmp_path, "short.pop", "Bytte 1 1 2\n 3 10.0\n")
    with pytest.raises(ConfigError, match="unexpected end of file"):
        read_population(path)


def test_sim_file_resolves_paths_against_its_directory():
    params = read_sim_file(DATA / "island.sim")
    assert params.geography == DATA / "island.geo"
    assert params.cell_parameters == DATA / "cells.par"
    assert params.cell_spec is None
    assert params.populations == [DATA / "start.pop"]
    assert params.output_stem == DATA / "out" / "island"
    assert (params.year_begin, params.year_end, params.seed) == (0, 4, 13)
    assert params.dump_pop_interval == 2
    assert params.dump_feed_interval == 0
    assert params.species_files() == [DATA / "herbivore.par", DATA / "predator.par"]


def test_sim_file_species_order(tmp_path):
    path = _write(
        tmp_path,
        "order.sim",
        "Geografi a.geo\nCelleSpec c.spec\nRovdyrParameter r.par\nBytteParameter b.par\n"
        "ArtParameter x.par\nArtParameter y.par\nPopulasjon p.pop\n"
        "StartAar 0\nSluttAar 1\nUtdataStamme out\n",
    )
    params = read_sim_file(path)
    assert [p.name for p in params.species_files()] == ["x.par", "y.par", "b.par", "r.par"]


def test_sim_file_reports_every_problem(tmp_path):
    path = _write(tmp_path, "bad.sim", "Geografi a.geo\nSluttAar soon\nFarge blå\n")
    with pytest.raises(ConfigError) as excinfo:
        read_sim_file(path)
    problems = excinfo.value.problems
    assert "unknown parameter name Farge" in problems
    assert "missing required parameter UtdataStamme" in problems
    assert "missing required parameter StartAar" in problems
    assert "SluttAar: cannot read integer from 'soon'" in problems
    assert "at least one Populasjon is required" in problems
    assert "exactly one of CelleParameter and CelleSpec must be given" in problems


def test_load_simulation_from_sim_file():
    sim, params = load_simulation(DATA / "island.sim", overrides={"log_every": 0})
    assert sim.seed == 13
    assert (sim.year_begin, sim.year_end) == (0, 4)
    assert [s.name for s in sim.species] == ["Bytte", "Rovdyr"]
    # the animal on water is skipped
    assert sim.population_counts() == {"prey": 3, "predator": 1}
    assert sim.config["output_stem"] == str(DATA / "out" / "island")
    assert sim.config["dump_pop_interval"] == 2


def test_trailing_comments_and_shared_lines_in_parameter_file(tmp_path):
    path = _write(
        tmp_path,
        "cells.par",
        "alpha 0.3   # savannah regrowth\nfmax_sav 300 fmax_jngl 800\n# fmax_sav 1\n",
    )
    table = read_cell_parameters(path)
    assert table["S"].alpha == 0.3
    assert table["S"].max_food == 300.0
    assert table["J"].max_food == 800.0


def test_parameter_without_value(tmp_path):
    path = _write(tmp_path, "cells.par", "alpha 0.3\nfmax_sav   # forgot it\n")
    with pytest.raises(ConfigError, match="parameter fmax_sav has no value"):
        read_parameters(path)


def test_geography_dimensions_on_one_line_with_comments(tmp_path):
    path = _write(tmp_path, "one.geo", "Rader 1 Kolonner 2   # tiny\nJS # the whole map\n")
    assert read_geography(path) == ["JS"]
