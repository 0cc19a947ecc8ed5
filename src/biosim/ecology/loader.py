"""
Build a ready-to-run Simulation from a BioSim .sim file.
"""
from pathlib import Path
from typing import Optional, Tuple

from biosim.ecology.config.config_biosim import config_biosim
from biosim.ecology.grid import Grid
from biosim.ecology.simulation import Simulation
from biosim.ecology.utils.param_files import (
    SimParameters,
    read_cell_parameters,
    read_cell_spec,
    read_geography,
    read_population,
    read_sim_file,
    read_species_config,
)
from biosim.ecology.utils.reports import BioSimReporter


def load_simulation(sim_path, overrides: Optional[dict] = None) -> Tuple[Simulation, SimParameters]:
    params = read_sim_file(sim_path)
    if params.cell_parameters is not None:
        terrain_types = read_cell_parameters(params.cell_parameters)
    else:
        terrain_types = read_cell_spec(params.cell_spec)
    grid = Grid(terrain_types, read_geography(params.geography))

    config = dict(config_biosim)
    config.update(params.to_config())
    config.update(overrides or {})
    sim = Simulation(grid, config=config)

    for species_file in params.species_files():
        sim.add_species(read_species_config(species_file))
    for population_file in params.populations:
        placed = sim.load_population(read_population(population_file))
        sim._log(sim.verbose_setup, f"[SETUP] {placed} animals placed from {population_file}", "green")
    return sim, params


def make_reporter(sim: Simulation, params: SimParameters) -> BioSimReporter:
    return BioSimReporter.from_config(sim.config, geography_name=Path(params.geography).name)


def run_sim_file(sim_path, overrides: Optional[dict] = None) -> dict:
    """Load, run from StartAar through SluttAar and write the reports; returns the run history."""
    sim, params = load_simulation(sim_path, overrides)
    return sim.run(year_begin=sim.year_begin, year_end=sim.year_end, reporter=make_reporter(sim, params))
