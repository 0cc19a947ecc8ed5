"""
Writers for the BioSim report files.

  <stem>.dat               one line per year: prey/predator counts per terrain
  <stem>.<year>.pop        population snapshot, readable as a .pop input file
  <stem>.<year>.for        food per cell, one value per line, blank line between rows
  <stem>.<year>.dyr        prey and predator count per cell, same layout
"""
from pathlib import Path

from biosim.ecology.utils.param_files import COMMENT_CHAR

REPORT_TERRAINS = ("J", "S", "O")


class BioSimReporter:
    def __init__(
        self,
        output_stem,
        geography_name: str = "",
        dump_animal_interval: int = 0,
        dump_pop_interval: int = 0,
        dump_feed_interval: int = 0,
    ):
        self.output_stem = Path(output_stem)
        self.geography_name = geography_name
        self.dump_animal_interval = dump_animal_interval
        self.dump_pop_interval = dump_pop_interval
        self.dump_feed_interval = dump_feed_interval
        self._dat = None
        self.written = []

    @classmethod
    def from_config(cls, config: dict, geography_name: str = ""):
        return cls(
            config["output_stem"],
            geography_name=geography_name,
            dump_animal_interval=config.get("dump_animal_interval", 0),
            dump_pop_interval=config.get("dump_pop_interval", 0),
            dump_feed_interval=config.get("dump_feed_interval", 0),
        )

    def path_for(self, year: int, extension: str) -> Path:
        return self.output_stem.with_name(f"{self.output_stem.name}.{year:05d}.{extension}")

    # ------------------------------------------------------------------
    # reporter hooks called by Simulation.run
    # ------------------------------------------------------------------

    def start(self, sim) -> None:
        self.output_stem.parent.mkdir(parents=True, exist_ok=True)
        dat_path = self.output_stem.with_name(f"{self.output_stem.name}.dat")
        self._dat = open(dat_path, "w", encoding="utf-8")
        self.written.append(dat_path)
        self._dat.write(f"{COMMENT_CHAR}\n")
        self._dat.write(f"Geografi     {self.geography_name}\n")
        header = "".join(f"{kind + '/' + terrain:>8}" for terrain in REPORT_TERRAINS for kind in ("B", "R"))
        self._dat.write(f"{COMMENT_CHAR}Year{header}\n")
        self._write_counts(sim)

    def year_done(self, sim) -> None:
        self._write_counts(sim)
        year = sim.year
        if self._due(self.dump_pop_interval, year):
            self.write_population(sim, self.path_for(year, "pop"))
        if self._due(self.dump_feed_interval, year):
            self.write_food(sim, self.path_for(year, "for"))
        if self._due(self.dump_animal_interval, year):
            self.write_animals(sim, self.path_for(year, "dyr"))

    def close(self) -> None:
        if self._dat is not None:
            self._dat.close()
            self._dat = None

    # ------------------------------------------------------------------
    # individual reports
    # ------------------------------------------------------------------

    @staticmethod
    def _due(interval: int, year: int) -> bool:
        return interval > 0 and year % interval == 0

    def _write_counts(self, sim) -> None:
        counts = sim.counts_by_terrain()
        line = f"{sim.year:5d}"
        for terrain in REPORT_TERRAINS:
            per_terrain = counts.get(terrain, {"prey": 0, "predator": 0})
            line += f"{per_terrain['prey']:8d}{per_terrain['predator']:8d}"
        self._dat.write(line + "\n")
        self._dat.flush()

    def write_population(self, sim, path: Path) -> None:
        with open(path, "w", encoding="utf-8") as f:
            f.write(f"{COMMENT_CHAR} population year {sim.year}\n")
            f.write(f"Geografi     {self.geography_name or '-'}\n")
            for cell in sim.cells():
                for species in sim.species:
                    members = cell.cell_mates(species)
                    if not members:
                        continue
                    f.write(f"{species.name} {cell.x} {cell.y} {len(members)}\n")
                    for animal in members:
                        f.write(f"{animal.age:3d} {animal.weight:9.3f}\n")
        self.written.append(path)

    def write_food(self, sim, path: Path) -> None:
        food = sim.grid.food_grid()
        with open(path, "w", encoding="utf-8") as f:
            f.write(f"{COMMENT_CHAR} food year {sim.year}\n")
            for row in food:
                for value in row:
                    f.write(f"{value:10.3f}\n")
                f.write("\n")
            f.write(f"{COMMENT_CHAR} cells: {food.size}\n")
        self.written.append(path)

    def write_animals(self, sim, path: Path) -> None:
        prey = sim.grid.occupancy_grid(predators=False)
        predators = sim.grid.occupancy_grid(predators=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(f"{COMMENT_CHAR}    prey    pred\n")
            for prey_row, predator_row in zip(prey, predators):
                for n_prey, n_predators in zip(prey_row, predator_row):
                    f.write(f"{int(n_prey):8d}{int(n_predators):8d}\n")
                f.write("\n")
        self.written.append(path)
