"""
Readers for the BioSim input files:
  .sim            run description (file names, years, seed, report intervals)
  species .par    physiology of one species
  cell .par       savannah/jungle coefficients for the built-in terrain table
  .spec           generic terrain table, one record per letter
  .geo            map dimensions followed by the terrain letters
  .pop            initial population records

Values are whitespace separated and read as a stream of tokens, so line
breaks carry no meaning except that a token starting with '#' comments out
the rest of its line. Every problem is reported as a ConfigError.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from biosim.ecology.errors import ConfigError
from biosim.ecology.simulation import PopulationRecord
from biosim.ecology.species import SpeciesConfig
from biosim.ecology.terrain import TerrainType, builtin_terrain_types, terrain_types_from_records

COMMENT_CHAR = "#"


def _content_lines(path: Union[str, Path]) -> List[Tuple[int, str]]:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not open {path}: {exc.strerror or exc}") from exc
    lines = []
    for line_no, line in enumerate(text.splitlines(), start=1):
        tokens = []
        for token in line.split():
            if token.startswith(COMMENT_CHAR):
                break
            tokens.append(token)
        if tokens:
            lines.append((line_no, " ".join(tokens)))
    return lines


def _tokens(path: Union[str, Path]) -> List[Tuple[int, str]]:
    return [(line_no, token) for line_no, line in _content_lines(path) for token in line.split()]


def read_parameters(path: Union[str, Path], list_params: Sequence[str] = ()) -> Dict[str, Union[str, List[str]]]:
    """
    Read `name value` pairs. Names in `list_params` may repeat and are collected
    into lists; any other name may appear only once.
    """
    params: Dict[str, Union[str, List[str]]] = {}
    problems = []
    tokens = _tokens(path)
    if len(tokens) % 2:
        line_no, name = tokens[-1]
        problems.append(f"line {line_no}: parameter {name} has no value")
        tokens = tokens[:-1]
    for (line_no, name), (_, value) in zip(tokens[::2], tokens[1::2]):
        if name in list_params:
            params.setdefault(name, []).append(value)
        elif name in params:
            problems.append(f"line {line_no}: parameter {name} given twice")
        else:
            params[name] = value
    if problems:
        raise ConfigError(f"Malformed parameter file {path}:", problems)
    return params


def read_species_config(path: Union[str, Path]) -> SpeciesConfig:
    return SpeciesConfig.from_params(read_parameters(path), source=str(path))


def read_cell_parameters(path: Union[str, Path]) -> Dict[str, TerrainType]:
    params = read_parameters(path)
    problems = [f"unknown parameter name {name}" for name in params if name not in ("alpha", "fmax_sav", "fmax_jngl")]
    values = {}
    for name in ("alpha", "fmax_sav", "fmax_jngl"):
        if name not in params:
            problems.append(f"missing required parameter {name}")
            continue
        try:
            values[name] = float(params[name])
        except ValueError:
            problems.append(f"{name}: cannot read number from {params[name]!r}")
    if problems:
        raise ConfigError(f"Cell parameters in {path} are invalid:", problems)
    return builtin_terrain_types(values["alpha"], values["fmax_sav"], values["fmax_jngl"])


def read_cell_spec(path: Union[str, Path]) -> Dict[str, TerrainType]:
    records = []
    for line_no, line in _content_lines(path):
        tokens = line.split()
        if len(tokens) not in (4, 5):
            raise ConfigError(f"Malformed cell spec {path}, line {line_no}: expected 'name alpha fmax live [colour]'.")
        name, alpha, fmax, live = tokens[:4]
        color = tokens[4] if len(tokens) == 5 else None
        try:
            record = (name, float(alpha), float(fmax), bool(int(live)), color)
        except ValueError as exc:
            raise ConfigError(f"Malformed cell spec {path}, line {line_no}: {exc}") from exc
        records.append(record)
    if not records:
        raise ConfigError(f"Cell spec {path} defines no terrain types.")
    return terrain_types_from_records(records)


def read_geography(path: Union[str, Path]) -> List[str]:
    """Return the map as rows of terrain letters, rows[y][x]."""
    tokens = _tokens(path)
    dims = {"Rader": 0, "Kolonner": 0}
    idx = 0
    while idx < len(tokens) and not (dims["Rader"] and dims["Kolonner"]):
        line_no, name = tokens[idx]
        if name not in dims or idx + 1 >= len(tokens):
            raise ConfigError(f"Malformed map dimensions in {path}, line {line_no}: unexpected {name!r}")
        value = tokens[idx + 1][1]
        try:
            dims[name] = int(value)
        except ValueError as exc:
            raise ConfigError(f"Malformed map dimensions in {path}, line {line_no}: {name} {value!r}") from exc
        if dims[name] <= 0:
            raise ConfigError(f"Malformed map dimensions in {path}: {name} must be > 0")
        idx += 2
    n_rows, n_cols = dims["Rader"], dims["Kolonner"]
    if not (n_rows and n_cols):
        raise ConfigError(f"Malformed map dimensions in {path}: Rader and Kolonner are required.")

    letters = "".join(token for _, token in tokens[idx:])
    if len(letters) < n_rows * n_cols:
        raise ConfigError(
            f"Malformed map in {path}: expected {n_rows} x {n_cols} = {n_rows * n_cols} cells, found {len(letters)}."
        )
    return [letters[y * n_cols : (y + 1) * n_cols] for y in range(n_rows)]


def read_population(path: Union[str, Path]) -> List[PopulationRecord]:
    tokens = _tokens(path)
    pos = 0

    def take(what: str, convert):
        nonlocal pos
        if pos >= len(tokens):
            raise ConfigError(f"Malformed population file {path}: unexpected end of file, expected {what}.")
        line_no, token = tokens[pos]
        pos += 1
        try:
            return convert(token)
        except ValueError as exc:
            raise ConfigError(f"Malformed population file {path}, line {line_no}: bad {what} {token!r}") from exc

    if tokens and tokens[0][1] == "Geografi":
        pos = 2

    records = []
    while pos < len(tokens):
        record = PopulationRecord(
            species_name=take("species name", str),
            x=take("x", int),
            y=take("y", int),
        )
        count = take("count", int)
        if count < 0:
            raise ConfigError(f"Malformed population file {path}: negative count for {record.species_name}.")
        for _ in range(count):
            record.animals.append((take("age", int), take("weight", float)))
        records.append(record)
    return records


SIM_LIST_PARAMS = ("ArtParameter", "Populasjon")
SIM_PARAMS = (
    "Geografi",
    "CelleParameter",
    "CelleSpec",
    "BytteParameter",
    "RovdyrParameter",
    "StartAar",
    "SluttAar",
    "SlumptallFroe",
    "UtdataStamme",
    "DumpDyrInterval",
    "DumpPopInterval",
    "DumpForInterval",
    "DumpPNGInterval",
) + SIM_LIST_PARAMS


@dataclass
class SimParameters:
    geography: Path
    year_begin: int
    year_end: int
    output_stem: Path
    populations: List[Path]
    cell_parameters: Optional[Path] = None
    cell_spec: Optional[Path] = None
    prey_parameters: Optional[Path] = None
    predator_parameters: Optional[Path] = None
    species_parameters: List[Path] = field(default_factory=list)
    seed: int = 0
    dump_animal_interval: int = 0
    dump_pop_interval: int = 0
    dump_feed_interval: int = 0
    dump_png_interval: int = 0  # accepted for compatibility; no images are written

    def species_files(self) -> List[Path]:
        files = list(self.species_parameters)
        for path in (self.prey_parameters, self.predator_parameters):
            if path is not None:
                files.append(path)
        return files

    def to_config(self) -> dict:
        return {
            "seed": self.seed,
            "year_begin": self.year_begin,
            "year_end": self.year_end,
            "output_stem": str(self.output_stem),
            "dump_animal_interval": self.dump_animal_interval,
            "dump_pop_interval": self.dump_pop_interval,
            "dump_feed_interval": self.dump_feed_interval,
        }


def read_sim_file(path: Union[str, Path]) -> SimParameters:
    """Relative file names in the .sim file are taken relative to its directory."""
    path = Path(path)
    params = read_parameters(path, list_params=SIM_LIST_PARAMS)
    base = path.parent
    problems = [f"unknown parameter name {name}" for name in params if name not in SIM_PARAMS]

    def resolve(value: str) -> Path:
        candidate = Path(value)
        return candidate if candidate.is_absolute() else base / candidate

    def integer(name: str, default: Optional[int] = None) -> Optional[int]:
        if name not in params:
            if default is None:
                problems.append(f"missing required parameter {name}")
            return default
        try:
            return int(params[name])
        except ValueError:
            problems.append(f"{name}: cannot read integer from {params[name]!r}")
            return default

    for name in ("Geografi", "UtdataStamme"):
        if name not in params:
            problems.append(f"missing required parameter {name}")
    if not params.get("Populasjon"):
        problems.append("at least one Populasjon is required")
    if ("CelleParameter" in params) == ("CelleSpec" in params):
        problems.append("exactly one of CelleParameter and CelleSpec must be given")
    if not (params.get("ArtParameter") or "BytteParameter" in params or "RovdyrParameter" in params):
        problems.append("no species given (ArtParameter, BytteParameter or RovdyrParameter)")

    year_begin = integer("StartAar")
    year_end = integer("SluttAar")
    seed = integer("SlumptallFroe", 0)
    intervals = {
        key: integer(name, 0)
        for key, name in (
            ("dump_animal_interval", "DumpDyrInterval"),
            ("dump_pop_interval", "DumpPopInterval"),
            ("dump_feed_interval", "DumpForInterval"),
            ("dump_png_interval", "DumpPNGInterval"),
        )
    }
    for key, value in intervals.items():
        if value is not None and value < 0:
            problems.append(f"{key} must be >= 0, got {value}")

    if problems:
        raise ConfigError(f"Malformed .sim file {path}:", problems)

    optional = {
        key: resolve(params[name])
        for key, name in (
            ("cell_parameters", "CelleParameter"),
            ("cell_spec", "CelleSpec"),
            ("prey_parameters", "BytteParameter"),
            ("predator_parameters", "RovdyrParameter"),
        )
        if name in params
    }
    return SimParameters(
        geography=resolve(params["Geografi"]),
        year_begin=year_begin,
        year_end=year_end,
        output_stem=resolve(params["UtdataStamme"]),
        populations=[resolve(p) for p in params["Populasjon"]],
        species_parameters=[resolve(p) for p in params.get("ArtParameter", [])],
        seed=seed,
        **optional,
        **intervals,
    )
