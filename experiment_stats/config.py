"""
Analysis Configuration
======================

YAML configuration for a pipeline run, loaded with ``yaml.safe_load`` and
validated into frozen dataclasses before any data is read.

Example:
    data: data/experiment.csv
    output_dir: outputs
    conf_level: 0.95
    preparation:
      factors:
        - {column: condition, levels: [A, B, C, D]}
      standardize: [age]
      complete_cases: [rt, condition, age]
    descriptives:
      variables: [rt, [age, "Age (years)"]]
      group_by: [condition]
    models:
      - name: condition
        outcome: rt
        terms: [condition, z_age]
        emmeans:
          - {factors: [condition], adjust: tukey}

Relative paths are resolved against the directory of the YAML file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .analysis.terms import parse_terms
from .errors import AnalysisError, ConfigError
from .figures_tables.style import PlotStyle
from .preprocessing.constants import DEFAULT_ADJUST, DEFAULT_CONF_LEVEL, default_output_dir, normalize_adjust


@dataclass(frozen=True)
class FactorSpec:
    column: str
    levels: Any
    new_column: Optional[str] = None
    labels: Mapping[Any, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RecodeSpec:
    column: str
    rules: Mapping[Any, Any]
    new_column: Optional[str] = None


@dataclass(frozen=True)
class PreparationConfig:
    recodes: Tuple[RecodeSpec, ...] = ()
    factors: Tuple[FactorSpec, ...] = ()
    numeric: Tuple[str, ...] = ()
    complete_cases: Tuple[str, ...] = ()
    standardize: Tuple[str, ...] = ()
    standardize_population: Mapping[str, Tuple[Any, ...]] = field(default_factory=dict)
    strict_factors: bool = False


@dataclass(frozen=True)
class DescriptivesConfig:
    variables: Tuple[Tuple[str, str], ...] = ()
    group_by: Tuple[str, ...] = ()
    categorical: Tuple[str, ...] = ()


@dataclass(frozen=True)
class EmmeansConfig:
    factors: Tuple[str, ...]
    by: Optional[str] = None
    adjust: str = DEFAULT_ADJUST
    reverse: bool = False
    plot: bool = True


@dataclass(frozen=True)
class SlopesConfig:
    pred: str
    modx: str
    values: Optional[Tuple[Any, ...]] = None
    johnson_neyman: bool = False
    plot: bool = True


@dataclass(frozen=True)
class ModelConfig:
    name: str
    outcome: str
    terms: tuple
    vif: bool = False
    emmeans: Tuple[EmmeansConfig, ...] = ()
    simple_slopes: Tuple[SlopesConfig, ...] = ()


@dataclass(frozen=True)
class AnalysisConfig:
    data: Path
    output_dir: Path = field(default_factory=default_output_dir)
    conf_level: float = DEFAULT_CONF_LEVEL
    preparation: PreparationConfig = field(default_factory=PreparationConfig)
    descriptives: DescriptivesConfig = field(default_factory=DescriptivesConfig)
    models: Tuple[ModelConfig, ...] = ()
    style: PlotStyle = field(default_factory=PlotStyle)
    labels: Mapping[Any, str] = field(default_factory=dict)


# =============================================================================
# PARSING
# =============================================================================

def _mapping(value: Any, where: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{where}: expected a mapping, got {type(value).__name__}")
    return dict(value)


def _names(value: Any, where: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"{where}: expected a list of column names")
    return tuple(str(v) for v in value)


def _check_keys(values: Mapping, allowed: set, where: str) -> None:
    unknown = sorted(set(values) - allowed)
    if unknown:
        raise ConfigError(f"{where}: unknown key(s) {unknown}")


def _require(values: Mapping, key: str, where: str) -> Any:
    if values.get(key) in (None, "", [], {}):
        raise ConfigError(f"{where}: '{key}' is required")
    return values[key]


def _parse_factor(raw: Any, where: str) -> FactorSpec:
    values = _mapping(raw, where)
    _check_keys(values, {"column", "levels", "new_column", "labels"}, where)
    levels = _require(values, "levels", where)
    if not isinstance(levels, (list, tuple, Mapping)):
        raise ConfigError(f"{where}: 'levels' must be a list or a mapping of raw value -> level")
    return FactorSpec(
        column=str(_require(values, "column", where)),
        levels=dict(levels) if isinstance(levels, Mapping) else tuple(levels),
        new_column=values.get("new_column"),
        labels=_mapping(values.get("labels"), f"{where}.labels"),
    )


def _parse_recode(raw: Any, where: str) -> RecodeSpec:
    values = _mapping(raw, where)
    _check_keys(values, {"column", "rules", "new_column"}, where)
    return RecodeSpec(
        column=str(_require(values, "column", where)),
        rules=_mapping(_require(values, "rules", where), f"{where}.rules"),
        new_column=values.get("new_column"),
    )


def _parse_preparation(raw: Any) -> PreparationConfig:
    where = "preparation"
    values = _mapping(raw, where)
    _check_keys(
        values,
        {"recodes", "factors", "numeric", "complete_cases", "standardize", "standardize_population", "strict_factors"},
        where,
    )
    population = {
        str(col): tuple(levels) if isinstance(levels, (list, tuple)) else (levels,)
        for col, levels in _mapping(values.get("standardize_population"), f"{where}.standardize_population").items()
    }
    return PreparationConfig(
        recodes=tuple(_parse_recode(r, f"{where}.recodes[{i}]") for i, r in enumerate(values.get("recodes") or [])),
        factors=tuple(_parse_factor(f, f"{where}.factors[{i}]") for i, f in enumerate(values.get("factors") or [])),
        numeric=_names(values.get("numeric"), f"{where}.numeric"),
        complete_cases=_names(values.get("complete_cases"), f"{where}.complete_cases"),
        standardize=_names(values.get("standardize"), f"{where}.standardize"),
        standardize_population=population,
        strict_factors=bool(values.get("strict_factors", False)),
    )


def _parse_descriptives(raw: Any) -> DescriptivesConfig:
    where = "descriptives"
    values = _mapping(raw, where)
    _check_keys(values, {"variables", "group_by", "categorical"}, where)
    variables = []
    for var in values.get("variables") or []:
        if isinstance(var, str):
            variables.append((var, var))
        elif isinstance(var, (list, tuple)) and len(var) == 2:
            variables.append((str(var[0]), str(var[1])))
        else:
            raise ConfigError(f"{where}.variables: expected a column name or [column, label], got {var!r}")
    return DescriptivesConfig(
        variables=tuple(variables),
        group_by=_names(values.get("group_by"), f"{where}.group_by"),
        categorical=_names(values.get("categorical"), f"{where}.categorical"),
    )


def _parse_emmeans(raw: Any, where: str) -> EmmeansConfig:
    values = _mapping(raw, where)
    _check_keys(values, {"factors", "by", "adjust", "reverse", "plot"}, where)
    try:
        adjust = normalize_adjust(values.get("adjust", DEFAULT_ADJUST))
    except ValueError as exc:
        raise ConfigError(f"{where}: {exc}") from exc
    return EmmeansConfig(
        factors=_names(_require(values, "factors", where), f"{where}.factors"),
        by=values.get("by"),
        adjust=adjust,
        reverse=bool(values.get("reverse", False)),
        plot=bool(values.get("plot", True)),
    )


def _parse_slopes(raw: Any, where: str) -> SlopesConfig:
    values = _mapping(raw, where)
    _check_keys(values, {"pred", "modx", "values", "johnson_neyman", "plot"}, where)
    modx_values = values.get("values")
    return SlopesConfig(
        pred=str(_require(values, "pred", where)),
        modx=str(_require(values, "modx", where)),
        values=None if modx_values is None else tuple(modx_values),
        johnson_neyman=bool(values.get("johnson_neyman", False)),
        plot=bool(values.get("plot", True)),
    )


def _parse_model(raw: Any, index: int) -> ModelConfig:
    where = f"models[{index}]"
    values = _mapping(raw, where)
    _check_keys(values, {"name", "outcome", "terms", "vif", "emmeans", "simple_slopes"}, where)
    try:
        terms = parse_terms(_require(values, "terms", where))
    except AnalysisError as exc:
        raise ConfigError(f"{where}.terms: {exc}") from exc
    return ModelConfig(
        name=str(values.get("name") or f"model_{index + 1}"),
        outcome=str(_require(values, "outcome", where)),
        terms=terms,
        vif=bool(values.get("vif", False)),
        emmeans=tuple(_parse_emmeans(e, f"{where}.emmeans[{i}]") for i, e in enumerate(values.get("emmeans") or [])),
        simple_slopes=tuple(
            _parse_slopes(s, f"{where}.simple_slopes[{i}]") for i, s in enumerate(values.get("simple_slopes") or [])
        ),
    )


def parse_config(raw: Mapping[str, Any], base_dir: Optional[Path] = None) -> AnalysisConfig:
    """Validate a raw configuration mapping into an ``AnalysisConfig``."""
    values = _mapping(raw, "config")
    _check_keys(
        values,
        {"data", "output_dir", "conf_level", "preparation", "descriptives", "models", "style", "labels"},
        "config",
    )
    base_dir = Path(base_dir) if base_dir is not None else Path.cwd()

    def resolve(path: Any) -> Path:
        path = Path(path)
        return path if path.is_absolute() else base_dir / path

    conf_level = float(values.get("conf_level", DEFAULT_CONF_LEVEL))
    if not 0 < conf_level < 1:
        raise ConfigError(f"conf_level must lie in (0, 1), got {conf_level}")

    models = tuple(_parse_model(m, i) for i, m in enumerate(values.get("models") or []))
    names = [m.name for m in models]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigError(f"Duplicate model name(s): {duplicates}")

    try:
        style = PlotStyle.from_dict(values.get("style"))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"style: {exc}") from exc

    return AnalysisConfig(
        data=resolve(_require(values, "data", "config")),
        output_dir=resolve(values["output_dir"]) if values.get("output_dir") else default_output_dir(),
        conf_level=conf_level,
        preparation=_parse_preparation(values.get("preparation")),
        descriptives=_parse_descriptives(values.get("descriptives")),
        models=models,
        style=style,
        labels=_mapping(values.get("labels"), "labels"),
    )


def load_config(path: Path) -> AnalysisConfig:
    """Load analysis configuration from YAML."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if raw is None:
        raise ConfigError(f"Empty configuration file: {path}")
    return parse_config(raw, base_dir=path.parent)
