"""
Building a PipelineConfig from defaults, a YAML file and CLI overrides.

Precedence, lowest first: DEFAULT_PIPELINE_CONFIG, the YAML file (after its
`_base` chain is merged), then `--override dotted.key=value` items in the
order given.
"""

import copy
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from hbc_ml.config.defaults import DEFAULT_PIPELINE_CONFIG
from hbc_ml.config.schema import PipelineConfig

# Override values for these keys always parse to lists
LIST_KEYS = {
    "models",
    "numeric_cols",
    "categorical_cols",
    "drop_columns",
    "neighbors_grid",
}

# Override values for these keys stay strings; in YAML they are relative to the file
PATH_KEYS = {"infile", "outdir"}

_TRUE = {"true", "yes"}
_FALSE = {"false", "no"}
_NULL = {"none", "null"}


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Nested dicts merge key by key; any other overlay value replaces the base value."""
    out = copy.deepcopy(base)
    for key, value in overlay.items():
        current = out.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            out[key] = _deep_merge(current, value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def load_yaml(file_path: str | Path) -> dict[str, Any]:
    """
    Read a YAML mapping, following `_base: other.yaml` references.

    `_base` is resolved against the including file's directory and the
    including file wins on conflicts.

    Raises:
        FileNotFoundError: Missing file (or missing base)
        ValueError: Top level is not a mapping
    """
    path = Path(file_path).resolve()
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    content = yaml.safe_load(path.read_text()) or {}
    if not isinstance(content, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")

    base = content.pop("_base", None)
    if base is None:
        return content
    return _deep_merge(load_yaml(path.parent / base), content)


def resolve_paths_relative_to_config(
    config_dict: dict[str, Any], config_file: str | Path
) -> dict[str, Any]:
    """Make relative infile/outdir values relative to the config file's directory."""
    root = Path(config_file).resolve().parent
    out = dict(config_dict)
    for key in PATH_KEYS & out.keys():
        value = out[key]
        if isinstance(value, str) and value and not Path(value).is_absolute():
            out[key] = str(root / value)
    return out


def _parse_scalar(text: str) -> Any:
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            continue
    return text


def _parse_value(value_str: str, force_list: bool = False, force_string: bool = False) -> Any:
    """
    Type an override value: booleans, null, comma lists, int, float, else str.

    Args:
        value_str: Raw text after "="
        force_list: Wrap scalars in a list (LIST_KEYS)
        force_string: Return the text unchanged (PATH_KEYS)
    """
    if force_string:
        return value_str

    lowered = value_str.lower()
    if lowered in _TRUE | _FALSE:
        value = lowered in _TRUE
        return [value] if force_list else value
    if lowered in _NULL:
        return [] if force_list else None
    if force_list or "," in value_str:
        return [_parse_scalar(part.strip()) for part in value_str.split(",") if part.strip()]
    return _parse_scalar(value_str)


def apply_overrides(config_dict: dict[str, Any], overrides: list[str]) -> dict[str, Any]:
    """
    Set dotted keys in place, e.g. "cv.folds=10" or "random_forest.final_override.trees=665".

    Intermediate keys that are missing (or hold a non-mapping such as None)
    become empty dicts.

    Raises:
        ValueError: An item without "="
    """
    for item in overrides:
        dotted, sep, raw = item.partition("=")
        if not sep:
            raise ValueError(f"Invalid override format: {item}. Expected 'key=value'")

        *parents, leaf = dotted.strip().split(".")
        node = config_dict
        for key in parents:
            if not isinstance(node.get(key), dict):
                node[key] = {}
            node = node[key]
        node[leaf] = _parse_value(
            raw.strip(), force_list=leaf in LIST_KEYS, force_string=leaf in PATH_KEYS
        )
    return config_dict


def load_pipeline_config(
    config_file: str | Path | None = None,
    overrides: list[str] | None = None,
) -> PipelineConfig:
    """
    Resolve and validate the pipeline configuration.

    Raises:
        ValueError: The merged values fail PipelineConfig validation
    """
    merged = copy.deepcopy(DEFAULT_PIPELINE_CONFIG)
    if config_file is not None:
        from_file = resolve_paths_relative_to_config(load_yaml(config_file), config_file)
        merged = _deep_merge(merged, from_file)
    if overrides:
        merged = apply_overrides(merged, list(overrides))

    try:
        return PipelineConfig(**merged)
    except ValidationError as e:
        raise ValueError(f"Invalid pipeline configuration:\n{e}") from e


def save_config(config: PipelineConfig, output_path: str | Path):
    """Write the resolved configuration as YAML (paths and tuples as plain values)."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        yaml.safe_dump(config.model_dump(mode="json"), default_flow_style=False, sort_keys=False)
    )


def format_config_summary(config: PipelineConfig) -> str:
    """Indented key: value listing of the resolved configuration."""
    rule = "=" * 80
    lines = [rule, "Configuration Summary", rule]

    def walk(node: dict[str, Any], depth: int):
        pad = "  " * depth
        for key, value in node.items():
            if isinstance(value, dict):
                lines.append(f"{pad}{key}:")
                walk(value, depth + 1)
            else:
                lines.append(f"{pad}{key}: {value}")

    walk(config.model_dump(mode="json"), 0)
    lines.append(rule)
    return "\n".join(lines)
