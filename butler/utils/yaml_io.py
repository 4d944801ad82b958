import pathlib
import typing as tp

import pydantic_yaml
import yaml
from pydantic import BaseModel


def to_yaml_str_wide(model: BaseModel) -> str:
    """Convert pydantic model to YAML string with wide line width."""
    yaml_str = pydantic_yaml.to_yaml_str(model)
    data = yaml.safe_load(yaml_str)
    return yaml.dump(
        data, default_flow_style=False, width=10000, allow_unicode=True, sort_keys=False
    )


def write_yaml_file(path: pathlib.Path, model: BaseModel) -> None:
    """Write pydantic model to YAML file with wide line width to prevent wrapping."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(to_yaml_str_wide(model))


def read_yaml_file(path: tp.Union[str, pathlib.Path]) -> tp.Any:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)
