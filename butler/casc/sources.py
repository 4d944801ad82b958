"""Поиск источников configuration-as-code (CASC_JENKINS_CONFIG)."""

import os
import pathlib
import typing as tp

from butler import config


class CascError(ValueError):
    """Ошибка загрузки или проверки configuration-as-code."""


YAML_SUFFIXES = (".yml", ".yaml")


def is_url(value: str) -> bool:
    return value.startswith(("http://", "https://"))


def default_spec(env: tp.Optional[tp.Mapping[str, str]] = None) -> str:
    env = os.environ if env is None else env
    if env.get(config.CASC_ENV):
        return env[config.CASC_ENV]
    home = env.get("JENKINS_HOME", config.JENKINS_HOME)
    return str(pathlib.Path(home) / "jenkins.yaml")


def _scan(directory: pathlib.Path) -> list[pathlib.Path]:
    found = []
    for item in sorted(directory.iterdir()):
        if item.name.startswith("."):
            continue
        if item.is_dir():
            found.extend(_scan(item))
        elif item.is_file() and item.suffix in YAML_SUFFIXES:
            found.append(item)
    return found


def discover_sources(
    spec: tp.Union[str, pathlib.Path, tp.Iterable[tp.Union[str, pathlib.Path]]],
    base: tp.Optional[pathlib.Path] = None,
) -> list[str]:
    """Развернуть список путей/URL в упорядоченный список YAML-источников.

    Каталоги сканируются рекурсивно, скрытые файлы пропускаются,
    внутри каталога файлы идут в алфавитном порядке.
    """
    if isinstance(spec, (str, pathlib.Path)):
        items = [s.strip() for s in str(spec).split(",") if s.strip()]
    else:
        items = [str(s) for s in spec]

    sources: list[str] = []
    for item in items:
        if is_url(item):
            sources.append(item)
            continue
        path = pathlib.Path(item).expanduser()
        if base is not None and not path.is_absolute():
            path = base / path
        if path.is_dir():
            sources.extend(str(p) for p in _scan(path))
        elif path.is_file():
            sources.append(str(path))
        else:
            raise CascError(f"configuration source not found: {path}")

    # один и тот же файл может попасть в список дважды (каталог + явный путь)
    seen: set[str] = set()
    unique = []
    for s in sources:
        if s not in seen:
            seen.add(s)
            unique.append(s)
    return unique
