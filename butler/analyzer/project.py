import os
import re
import typing as tp
from pathlib import Path

from dotenv import dotenv_values

from butler import models
from butler.casc.sources import discover_sources
from butler.plugins.manifest import load_manifest
from butler.utils.yaml_io import read_yaml_file

CASC_DIRS = ("casc", "casc_configs", "jcasc")
COMPOSE_FILES = ("docker-compose.yml", "docker-compose.yaml", "compose.yml", "compose.yaml")
PLUGIN_FILES = ("plugins.txt",)

# $$, ${VAR}, ${VAR:-default}, ${VAR-default}, $VAR
_COMPOSE_VAR_RE = re.compile(
    r"\$(?:(\$)|\{([A-Za-z_][A-Za-z0-9_]*)(?:(:?-)([^}]*))?\}|([A-Za-z_][A-Za-z0-9_]*))"
)


class ProjectAnalyzer:
    """Анализатор каталога с Dockerfile, plugins.txt, CasC и compose-файлом."""

    def analyze(self, root: Path) -> models.ProjectSchema:
        if not root.is_dir():
            raise ValueError(f"not a directory: {root}")

        compose_file = self._first(root, COMPOSE_FILES)
        deployment = None
        if compose_file is not None:
            deployment = models.DeploymentSpec.from_compose(read_yaml_file(compose_file))

        plugins_file = self._first(root, PLUGIN_FILES)
        plugins = load_manifest(plugins_file).names if plugins_file else []

        casc_dir = self._find_casc_dir(root)
        casc_sources = discover_sources(str(casc_dir)) if casc_dir else []

        env_files = [str(root / ".env")] if (root / ".env").is_file() else []
        if deployment is not None:
            for env_file in deployment.env_file:
                path = root / env_file
                if path.is_file() and str(path) not in env_files:
                    env_files.append(str(path))

        return models.ProjectSchema(
            root=root,
            dockerfile=self._find_dockerfile(root),
            plugins_file=str(plugins_file) if plugins_file else None,
            casc_sources=casc_sources,
            casc_dir=str(casc_dir) if casc_dir else None,
            compose_file=str(compose_file) if compose_file else None,
            env_files=env_files,
            plugins=plugins,
            deployment=deployment,
        )

    def _first(self, root: Path, names: tp.Sequence[str]) -> tp.Optional[Path]:
        for name in names:
            if (path := root / name).is_file():
                return path
        return None

    def _find_dockerfile(self, root: Path) -> tp.Optional[str]:
        if (dockerfile := root / "Dockerfile").is_file():
            return str(dockerfile)
        for candidate in sorted(root.glob("*.Dockerfile")):
            return str(candidate)
        return None

    def _find_casc_dir(self, root: Path) -> tp.Optional[Path]:
        for name in CASC_DIRS:
            if (path := root / name).is_dir():
                return path
        if (path := root / "jenkins.yaml").is_file():
            return path
        return None


def interpolate_compose(value: str, host_env: tp.Mapping[str, str]) -> tp.Optional[str]:
    """Подставить переменные хоста так, как это делает docker compose.

    Возвращает None, если переменная не задана и значения по умолчанию нет.
    """
    missing = False

    def replace(match: re.Match) -> str:
        nonlocal missing
        escaped, name, op, default, bare = match.groups()
        if escaped:
            return "$"
        name = name or bare
        current = host_env.get(name)
        if op == ":-" and not current:
            return default
        if op == "-" and current is None:
            return default
        if current is None:
            missing = True
            return ""
        return current

    result = _COMPOSE_VAR_RE.sub(replace, value)
    return None if missing else result


def deployment_environment(
    schema: models.ProjectSchema,
    host_env: tp.Optional[tp.Mapping[str, str]] = None,
) -> dict[str, str]:
    """Переменные, которые увидит процесс Jenkins внутри контейнера."""
    root_env = schema.root / ".env"
    host: dict[str, str] = {}
    if root_env.is_file():
        host.update({k: v for k, v in dotenv_values(root_env).items() if v is not None})
    host.update(os.environ if host_env is None else host_env)

    container: dict[str, str] = {}
    deployment = schema.deployment
    if deployment is None:
        return container

    for env_file in deployment.env_file:
        path = schema.root / env_file
        if path.is_file():
            container.update(
                {k: v for k, v in dotenv_values(path).items() if v is not None}
            )

    for key, raw in deployment.environment.items():
        value = interpolate_compose(raw, host)
        if value is not None:
            container[key] = value
        else:
            container.pop(key, None)
    return container
