"""Проверка готовности развёртывания Jenkins."""

import pathlib
import subprocess
from typing import Mapping, Optional, Sequence

import typer
from rich.console import Console
from rich.table import Table

from butler import config
from butler.analyzer import (
    CheckResult,
    ProjectAnalyzer,
    check_persistent_volume,
    check_placeholders_defined,
    check_plaintext_secrets,
    check_plugins_in_image,
    check_plugins_removed,
    check_port_exposed,
    check_restart_policy,
    deployment_environment,
)
from butler.casc import CascError, ConfigurationLoader, find_bindings
from butler.models import ProjectSchema
from butler.plugins import ManifestError, diff_manifests, load_manifest
from butler.utils.docker import list_image_plugins

console = Console()


def _casc_checks(
    schema: ProjectSchema, environment: Mapping[str, str]
) -> list[CheckResult]:
    if not schema.casc_sources:
        return [CheckResult(name="casc-loads", ok=False, details=["no CasC YAML found"])]

    loader = ConfigurationLoader(env=environment)
    try:
        raw = loader.merge(schema.casc_sources)
    except CascError as e:
        return [CheckResult(name="casc-loads", ok=False, details=[str(e)])]

    results = [
        check_placeholders_defined(find_bindings(raw), environment),
        check_plaintext_secrets(raw),
    ]
    try:
        loaded = loader.load(schema.casc_sources)
    except (CascError, ValueError) as e:
        results.append(CheckResult(name="casc-loads", ok=False, details=[str(e)]))
        return results

    details = [f"sources: {len(loaded.sources)}"]
    details += [f"user: {u.id}" for u in loaded.configuration.users]
    details += [f"credential: {c.id}" for c in loaded.configuration.credentials]
    results.append(CheckResult(name="casc-loads", ok=True, details=details))
    return results


def _deployment_checks(schema: ProjectSchema) -> list[CheckResult]:
    if schema.deployment is None:
        return [
            CheckResult(name="compose-present", ok=False, details=["no compose file found"])
        ]
    return [
        check_persistent_volume(schema.deployment),
        check_restart_policy(schema.deployment),
        check_port_exposed(schema.deployment, config.HTTP_PORT),
    ]


def run_checks(
    schema: ProjectSchema,
    host_env: Optional[Mapping[str, str]] = None,
    image_plugins: Optional[Sequence[str]] = None,
    previous_manifest: Optional[str] = None,
) -> list[CheckResult]:
    """Все проверки каталога; проверки образа - только если передан список его плагинов."""
    environment = deployment_environment(schema, host_env)
    results = _casc_checks(schema, environment)
    results += _deployment_checks(schema)

    if image_plugins is not None and schema.plugins_file:
        manifest = load_manifest(schema.plugins_file)
        results.append(check_plugins_in_image(manifest, image_plugins))
        if previous_manifest:
            removed = diff_manifests(load_manifest(previous_manifest), manifest).removed
            results.append(check_plugins_removed([e.name for e in removed], image_plugins))
    return results


def verify(
    directory: str = typer.Argument(".", help="Каталог развёртывания"),
    image: Optional[str] = typer.Option(
        None, "--image", "-i", help="Собранный образ, плагины которого нужно проверить"
    ),
    previous: Optional[str] = typer.Option(
        None,
        "--previous",
        "-p",
        help="Предыдущий plugins.txt: удалённые из него плагины не должны остаться в образе",
    ),
):
    """Проверить каталог развёртывания (и образ) перед запуском Jenkins"""
    try:
        schema = ProjectAnalyzer().analyze(pathlib.Path(directory))
    except ValueError as e:
        console.print(f"[red]Ошибка анализа:[/red] {e}")
        raise typer.Exit(code=1)

    image_plugins = None
    if image:
        try:
            image_plugins = list_image_plugins(image)
        except (subprocess.CalledProcessError, OSError) as e:
            console.print(f"[red]Не удалось прочитать плагины образа {image}:[/red] {e}")
            raise typer.Exit(code=1)

    try:
        results = run_checks(schema, image_plugins=image_plugins, previous_manifest=previous)
    except ManifestError as e:
        console.print(f"[red]Ошибка в манифесте:[/red] {e}")
        raise typer.Exit(code=1)

    table = Table(title="Проверки развёртывания")
    table.add_column("Проверка", style="cyan", no_wrap=True)
    table.add_column("Результат")
    table.add_column("Подробности", style="green")
    for result in results:
        mark = "[green]✔ ok[/green]" if result.ok else "[red]✖ fail[/red]"
        table.add_row(result.name, mark, "\n".join(result.details) or "-")
    console.print(table)

    failed = [r.name for r in results if not r.ok]
    if failed:
        console.print(f"[red]Не пройдено проверок: {len(failed)}[/red] ({', '.join(failed)})")
        raise typer.Exit(code=1)
    console.print("[green]✨ Все проверки пройдены[/green]")
