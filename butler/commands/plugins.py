"""Команды для работы с манифестом плагинов."""

import pathlib
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from butler import config
from butler.models import PluginEntry, PluginManifest
from butler.plugins import (
    ManifestError,
    PluginInstaller,
    PluginResolutionError,
    PluginResolver,
    UpdateCenter,
    diff_manifests,
    load_manifest,
    render_manifest,
)

app = typer.Typer(help="Манифест плагинов: просмотр, разрешение зависимостей, установка")
console = Console()


def _load(path: str) -> PluginManifest:
    try:
        manifest = load_manifest(path)
    except ManifestError as e:
        console.print(f"[red]Ошибка в манифесте {path}:[/red] {e}")
        raise typer.Exit(code=1)
    for warning in manifest.warnings:
        console.print(f"[yellow]⚠[/yellow] {warning}")
    return manifest


def _update_center(source: Optional[str]) -> UpdateCenter:
    if source and pathlib.Path(source).is_file():
        return UpdateCenter.from_file(source)
    return UpdateCenter.fetch(source or config.UPDATE_CENTER_URL)


@app.command("list")
def list_plugins(
    manifest_file: str = typer.Argument("plugins.txt", help="Путь до plugins.txt"),
):
    """Показать плагины из манифеста."""
    manifest = _load(manifest_file)
    table = Table(title=f"Плагины ({len(manifest)})")
    table.add_column("Плагин", style="cyan", no_wrap=True)
    table.add_column("Версия", style="magenta")
    table.add_column("URL", style="green")
    for entry in manifest.entries:
        table.add_row(entry.name, entry.version or "latest", entry.url or "-")
    console.print(table)


@app.command()
def resolve(
    manifest_file: str = typer.Argument("plugins.txt", help="Путь до plugins.txt"),
    update_center: Optional[str] = typer.Option(
        None, "--update-center", "-u", help="URL или файл update-center.json"
    ),
    minimal: bool = typer.Option(
        False, "--minimal", help="Брать зависимости в минимально требуемой версии"
    ),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Записать закреплённый манифест в файл"
    ),
):
    """Разрешить транзитивные зависимости по update center."""
    manifest = _load(manifest_file)
    try:
        resolved = PluginResolver(_update_center(update_center), latest=not minimal).resolve(
            manifest
        )
    except PluginResolutionError as e:
        console.print(f"[red]✖ {e}[/red]")
        raise typer.Exit(code=1)

    table = Table(title=f"Разрешённые плагины ({len(resolved)})")
    table.add_column("Плагин", style="cyan", no_wrap=True)
    table.add_column("Версия", style="magenta")
    table.add_column("Нужен для", style="green")
    for plugin in resolved:
        reason = "manifest" if plugin.requested else ", ".join(plugin.required_by)
        table.add_row(plugin.name, plugin.version, reason)
    console.print(table)

    if output:
        locked = PluginManifest(
            entries=[
                PluginEntry(
                    name=p.name,
                    version=p.version,
                    url=manifest.get(p.name).url if p.requested else None,
                )
                for p in resolved
            ]
        )
        pathlib.Path(output).write_text(render_manifest(locked), encoding="utf-8")
        console.print(f"[green]Закреплённый манифест записан в[/green] {output}")


@app.command()
def install(
    manifest_file: str = typer.Argument("plugins.txt", help="Путь до plugins.txt"),
    plugin_dir: str = typer.Option(
        "plugins", "--plugin-dir", "-d", help="Каталог для .jpi файлов"
    ),
    update_center: Optional[str] = typer.Option(
        None, "--update-center", "-u", help="URL или файл update-center.json"
    ),
):
    """Скачать плагины и их зависимости в каталог (аналог jenkins-plugin-cli)."""
    manifest = _load(manifest_file)
    try:
        resolved = PluginResolver(_update_center(update_center)).resolve(manifest)
        installed = PluginInstaller().install(resolved, plugin_dir)
    except PluginResolutionError as e:
        console.print(f"[red]✖ {e}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]✨ Установлено плагинов:[/green] {len(installed)} в {plugin_dir}")


@app.command()
def diff(
    old_file: str = typer.Argument(..., help="Старый манифест"),
    new_file: str = typer.Argument("plugins.txt", help="Новый манифест"),
):
    """Сравнить два манифеста."""
    changes = diff_manifests(_load(old_file), _load(new_file))
    if changes.is_empty:
        console.print("[green]Манифесты совпадают[/green]")
        return
    for entry in changes.added:
        console.print(f"[green]+ {entry.spec}[/green]")
    for entry in changes.removed:
        console.print(f"[red]- {entry.spec}[/red]")
    for before, after in changes.changed:
        console.print(f"[yellow]~ {before.spec} -> {after.spec}[/yellow]")
