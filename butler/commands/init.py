"""Команда инициализации каталога развёртывания."""

import pathlib

import typer
import yaml
from rich.console import Console
from rich.panel import Panel

from butler.casc.secrets import find_bindings
from butler.composer import Composer
from butler.models import DeploymentSpec, ImageSpec, PluginEntry, PluginManifest
from butler.plugins.manifest import render_manifest

app = typer.Typer(help="Инициализация нового развёртывания Jenkins")
console = Console()

DEFAULT_PLUGINS = [
    "configuration-as-code",
    "credentials",
    "credentials-binding",
    "git",
    "matrix-auth",
    "timestamper",
    "workflow-aggregator",
]


def write_file(path: pathlib.Path, content: str, force: bool) -> bool:
    if path.exists() and not force:
        console.print(f"[yellow]Файл уже существует, пропускаем:[/yellow] {path}")
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    console.print(f"[green]Создан:[/green] {path}")
    return True


@app.callback(invoke_without_command=True)
def init(
    directory: str = typer.Argument(
        ".",
        help="Каталог, в котором создаются файлы",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Перезаписать существующие файлы",
    ),
):
    """
    Создаёт Dockerfile, plugins.txt, casc/jenkins.yaml, docker-compose.yml и .env.example.

    Пример использования:
        butler init ./jenkins
    """
    root = pathlib.Path(directory)
    console.print(f"[green]Инициализация развёртывания в:[/green] {root.resolve()}")

    composer = Composer()
    image = ImageSpec()
    deployment = DeploymentSpec.default()
    casc = composer.get_casc_skeleton()
    manifest = PluginManifest(entries=[PluginEntry(name=name) for name in DEFAULT_PLUGINS])

    write_file(root / image.plugins_file, render_manifest(manifest), force)
    write_file(root / image.casc_dir / "jenkins.yaml", casc, force)
    write_file(root / "Dockerfile", composer.get_dockerfile(image), force)
    write_file(root / "docker-compose.yml", composer.get_compose(deployment), force)

    variables = {b.name for b in find_bindings(yaml.safe_load(casc)) if not b.has_default}
    write_file(root / ".env.example", composer.get_env_example(variables), force)

    console.print(
        Panel(
            "[bold]1.[/bold] cp .env.example .env и заполните значения\n"
            "[bold]2.[/bold] butler verify\n"
            "[bold]3.[/bold] butler compose --up",
            title="[bold cyan]Дальнейшие шаги[/bold cyan]",
            border_style="green",
        )
    )
