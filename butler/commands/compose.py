"""Генерация docker-compose.yml и запуск Jenkins."""

import pathlib
import subprocess

import typer
from rich.console import Console

from butler import config
from butler.composer import Composer
from butler.models import DeploymentSpec
from butler.utils.docker import compose as run_compose

console = Console()


def compose(
    directory: str = typer.Argument(".", help="Каталог развёртывания"),
    up: bool = typer.Option(False, "--up", help="Запустить docker compose up -d"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Перезаписать существующий docker-compose.yml"
    ),
    mem_limit: str = typer.Option("2g", "--memory", help="Лимит памяти контейнера"),
    cpus: float = typer.Option(1.0, "--cpus", help="Лимит CPU контейнера"),
):
    """Сгенерировать docker-compose.yml (порты, том, лимиты, окружение)"""
    root = pathlib.Path(directory)
    compose_file = root / "docker-compose.yml"

    if compose_file.exists() and not force:
        console.print(f"[yellow]Используется существующий файл:[/yellow] {compose_file}")
    else:
        try:
            deployment = DeploymentSpec.model_validate(
                {**DeploymentSpec.default().model_dump(), "mem_limit": mem_limit, "cpus": cpus}
            )
        except ValueError as e:
            console.print(f"[red]Некорректные параметры:[/red] {e}")
            raise typer.Exit(code=1)
        compose_file.write_text(Composer().get_compose(deployment), encoding="utf-8")
        console.print(f"[green]docker-compose.yml сгенерирован:[/green] {compose_file}")

    if not up:
        console.print(f"[cyan]Запуск:[/cyan] docker compose -f {compose_file} up -d")
        return

    try:
        run_compose(["up", "-d", "--build"], str(compose_file))
    except (subprocess.CalledProcessError, OSError) as e:
        console.print(f"[red]❌ docker compose up завершился ошибкой:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(
        f"[green]✨ Jenkins запускается:[/green] http://localhost:{config.HTTP_PORT}"
    )
