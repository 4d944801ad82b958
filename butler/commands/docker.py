"""Генерация и сборка образа Jenkins."""

import pathlib
import subprocess

import typer
from rich.console import Console

from butler import config
from butler.composer import Composer
from butler.models import ImageSpec
from butler.utils.docker import build_image

console = Console()


def docker(
    directory: str = typer.Argument(".", help="Каталог развёртывания"),
    build: bool = typer.Option(False, "--build", "-b", help="Собрать образ после генерации"),
    tag: str = typer.Option(config.IMAGE_TAG, "--tag", "-t", help="Тег образа"),
    base_image: str = typer.Option(config.BASE_IMAGE, "--base-image", help="Базовый образ"),
):
    """Сгенерировать Dockerfile с плагинами и CasC, при необходимости собрать образ"""
    root = pathlib.Path(directory)
    image = ImageSpec(base_image=base_image, tag=tag)

    if not (root / image.plugins_file).is_file():
        console.print(f"[red]Ошибка: файл не найден: {root / image.plugins_file}[/red]")
        console.print("[yellow]Выполните `butler init` для создания шаблона[/yellow]")
        raise typer.Exit(code=1)

    dockerfile = root / "Dockerfile"
    dockerfile.write_text(Composer().get_dockerfile(image), encoding="utf-8")
    console.print(f"Dockerfile сгенерирован: {dockerfile}")

    if not build:
        console.print("\n[cyan]Инструкции по сборке:[/cyan]")
        console.print(f"[green]docker build -t {tag} -f {dockerfile} {root}[/green]")
        return

    try:
        build_image(tag, str(dockerfile), str(root))
    except (subprocess.CalledProcessError, OSError) as e:
        # jenkins-plugin-cli падает, если плагин или версия не найдены
        console.print(f"[red]❌ Сборка образа не удалась:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]✨ Образ собран:[/green] {tag}")
