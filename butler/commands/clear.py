import subprocess

import typer
from rich.console import Console

from butler import config
from butler.utils.docker import compose, remove_volume

console = Console()


def clear(
    keep_data: bool = typer.Option(
        False, "--keep-data", help="Не удалять том jenkins_home"
    ),
):
    """
    Останавливает Jenkins и очищает локальное окружение
    """
    args = ["down", "--remove-orphans"] if keep_data else ["down", "-v", "--remove-orphans"]
    try:
        compose(args)
        console.print("[green]Docker compose down executed successfully[/green]")
    except subprocess.CalledProcessError as e:
        console.print(f"[red]docker compose down failed:[/red] {e}")
    except OSError as e:
        console.print(f"[red]docker is not available:[/red] {e}")
        raise typer.Exit(code=1)

    if keep_data:
        console.print(f"[blue]Volume kept:[/blue] {config.JENKINS_VOLUME}")
        return

    console.print(f"[yellow]Removing Docker volume:[/yellow] {config.JENKINS_VOLUME}")
    try:
        remove_volume(config.JENKINS_VOLUME)
        console.print(f"[green]Removed volume:[/green] {config.JENKINS_VOLUME}")
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or e.stdout or str(e)).strip()
        console.print(
            f"[blue]Volume not found or could not remove:[/blue] {config.JENKINS_VOLUME} ({stderr})"
        )
