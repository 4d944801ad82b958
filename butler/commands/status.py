"""Команда проверки статуса Jenkins."""

import requests
import typer
from rich.console import Console
from rich.table import Table

from butler import config
from butler.casc import JenkinsClient
from butler.utils.docker import check_container_status, get_container_health
from butler.utils.jenkins_auth import get_jenkins_url

console = Console()


def status(
    container: str = typer.Option(
        config.JENKINS_CONTAINER, "--container", help="Имя контейнера Jenkins"
    ),
):
    """
    Проверка статуса контейнера и веб-интерфейса Jenkins.
    """
    table = Table(title="Статус Jenkins")
    table.add_column("Компонент", style="cyan", no_wrap=True)
    table.add_column("Статус", style="magenta")
    table.add_column("Детали", style="green")

    running = check_container_status(container)
    if running:
        table.add_row("Контейнер", "🟢 Запущен", f"{container} (health: {get_container_health(container)})")
    else:
        table.add_row("Контейнер", "🔴 Не запущен", container)

    url = get_jenkins_url()
    healthy = False
    try:
        code, version = JenkinsClient(url).ping()
        if code == 200:
            healthy = True
            table.add_row("Веб-интерфейс", "🟢 Работает", f"{url} (Jenkins {version or '?'})")
            console.print(f"[green]✔[/green] Jenkins is ready")
        elif code == 503:
            table.add_row("Веб-интерфейс", "🟡 Запускается", url)
            console.print("[yellow]⚠[/yellow] Jenkins is starting up")
        else:
            table.add_row("Веб-интерфейс", "🔴 Недоступен", url)
            console.print(f"[red]✖[/red] Jenkins returned status code {code}")
    except requests.RequestException as e:
        table.add_row("Веб-интерфейс", "🔴 Недоступен", url)
        console.print(f"[red]✖[/red] Jenkins is not reachable: {e}")
    console.print(table)

    if not healthy:
        raise typer.Exit(code=1)
