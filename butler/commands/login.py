"""Команда авторизации."""

import typer
from rich.console import Console
from rich.prompt import Prompt

from butler.casc import JenkinsApiError, JenkinsClient
from butler.utils.jenkins_auth import get_jenkins_url, save_login

app = typer.Typer(help="Авторизация в Jenkins")
console = Console()


@app.callback(invoke_without_command=True)
def login(
    token: str = typer.Option(None, "--token", "-t", help="Jenkins API token"),
    user: str = typer.Option(None, "--user", "-u", help="Имя пользователя Jenkins"),
    url: str = typer.Option(None, "--url", help="Jenkins URL"),
):
    """
    Авторизация в Jenkins с помощью API token.
    Учётные данные будут сохранены локально для использования в других командах.
    """
    console.print("[bold blue]Авторизация в Butler CLI[/bold blue]")

    if not url:
        url = Prompt.ask("Jenkins URL", default=get_jenkins_url())
    if not user:
        user = Prompt.ask("Пользователь", default="admin")
    if not token:
        console.print("Пожалуйста, введите ваш Jenkins API token.")
        console.print(f"Вы можете создать его здесь: {url.rstrip('/')}/user/{user}/configure")
        token = Prompt.ask("API token", password=True)

    if not token:
        console.print("[red]❗️ Токен не может быть пустым.[/red]")
        raise typer.Exit(code=1)

    console.print(f"[yellow]🔎 Подключение к {url}...[/yellow]")
    try:
        me = JenkinsClient(url, user=user, token=token).whoami()
    except (JenkinsApiError, OSError) as e:
        console.print(f"[red]❌ Ошибка авторизации: {e}[/red]")
        console.print("[yellow]Проверьте правильность токена и доступность Jenkins.[/yellow]")
        raise typer.Exit(code=1)

    if not me.get("authenticated", True) or me.get("anonymous"):
        console.print("[red]❌ Jenkins не принял учётные данные[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]✅ Успешная авторизация как {me.get('name', user)}[/green]")

    try:
        for path in save_login(url, user, token):
            console.print(f"[green]🔒 Сохранено в {path}[/green]")
    except OSError as e:
        console.print(f"[red]❌ Ошибка при сохранении учётных данных: {e}[/red]")
        raise typer.Exit(code=1)
