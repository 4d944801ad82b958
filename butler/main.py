"""Главный модуль CLI приложения."""

import typer
from rich.console import Console

from butler.commands import (
    analyze,
    casc,
    clear,
    compose,
    docker,
    init,
    login,
    plugins,
    status,
    verify,
)

app = typer.Typer(
    name="butler",
    help="CLI для сборки и развёртывания Jenkins с configuration-as-code 🤵",
    add_completion=False,
)

console = Console()

# Регистрация команд
app.add_typer(init.app, name="init")
app.add_typer(plugins.app, name="plugins")
app.add_typer(casc.app, name="casc")
app.add_typer(login.app, name="login")
app.command()(analyze.analyze)
app.command()(docker.docker)
app.command()(compose.compose)
app.command()(status.status)
app.command()(verify.verify)
app.command()(clear.clear)


@app.callback()
def main():
    """
    Butler CLI — образ Jenkins с плагинами, CasC и docker compose из одного каталога.

    Используйте init для создания шаблона, verify для проверки и compose для запуска.
    """
    pass


if __name__ == "__main__":
    app()
