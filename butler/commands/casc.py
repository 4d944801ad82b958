"""Команды configuration-as-code."""

import os
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from butler.casc import (
    CascError,
    ConfigurationLoader,
    JenkinsClient,
    default_spec,
    dump_tree,
)
from butler.models import LoadedConfiguration
from butler.utils.env import collect_environment
from butler.utils.jenkins_auth import get_authenticated_client, get_jenkins_url

app = typer.Typer(help="Configuration-as-code: проверка, экспорт, применение")
console = Console()

SourceOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Файлы/каталоги/URL через запятую (по умолчанию CASC_JENKINS_CONFIG)",
)
EnvFileOption = typer.Option(None, "--env-file", help=".env файл с переменными")
EnvOption = typer.Option(None, "--env", "-e", help="Переменная в формате KEY=VALUE")
StrategyOption = typer.Option(
    None, "--merge-strategy", "-m", help="errorOnConflict или override"
)


def load_configuration(
    source: Optional[str],
    env_files: Optional[list[str]],
    env_pairs: Optional[list[str]],
    strategy: Optional[str] = None,
) -> LoadedConfiguration:
    try:
        env = collect_environment(env_files, env_pairs)
    except (OSError, ValueError) as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1)

    loader = ConfigurationLoader(env=env, strategy=strategy)
    try:
        return loader.load(source or default_spec(env))
    except CascError as e:
        console.print(f"[red]❌ Ошибка конфигурации:[/red] {e}")
        raise typer.Exit(code=1)


@app.command()
def check(
    source: Optional[str] = SourceOption,
    env_file: Optional[list[str]] = EnvFileOption,
    env: Optional[list[str]] = EnvOption,
    strategy: Optional[str] = StrategyOption,
):
    """Загрузить, слить и подставить переменные так же, как это сделает Jenkins."""
    loaded = load_configuration(source, env_file, env, strategy)
    configuration = loaded.configuration

    for s in loaded.sources:
        console.print(f"[blue]Источник:[/blue] {s}")

    table = Table(title="Итоговая конфигурация")
    table.add_column("Параметр", style="cyan", no_wrap=True)
    table.add_column("Значение", style="magenta")
    table.add_row("systemMessage", configuration.system_message or "-")
    table.add_row("numExecutors", str(configuration.num_executors or "-"))
    table.add_row(
        "securityRealm",
        configuration.security_realm.kind if configuration.security_realm else "-",
    )
    table.add_row("users", ", ".join(u.id for u in configuration.users) or "-")
    table.add_row(
        "authorizationStrategy",
        configuration.authorization.kind if configuration.authorization else "-",
    )
    table.add_row(
        "credentials",
        ", ".join(f"{c.id} ({c.kind}, {c.scope.value})" for c in configuration.credentials)
        or "-",
    )
    table.add_row("variables", ", ".join(sorted({b.name for b in loaded.bindings})) or "-")
    console.print(table)
    console.print("[green]✔ Конфигурация корректна[/green]")


@app.command()
def export(
    source: Optional[str] = SourceOption,
    env_file: Optional[list[str]] = EnvFileOption,
    env: Optional[list[str]] = EnvOption,
    strategy: Optional[str] = StrategyOption,
    resolved: bool = typer.Option(
        False, "--resolved", help="Вывести дерево с подставленными секретами"
    ),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Файл для записи"),
):
    """Вывести слитое дерево конфигурации одним YAML-документом."""
    loaded = load_configuration(source, env_file, env, strategy)
    text = dump_tree(loaded.resolved if resolved else loaded.raw)
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text)
        console.print(f"[green]Записано в[/green] {output}")
    else:
        print(text)


@app.command()
def apply(
    source: Optional[str] = SourceOption,
    env_file: Optional[list[str]] = EnvFileOption,
    env: Optional[list[str]] = EnvOption,
    strategy: Optional[str] = StrategyOption,
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Только проверить на сервере, не применять"
    ),
):
    """Отправить конфигурацию в работающий Jenkins."""
    loaded = load_configuration(source, env_file, env, strategy)
    # Jenkins сам подставит переменные из своего окружения
    text = dump_tree(loaded.raw)

    try:
        client = get_authenticated_client()
        report = client.check(text)
        if report.strip() and report.strip() != "[]":
            console.print(f"[yellow]Ответ проверки:[/yellow] {report}")
        if dry_run:
            console.print("[green]✔ Сервер принял конфигурацию (dry-run)[/green]")
            return
        client.apply(text)
    except (RuntimeError, OSError) as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]✨ Конфигурация применена к[/green] {client.url}")


@app.command()
def reload(
    token: Optional[str] = typer.Option(
        None,
        "--token",
        help="CASC_RELOAD_TOKEN для перезагрузки без учётных данных",
    ),
):
    """Попросить Jenkins перечитать CASC_JENKINS_CONFIG."""
    token = token or os.getenv("CASC_RELOAD_TOKEN")
    try:
        if token:
            client = JenkinsClient(get_jenkins_url())
            client.reload_with_token(token)
        else:
            client = get_authenticated_client()
            client.reload()
    except (RuntimeError, OSError) as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]✔ Конфигурация перезагружена на[/green] {client.url}")
