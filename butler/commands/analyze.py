import pathlib

import typer
from rich.console import Console

from butler import config, models
from butler.analyzer import ProjectAnalyzer
from butler.utils.yaml_io import to_yaml_str_wide, write_yaml_file

console = Console()


def analyze_project(root_raw: str) -> models.ProjectSchema:
    # анализируем каталог и сохраняем результат в .butler/project.yaml
    root = pathlib.Path(root_raw)
    schema = ProjectAnalyzer().analyze(root)
    write_yaml_file(root / config.BUILD_DIR / "project.yaml", schema)
    return schema


def analyze(
    directory: str = typer.Argument(
        ".",
        help="Каталог с Dockerfile, plugins.txt, casc/ и docker-compose.yml",
    ),
):
    """Анализ каталога развёртывания, результат пишется в .butler/project.yaml"""
    try:
        schema = analyze_project(directory)
    except ValueError as e:
        console.print(f"[red]Ошибка анализа:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(
        f"[blue]Запись результата в файл:[/blue] {pathlib.Path(directory) / config.BUILD_DIR / 'project.yaml'}"
    )
    print(to_yaml_str_wide(schema))
