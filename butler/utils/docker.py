"""Утилиты для работы с Docker."""

import subprocess
from typing import Optional, Sequence

from rich.console import Console

from butler import config

console = Console()


def check_container_status(container_name: str) -> bool:
    """
    Проверяет, запущен ли контейнер.

    Args:
        container_name: Имя контейнера

    Returns:
        True если контейнер запущен, False в противном случае
    """
    try:
        result = subprocess.run(
            ["docker", "inspect", "-f", "{{.State.Running}}", container_name],
            capture_output=True,
            text=True,
        )
        return result.stdout.strip() == "true"
    except OSError:
        return False


def get_container_health(container_name: str) -> str:
    """
    Получает статус здоровья контейнера.

    Args:
        container_name: Имя контейнера

    Returns:
        Статус здоровья контейнера
    """
    try:
        result = subprocess.run(
            [
                "docker",
                "inspect",
                "-f",
                "{{if .State.Health}}{{.State.Health.Status}}{{else}}none{{end}}",
                container_name,
            ],
            capture_output=True,
            text=True,
        )
        return result.stdout.strip() or "unknown"
    except OSError:
        return "unknown"


def build_image(tag: str, dockerfile: str, context: str = ".") -> None:
    """Собирает образ. Ошибка сборки (например, ненайденный плагин) пробрасывается."""
    console.print(f"[yellow]Executing:[/yellow] docker build -t {tag} -f {dockerfile} {context}")
    subprocess.run(["docker", "build", "-t", tag, "-f", dockerfile, context], check=True)


def compose(args: Sequence[str], compose_file: Optional[str] = None) -> None:
    cmd = ["docker", "compose"]
    if compose_file:
        cmd += ["-f", compose_file]
    cmd += list(args)
    console.print(f"[yellow]Executing:[/yellow] {' '.join(cmd)}")
    subprocess.run(cmd, check=True)


def list_image_plugins(image: str, plugin_dir: str = config.IMAGE_PLUGIN_DIR) -> list[str]:
    """Возвращает имена файлов плагинов, запечённых в образ."""
    result = subprocess.run(
        ["docker", "run", "--rm", "--entrypoint", "ls", image, "-1", plugin_dir],
        capture_output=True,
        text=True,
        check=True,
    )
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def remove_volume(name: str) -> None:
    subprocess.run(
        ["docker", "volume", "rm", "-f", name],
        capture_output=True,
        text=True,
        check=True,
    )
