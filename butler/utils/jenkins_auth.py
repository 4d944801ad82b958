"""Утилиты аутентификации Jenkins."""

import os
from pathlib import Path
from urllib.parse import urlparse

from rich.console import Console

from butler.casc.client import JenkinsApiError, JenkinsClient
from butler.config import JENKINS_URL, STATE_DIR

console = Console()


URL_FILE = STATE_DIR / "jenkins_url"
USER_FILE = STATE_DIR / "jenkins_user"
TOKEN_FILE = STATE_DIR / "jenkins_token"


def _from_env_or_file(env_name: str, file_env: str, default_file: Path):
    value = os.getenv(env_name)
    if value:
        return value

    path = Path(os.getenv(file_env, default_file))
    if path.exists():
        value = path.read_text(encoding="utf-8").strip()
        if value:
            return value
    return None


def _ensure_scheme(url: str) -> str:
    if not urlparse(url).scheme:
        return f"http://{url}"
    return url


def get_jenkins_url() -> str:
    url = _from_env_or_file("JENKINS_URL", "JENKINS_URL_FILE", URL_FILE)
    return _ensure_scheme(url or JENKINS_URL)


def get_credentials() -> tuple[str, str]:
    user = _from_env_or_file("JENKINS_USER", "JENKINS_USER_FILE", USER_FILE)
    token = _from_env_or_file("JENKINS_API_TOKEN", "JENKINS_TOKEN_FILE", TOKEN_FILE)
    if not user or not token:
        raise RuntimeError(
            "Учётные данные Jenkins не найдены. Выполните `butler login`.\n"
        )
    return user, token


def get_authenticated_client() -> JenkinsClient:
    user, token = get_credentials()
    client = JenkinsClient(get_jenkins_url(), user=user, token=token)

    try:
        client.crumb()
        client.whoami()
        console.print("[green]✓[/green] Подключено к Jenkins ✅")
    except (JenkinsApiError, OSError) as e:
        raise RuntimeError("Не удалось аутентифицироваться в Jenkins") from e

    return client


def save_login(url: str, user: str, token: str) -> list[Path]:
    written = []
    for env_name, default, value, secret in (
        ("JENKINS_URL_FILE", URL_FILE, url, False),
        ("JENKINS_USER_FILE", USER_FILE, user, False),
        ("JENKINS_TOKEN_FILE", TOKEN_FILE, token, True),
    ):
        path = Path(os.getenv(env_name, default))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(value, encoding="utf-8")
        if secret:
            path.chmod(0o600)
        written.append(path)
    return written
