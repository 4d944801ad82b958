"""Разрешение зависимостей плагинов по update center и их установка."""

import base64
import hashlib
import json
import pathlib
import re
import typing as tp

import requests
from rich.console import Console
from rich.progress import Progress

from butler import config
from butler.models import PluginEntry, PluginManifest, ResolvedPlugin

console = Console(stderr=True)


class PluginResolutionError(RuntimeError):
    """Плагин не удалось найти, согласовать или скачать."""


def version_key(version: str) -> tuple:
    """Ключ сравнения версий Jenkins: 2.6.1 < 2.10, 1.0-beta-1 < 1.0."""
    key = []
    for part in re.split(r"[.\-+_]", version):
        if part.isdigit():
            key.append((2, int(part), ""))
        elif part:
            key.append((0, 0, part))
    # выпуск старше любого пред-выпуска с тем же префиксом
    key.append((1, 0, ""))
    return tuple(key)


def newest(*versions: tp.Optional[str]) -> tp.Optional[str]:
    present = [v for v in versions if v]
    if not present:
        return None
    return max(present, key=version_key)


class UpdateCenter:
    """Индекс плагинов Jenkins (update-center.actual.json)."""

    def __init__(self, data: dict[str, tp.Any], url: tp.Optional[str] = None):
        self.plugins: dict[str, dict[str, tp.Any]] = data.get("plugins") or {}
        self.core: tp.Optional[str] = (data.get("core") or {}).get("version")
        self.url = url

    @classmethod
    def fetch(
        cls,
        url: str = config.UPDATE_CENTER_URL,
        session: tp.Optional[requests.Session] = None,
    ) -> "UpdateCenter":
        http = session or requests.Session()
        try:
            response = http.get(url, timeout=config.HTTP_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            raise PluginResolutionError(f"cannot fetch update center {url}: {e}") from e
        return cls(response.json(), url=url)

    @classmethod
    def from_file(cls, path: tp.Union[str, pathlib.Path]) -> "UpdateCenter":
        text = pathlib.Path(path).read_text(encoding="utf-8")
        # update-center.json оборачивает данные в updateCenter.post(...)
        if text.lstrip().startswith("updateCenter.post("):
            text = text.strip()[len("updateCenter.post(") : -2]
        return cls(json.loads(text), url=str(path))

    def get(self, name: str) -> tp.Optional[dict[str, tp.Any]]:
        return self.plugins.get(name)

    def dependencies(self, name: str) -> list[dict[str, tp.Any]]:
        info = self.get(name) or {}
        return [d for d in info.get("dependencies") or [] if not d.get("optional", False)]


def download_url(entry: PluginEntry, latest: tp.Optional[dict] = None) -> str:
    if entry.url:
        return entry.url
    if entry.is_incremental:
        _, group, version = entry.version.split(";", 2)
        group_path = group.replace(".", "/")
        return (
            f"{config.INCREMENTALS_URL}/{group_path}/{entry.name}/{version}/"
            f"{entry.name}-{version}.hpi"
        )
    if entry.is_experimental:
        return f"{config.EXPERIMENTAL_URL}/{entry.name}.hpi"
    if entry.is_pinned:
        return f"{config.DOWNLOAD_URL}/{entry.name}/{entry.version}/{entry.name}.hpi"
    if latest and latest.get("url"):
        return latest["url"]
    return f"{config.LATEST_URL}/{entry.name}.hpi"


class PluginResolver:
    """Разрешает манифест в полный набор плагинов с транзитивными зависимостями."""

    def __init__(self, update_center: UpdateCenter, latest: bool = True):
        self.update_center = update_center
        # latest=False: зависимости берутся в минимально требуемой версии
        self.latest = latest

    def off_index(self, entry: PluginEntry) -> bool:
        """Плагин с явным URL или экспериментальной версией может отсутствовать в индексе."""
        if self.update_center.get(entry.name) is not None:
            return False
        return bool(entry.url) or entry.is_experimental or entry.is_incremental

    def resolve(self, manifest: PluginManifest) -> list[ResolvedPlugin]:
        missing = [
            e.name
            for e in manifest.entries
            if self.update_center.get(e.name) is None and not self.off_index(e)
        ]
        if missing:
            raise PluginResolutionError(
                f"plugins not found in update center: {', '.join(missing)}"
            )

        requested: dict[str, PluginEntry] = {e.name: e for e in manifest.entries}
        versions: dict[str, str] = {}
        required_by: dict[str, list[str]] = {}

        for entry in manifest.entries:
            if entry.is_pinned:
                versions[entry.name] = entry.version
            elif self.off_index(entry):
                # зависимости такого плагина неизвестны, ставится как есть
                versions[entry.name] = "latest"
            else:
                versions[entry.name] = self.update_center.get(entry.name)["version"]

        queue = list(requested)
        while queue:
            name = queue.pop(0)
            for dep in self.update_center.dependencies(name):
                dep_name = dep["name"]
                minimum = dep.get("version")
                required_by.setdefault(dep_name, [])
                if name not in required_by[dep_name]:
                    required_by[dep_name].append(name)

                pinned = requested.get(dep_name)
                if pinned is not None and pinned.is_pinned:
                    special = pinned.is_experimental or pinned.is_incremental
                    if not special and minimum and version_key(pinned.version) < version_key(minimum):
                        raise PluginResolutionError(
                            f"{name} requires {dep_name}:{minimum}, "
                            f"but {pinned.spec} is pinned in the manifest"
                        )
                    continue

                info = self.update_center.get(dep_name)
                if info is None:
                    raise PluginResolutionError(
                        f"{name} depends on {dep_name}, which is not in the update center"
                    )

                current = versions.get(dep_name)
                if self.latest:
                    wanted = newest(current, minimum, info.get("version"))
                else:
                    wanted = newest(current, minimum) or info.get("version")
                if current is None:
                    queue.append(dep_name)
                versions[dep_name] = wanted

        result = []
        for name in sorted(versions):
            info = self.update_center.get(name) or {}
            entry = requested.get(name) or PluginEntry(name=name, version=versions[name])
            is_latest = versions[name] == info.get("version")
            result.append(
                ResolvedPlugin(
                    name=name,
                    version=versions[name],
                    url=download_url(entry, info if is_latest else None),
                    sha256=info.get("sha256") if is_latest else None,
                    requested=name in requested,
                    required_by=required_by.get(name, []),
                )
            )
        return result


def _sha256_b64(path: pathlib.Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1 << 16), b""):
            digest.update(chunk)
    return base64.b64encode(digest.digest()).decode("ascii")


class PluginInstaller:
    """Скачивает разрешённые плагины в каталог плагинов."""

    def __init__(self, session: tp.Optional[requests.Session] = None):
        self.session = session or requests.Session()

    def install(
        self, plugins: list[ResolvedPlugin], plugin_dir: tp.Union[str, pathlib.Path]
    ) -> list[pathlib.Path]:
        target = pathlib.Path(plugin_dir)
        target.mkdir(parents=True, exist_ok=True)
        installed: list[pathlib.Path] = []

        with Progress(console=console, transient=True) as progress:
            task = progress.add_task("Скачивание плагинов", total=len(plugins))
            for plugin in plugins:
                path = target / plugin.filename
                if path.exists() and plugin.sha256 and _sha256_b64(path) == plugin.sha256:
                    console.print(f"[blue]Уже установлен:[/blue] {plugin.name}:{plugin.version}")
                else:
                    self._download(plugin, path)
                installed.append(path)
                progress.advance(task)

        return installed

    def _download(self, plugin: ResolvedPlugin, path: pathlib.Path) -> None:
        tmp = path.with_suffix(".tmp")
        try:
            with self.session.get(plugin.url, stream=True, timeout=config.HTTP_TIMEOUT) as response:
                response.raise_for_status()
                with open(tmp, "wb") as f:
                    for chunk in response.iter_content(chunk_size=1 << 16):
                        f.write(chunk)
        except requests.RequestException as e:
            tmp.unlink(missing_ok=True)
            raise PluginResolutionError(
                f"failed to download {plugin.name}:{plugin.version} from {plugin.url}: {e}"
            ) from e

        if plugin.sha256 and _sha256_b64(tmp) != plugin.sha256:
            tmp.unlink(missing_ok=True)
            raise PluginResolutionError(f"checksum mismatch for {plugin.name}:{plugin.version}")

        tmp.replace(path)
        console.print(f"[green]Установлен:[/green] {plugin.name}:{plugin.version}")
