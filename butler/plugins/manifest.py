"""Разбор и запись манифеста плагинов (формат jenkins-plugin-cli)."""

import pathlib
import re
import typing as tp

from pydantic import ValidationError

from butler.models import ManifestDiff, PluginEntry, PluginManifest

# комментарий в конце строки отделяется пробелом: "git:5.2.1  # scm"
_TRAILING_COMMENT = re.compile(r"\s+#.*$")


class ManifestError(ValueError):
    """Некорректная строка в манифесте плагинов."""

    def __init__(self, message: str, line: tp.Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


def parse_line(raw: str, line: tp.Optional[int] = None) -> tp.Optional[PluginEntry]:
    text = raw.strip()
    if not text or text.startswith("#"):
        return None
    text = _TRAILING_COMMENT.sub("", text)

    # url тоже содержит ':', поэтому режем не больше двух раз
    name, _, rest = text.partition(":")
    version, url = None, None
    if rest:
        version, _, url = rest.partition(":")
        if url and not re.match(r"^[A-Za-z][A-Za-z0-9+.\-]*://", url):
            raise ManifestError(f"invalid plugin url {url!r}", line)

    try:
        return PluginEntry(name=name.strip(), version=version or None, url=url or None)
    except ValidationError as e:
        raise ManifestError(f"invalid plugin entry {text!r}: {e.errors()[0]['msg']}", line) from e


def parse_manifest(text: str) -> PluginManifest:
    """Разобрать содержимое plugins.txt.

    При повторе идентификатора побеждает последняя строка, порядок при этом
    сохраняется по первому упоминанию.
    """
    entries: dict[str, PluginEntry] = {}
    warnings: list[str] = []

    for number, raw in enumerate(text.splitlines(), start=1):
        entry = parse_line(raw, number)
        if entry is None:
            continue
        previous = entries.get(entry.name)
        if previous is not None and previous != entry:
            warnings.append(
                f"line {number}: {entry.name} redefined, "
                f"{previous.spec!r} replaced with {entry.spec!r}"
            )
        entries[entry.name] = entry

    return PluginManifest(entries=list(entries.values()), warnings=warnings)


def load_manifest(path: tp.Union[str, pathlib.Path]) -> PluginManifest:
    path = pathlib.Path(path)
    if not path.exists():
        raise ManifestError(f"plugin manifest not found: {path}")
    return parse_manifest(path.read_text(encoding="utf-8"))


def render_manifest(manifest: PluginManifest) -> str:
    return "".join(f"{entry.spec}\n" for entry in manifest.entries)


def diff_manifests(old: PluginManifest, new: PluginManifest) -> ManifestDiff:
    diff = ManifestDiff()
    for entry in new.entries:
        before = old.get(entry.name)
        if before is None:
            diff.added.append(entry)
        elif before != entry:
            diff.changed.append((before, entry))
    diff.removed = [e for e in old.entries if e.name not in new]
    return diff
