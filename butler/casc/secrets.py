"""Подстановка переменных и секретов в дерево конфигурации.

Поддерживаемый синтаксис:

    ${VAR}                 переменная окружения или файл в каталоге секретов
    ${VAR:-default}        значение по умолчанию
    ^${VAR}                экранирование, в результат попадёт ${VAR}
    ${readFile:path}       содержимое файла
    ${fileBase64:path}     содержимое файла в base64
    ${base64:text}         кодирование в base64
    ${decodeBase64:text}   декодирование из base64
    ${trim:text}           обрезка пробелов
    ${json:key:text}       значение ключа из JSON-строки

Аргумент lookup-а раскрывается до вызова: ${readFile:${KEY_PATH}}. Значение
по умолчанию раскрывается, только если переменная не задана: ${A:-${B}}.
"""

import base64
import json
import os
import pathlib
import re
import typing as tp

from butler import config
from butler.casc.sources import CascError
from butler.models import EnvironmentBinding

PLACEHOLDER_RE = re.compile(r"(\^?)\$\{([^${}]*)\}")
VAR_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.\-]*$")

LOOKUPS = ("readFile", "fileBase64", "base64", "decodeBase64", "trim", "json")


class UnresolvedPlaceholderError(CascError):
    """Переменные без значения и без значения по умолчанию."""

    def __init__(self, names: tp.Iterable[str]):
        self.names = sorted(set(names))
        super().__init__(f"unresolved variables: {', '.join(self.names)}")


def split_placeholder(body: str) -> tuple[str, tp.Optional[str], tp.Optional[str]]:
    """Разобрать тело ${...} в (lookup|имя, аргумент, default)."""
    name, sep, default = body.partition(":-")
    if sep and VAR_NAME_RE.match(name):
        return name, None, default
    prefix, sep, arg = body.partition(":")
    if sep and prefix in LOOKUPS:
        return prefix, arg, None
    return body, None, None


def _closing_brace(text: str, opening: int) -> int:
    depth = 0
    for index in range(opening, len(text)):
        if text[index] == "{":
            depth += 1
        elif text[index] == "}":
            depth -= 1
            if depth == 0:
                return index
    return -1


def scan(text: str) -> tp.Iterator[tuple[str, str]]:
    """Разбить строку на куски ("text" | "escaped" | "placeholder", содержимое).

    Для ${...} содержимое - тело между скобками с учётом вложенности.
    Незакрытый ${ остаётся обычным текстом.
    """
    plain_start = position = 0
    while True:
        start = text.find("${", position)
        if start < 0:
            break
        end = _closing_brace(text, start + 1)
        if end < 0:
            position = start + 2
            continue
        escaped = start > 0 and text[start - 1] == "^"
        head = text[plain_start : start - 1 if escaped else start]
        if head:
            yield "text", head
        yield ("escaped" if escaped else "placeholder"), text[start + 2 : end]
        plain_start = position = end + 1
    if text[plain_start:]:
        yield "text", text[plain_start:]


class SecretResolver:
    """Раскрывает ${...} во всех строковых значениях дерева."""

    def __init__(
        self,
        env: tp.Optional[tp.Mapping[str, str]] = None,
        secrets_dir: tp.Optional[tp.Union[str, pathlib.Path]] = None,
        base_dir: tp.Optional[pathlib.Path] = None,
    ):
        self.env = dict(os.environ if env is None else env)
        if secrets_dir is None:
            secrets_dir = self.env.get(config.SECRETS_ENV, config.SECRETS_DIR)
        self.secrets_dir = pathlib.Path(secrets_dir)
        self.base_dir = base_dir

    def resolve_tree(self, tree: tp.Any) -> tp.Any:
        unresolved: list[str] = []
        result = self._walk(tree, unresolved)
        if unresolved:
            raise UnresolvedPlaceholderError(unresolved)
        return result

    def resolve_string(self, value: str) -> str:
        unresolved: list[str] = []
        result = self._substitute(value, unresolved)
        if unresolved:
            raise UnresolvedPlaceholderError(unresolved)
        return result

    def lookup_variable(self, name: str) -> tp.Optional[str]:
        if name in self.env:
            return self.env[name]
        secret = self.secrets_dir / name
        if secret.is_file():
            return secret.read_text(encoding="utf-8").rstrip("\r\n")
        return None

    def _walk(self, node: tp.Any, unresolved: list[str]) -> tp.Any:
        if isinstance(node, dict):
            return {k: self._walk(v, unresolved) for k, v in node.items()}
        if isinstance(node, list):
            return [self._walk(v, unresolved) for v in node]
        if isinstance(node, str):
            return self._substitute(node, unresolved)
        return node

    def _substitute(self, value: str, unresolved: list[str]) -> str:
        # подставленные значения повторно не раскрываются
        parts = []
        for kind, chunk in scan(value):
            if kind == "text":
                parts.append(chunk)
            elif kind == "escaped":
                parts.append("${" + chunk + "}")
            else:
                parts.append(self._evaluate(chunk, unresolved))
        return "".join(parts)

    def _evaluate(self, body: str, unresolved: list[str]) -> str:
        name, arg, default = split_placeholder(body)
        if arg is not None:
            missing = len(unresolved)
            arg = self._substitute(arg, unresolved)
            if len(unresolved) > missing:
                return ""
            return self._apply_lookup(name, arg)
        if default is None and "${" in name:
            name = self._substitute(name, unresolved)
        value = self.lookup_variable(name)
        if value is not None:
            return value
        if default is not None:
            return self._substitute(default, unresolved)
        unresolved.append(name)
        return ""

    def _path(self, arg: str) -> pathlib.Path:
        path = pathlib.Path(arg).expanduser()
        if self.base_dir is not None and not path.is_absolute():
            path = self.base_dir / path
        return path

    def _apply_lookup(self, lookup: str, arg: str) -> str:
        try:
            if lookup == "readFile":
                return self._path(arg).read_text(encoding="utf-8")
            if lookup == "fileBase64":
                return base64.b64encode(self._path(arg).read_bytes()).decode("ascii")
            if lookup == "base64":
                return base64.b64encode(arg.encode("utf-8")).decode("ascii")
            if lookup == "decodeBase64":
                return base64.b64decode(arg).decode("utf-8")
            if lookup == "trim":
                return arg.strip()
            if lookup == "json":
                key, _, text = arg.partition(":")
                value = json.loads(text)[key]
                return value if isinstance(value, str) else json.dumps(value)
        except (OSError, ValueError, KeyError) as e:
            raise CascError(f"cannot evaluate ${{{lookup}:...}}: {e}") from e
        raise CascError(f"unknown lookup {lookup!r}")


def _body_bindings(body: str, path: str) -> list[EnvironmentBinding]:
    name, arg, default = split_placeholder(body)
    if arg is not None:
        return find_bindings(arg, path)
    if VAR_NAME_RE.match(name):
        return [EnvironmentBinding(name=name, default=default, path=path)]
    return find_bindings(name, path)


def find_bindings(tree: tp.Any, prefix: str = "") -> list[EnvironmentBinding]:
    """Найти все ссылки на переменные окружения (без lookup-ов и экранированных).

    Переменные внутри значения по умолчанию не учитываются: они нужны, только
    если не задана основная.
    """
    bindings: list[EnvironmentBinding] = []
    if isinstance(tree, dict):
        for key, value in tree.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            bindings.extend(find_bindings(value, path))
    elif isinstance(tree, list):
        for index, value in enumerate(tree):
            bindings.extend(find_bindings(value, f"{prefix}[{index}]"))
    elif isinstance(tree, str):
        for kind, body in scan(tree):
            if kind == "placeholder":
                bindings.extend(_body_bindings(body, prefix))
    return bindings
