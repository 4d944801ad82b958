"""Слияние нескольких YAML-документов в одно дерево конфигурации."""

import copy
import typing as tp

from butler.casc.sources import CascError
from butler.models import ConfigDocument

ERROR_ON_CONFLICT = "errorOnConflict"
OVERRIDE = "override"
STRATEGIES = (ERROR_ON_CONFLICT, OVERRIDE)


class MergeConflictError(CascError):
    """Два источника задают разные значения для одного ключа."""

    def __init__(self, path: str, first: str, second: str):
        self.path = path
        self.sources = (first, second)
        super().__init__(f"found conflicting configuration at {path} in {first} and {second}")


def merge_documents(
    docs: tp.Sequence[ConfigDocument], strategy: str = ERROR_ON_CONFLICT
) -> dict[str, tp.Any]:
    """Слить документы по порядку.

    Словари сливаются рекурсивно, списки склеиваются. Для разных скаляров
    стратегия errorOnConflict бросает MergeConflictError, override берёт
    значение из более позднего документа.
    """
    if strategy not in STRATEGIES:
        raise CascError(f"unknown merge strategy {strategy!r}, expected one of {STRATEGIES}")

    merged: dict[str, tp.Any] = {}
    # откуда пришёл каждый скаляр, чтобы назвать оба файла в ошибке
    origins: dict[str, str] = {}
    for doc in docs:
        _merge(merged, doc.data, "", doc.source, origins, strategy)
    return merged


def _merge(
    target: dict,
    incoming: dict,
    prefix: str,
    source: str,
    origins: dict[str, str],
    strategy: str,
) -> None:
    for key, value in incoming.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if key not in target:
            target[key] = copy.deepcopy(value)
            _record(value, path, source, origins)
            continue

        current = target[key]
        if isinstance(current, dict) and isinstance(value, dict):
            _merge(current, value, path, source, origins, strategy)
        elif isinstance(current, list) and isinstance(value, list):
            current.extend(copy.deepcopy(value))
        elif current == value:
            continue
        elif strategy == OVERRIDE:
            target[key] = copy.deepcopy(value)
            _record(value, path, source, origins)
        else:
            raise MergeConflictError(path, origins.get(path, "<unknown>"), source)


def _record(value: tp.Any, path: str, source: str, origins: dict[str, str]) -> None:
    origins[path] = source
    if isinstance(value, dict):
        for key, child in value.items():
            _record(child, f"{path}.{key}", source, origins)
