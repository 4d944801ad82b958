#!/usr/bin/env python3
"""Генератор Markdown-документации для Pydantic моделей butler.

Скрипт генерирует `docs/auto_project_schema.md`: таблицы полей `ProjectSchema`
(результат `butler analyze`) и `DeploymentSpec` с типами и описаниями.

Запуск:
    python scripts/generate_project_schema_docs.py

"""

import json
import pathlib
from typing import Any, Dict, Type

from pydantic import BaseModel

from butler.models import DeploymentSpec, ImageSpec, ProjectSchema

OUT = pathlib.Path("docs/auto_project_schema.md")
MODELS: list[Type[BaseModel]] = [ProjectSchema, DeploymentSpec, ImageSpec]


def _type_name(info: Dict[str, Any]) -> str:
    if "type" in info:
        return info["type"]
    if "$ref" in info:
        return info["$ref"].rsplit("/", 1)[-1]
    if "anyOf" in info:
        return " | ".join(_type_name(i) for i in info["anyOf"])
    return ""


def render_model(model: Type[BaseModel]) -> list[str]:
    schema = model.model_json_schema()
    props = schema.get("properties") or {}
    required = set(schema.get("required") or [])

    lines = [f"## {model.__name__}", ""]
    if model.__doc__:
        lines += [model.__doc__.strip(), ""]
    lines.append("| Поле | Тип | Обязательное | Описание |")
    lines.append("|---|---|---|---|")
    for name, info in props.items():
        req = "Да" if name in required else "Нет"
        lines.append(
            f"| `{name}` | `{_type_name(info)}` | {req} | {info.get('description', '')} |"
        )

    skeleton = {name: info.get("default") for name, info in props.items()}
    lines.append("\n### Пример JSON (скелет)")
    lines.append("```json")
    lines.append(json.dumps(skeleton, indent=2, ensure_ascii=False, default=str))
    lines.append("```")
    lines.append("")
    return lines


def main() -> int:
    lines = ["# Модели butler — автосгенерированная документация", ""]
    for model in MODELS:
        lines += render_model(model)
    OUT.parent.mkdir(parents=True, exist_ok=True)
    OUT.write_text("\n".join(lines), encoding="utf-8")
    print(f"Сгенерирован {OUT}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
