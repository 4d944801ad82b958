import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PLUGIN_NAME_RE = re.compile(r"^[A-Za-z0-9_.\-]+$")


class PluginEntry(BaseModel):
    """Строка манифеста плагинов: name[:version[:url]]."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Идентификатор плагина (artifactId)")
    version: Optional[str] = Field(
        None, description="Версия: номер, latest, experimental или incrementals;..."
    )
    url: Optional[str] = Field(None, description="Явный URL для скачивания")

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not PLUGIN_NAME_RE.match(value):
            raise ValueError(f"invalid plugin id: {value!r}")
        return value

    @property
    def spec(self) -> str:
        parts = [self.name]
        if self.version or self.url:
            parts.append(self.version or "")
        if self.url:
            parts.append(self.url)
        return ":".join(parts)

    @property
    def is_pinned(self) -> bool:
        return self.version not in (None, "", "latest")

    @property
    def is_experimental(self) -> bool:
        return self.version == "experimental"

    @property
    def is_incremental(self) -> bool:
        return bool(self.version) and self.version.startswith("incrementals;")


class PluginManifest(BaseModel):
    """Манифест плагинов (plugins.txt)."""

    entries: list[PluginEntry] = Field(
        default_factory=list, description="Плагины в порядке первого упоминания"
    )
    warnings: list[str] = Field(
        default_factory=list, description="Предупреждения, собранные при разборе"
    )

    @property
    def names(self) -> list[str]:
        return [e.name for e in self.entries]

    def get(self, name: str) -> Optional[PluginEntry]:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def __contains__(self, name: object) -> bool:
        return any(e.name == name for e in self.entries)

    def __len__(self) -> int:
        return len(self.entries)


class ResolvedPlugin(BaseModel):
    """Плагин после разрешения зависимостей."""

    name: str = Field(..., description="Идентификатор плагина")
    version: str = Field(..., description="Конкретная версия")
    url: str = Field(..., description="URL для скачивания .hpi")
    sha256: Optional[str] = Field(None, description="Контрольная сумма (base64)")
    requested: bool = Field(
        True, description="Плагин указан в манифесте явно, а не пришёл транзитивно"
    )
    required_by: list[str] = Field(
        default_factory=list, description="Плагины, которые от него зависят"
    )

    @property
    def filename(self) -> str:
        return f"{self.name}.jpi"


class ManifestDiff(BaseModel):
    """Разница между двумя манифестами."""

    added: list[PluginEntry] = Field(default_factory=list)
    removed: list[PluginEntry] = Field(default_factory=list)
    changed: list[tuple[PluginEntry, PluginEntry]] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)
