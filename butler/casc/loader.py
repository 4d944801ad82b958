"""Загрузчик configuration-as-code: источники -> слияние -> подстановка -> модель."""

import os
import pathlib
import typing as tp

import requests
import yaml
from rich.console import Console

from butler import config
from butler.casc.merger import ERROR_ON_CONFLICT, merge_documents
from butler.casc.secrets import SecretResolver, find_bindings
from butler.casc.sources import CascError, default_spec, discover_sources, is_url
from butler.models import ConfigDocument, JenkinsConfiguration, LoadedConfiguration

console = Console(stderr=True)

ROOT_ELEMENTS = (
    "jenkins",
    "credentials",
    "security",
    "unclassified",
    "tool",
    "jobs",
    "appearance",
)


class ConfigurationLoader:
    """Повторяет то, что делает плагин configuration-as-code при старте Jenkins."""

    def __init__(
        self,
        env: tp.Optional[tp.Mapping[str, str]] = None,
        strategy: tp.Optional[str] = None,
        root_elements: tp.Sequence[str] = ROOT_ELEMENTS,
        session: tp.Optional[requests.Session] = None,
    ):
        self.env = dict(os.environ if env is None else env)
        self.strategy = strategy or self.env.get(config.MERGE_STRATEGY_ENV, ERROR_ON_CONFLICT)
        self.root_elements = tuple(root_elements)
        self.session = session

    def read_document(self, source: str) -> ConfigDocument:
        if is_url(source):
            http = self.session or requests.Session()
            try:
                response = http.get(source, timeout=config.HTTP_TIMEOUT)
                response.raise_for_status()
            except requests.RequestException as e:
                raise CascError(f"cannot fetch {source}: {e}") from e
            text = response.text
        else:
            try:
                text = pathlib.Path(source).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise CascError(f"cannot read {source}: {e}") from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise CascError(f"malformed YAML in {source}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise CascError(f"{source}: top level must be a mapping, got {type(data).__name__}")
        return ConfigDocument(source=source, data=data)

    def merge(self, sources: tp.Sequence[str]) -> dict[str, tp.Any]:
        docs = [self.read_document(s) for s in sources]
        merged = merge_documents(docs, self.strategy)
        unknown = [key for key in merged if key not in self.root_elements]
        if unknown:
            raise CascError(f"no configurator for root element(s): {', '.join(map(str, unknown))}")
        return merged

    def load(
        self,
        spec: tp.Optional[tp.Union[str, pathlib.Path, tp.Sequence[str]]] = None,
        base: tp.Optional[pathlib.Path] = None,
    ) -> LoadedConfiguration:
        if spec is None:
            spec = default_spec(self.env)
        sources = discover_sources(spec, base)
        if not sources:
            raise CascError(f"no YAML files found in {spec}")

        raw = self.merge(sources)

        first_local = next((s for s in sources if not is_url(s)), None)
        resolver = SecretResolver(
            env=self.env,
            base_dir=pathlib.Path(first_local).parent if first_local else None,
        )
        resolved = resolver.resolve_tree(raw)

        try:
            configuration = JenkinsConfiguration.from_tree(resolved)
        except ValueError as e:
            raise CascError(str(e)) from e

        console.print(f"[green]Загружено источников CasC:[/green] {len(sources)}")
        return LoadedConfiguration(
            sources=sources,
            raw=raw,
            resolved=resolved,
            bindings=find_bindings(raw),
            configuration=configuration,
        )


def dump_tree(tree: dict[str, tp.Any]) -> str:
    return yaml.safe_dump(
        tree, default_flow_style=False, width=10000, allow_unicode=True, sort_keys=False
    )
