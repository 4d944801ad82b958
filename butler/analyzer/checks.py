"""Проверки готовности развёртывания Jenkins."""

import typing as tp

from pydantic import BaseModel, Field

from butler import config
from butler.casc.secrets import PLACEHOLDER_RE
from butler.models import DeploymentSpec, EnvironmentBinding, PluginManifest
from butler.models.casc import field_value, secret_field_names

PLUGIN_SUFFIXES = (".jpi", ".hpi")
RELAUNCHING_POLICIES = ("always", "unless-stopped")


class CheckResult(BaseModel):
    name: str = Field(..., description="Название проверки")
    ok: bool = Field(..., description="Проверка пройдена")
    details: list[str] = Field(default_factory=list, description="Подробности")


def installed_plugin_names(files: tp.Iterable[str]) -> set[str]:
    names = set()
    for f in files:
        for suffix in PLUGIN_SUFFIXES:
            if f.endswith(suffix):
                names.add(f[: -len(suffix)])
    return names


def check_plugins_in_image(manifest: PluginManifest, files: tp.Iterable[str]) -> CheckResult:
    installed = installed_plugin_names(files)
    missing = [name for name in manifest.names if name not in installed]
    details = [f"missing: {name}" for name in missing]
    # транзитивные зависимости тоже лежат в каталоге, поэтому лишнее - не ошибка
    extra = sorted(installed - set(manifest.names))
    if extra:
        details.append(f"not in manifest (dependencies or leftovers): {', '.join(extra)}")
    return CheckResult(name="plugins-in-image", ok=not missing, details=details)


def check_plugins_removed(removed: tp.Iterable[str], files: tp.Iterable[str]) -> CheckResult:
    installed = installed_plugin_names(files)
    still_there = sorted(set(removed) & installed)
    return CheckResult(
        name="plugins-removed",
        ok=not still_there,
        details=[f"still installed: {name}" for name in still_there],
    )


def check_placeholders_defined(
    bindings: tp.Iterable[EnvironmentBinding], environment: tp.Mapping[str, str]
) -> CheckResult:
    details = []
    for binding in bindings:
        if binding.has_default:
            continue
        if not environment.get(binding.name):
            details.append(f"{binding.name} is not set (used at {binding.path})")
    return CheckResult(name="placeholders-defined", ok=not details, details=details)


def _is_placeholder(value: tp.Any) -> bool:
    return isinstance(value, str) and PLACEHOLDER_RE.search(value) is not None


def _single_key(node: tp.Any) -> tuple[tp.Optional[str], tp.Any]:
    if isinstance(node, dict) and len(node) == 1:
        key, value = next(iter(node.items()))
        return key, value if isinstance(value, dict) else {}
    return None, None


def check_plaintext_secrets(tree: tp.Mapping[str, tp.Any]) -> CheckResult:
    """Секреты должны приходить из переменных окружения, а не лежать в YAML.

    Проверяется дерево до подстановки переменных. Типы полей здесь не
    приводятся: `numExecutors: ${N}` до подстановки - нормальная строка.
    """
    details = []
    system = ((tree.get("credentials") or {}).get("system")) or {}
    for domain_node in system.get("domainCredentials") or []:
        for cred in (domain_node or {}).get("credentials") or []:
            kind, options = _single_key(cred)
            if kind is None:
                continue
            for field in secret_field_names(kind, options):
                value = field_value(options, field)
                if value not in (None, "") and not _is_placeholder(value):
                    details.append(f"credential {options.get('id')!r}: {field} is a literal value")

    realm_kind, realm = _single_key((tree.get("jenkins") or {}).get("securityRealm"))
    if realm_kind == "local":
        for user in realm.get("users") or []:
            password = (user or {}).get("password")
            if password not in (None, "") and not _is_placeholder(password):
                details.append(f"user {user.get('id')!r}: password is a literal value")
    return CheckResult(name="no-plaintext-secrets", ok=not details, details=details)


def check_persistent_volume(
    deployment: DeploymentSpec, jenkins_home: str = config.JENKINS_HOME
) -> CheckResult:
    volume = deployment.volume_for(jenkins_home)
    if volume is None:
        return CheckResult(
            name="persistent-volume",
            ok=False,
            details=[f"{jenkins_home} is not mounted, data is lost on restart"],
        )
    if volume.read_only:
        return CheckResult(
            name="persistent-volume", ok=False, details=[f"{volume.short} is read-only"]
        )
    return CheckResult(name="persistent-volume", ok=True, details=[volume.short])


def check_restart_policy(deployment: DeploymentSpec) -> CheckResult:
    ok = deployment.restart in RELAUNCHING_POLICIES or deployment.restart.startswith(
        "on-failure"
    )
    return CheckResult(
        name="restart-policy",
        ok=ok,
        details=[f"restart: {deployment.restart}"],
    )


def check_port_exposed(deployment: DeploymentSpec, port: int = config.HTTP_PORT) -> CheckResult:
    for mapping in deployment.ports:
        if mapping.container != port:
            continue
        if mapping.host is None:
            return CheckResult(
                name="port-exposed",
                ok=False,
                details=[f"{mapping.short}: published on a random host port"],
            )
        return CheckResult(name="port-exposed", ok=True, details=[mapping.short])
    return CheckResult(
        name="port-exposed", ok=False, details=[f"container port {port} is not published"]
    )
