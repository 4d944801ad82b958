from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class CredentialScope(str, Enum):
    GLOBAL = "GLOBAL"
    SYSTEM = "SYSTEM"
    USER = "USER"


# поля, в которых CasC хранит секреты для известных типов учётных данных
SECRET_FIELDS: dict[str, tuple[str, ...]] = {
    "usernamePassword": ("password",),
    "string": ("secret",),
    "basicSSHUserPrivateKey": ("privateKey", "passphrase"),
    "file": ("secretBytes",),
    "certificate": ("password", "keyStoreSource"),
    "aws": ("secretKey",),
    "gitHubApp": ("privateKey",),
}


def secret_field_names(kind: str, node: dict) -> list[str]:
    """Поля записи типа kind, в которых лежат секреты (вложенные - через точку)."""
    node = node or {}
    present = [f for f in SECRET_FIELDS.get(kind, ()) if f in node]
    if kind == "basicSSHUserPrivateKey":
        direct = (node.get("privateKeySource") or {}).get("directEntry") or {}
        if "privateKey" in direct:
            present.append("privateKeySource.directEntry.privateKey")
    return present


def field_value(node: Any, dotted: str) -> Any:
    value = node
    for part in dotted.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


class ConfigDocument(BaseModel):
    """Один YAML-документ конфигурации."""

    source: str = Field(..., description="Файл или URL, из которого прочитан документ")
    data: dict[str, Any] = Field(default_factory=dict, description="Содержимое")


class EnvironmentBinding(BaseModel):
    """Ссылка на переменную окружения внутри конфигурации."""

    name: str = Field(..., description="Имя переменной")
    default: Optional[str] = Field(None, description="Значение по умолчанию (${VAR:-x})")
    path: str = Field(..., description="Путь внутри дерева, например jenkins.systemMessage")

    @property
    def has_default(self) -> bool:
        return self.default is not None


class CredentialEntry(BaseModel):
    """Учётные данные из секции credentials."""

    id: str = Field(..., description="Идентификатор учётных данных")
    kind: str = Field(..., description="Тип: usernamePassword, string, ...")
    scope: CredentialScope = Field(CredentialScope.GLOBAL, description="Область видимости")
    description: Optional[str] = Field(None, description="Описание")
    domain: Optional[str] = Field(None, description="Домен (None для глобального)")
    secret_fields: list[str] = Field(
        default_factory=list, description="Поля с секретным содержимым"
    )
    fields: dict[str, Any] = Field(default_factory=dict, description="Все поля записи")

    @classmethod
    def from_node(cls, kind: str, node: dict, domain: Optional[str] = None) -> "CredentialEntry":
        node = node or {}
        return cls(
            id=str(node.get("id", "")),
            kind=kind,
            scope=CredentialScope(str(node.get("scope", "GLOBAL")).upper()),
            description=node.get("description"),
            domain=domain,
            secret_fields=secret_field_names(kind, node),
            fields=node,
        )

    def secret(self, field: str) -> Any:
        return field_value(self.fields, field)


class LocalUser(BaseModel):
    id: str
    password: Optional[str] = None
    name: Optional[str] = None


class SecurityRealm(BaseModel):
    """Настройки security realm."""

    kind: str = Field(..., description="local, ldap, ...")
    allows_signup: bool = Field(False)
    users: list[LocalUser] = Field(default_factory=list)
    options: dict[str, Any] = Field(default_factory=dict)


class AuthorizationStrategy(BaseModel):
    kind: str = Field(..., description="loggedInUsersCanDoAnything, globalMatrix, ...")
    options: dict[str, Any] = Field(default_factory=dict)


class JenkinsConfiguration(BaseModel):
    """Типизированное представление итоговой конфигурации."""

    system_message: Optional[str] = None
    num_executors: Optional[int] = None
    mode: Optional[str] = None
    location_url: Optional[str] = None
    admin_email: Optional[str] = None
    security_realm: Optional[SecurityRealm] = None
    authorization: Optional[AuthorizationStrategy] = None
    credentials: list[CredentialEntry] = Field(default_factory=list)
    tree: dict[str, Any] = Field(default_factory=dict)

    @property
    def users(self) -> list[LocalUser]:
        if self.security_realm is None:
            return []
        return self.security_realm.users

    def user(self, user_id: str) -> Optional[LocalUser]:
        for u in self.users:
            if u.id == user_id:
                return u
        return None

    def credential(self, cred_id: str) -> Optional[CredentialEntry]:
        for c in self.credentials:
            if c.id == cred_id:
                return c
        return None

    @classmethod
    def from_tree(cls, tree: dict[str, Any]) -> "JenkinsConfiguration":
        jenkins = tree.get("jenkins") or {}
        unclassified = tree.get("unclassified") or {}
        location = unclassified.get("location") or {}

        num_executors = jenkins.get("numExecutors")
        return cls(
            system_message=jenkins.get("systemMessage"),
            num_executors=int(num_executors) if num_executors is not None else None,
            mode=jenkins.get("mode"),
            location_url=location.get("url"),
            admin_email=location.get("adminAddress"),
            security_realm=_security_realm(jenkins.get("securityRealm")),
            authorization=_authorization(jenkins.get("authorizationStrategy")),
            credentials=_credentials(tree.get("credentials") or {}),
            tree=tree,
        )


def _single_key(node: Any) -> tuple[Optional[str], Any]:
    # CasC описывает реализацию как строку ("unsecured") или как {имя: опции}
    if isinstance(node, str):
        return node, {}
    if isinstance(node, dict) and len(node) == 1:
        key, value = next(iter(node.items()))
        return key, value or {}
    return None, None


def _security_realm(node: Any) -> Optional[SecurityRealm]:
    kind, options = _single_key(node)
    if kind is None:
        return None
    if kind == "local":
        users = [
            LocalUser(
                id=str(u.get("id")),
                password=None if u.get("password") is None else str(u.get("password")),
                name=u.get("name"),
            )
            for u in options.get("users") or []
        ]
        return SecurityRealm(
            kind=kind,
            allows_signup=bool(options.get("allowsSignup", False)),
            users=users,
            options=options,
        )
    return SecurityRealm(kind=kind, options=options if isinstance(options, dict) else {})


def _authorization(node: Any) -> Optional[AuthorizationStrategy]:
    kind, options = _single_key(node)
    if kind is None:
        return None
    return AuthorizationStrategy(
        kind=kind, options=options if isinstance(options, dict) else {}
    )


def _credentials(node: dict[str, Any]) -> list[CredentialEntry]:
    result: list[CredentialEntry] = []
    system = node.get("system") or {}
    for domain_node in system.get("domainCredentials") or []:
        domain = (domain_node.get("domain") or {}).get("name")
        for cred in domain_node.get("credentials") or []:
            kind, options = _single_key(cred)
            if kind is None:
                raise ValueError(f"credential must be a single-key mapping: {cred!r}")
            result.append(CredentialEntry.from_node(kind, options, domain))
    return result


class LoadedConfiguration(BaseModel):
    """Результат работы загрузчика configuration-as-code."""

    sources: list[str] = Field(default_factory=list, description="Прочитанные источники")
    raw: dict[str, Any] = Field(default_factory=dict, description="Дерево до подстановки")
    resolved: dict[str, Any] = Field(default_factory=dict, description="Дерево после подстановки")
    bindings: list[EnvironmentBinding] = Field(default_factory=list)
    configuration: JenkinsConfiguration = Field(default_factory=JenkinsConfiguration)
