import pathlib
import re
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from butler import config

RESTART_RE = re.compile(r"^(no|always|unless-stopped|on-failure(:\d+)?)$")
MEMORY_RE = re.compile(r"^\d+(\.\d+)?[bkmgBKMG]?$")


class PortMapping(BaseModel):
    """Проброс порта host -> container."""

    host: Optional[int] = Field(
        None, ge=1, le=65535, description="Порт на хосте (None - случайный порт)"
    )
    container: int = Field(..., ge=1, le=65535, description="Порт в контейнере")
    protocol: Literal["tcp", "udp"] = Field("tcp", description="Протокол")
    host_ip: Optional[str] = Field(None, description="Адрес на хосте")

    @property
    def short(self) -> str:
        value = f"{self.host or ''}:{self.container}"
        if self.host_ip:
            value = f"{self.host_ip}:{value}"
        elif self.host is None:
            value = str(self.container)
        if self.protocol != "tcp":
            value += f"/{self.protocol}"
        return value

    @classmethod
    def parse(cls, raw: Union[str, int, dict]) -> "PortMapping":
        if isinstance(raw, dict):
            return cls(
                host=int(raw["published"]) if raw.get("published") else None,
                container=int(raw["target"]),
                protocol=raw.get("protocol", "tcp"),
                host_ip=raw.get("host_ip"),
            )
        value = str(raw)
        protocol = "tcp"
        if "/" in value:
            value, protocol = value.split("/", 1)
        parts = value.split(":")
        if len(parts) == 1:
            return cls(container=int(parts[0]), protocol=protocol)
        if len(parts) == 2:
            return cls(host=int(parts[0]), container=int(parts[1]), protocol=protocol)
        host_ip = ":".join(parts[:-2])
        return cls(
            host=int(parts[-2]) if parts[-2] else None,
            container=int(parts[-1]),
            protocol=protocol,
            host_ip=host_ip,
        )


class VolumeMount(BaseModel):
    """Том или bind-mount."""

    source: str = Field(..., description="Имя тома или путь на хосте")
    target: str = Field(..., description="Путь в контейнере")
    read_only: bool = Field(False)

    @property
    def is_named(self) -> bool:
        return not (
            self.source.startswith(("/", ".", "~")) or "/" in self.source
        )

    @property
    def short(self) -> str:
        value = f"{self.source}:{self.target}"
        return value + ":ro" if self.read_only else value

    @classmethod
    def parse(cls, raw: Union[str, dict]) -> "VolumeMount":
        if isinstance(raw, dict):
            if not raw.get("source"):
                raise ValueError(f"anonymous volumes are not persistent: {raw!r}")
            return cls(
                source=str(raw["source"]),
                target=str(raw["target"]),
                read_only=bool(raw.get("read_only", False)),
            )
        parts = str(raw).split(":")
        if len(parts) == 1:
            raise ValueError(f"anonymous volumes are not persistent: {raw!r}")
        read_only = len(parts) > 2 and parts[2] == "ro"
        return cls(source=parts[0], target=parts[1], read_only=read_only)


class ImageSpec(BaseModel):
    """Параметры сборки образа Jenkins."""

    base_image: str = Field(config.BASE_IMAGE, description="Базовый образ")
    tag: str = Field(config.IMAGE_TAG, description="Тег собираемого образа")
    java_opts: str = Field(
        "-Djenkins.install.runSetupWizard=false", description="JAVA_OPTS"
    )
    apt_packages: list[str] = Field(
        default_factory=lambda: ["git", "curl"], description="Пакеты, ставящиеся от root"
    )
    plugins_file: str = Field("plugins.txt", description="Манифест плагинов в контексте сборки")
    casc_dir: Optional[str] = Field("casc", description="Каталог CasC в контексте сборки")
    casc_path: str = Field(config.CONTAINER_CASC_PATH, description="Каталог CasC в образе")
    exposed_ports: list[int] = Field(
        default_factory=lambda: [config.HTTP_PORT, config.AGENT_PORT]
    )


class DeploymentSpec(BaseModel):
    """Сервис Jenkins в docker-compose файле."""

    service: str = Field("jenkins", description="Имя сервиса")
    image: str = Field(config.IMAGE_TAG, description="Образ")
    build_context: Optional[str] = Field(".", description="Контекст сборки")
    dockerfile: Optional[str] = Field(None, description="Путь до Dockerfile")
    container_name: Optional[str] = Field(config.JENKINS_CONTAINER)
    ports: list[PortMapping] = Field(default_factory=list)
    volumes: list[VolumeMount] = Field(default_factory=list)
    mem_limit: Optional[str] = Field(None, description="Ограничение памяти, например 2g")
    cpus: Optional[float] = Field(None, gt=0, description="Доля CPU")
    restart: str = Field("unless-stopped", description="Политика перезапуска")
    environment: dict[str, str] = Field(default_factory=dict)
    env_file: list[str] = Field(default_factory=list)

    @field_validator("restart")
    @classmethod
    def _check_restart(cls, value: str) -> str:
        if not RESTART_RE.match(value):
            raise ValueError(f"unknown restart policy: {value!r}")
        return value

    @field_validator("mem_limit")
    @classmethod
    def _check_memory(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not MEMORY_RE.match(value):
            raise ValueError(f"invalid memory limit: {value!r}")
        return value

    @property
    def named_volumes(self) -> list[str]:
        return [v.source for v in self.volumes if v.is_named]

    def volume_for(self, target: str) -> Optional[VolumeMount]:
        for v in self.volumes:
            if v.target.rstrip("/") == target.rstrip("/"):
                return v
        return None

    @classmethod
    def default(cls) -> "DeploymentSpec":
        return cls(
            ports=[
                PortMapping(host=config.HTTP_PORT, container=config.HTTP_PORT),
                PortMapping(host=config.AGENT_PORT, container=config.AGENT_PORT),
            ],
            volumes=[VolumeMount(source="jenkins_home", target=config.JENKINS_HOME)],
            mem_limit="2g",
            cpus=1.0,
            environment={
                "CASC_JENKINS_CONFIG": config.CONTAINER_CASC_PATH,
                "ADMIN_USER": "${ADMIN_USER:-admin}",
                "ADMIN_PASSWORD": "${ADMIN_PASSWORD}",
                "GIT_TOKEN": "${GIT_TOKEN}",
            },
            env_file=[".env"],
        )

    @classmethod
    def from_compose(
        cls, compose: dict[str, Any], service: Optional[str] = None
    ) -> "DeploymentSpec":
        services = compose.get("services") or {}
        if not services:
            raise ValueError("compose file has no services")
        if service is None:
            service = "jenkins" if "jenkins" in services else next(iter(services))
        if service not in services:
            raise ValueError(f"service {service!r} not found in compose file")
        node = services[service] or {}

        build = node.get("build")
        build_context, dockerfile = None, None
        if isinstance(build, str):
            build_context = build
        elif isinstance(build, dict):
            build_context = build.get("context", ".")
            dockerfile = build.get("dockerfile")

        environment = node.get("environment") or {}
        if isinstance(environment, list):
            pairs = {}
            for item in environment:
                key, _, value = str(item).partition("=")
                pairs[key] = value
            environment = pairs

        env_file = node.get("env_file") or []
        if isinstance(env_file, str):
            env_file = [env_file]
        env_file = [e["path"] if isinstance(e, dict) else e for e in env_file]

        limits = ((node.get("deploy") or {}).get("resources") or {}).get("limits") or {}
        mem_limit = node.get("mem_limit") or limits.get("memory")
        cpus = node.get("cpus") or limits.get("cpus")
        # YAML 1.1 читает `restart: no` как False, compose - как строку
        restart = node.get("restart", "no")
        if restart is False:
            restart = "no"

        return cls(
            service=service,
            image=node.get("image") or f"{service}:latest",
            build_context=build_context,
            dockerfile=dockerfile,
            container_name=node.get("container_name"),
            ports=[PortMapping.parse(p) for p in node.get("ports") or []],
            volumes=[VolumeMount.parse(v) for v in node.get("volumes") or []],
            mem_limit=None if mem_limit is None else str(mem_limit),
            cpus=None if cpus is None else float(cpus),
            restart=str(restart),
            environment={str(k): "" if v is None else str(v) for k, v in environment.items()},
            env_file=list(env_file),
        )


class ProjectSchema(BaseModel):
    """Схема каталога с описанием развёртывания Jenkins."""

    root: pathlib.Path = Field(..., description="Корень проекта")
    dockerfile: Optional[str] = Field(None, description="Путь до Dockerfile")
    plugins_file: Optional[str] = Field(None, description="Путь до plugins.txt")
    casc_sources: list[str] = Field(
        default_factory=list, description="Найденные YAML-файлы CasC"
    )
    casc_dir: Optional[str] = Field(None, description="Каталог CasC")
    compose_file: Optional[str] = Field(None, description="Путь до docker-compose файла")
    env_files: list[str] = Field(default_factory=list, description="Найденные .env файлы")
    plugins: list[str] = Field(default_factory=list, description="Плагины из манифеста")
    deployment: Optional[DeploymentSpec] = Field(None, description="Сервис из compose")
