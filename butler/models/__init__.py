"""Pydantic модели для плагинов, конфигурации и развёртывания Jenkins."""

from butler.models.plugin import (
    ManifestDiff,
    PluginEntry,
    PluginManifest,
    ResolvedPlugin,
)
from butler.models.casc import (
    AuthorizationStrategy,
    ConfigDocument,
    CredentialEntry,
    CredentialScope,
    EnvironmentBinding,
    JenkinsConfiguration,
    LoadedConfiguration,
    LocalUser,
    SecurityRealm,
)
from butler.models.deploy import (
    DeploymentSpec,
    ImageSpec,
    PortMapping,
    ProjectSchema,
    VolumeMount,
)

__all__ = [
    "AuthorizationStrategy",
    "ConfigDocument",
    "CredentialEntry",
    "CredentialScope",
    "DeploymentSpec",
    "EnvironmentBinding",
    "ImageSpec",
    "JenkinsConfiguration",
    "LoadedConfiguration",
    "LocalUser",
    "ManifestDiff",
    "PluginEntry",
    "PluginManifest",
    "PortMapping",
    "ProjectSchema",
    "ResolvedPlugin",
    "SecurityRealm",
    "VolumeMount",
]
