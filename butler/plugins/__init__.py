from butler.plugins.manifest import (
    ManifestError,
    diff_manifests,
    load_manifest,
    parse_manifest,
    render_manifest,
)
from butler.plugins.resolver import (
    PluginInstaller,
    PluginResolutionError,
    PluginResolver,
    UpdateCenter,
)

__all__ = [
    "ManifestError",
    "PluginInstaller",
    "PluginResolutionError",
    "PluginResolver",
    "UpdateCenter",
    "diff_manifests",
    "load_manifest",
    "parse_manifest",
    "render_manifest",
]
