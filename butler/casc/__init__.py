from butler.casc.client import JenkinsApiError, JenkinsClient
from butler.casc.loader import ROOT_ELEMENTS, ConfigurationLoader, dump_tree
from butler.casc.merger import (
    ERROR_ON_CONFLICT,
    OVERRIDE,
    MergeConflictError,
    merge_documents,
)
from butler.casc.secrets import (
    SecretResolver,
    UnresolvedPlaceholderError,
    find_bindings,
)
from butler.casc.sources import CascError, default_spec, discover_sources

__all__ = [
    "CascError",
    "ConfigurationLoader",
    "ERROR_ON_CONFLICT",
    "JenkinsApiError",
    "JenkinsClient",
    "MergeConflictError",
    "OVERRIDE",
    "ROOT_ELEMENTS",
    "SecretResolver",
    "UnresolvedPlaceholderError",
    "default_spec",
    "discover_sources",
    "dump_tree",
    "find_bindings",
    "merge_documents",
]
