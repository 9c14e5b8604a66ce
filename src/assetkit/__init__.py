"""Core package for the assetkit project."""

from .cli import app, run
from .config import Config, ConfigError, Layout, ScopeConfig, Settings
from .context import WebContext
from .errors import AssetkitError, ResourceNotFoundError
from .extract import (
    copy_resource_to,
    copy_resources_to,
    discover_web_jars,
    extract_node_modules,
    extract_web_jars,
    filter_web_jars,
)
from .incremental import run_incremental
from .manager import AssetsManager
from .manifest import Manifest
from .models import (
    FileStamp,
    Fingerprint,
    IncrementalResult,
    OpFailure,
    OpSuccess,
    PathMapping,
    Scope,
    SyncAction,
    SyncResult,
)
from .namespace import DirectoryNamespace, Resource, ResourceNamespace, WebJarNamespace
from .store import FingerprintStore
from .sync import DirectorySynchronizer, sync_mappings

__all__ = [
    "Config",
    "ConfigError",
    "Layout",
    "ScopeConfig",
    "Settings",
    "WebContext",
    "AssetkitError",
    "ResourceNotFoundError",
    "copy_resource_to",
    "copy_resources_to",
    "discover_web_jars",
    "extract_node_modules",
    "extract_web_jars",
    "filter_web_jars",
    "run_incremental",
    "AssetsManager",
    "Manifest",
    "FileStamp",
    "Fingerprint",
    "IncrementalResult",
    "OpFailure",
    "OpSuccess",
    "PathMapping",
    "Scope",
    "SyncAction",
    "SyncResult",
    "DirectoryNamespace",
    "Resource",
    "ResourceNamespace",
    "WebJarNamespace",
    "FingerprintStore",
    "DirectorySynchronizer",
    "sync_mappings",
    "app",
    "run",
]
