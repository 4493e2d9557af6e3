"""
Signature Database.
Read-only fingerprint tables loaded from YAML and injected into the analyzer and agent.
"""

from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.config import settings
from ..core.errors import ConfigurationError


DEFAULT_SIGNATURES_PATH = Path(__file__).resolve().parent.parent / "data" / "signatures.yaml"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class PluginMarkers(_Frozen):
    html_comments: tuple[str, ...] = ()
    headers: tuple[str, ...] = ()
    cookies: tuple[str, ...] = ()
    paths: tuple[str, ...] = ()


class PluginSignature(_Frozen):
    name: str
    category: str = ""
    signatures: PluginMarkers = Field(default_factory=PluginMarkers)


class HeaderMarkers(_Frozen):
    headers: tuple[str, ...] = ()
    server: str | None = None
    via: str | None = None


class CdnSignature(_Frozen):
    name: str
    signatures: HeaderMarkers = Field(default_factory=HeaderMarkers)


class ConflictRule(_Frozen):
    plugins: tuple[str, ...]
    severity: str = "medium"
    reason: str


class NamespacePlugin(_Frozen):
    name: str
    category: str | None = None


class ExperimentProbe(_Frozen):
    """A plugin-specific cache probe appended when its plugin is detected."""
    name: str
    description: str
    headers: dict[str, str] = Field(default_factory=dict)
    expected_behavior: str = ""


class SignatureDatabase(_Frozen):
    """All fingerprint tables."""
    plugins: dict[str, PluginSignature] = Field(default_factory=dict)
    cdns: dict[str, CdnSignature] = Field(default_factory=dict)
    server_cache: dict[str, CdnSignature] = Field(default_factory=dict)
    conflicts: tuple[ConflictRule, ...] = ()
    rest_namespaces: dict[str, NamespacePlugin] = Field(default_factory=dict)
    plugin_experiments: dict[str, tuple[ExperimentProbe, ...]] = Field(default_factory=dict)

    def experiments_for(self, plugin_slugs: list[str]) -> list[tuple[str, ExperimentProbe]]:
        """Plugin probes registered for any of the given slugs, in database order."""
        wanted = set(plugin_slugs)
        return [
            (slug, probe)
            for slug, probes in self.plugin_experiments.items()
            if slug in wanted
            for probe in probes
        ]


def load_signatures(path: str | Path | None = None) -> SignatureDatabase:
    """
    Load a signature database from YAML.

    Args:
        path: YAML file; falls back to the configured override, then the packaged copy

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    path = Path(path or settings.signatures_path or DEFAULT_SIGNATURES_PATH)
    try:
        with path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        return SignatureDatabase.model_validate(raw)
    except OSError as e:
        raise ConfigurationError(f"Cannot read signature database: {e}", {"path": str(path)}) from e
    except (yaml.YAMLError, ValidationError) as e:
        raise ConfigurationError(f"Invalid signature database: {e}", {"path": str(path)}) from e


@lru_cache(maxsize=1)
def default_signatures() -> SignatureDatabase:
    """The packaged database, loaded once per process."""
    return load_signatures(DEFAULT_SIGNATURES_PATH)
