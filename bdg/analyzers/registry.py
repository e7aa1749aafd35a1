"""npm and crates.io registry lookups."""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from .. import __version__
from ..config import DEFAULT_REGISTRY_TIMEOUT
from ..logging import get_logger
from ..models import Fact
from ..project import ProjectContext
from .base import Analyzer
from .manifests import FACT_CRATES, FACT_MOONBIT, FACT_NPM, ManifestAnalyzer

FACT_REGISTRY_NPM = "registry.npm"
FACT_REGISTRY_CRATES = "registry.crates"
FACT_REGISTRY_MOONBIT = "registry.moonbit"

NPM_REGISTRY_URL = "https://registry.npmjs.org"
CRATES_API_URL = "https://crates.io/api/v1/crates"

REASON_NETWORK = "network"
REASON_DISABLED = "disabled"

Opener = Callable[[Request, float], bytes]

logger = get_logger("analyzers.registry")


class RegistryError(RuntimeError):
    """Raised when a registry lookup fails or returns unusable data."""


@dataclass(frozen=True)
class RegistryMetadata:
    """Subset of registry metadata bdg displays and badges."""

    version: Optional[str] = None
    license: Optional[str] = None
    repository: Optional[str] = None
    description: Optional[str] = None
    homepage: Optional[str] = None
    downloads: Optional[int] = None


def _default_opener(request: Request, timeout: float) -> bytes:
    with urlopen(request, timeout=timeout) as response:  # type: ignore[arg-type]
        return response.read()


class RegistryClient:
    """Fetches package metadata over HTTP through an injectable opener."""

    def __init__(
        self,
        opener: Optional[Opener] = None,
        timeout: float = DEFAULT_REGISTRY_TIMEOUT,
    ) -> None:
        self._opener = opener or _default_opener
        self.timeout = timeout

    def fetch_npm(self, package: str) -> RegistryMetadata:
        payload = self._get_json(f"{NPM_REGISTRY_URL}/{quote(package, safe='@')}")
        dist_tags = payload.get("dist-tags")
        version = None
        if isinstance(dist_tags, dict):
            version = _text(dist_tags.get("latest"))
        repository = payload.get("repository")
        if isinstance(repository, dict):
            repository = repository.get("url")
        return RegistryMetadata(
            version=version or _text(payload.get("version")),
            license=_text(payload.get("license")),
            repository=_text(repository),
            description=_text(payload.get("description")),
            homepage=_text(payload.get("homepage")),
        )

    def fetch_crates(self, crate: str) -> RegistryMetadata:
        payload = self._get_json(f"{CRATES_API_URL}/{quote(crate, safe='')}")
        data = payload.get("crate")
        if not isinstance(data, dict):
            raise RegistryError(f"crates.io response for '{crate}' has no crate object")
        versions = payload.get("versions")
        license_text = None
        if isinstance(versions, list) and versions and isinstance(versions[0], dict):
            license_text = _text(versions[0].get("license"))
        downloads = data.get("downloads")
        return RegistryMetadata(
            version=_text(data.get("max_stable_version")) or _text(data.get("max_version")),
            license=_text(data.get("license")) or license_text,
            repository=_text(data.get("repository")),
            description=_text(data.get("description")),
            homepage=_text(data.get("homepage")),
            downloads=downloads if isinstance(downloads, int) else None,
        )

    def _get_json(self, url: str) -> Dict[str, Any]:
        request = Request(
            url,
            headers={"Accept": "application/json", "User-Agent": f"bdg/{__version__}"},
        )
        try:
            raw = self._opener(request, self.timeout)
        except HTTPError as exc:
            raise RegistryError(f"{url} returned HTTP {exc.code}") from exc
        except (URLError, OSError) as exc:
            raise RegistryError(f"{url} is unreachable: {exc}") from exc
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise RegistryError(f"{url} returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise RegistryError(f"{url} returned an unexpected payload")
        return payload


class RegistryAnalyzer(Analyzer):
    """Look up published versions for the project's packages concurrently."""

    name = "registry"

    def __init__(
        self,
        client: Optional[RegistryClient] = None,
        *,
        manifests: Optional[ManifestAnalyzer] = None,
        max_workers: int = 4,
    ) -> None:
        self.client = client or RegistryClient()
        self._manifests = manifests or ManifestAnalyzer()
        self.max_workers = max_workers

    def supports(self, context: ProjectContext) -> bool:
        return self._manifests.supports(context)

    def analyze(self, context: ProjectContext) -> Iterable[Fact]:
        lookups: List[Tuple[str, str, Callable[[str], RegistryMetadata]]] = []
        facts: List[Fact] = []
        for manifest in self._manifests.analyze(context):
            if manifest.name == FACT_NPM:
                lookups.append((FACT_REGISTRY_NPM, manifest.value, self.client.fetch_npm))
            elif manifest.name == FACT_CRATES:
                lookups.append((FACT_REGISTRY_CRATES, manifest.value, self.client.fetch_crates))
            elif manifest.name == FACT_MOONBIT:
                facts.append(
                    Fact(
                        name=FACT_REGISTRY_MOONBIT,
                        value=manifest.value,
                        source="mooncakes",
                        metadata={"ok": False, "reason": REASON_DISABLED},
                    )
                )
        if not lookups:
            return facts

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(lookups))) as pool:
            futures = [
                (fact_name, package, pool.submit(fetch, package))
                for fact_name, package, fetch in lookups
            ]
            for fact_name, package, future in futures:
                facts.append(self._to_fact(fact_name, package, future))
        return facts

    def _to_fact(self, fact_name: str, package: str, future: Any) -> Fact:
        source = "npm" if fact_name == FACT_REGISTRY_NPM else "crates.io"
        try:
            metadata: RegistryMetadata = future.result()
        except RegistryError as exc:
            logger.warning("Registry lookup for %s failed: %s", package, exc)
            return Fact(
                name=fact_name,
                value=package,
                source=source,
                metadata={"ok": False, "reason": REASON_NETWORK, "error": str(exc)},
            )
        logger.debug("%s latest version for %s: %s", source, package, metadata.version)
        return Fact(
            name=fact_name,
            value=package,
            source=source,
            metadata={
                "ok": True,
                "latest": metadata.version,
                "license": metadata.license,
                "repository": metadata.repository,
                "description": metadata.description,
                "homepage": metadata.homepage,
                "downloads": metadata.downloads,
            },
        )


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


__all__ = [
    "FACT_REGISTRY_CRATES",
    "FACT_REGISTRY_MOONBIT",
    "FACT_REGISTRY_NPM",
    "RegistryAnalyzer",
    "RegistryClient",
    "RegistryError",
    "RegistryMetadata",
]
