"""npm registry lookups for dependency overrides."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import requests
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"

# Seconds to wait for the registry before giving up
REQUEST_TIMEOUT = 30


class RegistryError(Exception):
    """Error while querying the package registry."""

    pass


class PackageVersionNotFoundError(LookupError):
    """The requested version of a package is not published."""

    pass


class RegistryDist(BaseModel):
    """Distribution info of a published version."""

    tarball: str
    integrity: str | None = None


class RegistryVersion(BaseModel):
    """One entry of the versions map of a packument."""

    version: str
    dependencies: dict[str, str] = Field(default_factory=dict)
    dist: RegistryDist


class Packument(BaseModel):
    """Registry document describing all versions of a package.

    Version entries stay raw: old releases carry metadata that no longer
    validates, so only the requested one is checked.
    """

    name: str = ""
    versions: dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedDependency:
    """Registry metadata of one exact package version.

    Attributes:
        version: Published version.
        integrity: Subresource integrity hash, None for very old packages.
        tarball: URL of the package tarball.
        dependencies: Mapping of dependency name to version range.
    """

    version: str
    tarball: str
    integrity: str | None = None
    dependencies: dict[str, str] = field(default_factory=dict)


class NpmRegistry:
    """Resolves package versions against an npm-compatible registry.

    Satisfies the DependencyResolver protocol structurally.
    """

    def __init__(
        self,
        registry_url: str | None = None,
        session: requests.Session | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        """Initialize the registry client.

        Args:
            registry_url: Base URL of the registry. Defaults to the public npm registry.
            session: HTTP session to reuse. A new one is created if omitted.
            timeout: Request timeout in seconds.
        """
        self.registry_url = (registry_url or DEFAULT_REGISTRY_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def package_url(self, name: str) -> str:
        """Get the packument URL of a package.

        Args:
            name: Package name, possibly scoped.

        Returns:
            URL with the scope separator escaped.
        """
        return f"{self.registry_url}/{name.replace('/', '%2f')}"

    def fetch_packument(self, name: str) -> Packument:
        """Download the registry document of a package.

        Raises:
            RegistryError: If the request fails or the payload is malformed.
        """
        url = self.package_url(name)
        try:
            response = self.session.get(
                url, headers={"Accept": "application/json"}, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise RegistryError(
                f"Failed to download package info from npm registry: {e}"
            ) from e

        if response.status_code != 200:
            raise RegistryError(
                f"Failed to download package info from npm registry: "
                f"{url} returned status {response.status_code}"
            )

        try:
            return Packument.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise RegistryError(f"Invalid package info for {name} from npm registry: {e}") from e

    def resolve(self, name: str, version: str) -> ResolvedDependency:
        """Fetch the metadata of one exact package version.

        Args:
            name: Package name.
            version: Exact version string.

        Returns:
            ResolvedDependency snapshot.

        Raises:
            RegistryError: If the registry could not be queried.
            PackageVersionNotFoundError: If the version is not published.
        """
        packument = self.fetch_packument(name)
        if version not in packument.versions:
            raise PackageVersionNotFoundError(f"{name}@{version} was not found in the npm registry!")

        try:
            info = RegistryVersion.model_validate(packument.versions[version])
        except ValidationError as e:
            raise RegistryError(
                f"Invalid package info for {name}@{version} from npm registry: {e}"
            ) from e

        logger.debug("Resolved %s@%s to %s", name, version, info.dist.tarball)
        return ResolvedDependency(
            version=info.version,
            tarball=info.dist.tarball,
            integrity=info.dist.integrity,
            dependencies=dict(info.dependencies),
        )
