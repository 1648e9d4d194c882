"""Runtime manifest models.

A runtime manifest lists the runtime packages a role can be provisioned with.
Each package is addressed relative to the manifest's base URI.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

IISNODE_RUNTIME = "iisnode"


class RuntimePackage(BaseModel):
    """A downloadable runtime package."""

    model_config = ConfigDict(extra="forbid")

    runtime: str = Field(..., description="Runtime identifier (node, iisnode)")
    version: str = Field(..., description="Runtime version")
    path: str = Field(..., description="Package path relative to the base URI")
    default: bool = Field(default=False, description="Default package of its runtime")


class RuntimeManifest(BaseModel):
    """Collection of runtime packages under a base URI."""

    model_config = ConfigDict(extra="forbid")

    base_uri: str = Field(..., description="Base URI of all packages")
    packages: list[RuntimePackage] = Field(
        default_factory=list, description="Available packages"
    )

    @model_validator(mode="after")
    def validate_single_default(self) -> RuntimeManifest:
        """Validate there is at most one default package per runtime."""
        defaults: set[str] = set()
        for package in self.packages:
            if not package.default:
                continue
            if package.runtime in defaults:
                raise ValueError(
                    f"Runtime '{package.runtime}' has more than one default package"
                )
            defaults.add(package.runtime)
        return self

    def find(self, runtime: str, version: str | None = None) -> RuntimePackage | None:
        """Return the package for a runtime version, or its default package."""
        if version is not None:
            for package in self.packages:
                if package.runtime == runtime and package.version == version:
                    return package
        for package in self.packages:
            if package.runtime == runtime and package.default:
                return package
        return None

    def url_for(self, package: RuntimePackage) -> str:
        """Return the absolute URL of a package."""
        return f"{self.base_uri.rstrip('/')}/{package.path.lstrip('/')}"
