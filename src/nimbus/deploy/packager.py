"""Cloud package builder for Nimbus services.

A cloud package is a zip archive holding the service definition, the cloud
configuration, a generated manifest and one nested zip archive per role.
Transient runtime output (such as ``server.js.logs`` directories written by
iisnode) is excluded from role archives.
"""

from __future__ import annotations

import hashlib
import io
import json
import os
import tempfile
import zipfile
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath

from nimbus.config.defaults import DEFAULT_EXCLUDE_PATTERNS
from nimbus.lib.errors import PackagingError
from nimbus.lib.logging_config import get_logger
from nimbus.models.service import ServiceDescriptor, ServicePaths

logger = get_logger(__name__)

PACKAGE_MANIFEST_NAME = "package.manifest.json"
ROLE_ARCHIVE_DIR = "roles"


@dataclass(frozen=True)
class PackageArtifact:
    """Result of a package build.

    Attributes:
        path: Location of the package file
        entries: Top-level archive entries
        role_entries: Files packaged for each role, keyed by role name
        size: Package size in bytes
        created_at: Build timestamp
    """

    path: Path
    entries: list[str]
    role_entries: dict[str, list[str]] = field(default_factory=dict)
    size: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def is_excluded(relative_path: str | PurePosixPath, patterns: Iterable[str]) -> bool:
    """Return True if any segment of a relative path matches a pattern.

    Matching is done against whole segments, so ``*.logs`` excludes
    ``server.js.logs/out.txt`` but keeps ``server.js`` and
    ``server.js.logsarchive``.
    """
    parts = PurePosixPath(relative_path).parts
    return any(fnmatchcase(part, pattern) for part in parts for pattern in patterns)


def iter_role_files(
    role_dir: Path, patterns: Iterable[str]
) -> Iterator[tuple[Path, str]]:
    """Yield ``(file path, archive name)`` pairs of a role directory.

    Excluded directories are pruned without descending into them. Results
    are sorted so that archives are reproducible.
    """
    patterns = tuple(patterns)
    for dirpath, dirnames, filenames in os.walk(role_dir):
        dirnames[:] = sorted(
            name for name in dirnames if not is_excluded(name, patterns)
        )
        base = Path(dirpath)
        for filename in sorted(filenames):
            if is_excluded(filename, patterns):
                continue
            file_path = base / filename
            yield file_path, file_path.relative_to(role_dir).as_posix()


def _sha256(data: bytes) -> str:
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


class PackageBuilder:
    """Builds cloud packages from a service root.

    Example:
        >>> builder = PackageBuilder()
        >>> artifact = builder.build(descriptor, ServicePaths.for_root("./svc"))
        >>> artifact.path.name
        'cloud_package.cspkg'
    """

    def __init__(self, exclude_patterns: Iterable[str] | None = None) -> None:
        """Initialize the builder.

        Args:
            exclude_patterns: Path segment globs excluded from role archives
        """
        self.exclude_patterns = tuple(
            DEFAULT_EXCLUDE_PATTERNS if exclude_patterns is None else exclude_patterns
        )

    def _check_inputs(self, descriptor: ServiceDescriptor, paths: ServicePaths) -> None:
        if not paths.definition.is_file():
            raise PackagingError(f"Service definition not found: {paths.definition}")
        if not paths.cloud_configuration.is_file():
            raise PackagingError(
                f"Cloud configuration not found: {paths.cloud_configuration}"
            )
        for role in descriptor.roles:
            role_dir = paths.role_dir(role.name)
            if not role_dir.is_dir():
                raise PackagingError(
                    f"Directory of role '{role.name}' not found: {role_dir}"
                )
            if role.entry_point:
                entry = role_dir / role.entry_point
                if not entry.is_file() or is_excluded(
                    role.entry_point, self.exclude_patterns
                ):
                    raise PackagingError(
                        f"Entry point of role '{role.name}' not found: {entry}"
                    )

    def _build_role_archive(self, role_dir: Path) -> tuple[bytes, list[str]]:
        buffer = io.BytesIO()
        names: list[str] = []
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for file_path, arcname in iter_role_files(role_dir, self.exclude_patterns):
                zf.write(file_path, arcname)
                names.append(arcname)
        return buffer.getvalue(), names

    def build(
        self,
        descriptor: ServiceDescriptor,
        paths: ServicePaths,
        output: Path | None = None,
    ) -> PackageArtifact:
        """Build the cloud package of a service.

        The package is written to a temporary file in the destination
        directory and moved into place once complete, replacing any previous
        package.

        Args:
            descriptor: Service descriptor listing the roles to package
            paths: Well-known paths of the service root
            output: Package destination (``<root>/cloud_package.cspkg`` if unset)

        Returns:
            PackageArtifact describing the written package

        Raises:
            PackagingError: If an input is missing or the package cannot be written
        """
        self._check_inputs(descriptor, paths)
        destination = output or paths.package
        created_at = datetime.now(timezone.utc)

        entries: list[str] = []
        role_entries: dict[str, list[str]] = {}
        role_manifests: list[dict[str, object]] = []

        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=destination.parent, prefix=".nimbus-", suffix=".tmp"
            )
        except OSError as e:
            raise PackagingError(
                f"Cannot create package in {destination.parent}: {e}"
            ) from e
        os.close(fd)
        tmp_path = Path(tmp_name)

        try:
            with zipfile.ZipFile(tmp_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for source in (paths.definition, paths.cloud_configuration):
                    data = source.read_bytes()
                    zf.writestr(source.name, data)
                    entries.append(source.name)

                for role in descriptor.roles:
                    archive, names = self._build_role_archive(paths.role_dir(role.name))
                    arcname = f"{ROLE_ARCHIVE_DIR}/{role.name}.zip"
                    zf.writestr(arcname, archive)
                    entries.append(arcname)
                    role_entries[role.name] = names
                    role_manifests.append(
                        {
                            "name": role.name,
                            "type": role.type.value,
                            "archive": arcname,
                            "digest": _sha256(archive),
                            "entries": names,
                        }
                    )
                    logger.debug(f"Packaged role {role.name}: {len(names)} file(s)")

                manifest = {
                    "service": descriptor.name,
                    "created": created_at.isoformat(),
                    "roles": role_manifests,
                }
                payload = json.dumps(manifest, indent=2, sort_keys=True)
                zf.writestr(PACKAGE_MANIFEST_NAME, payload)
                entries.append(PACKAGE_MANIFEST_NAME)

            os.replace(tmp_path, destination)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise PackagingError(f"Failed to write package {destination}: {e}") from e
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        size = destination.stat().st_size
        logger.info(f"Created package {destination} ({size} bytes)")
        return PackageArtifact(
            path=destination,
            entries=entries,
            role_entries=role_entries,
            size=size,
            created_at=created_at,
        )
