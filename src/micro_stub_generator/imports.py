"""Package aliases and the import block of generated Go files."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

STDLIB_PATHS = frozenset({"context", "errors"})


class PackageRole(Enum):
    """Packages that every generated file may refer to, with their default import paths."""

    CONTEXT = ("context", "context")
    CLIENT = ("client", "github.com/shockerjue/gffg/client")
    SERVER = ("server", "github.com/shockerjue/gffg/server")
    COMMON = ("common", "github.com/shockerjue/gffg/common")

    @property
    def package_name(self) -> str:
        return self.value[0]

    @property
    def default_path(self) -> str:
        return self.value[1]


@dataclass
class _Import:
    alias: str
    path: str
    used: bool = False


class ImportRegistrar:
    """Hands out collision-free package aliases for one generated file.

    Aliases are assigned on registration: the package name itself if it is free, otherwise the
    name with the smallest numeric suffix that is free. Only imports marked as used are rendered.
    """

    def __init__(
        self,
        package_paths: dict[PackageRole, str] | None = None,
        import_prefix: str = "",
        reserved_names: set[str] | None = None,
    ):
        """Initialize the registrar.

        Args:
            package_paths (dict[PackageRole, str] | None): Import path overrides for the fixed roles.
            import_prefix (str): Prefix joined in front of every non-stdlib import path.
            reserved_names (set[str] | None): Names that must not be used as aliases, e.g. the
                package clause of the generated file.
        """
        self._import_prefix = import_prefix
        self._taken: set[str] = set(reserved_names or ())
        self._by_path: dict[str, _Import] = {}
        self._roles: dict[PackageRole, _Import] = {}

        errors = _Import(alias=self.register_unique_package_name("errors"), path="errors")
        self._by_path[errors.path] = errors

        overrides = package_paths or {}
        for role in PackageRole:
            path = overrides.get(role) or role.default_path
            self._roles[role] = self._register(self._full_path(path), role.package_name)

    def _full_path(self, path: str) -> str:
        if path in STDLIB_PATHS or not self._import_prefix:
            return path
        return posixpath.join(self._import_prefix, path)

    def register_unique_package_name(self, name: str) -> str:
        """Reserve an alias based on `name`, appending a number if it is taken.

        Args:
            name (str): The preferred alias.

        Returns:
            str: The reserved alias.
        """
        alias = name
        i = 1
        while alias in self._taken:
            alias = f"{name}{i}"
            i += 1
        self._taken.add(alias)
        return alias

    def _register(self, path: str, name: str) -> _Import:
        existing = self._by_path.get(path)
        if existing is not None:
            return existing

        imp = _Import(alias=self.register_unique_package_name(name), path=path)
        self._by_path[path] = imp
        if imp.alias != name:
            logger.debug("Package '%s' imported as '%s'.", path, imp.alias)
        return imp

    def alias(self, role: PackageRole) -> str:
        """Return the alias of a fixed package role and mark it as used."""
        imp = self._roles[role]
        imp.used = True
        return imp.alias

    def add_import(self, path: str, name: str) -> str:
        """Register an import of a message-type package and mark it as used.

        Args:
            path (str): The import path, without prefix.
            name (str): The Go package name.

        Returns:
            str: The alias to qualify types of that package with.
        """
        imp = self._register(self._full_path(path), name)
        imp.used = True
        return imp.alias

    def errors_alias(self) -> str:
        """Return the alias of the standard `errors` package and mark it as used."""
        imp = self._by_path["errors"]
        imp.used = True
        return imp.alias

    @property
    def used_imports(self) -> list[tuple[str, str]]:
        """Used imports as (alias, path), standard library first, each group sorted by path."""
        used = [imp for imp in self._by_path.values() if imp.used]
        used.sort(key=lambda imp: (imp.path not in STDLIB_PATHS, imp.path))
        return [(imp.alias, imp.path) for imp in used]

    def import_lines(self) -> list[str]:
        """Render the body lines of the Go import block."""
        lines: list[str] = []
        in_stdlib = True
        for alias, path in self.used_imports:
            if in_stdlib and path not in STDLIB_PATHS:
                in_stdlib = False
                if lines:
                    lines.append("")
            if path in STDLIB_PATHS and alias == path:
                lines.append(f'"{path}"')
            else:
                lines.append(f'{alias} "{path}"')
        return lines
