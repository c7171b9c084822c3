"""Package matrix: table-driven NuGet package selection.

Maps ``(component kind, feature flags, version band, database provider)`` to
the concrete packages installed into each project. There is no version
resolution: every version comes from the fixed tables below.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from clean_scaffold.config import Configuration, DatabaseProvider, VersionBand
from clean_scaffold.exceptions import PackageMatrixGap

from .graph import Component, ComponentGraph, ComponentKind


class PackageCategory(str, Enum):
    """Package categories, declared in installation order."""

    VALIDATION = "validation"
    DATA_ACCESS = "data_access"
    API = "api"
    MESSAGING = "messaging"
    TESTING = "testing"


_CATEGORY_RANK: dict[PackageCategory, int] = {
    category: rank for rank, category in enumerate(PackageCategory)
}


class PackageRequirement(BaseModel):
    """A single package to add to a single component."""

    model_config = ConfigDict(frozen=True)

    component: str = Field(..., description="Component id")
    package: str
    version: str | None = Field(default=None, description="None installs the latest version")
    category: PackageCategory

    def __str__(self) -> str:
        if self.version:
            return f"{self.package} {self.version}"
        return self.package


# ---------------------------------------------------------------------------
# Matrix tables
# ---------------------------------------------------------------------------

FLUENT_VALIDATION_VERSION = "11.9.2"
MEDIATR_VERSION = "12.4.1"
SWASHBUCKLE_VERSION = "6.8.1"

EF_CORE_VERSIONS: dict[VersionBand, str] = {
    VersionBand.LTS: "8.0.11",
    VersionBand.CURRENT: "9.0.0",
}

ASPNET_CORE_VERSIONS: dict[VersionBand, str] = {
    VersionBand.LTS: "8.0.11",
    VersionBand.CURRENT: "9.0.0",
}

DATA_ACCESS_PACKAGES: dict[DatabaseProvider, str] = {
    DatabaseProvider.SQLSERVER: "Microsoft.EntityFrameworkCore.SqlServer",
    DatabaseProvider.POSTGRES: "Npgsql.EntityFrameworkCore.PostgreSQL",
    DatabaseProvider.SQLITE: "Microsoft.EntityFrameworkCore.Sqlite",
}

_Condition = Callable[[Component, Configuration], bool]


def _always(component: Component, config: Configuration) -> bool:
    return True


def _cqrs_enabled(component: Component, config: Configuration) -> bool:
    return config.enable_cqrs


def _exercises_presentation(component: Component, config: Configuration) -> bool:
    return component.exercises is ComponentKind.PRESENTATION


@dataclass(frozen=True)
class _MatrixRow:
    kind: ComponentKind
    category: PackageCategory
    package: str | Mapping[DatabaseProvider, str]
    version: str | Mapping[VersionBand, str] | None = None
    when: _Condition = _always


_MATRIX: tuple[_MatrixRow, ...] = (
    # Application
    _MatrixRow(ComponentKind.APPLICATION, PackageCategory.VALIDATION,
               "FluentValidation", FLUENT_VALIDATION_VERSION),
    _MatrixRow(ComponentKind.APPLICATION, PackageCategory.VALIDATION,
               "FluentValidation.DependencyInjectionExtensions", FLUENT_VALIDATION_VERSION),
    _MatrixRow(ComponentKind.APPLICATION, PackageCategory.MESSAGING,
               "MediatR", MEDIATR_VERSION, when=_cqrs_enabled),
    # Infrastructure
    _MatrixRow(ComponentKind.INFRASTRUCTURE, PackageCategory.DATA_ACCESS,
               DATA_ACCESS_PACKAGES, EF_CORE_VERSIONS),
    _MatrixRow(ComponentKind.INFRASTRUCTURE, PackageCategory.DATA_ACCESS,
               "Microsoft.EntityFrameworkCore.Design", EF_CORE_VERSIONS),
    _MatrixRow(ComponentKind.INFRASTRUCTURE, PackageCategory.DATA_ACCESS,
               "Microsoft.EntityFrameworkCore.Tools", EF_CORE_VERSIONS),
    # Presentation
    _MatrixRow(ComponentKind.PRESENTATION, PackageCategory.API,
               "Swashbuckle.AspNetCore", SWASHBUCKLE_VERSION),
    _MatrixRow(ComponentKind.PRESENTATION, PackageCategory.API,
               "Microsoft.AspNetCore.Authentication.JwtBearer", ASPNET_CORE_VERSIONS),
    # Tests
    _MatrixRow(ComponentKind.TEST, PackageCategory.TESTING, "Moq"),
    _MatrixRow(ComponentKind.TEST, PackageCategory.TESTING, "FluentAssertions"),
    _MatrixRow(ComponentKind.TEST, PackageCategory.TESTING,
               "Microsoft.AspNetCore.Mvc.Testing", when=_exercises_presentation),
    _MatrixRow(ComponentKind.TEST, PackageCategory.TESTING,
               "Microsoft.EntityFrameworkCore.InMemory", when=_exercises_presentation),
)

# Data-access package names that are mutually exclusive per solution.
PROVIDER_PACKAGES: frozenset[str] = frozenset(DATA_ACCESS_PACKAGES.values())


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def _lookup(table: Mapping, key: Enum, what: str, component: Component) -> str:
    try:
        return table[key]
    except KeyError:
        raise PackageMatrixGap(
            f"No {what} defined for {key.value!r} ({component.id})"
        ) from None


def _resolve_row(
    row: _MatrixRow, component: Component, config: Configuration
) -> PackageRequirement:
    if isinstance(row.package, Mapping):
        package = _lookup(row.package, config.db_provider, "data-access package", component)
    else:
        package = row.package

    if isinstance(row.version, Mapping):
        version: str | None = _lookup(row.version, config.version_band, f"{package} version", component)
    else:
        version = row.version

    return PackageRequirement(
        component=component.id,
        package=package,
        version=version,
        category=row.category,
    )


def packages_for(component: Component, config: Configuration) -> list[PackageRequirement]:
    """Return the packages for one component in installation order."""
    resolved = [
        _resolve_row(row, component, config)
        for row in _MATRIX
        if row.kind is component.kind and row.when(component, config)
    ]
    resolved.sort(key=lambda req: _CATEGORY_RANK[req.category])

    if component.kind is ComponentKind.INFRASTRUCTURE:
        providers = [r for r in resolved if r.package in PROVIDER_PACKAGES]
        if len(providers) != 1:
            raise PackageMatrixGap(
                f"Expected exactly one data-access provider package for {component.id}, "
                f"found {len(providers)}"
            )
    return resolved


def resolve_packages(graph: ComponentGraph, config: Configuration) -> list[PackageRequirement]:
    """Resolve every package requirement for *graph*.

    Ordered by component creation order, then by category
    (validation, data access, api, messaging, testing), then declaration order.

    Raises:
        PackageMatrixGap: A (component, option) tuple has no table entry.
    """
    requirements: list[PackageRequirement] = []
    for component in graph:
        requirements.extend(packages_for(component, config))
    return requirements
