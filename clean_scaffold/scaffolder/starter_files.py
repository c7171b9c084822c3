"""Catalogue of starter files written into the generated solution."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from clean_scaffold.config import Configuration, Feature

from .graph import ComponentGraph, ComponentKind


@dataclass(frozen=True)
class StarterFile:
    """A template and where its rendered output goes.

    ``target`` is relative to the owning component's directory, or to the
    solution root when ``owner`` is ``None``. Files with ``requires`` set are
    only generated when that feature is enabled.
    """

    template: str
    target: str
    owner: ComponentKind | None = None
    requires: Feature | None = None


@dataclass(frozen=True)
class PlannedFile:
    """A starter file bound to a concrete location in the solution."""

    starter: StarterFile
    owner_id: str | None
    relative_path: Path


_D = ComponentKind.DOMAIN
_A = ComponentKind.APPLICATION
_I = ComponentKind.INFRASTRUCTURE
_P = ComponentKind.PRESENTATION

STARTER_FILES: tuple[StarterFile, ...] = (
    # Domain
    StarterFile("domain/BaseEntity.cs.j2", "Entities/BaseEntity.cs", _D),
    StarterFile("domain/Status.cs.j2", "Enums/Status.cs", _D),
    StarterFile("domain/Address.cs.j2", "ValueObjects/Address.cs", _D),
    StarterFile("domain/IRepository.cs.j2", "Interfaces/IRepository.cs", _D),
    # Infrastructure
    StarterFile("infrastructure/ApplicationDbContext.cs.j2", "Data/ApplicationDbContext.cs", _I),
    StarterFile("infrastructure/Repository.cs.j2", "Repositories/Repository.cs", _I),
    StarterFile("infrastructure/DependencyInjection.cs.j2", "DependencyInjection.cs", _I),
    StarterFile(
        "infrastructure/SampleEntityConfiguration.cs.j2",
        "Configurations/SampleEntityConfiguration.cs",
        _I,
    ),
    StarterFile(
        "infrastructure/SampleExternalService.cs.j2",
        "Services/SampleExternalService.cs",
        _I,
    ),
    # Application
    StarterFile("application/DependencyInjection.cs.j2", "DependencyInjection.cs", _A),
    StarterFile("application/SampleCommand.cs.j2", "Commands/SampleCommand.cs", _A, Feature.CQRS),
    StarterFile("application/GetSampleQuery.cs.j2", "Queries/GetSampleQuery.cs", _A, Feature.CQRS),
    StarterFile(
        "application/SampleCommandHandler.cs.j2",
        "Handlers/SampleCommandHandler.cs",
        _A,
        Feature.CQRS,
    ),
    StarterFile("application/SampleDto.cs.j2", "DTOs/SampleDto.cs", _A),
    StarterFile("application/ISampleService.cs.j2", "Interfaces/ISampleService.cs", _A),
    StarterFile("application/SampleService.cs.j2", "Services/SampleService.cs", _A),
    StarterFile("application/MappingHelper.cs.j2", "Mappings/MappingHelper.cs", _A),
    StarterFile("application/SampleDtoValidator.cs.j2", "Validators/SampleDtoValidator.cs", _A),
    # WebApi
    StarterFile("webapi/SampleMiddleware.cs.j2", "Middleware/SampleMiddleware.cs", _P),
    StarterFile("webapi/SampleActionFilter.cs.j2", "Filters/SampleActionFilter.cs", _P),
    StarterFile(
        "webapi/ServiceCollectionExtensions.cs.j2",
        "Extensions/ServiceCollectionExtensions.cs",
        _P,
    ),
    StarterFile("webapi/appsettings.json.j2", "appsettings.json", _P),
    StarterFile("webapi/Program.cs.j2", "Program.cs", _P),
    # Solution root
    StarterFile("solution/README.md.j2", "README.md"),
    StarterFile("solution/gitignore.j2", ".gitignore"),
)


def plan_starter_files(graph: ComponentGraph, config: Configuration) -> list[PlannedFile]:
    """Bind every applicable starter file to its path in the solution.

    Component-owned files come first in catalogue order, solution-root files
    last.
    """
    planned: list[PlannedFile] = []
    for starter in STARTER_FILES:
        if starter.requires is not None and starter.requires not in config.features:
            continue
        if starter.owner is None:
            planned.append(PlannedFile(starter, None, Path(starter.target)))
            continue
        component = graph.primary_of(starter.owner)
        planned.append(
            PlannedFile(starter, component.id, component.directory / starter.target)
        )
    return planned
