"""Component graph for the generated solution.

Derives the layered projects and their allowed reference edges from a
``Configuration``. Edges are fixed per component kind, so the graph is a DAG
by construction and its shape never depends on the solution name, database
provider or framework.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from clean_scaffold.config import Configuration


class ComponentKind(str, Enum):
    DOMAIN = "Domain"
    APPLICATION = "Application"
    INFRASTRUCTURE = "Infrastructure"
    PRESENTATION = "Presentation"
    TEST = "Test"


class Component(BaseModel):
    """One buildable project in the generated solution."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Project name, e.g. 'Shop.Domain'")
    kind: ComponentKind
    path: tuple[str, ...] = Field(..., description="Directory segments relative to the solution root")
    depends_on: tuple[str, ...] = Field(default=(), description="Referenced component ids, in order")
    template: str = Field(..., description="Project template passed to the tool")
    subdirectories: tuple[str, ...] = Field(default=())
    exercises: ComponentKind | None = Field(
        default=None, description="For test components, the kind under test"
    )

    @property
    def is_test(self) -> bool:
        return self.kind is ComponentKind.TEST

    @property
    def directory(self) -> Path:
        """Project directory relative to the solution root."""
        return Path(*self.path)

    @property
    def project_file(self) -> Path:
        """Project manifest path relative to the solution root."""
        return self.directory / f"{self.id}.csproj"


@dataclass(frozen=True)
class ComponentGraph:
    """Ordered collection of components; order is creation order."""

    components: tuple[Component, ...]

    def __iter__(self) -> Iterator[Component]:
        return iter(self.components)

    def __len__(self) -> int:
        return len(self.components)

    def get(self, component_id: str) -> Component:
        for component in self.components:
            if component.id == component_id:
                return component
        raise KeyError(component_id)

    def of_kind(self, kind: ComponentKind) -> list[Component]:
        return [c for c in self.components if c.kind is kind]

    def primary_of(self, kind: ComponentKind) -> Component:
        """Return the single non-test component of *kind*."""
        matches = self.of_kind(kind)
        if len(matches) != 1 or kind is ComponentKind.TEST:
            raise KeyError(kind.value)
        return matches[0]

    @property
    def primary(self) -> list[Component]:
        return [c for c in self.components if not c.is_test]

    @property
    def tests(self) -> list[Component]:
        return [c for c in self.components if c.is_test]

    def edges(self) -> list[tuple[str, str]]:
        """Return every ``(source, target)`` reference edge in order."""
        return [(c.id, dep) for c in self.components for dep in c.depends_on]

    def dependencies(self, component_id: str) -> list[Component]:
        return [self.get(dep) for dep in self.get(component_id).depends_on]


# ---------------------------------------------------------------------------
# Static layout tables
# ---------------------------------------------------------------------------

# kind -> (project suffix, parent path, tool template, subdirectories)
_LAYERS: dict[ComponentKind, tuple[str, tuple[str, ...], str, tuple[str, ...]]] = {
    ComponentKind.DOMAIN: (
        "Domain",
        ("src", "Core"),
        "classlib",
        ("Entities", "ValueObjects", "Enums", "Interfaces"),
    ),
    ComponentKind.APPLICATION: (
        "Application",
        ("src", "Core"),
        "classlib",
        ("Interfaces", "DTOs", "Services", "Mappings", "Validators"),
    ),
    ComponentKind.INFRASTRUCTURE: (
        "Infrastructure",
        ("src", "Infrastructure"),
        "classlib",
        ("Data", "Repositories", "Services", "Configurations"),
    ),
    ComponentKind.PRESENTATION: (
        "WebApi",
        ("src", "Presentation"),
        "webapi",
        ("Middleware", "Filters", "Extensions"),
    ),
}

_LAYER_EDGES: dict[ComponentKind, tuple[ComponentKind, ...]] = {
    ComponentKind.DOMAIN: (),
    ComponentKind.APPLICATION: (ComponentKind.DOMAIN,),
    ComponentKind.INFRASTRUCTURE: (ComponentKind.APPLICATION, ComponentKind.DOMAIN),
    ComponentKind.PRESENTATION: (ComponentKind.APPLICATION, ComponentKind.INFRASTRUCTURE),
}

# Infrastructure deliberately has no dedicated test project.
_TEST_EDGES: dict[ComponentKind, tuple[ComponentKind, ...]] = {
    ComponentKind.DOMAIN: (ComponentKind.DOMAIN,),
    ComponentKind.APPLICATION: (ComponentKind.APPLICATION, ComponentKind.DOMAIN),
    ComponentKind.PRESENTATION: (
        ComponentKind.PRESENTATION,
        ComponentKind.APPLICATION,
        ComponentKind.INFRASTRUCTURE,
    ),
}

CQRS_SUBDIRECTORIES: tuple[str, ...] = ("Commands", "Queries", "Handlers")

TEST_ROOT = "tests"


def project_name(solution: str, kind: ComponentKind) -> str:
    """Return the project name for a non-test layer, e.g. ``Shop.WebApi``."""
    return f"{solution}.{_LAYERS[kind][0]}"


def build_graph(config: Configuration) -> ComponentGraph:
    """Build the component graph for *config*.

    Returns 4 primary components in creation order (Domain, Application,
    Infrastructure, Presentation) followed by 3 test components when
    ``include_tests`` is set.
    """
    name = config.name
    components: list[Component] = []

    for kind, (_, parent, template, subdirs) in _LAYERS.items():
        if kind is ComponentKind.APPLICATION and config.enable_cqrs:
            subdirs = subdirs + CQRS_SUBDIRECTORIES
        component_id = project_name(name, kind)
        components.append(
            Component(
                id=component_id,
                kind=kind,
                path=(*parent, component_id),
                depends_on=tuple(project_name(name, dep) for dep in _LAYER_EDGES[kind]),
                template=template,
                subdirectories=subdirs,
            )
        )

    if config.include_tests:
        for exercised, targets in _TEST_EDGES.items():
            component_id = f"{project_name(name, exercised)}.Tests"
            components.append(
                Component(
                    id=component_id,
                    kind=ComponentKind.TEST,
                    path=(TEST_ROOT, component_id),
                    depends_on=tuple(project_name(name, t) for t in targets),
                    template="xunit",
                    exercises=exercised,
                )
            )

    return ComponentGraph(components=tuple(components))
