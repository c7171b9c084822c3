"""Clean scaffold scaffolder -- turns a ``Configuration`` into a solution tree.

The pieces run in this order: ``build_graph`` derives the layered projects,
``resolve_packages`` picks their NuGet packages, ``plan_starter_files`` and
``TemplateRenderer`` produce the starter sources, and ``ScaffoldOrchestrator``
applies everything through a ``ProjectToolClient``.

Quick usage::

    from clean_scaffold.scaffolder import ScaffoldOrchestrator, build_graph
    from clean_scaffold.scaffolder import DotnetToolClient

    graph = build_graph(config)
    orchestrator = ScaffoldOrchestrator(config, graph, DotnetToolClient())
    await orchestrator.prepare_root()
"""

from clean_scaffold.scaffolder.graph import Component, ComponentGraph, ComponentKind, build_graph
from clean_scaffold.scaffolder.orchestrator import (
    AppliedOperation,
    FileOperation,
    ScaffoldOrchestrator,
    WriteMode,
)
from clean_scaffold.scaffolder.packages import PackageRequirement, resolve_packages
from clean_scaffold.scaffolder.starter_files import STARTER_FILES, plan_starter_files
from clean_scaffold.scaffolder.templates import TemplateRenderer, build_context
from clean_scaffold.scaffolder.tool_client import (
    DotnetToolClient,
    InMemoryToolClient,
    ProjectToolClient,
)

__all__ = [
    "AppliedOperation",
    "Component",
    "ComponentGraph",
    "ComponentKind",
    "DotnetToolClient",
    "FileOperation",
    "InMemoryToolClient",
    "PackageRequirement",
    "ProjectToolClient",
    "STARTER_FILES",
    "ScaffoldOrchestrator",
    "TemplateRenderer",
    "WriteMode",
    "build_context",
    "build_graph",
    "plan_starter_files",
    "resolve_packages",
]
