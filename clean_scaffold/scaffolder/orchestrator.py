"""Filesystem and project-tool orchestration.

``ScaffoldOrchestrator`` is the only part of the scaffolder that mutates the
filesystem or calls the external project tool. Operations must be issued in
phase order (structure, components, test components, registration,
references, packages, files); issuing one from an earlier phase after a later
phase has started raises ``OperationOrderError``.

Every operation, including skipped ones, is appended to ``applied`` so a
failed run can be diagnosed or replayed. There is no rollback.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import Enum, IntEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from rich.markup import escape
from rich.prompt import Confirm

from clean_scaffold.config import Configuration
from clean_scaffold.exceptions import OperationOrderError, OverwriteDeclined
from clean_scaffold.utils import console, ensure_dir, print_step, print_warning, save_json

from .graph import Component, ComponentGraph
from .packages import PackageRequirement
from .starter_files import PlannedFile
from .tool_client import ProjectToolClient

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class WriteMode(str, Enum):
    CREATE_IF_ABSENT = "create_if_absent"
    OVERWRITE_WITH_WARNING = "overwrite_with_warning"


class FileOperation(BaseModel):
    """A rendered starter file ready to be written."""

    model_config = ConfigDict(frozen=True)

    target_path: Path = Field(..., description="Path relative to the solution root")
    content: str
    mode: WriteMode = WriteMode.CREATE_IF_ABSENT
    owner: str | None = Field(default=None, description="Owning component id, None for the solution root")


class OperationKind(str, Enum):
    PREPARE_ROOT = "prepare_root"
    CREATE_SOLUTION = "create_solution"
    CREATE_DIRECTORY = "create_directory"
    CREATE_COMPONENT = "create_component"
    REMOVE_PLACEHOLDER = "remove_placeholder"
    REGISTER_COMPONENT = "register_component"
    ADD_REFERENCE = "add_reference"
    ADD_PACKAGE = "add_package"
    WRITE_FILE = "write_file"


class AppliedOperation(BaseModel):
    """One entry in the orchestrator's operation log."""

    kind: OperationKind
    target: str
    detail: str = ""
    skipped: bool = False


class _Phase(IntEnum):
    INIT = 0
    STRUCTURE = 1
    COMPONENTS = 2
    TEST_COMPONENTS = 3
    REGISTRATION = 4
    REFERENCES = 5
    PACKAGES = 6
    FILES = 7


# Placeholder sources emitted by the classlib template.
_TOOL_PLACEHOLDER_FILE = "Class1.cs"


def ask_overwrite(question: str) -> bool:
    """Ask a yes/no question on the shared console, defaulting to no."""
    return Confirm.ask(question, default=False, console=console)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class ScaffoldOrchestrator:
    """Applies the component graph and starter files to the filesystem.

    Args:
        config: Validated configuration.
        graph: Component graph built from *config*.
        tool: Project tool client used for every structural operation.
        confirm: Callable asked whether to continue when the solution root
            already exists. Defaults to an interactive Rich prompt.
    """

    def __init__(
        self,
        config: Configuration,
        graph: ComponentGraph,
        tool: ProjectToolClient,
        confirm: Callable[[str], bool] | None = None,
    ) -> None:
        self.config = config
        self.graph = graph
        self.tool = tool
        self.root = config.solution_root
        self.resuming = False
        self.warning_count = 0
        self.applied: list[AppliedOperation] = []
        self._confirm = confirm or ask_overwrite
        self._phase = _Phase.INIT
        self._created: set[str] = set()

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _enter(self, phase: _Phase) -> None:
        if phase < self._phase:
            raise OperationOrderError(
                f"Cannot run {phase.name.lower()} operations after "
                f"{self._phase.name.lower()} operations have started"
            )
        self._phase = phase

    def _record(
        self, kind: OperationKind, target: str | Path, detail: str = "", skipped: bool = False
    ) -> AppliedOperation:
        op = AppliedOperation(kind=kind, target=str(target), detail=detail, skipped=skipped)
        self.applied.append(op)
        return op

    def _warn(self, message: str) -> None:
        self.warning_count += 1
        print_warning(message)

    def _require_created(self, component_id: str) -> None:
        if component_id not in self._created:
            raise OperationOrderError(f"Component {component_id} has not been created yet")

    @property
    def skipped_count(self) -> int:
        return sum(1 for op in self.applied if op.skipped)

    def is_created(self, component_id: str) -> bool:
        return component_id in self._created

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    async def prepare_root(self) -> None:
        """Create the solution root, or confirm reuse of an existing one.

        Raises:
            OverwriteDeclined: The root exists and the user declined to continue.
        """
        self._enter(_Phase.STRUCTURE)
        if self.root.exists():
            self._warn(f"Warning: Directory '{escape(str(self.root))}' already exists")
            if not self._confirm("Do you want to continue? This may overwrite existing files."):
                raise OverwriteDeclined(str(self.root))
            self.resuming = True
            self._record(OperationKind.PREPARE_ROOT, self.root, "existing directory reused", skipped=True)
            return

        ensure_dir(self.root)
        self._record(OperationKind.PREPARE_ROOT, self.root)
        print_step(f"Created directory {escape(str(self.root))}")

    async def create_solution(self) -> None:
        """Create the ``.sln`` aggregate and the layer directories."""
        self._enter(_Phase.STRUCTURE)
        name = self.config.name
        solution_file = f"{name}.sln"

        if (self.root / solution_file).exists():
            self._warn(f"  Solution {solution_file} already exists, skipping")
            self._record(OperationKind.CREATE_SOLUTION, solution_file, skipped=True)
        else:
            await self.tool.create_solution(self.root, name)
            self._record(OperationKind.CREATE_SOLUTION, solution_file)
            print_step(f"Created solution {solution_file}")

        layer_dirs = dict.fromkeys(c.directory.parent for c in self.graph.primary)
        for layer_dir in layer_dirs:
            ensure_dir(self.root / layer_dir)
            self._record(OperationKind.CREATE_DIRECTORY, layer_dir.as_posix())

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    async def create_component(self, component: Component) -> None:
        """Create one project and its subdirectories.

        The tool's ``Class1.cs`` placeholder is removed from freshly created
        class libraries. An existing project file is left untouched.
        """
        self._enter(_Phase.TEST_COMPONENTS if component.is_test else _Phase.COMPONENTS)
        directory = self.root / component.directory
        project = self.root / component.project_file

        if project.exists():
            self._warn(f"  Project {component.id} already exists, skipping creation")
            self._record(OperationKind.CREATE_COMPONENT, component.id, component.template, skipped=True)
        else:
            ensure_dir(directory.parent)
            await self.tool.create_component(self.root, component, self.config.framework)
            self._record(OperationKind.CREATE_COMPONENT, component.id, component.template)
            if component.template == "classlib":
                placeholder = directory / _TOOL_PLACEHOLDER_FILE
                if placeholder.exists():
                    placeholder.unlink()
                    self._record(
                        OperationKind.REMOVE_PLACEHOLDER,
                        (component.directory / _TOOL_PLACEHOLDER_FILE).as_posix(),
                    )
            print_step(f"Created {component.id}")

        for sub in component.subdirectories:
            ensure_dir(directory / sub)
        self._created.add(component.id)

    async def register_component(self, component: Component) -> None:
        """Add a created component to the solution aggregate."""
        self._enter(_Phase.REGISTRATION)
        self._require_created(component.id)
        await self.tool.register_component(self.root, self.config.name, component)
        self._record(OperationKind.REGISTER_COMPONENT, component.id)
        print_step(f"Added {component.id} to solution")

    async def add_references(self, component: Component) -> None:
        """Add every reference edge leaving *component*.

        All primary components must exist before any edge is added.
        """
        self._enter(_Phase.REFERENCES)
        if not component.depends_on:
            return
        for primary in self.graph.primary:
            self._require_created(primary.id)
        self._require_created(component.id)

        targets = self.graph.dependencies(component.id)
        await self.tool.add_reference(self.root, component, targets)
        self._record(
            OperationKind.ADD_REFERENCE,
            component.id,
            ", ".join(t.id for t in targets),
        )
        prefix = f"{self.config.name}."
        source = component.id.removeprefix(prefix)
        print_step(f"{source} → {', '.join(t.id.removeprefix(prefix) for t in targets)}")

    async def add_package(self, requirement: PackageRequirement) -> None:
        """Install one package into its component."""
        self._enter(_Phase.PACKAGES)
        self._require_created(requirement.component)
        component = self.graph.get(requirement.component)
        await self.tool.add_package(self.root, component, requirement)
        self._record(OperationKind.ADD_PACKAGE, component.id, str(requirement))
        console.print(f"    [dim]{requirement} → {component.id}[/dim]")

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def plan_file(self, planned: PlannedFile, content: str) -> FileOperation:
        """Turn rendered content into a ``FileOperation``.

        Files that already exist (left by a previous run or emitted by the
        project template) are overwritten with a warning.
        """
        exists = (self.root / planned.relative_path).exists()
        return FileOperation(
            target_path=planned.relative_path,
            content=content,
            mode=WriteMode.OVERWRITE_WITH_WARNING if exists else WriteMode.CREATE_IF_ABSENT,
            owner=planned.owner_id,
        )

    async def write_file(self, op: FileOperation) -> None:
        """Write a starter file.

        Raises:
            OperationOrderError: The owning component has not been created.
        """
        self._enter(_Phase.FILES)
        if op.owner is not None:
            self._require_created(op.owner)

        target = self.root / op.target_path
        relative = op.target_path.as_posix()
        if target.exists():
            if op.mode is WriteMode.CREATE_IF_ABSENT:
                self._warn(f"  {relative} appeared after planning, leaving it untouched")
                self._record(OperationKind.WRITE_FILE, relative, op.mode.value, skipped=True)
                return
            if self.resuming:
                self._warn(f"  Overwriting existing file {relative}")

        ensure_dir(target.parent)
        await asyncio.to_thread(target.write_text, op.content, "utf-8")
        self._record(OperationKind.WRITE_FILE, relative, op.mode.value)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def operation_log(self) -> list[dict[str, object]]:
        return [op.model_dump(mode="json") for op in self.applied]

    async def save_log(self, path: str | Path) -> None:
        """Save the applied-operation log as JSON."""
        await save_json(self.operation_log(), path)
