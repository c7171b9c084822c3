"""Clients for the external project tool.

The orchestrator talks to the build/package tool only through
``ProjectToolClient``. ``DotnetToolClient`` shells out to the .NET SDK;
``InMemoryToolClient`` records every call and materialises just enough of the
solution on disk to drive the pipeline in tests.
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import ClassVar

from clean_scaffold.exceptions import (
    PrerequisiteMissing,
    StructuralOperationFailure,
    VerificationWarning,
)
from clean_scaffold.utils import run_command

from .graph import Component
from .packages import PackageRequirement


class ProjectToolClient(ABC):
    """Abstract project tool: create, register, reference, add packages, build."""

    bin_name: ClassVar[str] = "dotnet"

    @abstractmethod
    async def version(self) -> str:
        """Return the tool version.

        Raises:
            PrerequisiteMissing: The tool is not installed or not runnable.
        """

    @abstractmethod
    async def create_solution(self, root: Path, name: str) -> None:
        """Create ``<name>.sln`` inside *root*."""

    @abstractmethod
    async def create_component(self, root: Path, component: Component, framework: str) -> None:
        """Create the project for *component* under *root*."""

    @abstractmethod
    async def register_component(self, root: Path, solution: str, component: Component) -> None:
        """Add *component* to the ``<solution>.sln`` aggregate."""

    @abstractmethod
    async def add_reference(
        self, root: Path, component: Component, targets: Sequence[Component]
    ) -> None:
        """Add project references from *component* to each of *targets*."""

    @abstractmethod
    async def add_package(
        self, root: Path, component: Component, requirement: PackageRequirement
    ) -> None:
        """Install *requirement* into *component*."""

    @abstractmethod
    async def build(self, root: Path) -> None:
        """Build the solution.

        Raises:
            VerificationWarning: The build reported errors.
        """


# ---------------------------------------------------------------------------
# .NET SDK
# ---------------------------------------------------------------------------


class DotnetToolClient(ProjectToolClient):
    """Runs the ``dotnet`` CLI. Every call blocks until the tool exits."""

    install_hint = "Please install .NET SDK from https://dotnet.microsoft.com/download"

    def __init__(self, executable_path: str | Path | None = None) -> None:
        self.executable_path = executable_path

    def _resolve_executable(self) -> str:
        if self.executable_path and Path(self.executable_path).is_file():
            return str(self.executable_path)
        path = shutil.which(str(self.executable_path or self.bin_name))
        if path is None:
            raise PrerequisiteMissing(str(self.executable_path or self.bin_name), self.install_hint)
        return path

    async def _run(self, args: list[str], cwd: Path, action: str) -> str:
        command = [self._resolve_executable(), *args]
        returncode, stdout, stderr = await run_command(command, cwd=cwd)
        if returncode != 0:
            raise StructuralOperationFailure(
                f"Failed to {action}",
                command=command,
                return_code=returncode,
                stderr=stderr or stdout,
            )
        return stdout

    async def version(self) -> str:
        command = [self._resolve_executable(), "--version"]
        returncode, stdout, stderr = await run_command(command)
        if returncode != 0:
            raise PrerequisiteMissing(command[0], stderr or self.install_hint)
        return stdout.strip()

    async def create_solution(self, root: Path, name: str) -> None:
        await self._run(["new", "sln", "-n", name], root, f"create solution {name}")

    async def create_component(self, root: Path, component: Component, framework: str) -> None:
        await self._run(
            [
                "new", component.template,
                "-n", component.id,
                "-f", framework,
                "-o", component.directory.as_posix(),
            ],
            root,
            f"create project {component.id}",
        )

    async def register_component(self, root: Path, solution: str, component: Component) -> None:
        await self._run(
            ["sln", f"{solution}.sln", "add", component.project_file.as_posix()],
            root,
            f"add {component.id} to solution",
        )

    async def add_reference(
        self, root: Path, component: Component, targets: Sequence[Component]
    ) -> None:
        await self._run(
            [
                "add", component.project_file.as_posix(), "reference",
                *(t.project_file.as_posix() for t in targets),
            ],
            root,
            f"add references to {component.id}",
        )

    async def add_package(
        self, root: Path, component: Component, requirement: PackageRequirement
    ) -> None:
        args = ["add", component.project_file.as_posix(), "package", requirement.package]
        if requirement.version:
            args += ["--version", requirement.version]
        await self._run(args, root, f"install {requirement.package} into {component.id}")

    async def build(self, root: Path) -> None:
        command = [self._resolve_executable(), "build", "--nologo"]
        returncode, stdout, stderr = await run_command(command, cwd=root)
        if returncode != 0:
            raise VerificationWarning(
                "Build completed with warnings or errors", output=stderr or stdout
            )


# ---------------------------------------------------------------------------
# In-memory fake
# ---------------------------------------------------------------------------

_CSPROJ_TEMPLATE = """<Project Sdk="{sdk}">
  <PropertyGroup>
    <TargetFramework>{framework}</TargetFramework>
  </PropertyGroup>
</Project>
"""


class InMemoryToolClient(ProjectToolClient):
    """Project tool fake that records calls instead of running ``dotnet``.

    It writes placeholder ``.sln``/``.csproj`` files (plus the default files
    the real templates emit) so existence checks behave as with the real
    tool. Creating something that already exists fails, like ``dotnet new``
    does; registering, referencing and adding packages are idempotent.

    Args:
        available: When ``False``, ``version()`` raises ``PrerequisiteMissing``.
        fail_on: Operation names (``"create_component"``, ``"add_package"``,
            ...) that raise ``StructuralOperationFailure``.
        build_fails: When ``True``, ``build()`` raises ``VerificationWarning``.
    """

    def __init__(
        self,
        *,
        available: bool = True,
        fail_on: Sequence[str] = (),
        build_fails: bool = False,
    ) -> None:
        self.available = available
        self.fail_on = set(fail_on)
        self.build_fails = build_fails
        self.calls: list[tuple[str, ...]] = []
        self.registered: dict[str, list[str]] = {}
        self.references: dict[str, list[str]] = {}
        self.packages: dict[str, dict[str, str | None]] = {}
        self.builds = 0

    def _call(self, operation: str, *args: str) -> None:
        self.calls.append((operation, *args))
        if operation in self.fail_on:
            raise StructuralOperationFailure(
                f"Simulated failure in {operation}",
                command=[self.bin_name, operation, *args],
                return_code=1,
            )

    def calls_for(self, operation: str) -> list[tuple[str, ...]]:
        return [c for c in self.calls if c[0] == operation]

    async def version(self) -> str:
        if not self.available:
            raise PrerequisiteMissing(self.bin_name, DotnetToolClient.install_hint)
        self.calls.append(("version",))
        return "8.0.100-fake"

    async def create_solution(self, root: Path, name: str) -> None:
        self._call("create_solution", name)
        sln = root / f"{name}.sln"
        if sln.exists():
            raise StructuralOperationFailure(f"Solution {sln.name} already exists", return_code=1)
        sln.write_text(f"# Fake solution {name}\n", encoding="utf-8")
        self.registered.setdefault(name, [])

    async def create_component(self, root: Path, component: Component, framework: str) -> None:
        self._call("create_component", component.id, component.template, framework)
        directory = root / component.directory
        project = root / component.project_file
        if project.exists():
            raise StructuralOperationFailure(f"Project {project.name} already exists", return_code=1)
        directory.mkdir(parents=True, exist_ok=True)
        sdk = "Microsoft.NET.Sdk.Web" if component.template == "webapi" else "Microsoft.NET.Sdk"
        project.write_text(_CSPROJ_TEMPLATE.format(sdk=sdk, framework=framework), encoding="utf-8")
        if component.template == "classlib":
            (directory / "Class1.cs").write_text("public class Class1 {}\n", encoding="utf-8")
        elif component.template == "webapi":
            (directory / "Program.cs").write_text("// generated\n", encoding="utf-8")
            (directory / "appsettings.json").write_text("{}\n", encoding="utf-8")
        elif component.template == "xunit":
            (directory / "UnitTest1.cs").write_text("public class UnitTest1 {}\n", encoding="utf-8")

    async def register_component(self, root: Path, solution: str, component: Component) -> None:
        self._call("register_component", solution, component.id)
        members = self.registered.setdefault(solution, [])
        if component.id not in members:
            members.append(component.id)

    async def add_reference(
        self, root: Path, component: Component, targets: Sequence[Component]
    ) -> None:
        self._call("add_reference", component.id, *(t.id for t in targets))
        refs = self.references.setdefault(component.id, [])
        for target in targets:
            if target.id not in refs:
                refs.append(target.id)

    async def add_package(
        self, root: Path, component: Component, requirement: PackageRequirement
    ) -> None:
        self._call("add_package", component.id, requirement.package, requirement.version or "")
        self.packages.setdefault(component.id, {})[requirement.package] = requirement.version

    async def build(self, root: Path) -> None:
        self.builds += 1
        self.calls.append(("build",))
        if self.build_fails:
            raise VerificationWarning("Build completed with warnings or errors", output="error CS0001")
