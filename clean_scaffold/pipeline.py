"""Clean scaffold pipeline driver.

Runs the eight scaffolding stages in order and then verifies the result:

Stage 1: Checking prerequisites   -- the project tool is installed.
Stage 2: Solution structure       -- root directory, ``.sln``, layer folders.
Stage 3: Projects                 -- Domain, Application, Infrastructure, WebApi.
Stage 4: Test projects            -- only with ``--include-tests``.
Stage 5: Solution registration    -- every project added to the ``.sln``.
Stage 6: Project references       -- the fixed layer edges.
Stage 7: NuGet packages           -- from the package matrix.
Stage 8: Starter files            -- rendered templates.

A failing verification build is reported as a warning only.

Usage::

    clean-scaffold --name MyWebApi --enable-cqrs --db-provider postgres
    python -m clean_scaffold --name MyWebApi --include-tests
"""

from __future__ import annotations

import asyncio
import sys
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any

from rich.markup import escape
from rich.panel import Panel

from clean_scaffold.config import Configuration, ToolSettings, validate
from clean_scaffold.exceptions import ScaffoldError, ValidationError, VerificationWarning
from clean_scaffold.scaffolder.graph import ComponentKind, build_graph
from clean_scaffold.scaffolder.orchestrator import ScaffoldOrchestrator
from clean_scaffold.scaffolder.packages import resolve_packages
from clean_scaffold.scaffolder.starter_files import plan_starter_files
from clean_scaffold.scaffolder.templates import TemplateRenderer, build_context
from clean_scaffold.scaffolder.tool_client import DotnetToolClient, ProjectToolClient
from clean_scaffold.utils import (
    STAGE_NAMES,
    console,
    format_duration,
    print_error,
    print_stage_header,
    print_step,
    print_success,
    print_warning,
)

BANNER = (
    "[bold blue]ASP.NET Clean Architecture Scaffolding[/bold blue]\n"
    "Creates a complete multi-layer Web API solution"
)


class Pipeline:
    """Scaffolding pipeline driver.

    Attributes:
        config: Validated configuration, never mutated.
        settings: Tool-level settings (executable, verification, diagnostics).
        state: Accumulates per-stage results; returned by ``run``.
        orchestrator: Applies every filesystem and tool operation.
    """

    def __init__(
        self,
        config: Configuration,
        tool: ProjectToolClient | None = None,
        confirm: Callable[[str], bool] | None = None,
        settings: ToolSettings | None = None,
    ) -> None:
        self.config = config
        self.settings = settings or ToolSettings()
        self.tool = tool or DotnetToolClient(self.settings.dotnet_path)
        self.graph = build_graph(config)
        self.renderer = TemplateRenderer()
        self.orchestrator = ScaffoldOrchestrator(config, self.graph, self.tool, confirm=confirm)
        self.state: dict[str, Any] = {
            "started_at": datetime.now(timezone.utc).isoformat(),
            "stages": [],
            "warnings": [],
            "success": False,
        }

    # ------------------------------------------------------------------
    # Stage dispatch
    # ------------------------------------------------------------------

    _STAGE_METHODS: dict[int, str] = {
        1: "stage1_prerequisites",
        2: "stage2_structure",
        3: "stage3_projects",
        4: "stage4_test_projects",
        5: "stage5_register",
        6: "stage6_references",
        7: "stage7_packages",
        8: "stage8_starter_files",
    }

    async def run(self) -> dict[str, Any]:
        """Execute every stage, then the verification build.

        Returns:
            The final state dictionary with a top-level ``success`` boolean.
        """
        pipeline_start = time.monotonic()
        all_success = True

        try:
            for stage_num in sorted(self._STAGE_METHODS):
                stage_name = STAGE_NAMES[stage_num]
                print_stage_header(stage_num, stage_name)

                stage_start = time.monotonic()
                warnings_before = self.orchestrator.warning_count
                try:
                    result = await getattr(self, self._STAGE_METHODS[stage_num])()
                except (ScaffoldError, OSError) as exc:
                    elapsed = time.monotonic() - stage_start
                    all_success = False
                    self._record_stage(stage_num, "failed", elapsed)
                    self.state["error"] = str(exc)
                    self.state["error_type"] = type(exc).__name__
                    print_error(f"Stage {stage_num} ({stage_name}) FAILED: {escape(str(exc))}")
                    if self.orchestrator.applied:
                        console.print(
                            f"[dim]Operations completed before the failure were kept in "
                            f"{escape(str(self.config.solution_root))}[/dim]"
                        )
                    break

                elapsed = time.monotonic() - stage_start
                if result.get("skipped"):
                    status = "skipped"
                elif self.orchestrator.warning_count > warnings_before:
                    status = "warning"
                else:
                    status = "success"
                self._record_stage(stage_num, status, elapsed, result)

            if all_success:
                await self._verify()
        finally:
            self.state["operations"] = self.orchestrator.operation_log()
            if self.settings.operation_log is not None:
                await self.orchestrator.save_log(self.settings.operation_log)

        total_elapsed = time.monotonic() - pipeline_start
        self.state["success"] = all_success
        self.state["total_duration"] = format_duration(total_elapsed)
        self.state["finished_at"] = datetime.now(timezone.utc).isoformat()

        self._print_final_summary(total_elapsed)
        return self.state

    def _record_stage(
        self,
        number: int,
        status: str,
        elapsed: float,
        result: dict[str, Any] | None = None,
    ) -> None:
        self.state["stages"].append({
            "number": number,
            "name": STAGE_NAMES[number],
            "status": status,
            "duration": format_duration(elapsed),
            **(result or {}),
        })

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def stage1_prerequisites(self) -> dict[str, Any]:
        """Check that the project tool is installed."""
        version = await self.tool.version()
        print_step(f".NET SDK found (version: {escape(version)})")
        return {"tool_version": version}

    async def stage2_structure(self) -> dict[str, Any]:
        await self.orchestrator.prepare_root()
        await self.orchestrator.create_solution()
        return {"root": str(self.config.solution_root), "resumed": self.orchestrator.resuming}

    async def stage3_projects(self) -> dict[str, Any]:
        for component in self.graph.primary:
            await self.orchestrator.create_component(component)
        return {"projects": [c.id for c in self.graph.primary]}

    async def stage4_test_projects(self) -> dict[str, Any]:
        if not self.config.include_tests:
            console.print("  [dim]Skipping test projects[/dim]")
            return {"skipped": True}
        for component in self.graph.tests:
            await self.orchestrator.create_component(component)
        return {"projects": [c.id for c in self.graph.tests]}

    async def stage5_register(self) -> dict[str, Any]:
        for component in self.graph:
            await self.orchestrator.register_component(component)
        return {"registered": len(self.graph)}

    async def stage6_references(self) -> dict[str, Any]:
        for component in self.graph:
            await self.orchestrator.add_references(component)
        return {"references": len(self.graph.edges())}

    async def stage7_packages(self) -> dict[str, Any]:
        """Install every package from the matrix, one component at a time."""
        requirements = resolve_packages(self.graph, self.config)
        current: str | None = None
        for requirement in requirements:
            if requirement.component != current:
                current = requirement.component
                console.print(f"  Installing packages for [bold]{current}[/bold]...")
            await self.orchestrator.add_package(requirement)
        print_step("Packages installed")
        return {"packages": len(requirements)}

    async def stage8_starter_files(self) -> dict[str, Any]:
        """Render and write every applicable starter file."""
        context = build_context(self.config)
        written = 0
        for planned in plan_starter_files(self.graph, self.config):
            content = self.renderer.render(planned.starter.template, context)
            op = self.orchestrator.plan_file(planned, content)
            await self.orchestrator.write_file(op)
            written += 1
        print_step("Starter files created")
        return {"files": written}

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    async def _verify(self) -> None:
        if not self.settings.verify_build:
            console.print("\n[dim]Verification build disabled[/dim]")
            return

        console.print("\n[bold blue]Building solution...[/bold blue]")
        try:
            await self.tool.build(self.config.solution_root)
        except VerificationWarning as exc:
            print_warning(f"⚠ {exc}")
            if exc.output:
                console.print(f"[dim]{escape(exc.output)}[/dim]")
            self.state["warnings"].append(str(exc))
        else:
            print_success("✓ Solution built successfully")

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def _next_steps(self) -> str:
        name = self.config.name
        infra = self.graph.primary_of(ComponentKind.INFRASTRUCTURE).directory.as_posix()
        webapi = self.graph.primary_of(ComponentKind.PRESENTATION).directory.as_posix()
        return "\n".join([
            f"Your Clean Architecture solution '[green]{escape(name)}[/green]' is ready!",
            "",
            "Next steps:",
            "",
            "  1. Navigate to your project:",
            f"     [blue]cd {escape(str(self.config.solution_root))}[/blue]",
            "",
            "  2. Open in your IDE or editor:",
            "     [blue]code .[/blue]   # VS Code",
            "     [blue]rider .[/blue]  # JetBrains Rider",
            "",
            "  3. Create your first migration:",
            f"     [blue]dotnet ef migrations add InitialCreate --project {infra} "
            f"--startup-project {webapi}[/blue]",
            "",
            "  4. Update the database:",
            f"     [blue]dotnet ef database update --project {infra} "
            f"--startup-project {webapi}[/blue]",
            "",
            "  5. Run the application:",
            f"     [blue]dotnet run --project {webapi}[/blue]",
            "",
            "  6. Access Swagger UI at:",
            "     [blue]https://localhost:5001/swagger[/blue]",
            "",
            "Check out the README.md for more information!",
        ])

    def _print_final_summary(self, total_elapsed: float) -> None:
        console.print()
        if not self.state["success"]:
            console.print(
                Panel(
                    f"[bold red]SCAFFOLDING FAILED[/bold red]\n\n"
                    f"Duration : {format_duration(total_elapsed)}\n"
                    f"Error    : {escape(self.state.get('error', 'unknown'))}",
                    title="[bold]Scaffold[/bold]",
                    border_style="bold red",
                )
            )
            return

        console.print(
            Panel(
                self._next_steps(),
                title="[bold]Setup Complete![/bold]",
                subtitle=f"{format_duration(total_elapsed)}",
                border_style="bold green",
            )
        )
        for warning in self.state["warnings"]:
            print_warning(f"Warning: {warning}")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point for ``clean-scaffold`` and ``python -m clean_scaffold``."""
    console.print(Panel(BANNER, border_style="blue"))

    try:
        config = validate(sys.argv[1:] if argv is None else argv)
    except ValidationError as exc:
        print_error(f"Error: {escape(str(exc))}")
        console.print("Use --help for usage information")
        sys.exit(1)

    pipeline = Pipeline(config, settings=ToolSettings.from_env())
    result = asyncio.run(pipeline.run())

    if not result.get("success"):
        sys.exit(1)


if __name__ == "__main__":
    main()
