"""Clean scaffold configuration.

Typed configuration for the scaffolding pipeline. The CLI input is parsed and
validated exactly once into an immutable ``Configuration`` which is then passed
explicitly to every stage. Tool-level knobs that do not change the generated
tree live in ``ToolSettings`` and may come from environment variables.
"""

from __future__ import annotations

import argparse
import os
import re
from collections.abc import Sequence
from enum import Enum
from pathlib import Path
from typing import NoReturn

from pydantic import BaseModel, ConfigDict, Field, field_validator
from rich.markup import escape

from clean_scaffold.exceptions import (
    InvalidEnumValue,
    InvalidOptionValue,
    MissingRequiredOption,
    UnknownOption,
    ValidationError,
)
from clean_scaffold.utils import print_summary_table, print_warning

# ---------------------------------------------------------------------------
# Enumerations and constants
# ---------------------------------------------------------------------------


class DatabaseProvider(str, Enum):
    """Database providers the generated Infrastructure layer can target."""

    SQLSERVER = "sqlserver"
    POSTGRES = "postgres"
    SQLITE = "sqlite"


class Feature(str, Enum):
    """Optional feature flags that gate sub-structure and template regions."""

    CQRS = "cqrs"


class VersionBand(str, Enum):
    """Package version line selected by the target framework."""

    LTS = "lts"
    CURRENT = "current"


DEFAULT_FRAMEWORK = "net8.0"

# Frameworks matching this pattern are known; anything else only warns.
SUPPORTED_FRAMEWORK_PATTERN = re.compile(r"^net[6-9]\.0$")

# Newest supported major version. Frameworks at or above it use the
# ``CURRENT`` package line.
CURRENT_BAND_MAJOR = 9

_FRAMEWORK_MAJOR_PATTERN = re.compile(r"^net(\d+)\.\d+$")
_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_.-]*$")


def check_solution_name(name: str) -> str | None:
    """Return a reason string if *name* is not filesystem safe, else ``None``."""
    if not _NAME_PATTERN.match(name):
        return (
            "must start with a letter and contain only letters, digits, "
            "'.', '-' or '_'"
        )
    if name.endswith(".") or ".." in name:
        return "must not end with '.' or contain '..'"
    return None


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class Configuration(BaseModel):
    """Validated, immutable scaffolding configuration.

    Created once from the command line and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Solution name")
    features: frozenset[Feature] = Field(default_factory=frozenset)
    framework: str = Field(default=DEFAULT_FRAMEWORK, description="Target framework moniker")
    db_provider: DatabaseProvider = Field(default=DatabaseProvider.SQLSERVER)
    include_tests: bool = Field(default=False)
    output_dir: Path = Field(
        default=Path("."), description="Parent directory of the solution folder"
    )

    @field_validator("name")
    @classmethod
    def _name_is_filesystem_safe(cls, value: str) -> str:
        reason = check_solution_name(value)
        if reason is not None:
            raise ValueError(reason)
        return value

    # ------------------------------------------------------------------
    # Derived values (read-only properties)
    # ------------------------------------------------------------------

    @property
    def enable_cqrs(self) -> bool:
        return Feature.CQRS in self.features

    @property
    def framework_major(self) -> int | None:
        """Major version parsed from ``netN.M``, or ``None`` if unparseable."""
        match = _FRAMEWORK_MAJOR_PATTERN.match(self.framework)
        return int(match.group(1)) if match else None

    @property
    def framework_recognised(self) -> bool:
        return bool(SUPPORTED_FRAMEWORK_PATTERN.match(self.framework))

    @property
    def version_band(self) -> VersionBand:
        major = self.framework_major
        if major is not None and major >= CURRENT_BAND_MAJOR:
            return VersionBand.CURRENT
        return VersionBand.LTS

    @property
    def solution_root(self) -> Path:
        """Directory that holds the generated solution."""
        return self.output_dir / self.name

    def summary(self) -> dict[str, str]:
        """Return the human-readable configuration summary."""
        return {
            "Solution Name": self.name,
            "Framework": self.framework,
            "CQRS Enabled": str(self.enable_cqrs).lower(),
            "Database Provider": self.db_provider.value,
            "Include Tests": str(self.include_tests).lower(),
            "Output": str(self.solution_root),
        }


class ToolSettings(BaseModel):
    """Settings for the external tool and diagnostics.

    None of these change the generated tree.
    """

    dotnet_path: str = Field(default="dotnet", description="Project tool executable")
    verify_build: bool = Field(
        default=True, description="Run the verification build after scaffolding"
    )
    operation_log: Path | None = Field(
        default=None, description="Where to save the applied-operation log as JSON"
    )

    @classmethod
    def from_env(cls) -> "ToolSettings":
        """Build ``ToolSettings`` from environment variables.

        Recognised variables (all optional):
            CLEAN_SCAFFOLD_DOTNET, CLEAN_SCAFFOLD_SKIP_BUILD,
            CLEAN_SCAFFOLD_OPERATION_LOG.
        """
        skip_build = os.environ.get("CLEAN_SCAFFOLD_SKIP_BUILD", "").strip().lower()
        log_path = os.environ.get("CLEAN_SCAFFOLD_OPERATION_LOG")
        return cls(
            dotnet_path=os.environ.get("CLEAN_SCAFFOLD_DOTNET") or "dotnet",
            verify_build=skip_build not in ("1", "true", "yes"),
            operation_log=Path(log_path) if log_path else None,
        )


# ---------------------------------------------------------------------------
# Command-line validation
# ---------------------------------------------------------------------------


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting with status 2."""

    def error(self, message: str) -> NoReturn:
        raise ValidationError(message)


def build_parser() -> argparse.ArgumentParser:
    """Return the CLI argument parser."""
    parser = _ArgumentParser(
        prog="clean-scaffold",
        description="ASP.NET Clean Architecture scaffolding -- creates a complete multi-layer Web API solution",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
        epilog=(
            "Examples:\n"
            "  clean-scaffold --name MyWebApi\n"
            "  clean-scaffold --name MyWebApi --enable-cqrs --framework net8.0\n"
            "  clean-scaffold --name MyWebApi --enable-cqrs --db-provider postgres --include-tests\n"
        ),
    )
    parser.add_argument("--name", default=None, help="(Required) Name of the solution")
    parser.add_argument(
        "--enable-cqrs",
        action="store_true",
        help="Enable CQRS pattern with MediatR",
    )
    parser.add_argument(
        "--framework",
        default=DEFAULT_FRAMEWORK,
        help=f".NET version (net6.0, net7.0, net8.0, net9.0). Default: {DEFAULT_FRAMEWORK}",
    )
    parser.add_argument(
        "--db-provider",
        default=DatabaseProvider.SQLSERVER.value,
        help="Database provider: sqlserver, postgres, sqlite. Default: sqlserver",
    )
    parser.add_argument(
        "--include-tests",
        action="store_true",
        help="Include test projects",
    )
    parser.add_argument(
        "--output-dir", "-o",
        default=".",
        help="Directory in which the solution folder is created (default: .)",
    )
    return parser


def validate(raw_args: Sequence[str], *, echo: bool = True) -> Configuration:
    """Parse and validate raw command-line arguments.

    Args:
        raw_args: Arguments without the program name.
        echo: Print the configuration summary (and any warnings).

    Returns:
        A frozen ``Configuration``.

    Raises:
        MissingRequiredOption: ``--name`` absent or empty.
        InvalidEnumValue: ``--db-provider`` outside the supported set.
        InvalidOptionValue: ``--name`` not filesystem safe.
        UnknownOption: An unrecognised flag was given.
        ValidationError: Any other malformed input (e.g. a flag missing its value).
    """
    parser = build_parser()
    args, extras = parser.parse_known_args(list(raw_args))
    if extras:
        raise UnknownOption(extras[0])

    name = (args.name or "").strip()
    if not name:
        raise MissingRequiredOption("--name")
    reason = check_solution_name(name)
    if reason is not None:
        raise InvalidOptionValue("--name", name, reason)

    allowed = [p.value for p in DatabaseProvider]
    if args.db_provider not in allowed:
        raise InvalidEnumValue("--db-provider", args.db_provider, allowed)

    features: set[Feature] = set()
    if args.enable_cqrs:
        features.add(Feature.CQRS)

    config = Configuration(
        name=name,
        features=frozenset(features),
        framework=args.framework,
        db_provider=DatabaseProvider(args.db_provider),
        include_tests=args.include_tests,
        output_dir=Path(args.output_dir),
    )

    if echo:
        if not config.framework_recognised:
            print_warning(
                f"Warning: Unusual framework version '{escape(config.framework)}'. "
                "Proceeding anyway..."
            )
        print_summary_table(config.summary(), title="Configuration")

    return config
