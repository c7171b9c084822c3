"""Jinja2 template rendering for starter files.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``clean_scaffold/scaffolder/templates/`` directory and renders them against a
context derived from the ``Configuration``.

Templates contain three kinds of content: literal text, placeholders
(``{{ solution_name }}``) and conditional regions
(``{% if enable_cqrs %} ... {% endif %}``). Jinja2 parses a template once and
renders it in a single pass, so substituted values are never re-scanned for
placeholders. A placeholder missing from the context is left verbatim in the
output instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jinja2 import DebugUndefined, Environment, FileSystemLoader, meta, select_autoescape

from clean_scaffold.config import Configuration, DatabaseProvider


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

NO_TESTS_NOTE = "No tests included. Use --include-tests flag to add test projects."


# ---------------------------------------------------------------------------
# Provider-specific template values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProviderProfile:
    """Template values that vary with the database provider."""

    display_name: str
    options_method: str
    prerequisite: str
    connection_string: str

    def connection_string_for(self, database: str) -> str:
        return self.connection_string.format(database=database)


PROVIDER_PROFILES: dict[DatabaseProvider, ProviderProfile] = {
    DatabaseProvider.SQLSERVER: ProviderProfile(
        display_name="SQL Server",
        options_method="UseSqlServer",
        prerequisite="SQL Server or LocalDB",
        connection_string=(
            "Server=(localdb)\\mssqllocaldb;Database={database};"
            "Trusted_Connection=True;MultipleActiveResultSets=true"
        ),
    ),
    DatabaseProvider.POSTGRES: ProviderProfile(
        display_name="PostgreSQL",
        options_method="UseNpgsql",
        prerequisite="PostgreSQL",
        connection_string="Host=localhost;Database={database};Username=postgres;Password=postgres",
    ),
    DatabaseProvider.SQLITE: ProviderProfile(
        display_name="SQLite",
        options_method="UseSqlite",
        prerequisite="SQLite (no additional installation required)",
        connection_string="Data Source={database}.db",
    ),
}


def build_context(config: Configuration) -> dict[str, Any]:
    """Build the template context for *config*.

    Every placeholder and region flag used by the shipped templates is
    supplied here.
    """
    profile = PROVIDER_PROFILES[config.db_provider]
    return {
        "solution_name": config.name,
        "framework": config.framework,
        "db_provider_name": profile.display_name,
        "db_provider_method": profile.options_method,
        "database_prereq": profile.prerequisite,
        "connection_string": profile.connection_string_for(config.name),
        "enable_cqrs": config.enable_cqrs,
        "include_tests": config.include_tests,
        "tests_note": "" if config.include_tests else NO_TESTS_NOTE,
    }


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for starter files.

    Rendering is pure: the same template and context always produce the same
    text, and nothing is written to disk here.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            undefined=DebugUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    # -- Rendering ---------------------------------------------------------

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"domain/BaseEntity.cs.j2"``).
            context: Placeholder values and region flags.

        Returns:
            The rendered template content.
        """
        template = self.env.get_template(template_path)
        return template.render(**context)

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        """Render an inline template string with the provided context."""
        template = self.env.from_string(template_string)
        return template.render(**context)

    # -- Introspection -----------------------------------------------------

    def placeholders(self, template_path: str) -> set[str]:
        """Return every variable name referenced by *template_path*.

        Covers both placeholders and the flags governing conditional regions.
        """
        source, _, _ = self.env.loader.get_source(self.env, template_path)
        return set(meta.find_undeclared_variables(self.env.parse(source)))

    def list_templates(self, prefix: str = "") -> list[str]:
        """Return a sorted list of all ``.j2`` template paths under *prefix*.

        Paths are relative to the template root directory.
        """
        search_dir = self.template_dir / prefix if prefix else self.template_dir
        if not search_dir.is_dir():
            return []
        return sorted(
            p.relative_to(self.template_dir).as_posix()
            for p in search_dir.rglob("*.j2")
        )
