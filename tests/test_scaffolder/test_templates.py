"""Tests for the Jinja2 template renderer.

Covers:
- Rendering every shipped template under every option combination
- Rendering is pure and idempotent
- No placeholder or region syntax survives in shipped output
- Every referenced placeholder is supplied by build_context
- Conditional regions (CQRS, tests) and their blank-line behaviour
- Unresolved placeholders are left verbatim
- Substituted values are never re-scanned
- Provider-specific values in appsettings.json and DependencyInjection.cs
"""

from __future__ import annotations

import itertools
import json
from pathlib import Path

import pytest

from clean_scaffold.config import Configuration, DatabaseProvider, Feature
from clean_scaffold.scaffolder.templates import (
    NO_TESTS_NOTE,
    PROVIDER_PROFILES,
    TemplateRenderer,
    build_context,
)

pytestmark = pytest.mark.unit


@pytest.fixture(scope="module")
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


def _configs() -> list[Configuration]:
    return [
        Configuration(
            name="Shop",
            features=frozenset({Feature.CQRS}) if cqrs else frozenset(),
            db_provider=provider,
            include_tests=tests,
        )
        for provider, cqrs, tests in itertools.product(
            list(DatabaseProvider), [True, False], [True, False]
        )
    ]


ALL_TEMPLATES = TemplateRenderer().list_templates()


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


class TestListTemplates:
    def test_all_templates(self, renderer):
        assert len(ALL_TEMPLATES) == 25
        assert "solution/README.md.j2" in ALL_TEMPLATES
        assert "webapi/appsettings.json.j2" in ALL_TEMPLATES

    def test_prefix(self, renderer):
        assert renderer.list_templates("domain") == [
            "domain/Address.cs.j2",
            "domain/BaseEntity.cs.j2",
            "domain/IRepository.cs.j2",
            "domain/Status.cs.j2",
        ]

    def test_missing_prefix(self, renderer):
        assert renderer.list_templates("nope") == []

    def test_custom_template_dir(self, tmp_path: Path):
        (tmp_path / "hello.txt.j2").write_text("Hello {{ solution_name }}\n", encoding="utf-8")
        custom = TemplateRenderer(tmp_path)
        assert custom.list_templates() == ["hello.txt.j2"]
        assert custom.render("hello.txt.j2", {"solution_name": "Shop"}) == "Hello Shop\n"


# ---------------------------------------------------------------------------
# Shipped templates
# ---------------------------------------------------------------------------


class TestShippedTemplates:
    @pytest.mark.parametrize("template", ALL_TEMPLATES)
    def test_placeholders_supplied_by_context(self, renderer, template: str):
        context_keys = set(build_context(Configuration(name="Shop")))
        assert renderer.placeholders(template) <= context_keys

    @pytest.mark.parametrize("template", ALL_TEMPLATES)
    def test_no_syntax_left_and_idempotent(self, renderer, template: str):
        for config in _configs():
            context = build_context(config)
            first = renderer.render(template, context)
            assert "{{" not in first
            assert "{%" not in first
            assert renderer.render(template, context) == first

    def test_solution_name_substituted(self, renderer):
        context = build_context(Configuration(name="Inventory"))
        rendered = renderer.render("domain/BaseEntity.cs.j2", context)
        assert "namespace Inventory.Domain" in rendered
        assert "solution_name" not in rendered

    def test_render_does_not_mutate_context(self, renderer):
        context = build_context(Configuration(name="Shop"))
        snapshot = dict(context)
        renderer.render("solution/README.md.j2", context)
        assert context == snapshot


# ---------------------------------------------------------------------------
# Conditional regions
# ---------------------------------------------------------------------------


class TestRegions:
    def test_region_removed_leaves_no_blank_line(self, renderer):
        source = "a\n{% if flag %}\nb\n{% endif %}\nc\n"
        assert renderer.render_string(source, {"flag": False}) == "a\nc\n"
        assert renderer.render_string(source, {"flag": True}) == "a\nb\nc\n"

    def test_mediatr_region(self, renderer):
        on = renderer.render(
            "application/DependencyInjection.cs.j2",
            build_context(Configuration(name="Shop", features=frozenset({Feature.CQRS}))),
        )
        off = renderer.render(
            "application/DependencyInjection.cs.j2",
            build_context(Configuration(name="Shop")),
        )
        assert "AddMediatR" in on
        assert "MediatR" not in off
        assert "return services;" in off

    def test_disabled_region_is_line_subset(self, renderer):
        on = renderer.render(
            "solution/README.md.j2",
            build_context(Configuration(name="Shop", features=frozenset({Feature.CQRS}), include_tests=True)),
        )
        off = renderer.render(
            "solution/README.md.j2",
            build_context(Configuration(name="Shop", include_tests=True)),
        )
        on_lines = on.splitlines()
        assert all(line in on_lines for line in off.splitlines())
        assert len(off.splitlines()) < len(on_lines)

    def test_readme_tests_regions(self, renderer):
        with_tests = renderer.render(
            "solution/README.md.j2", build_context(Configuration(name="Shop", include_tests=True))
        )
        without = renderer.render(
            "solution/README.md.j2", build_context(Configuration(name="Shop"))
        )
        assert "Shop.Domain.Tests/" in with_tests
        assert "No tests included" not in with_tests
        assert "Shop.Domain.Tests/" not in without
        assert "No tests included. Use --include-tests flag to add test projects." in without


# ---------------------------------------------------------------------------
# Placeholder semantics
# ---------------------------------------------------------------------------


class TestPlaceholders:
    def test_unresolved_placeholder_left_verbatim(self, renderer):
        assert renderer.render_string("Hello {{ missing }}!", {}) == "Hello {{ missing }}!"

    def test_values_not_rescanned(self, renderer):
        rendered = renderer.render_string(
            "{{ solution_name }}/{{ framework }}",
            {"solution_name": "{{ framework }}", "framework": "net8.0"},
        )
        assert rendered == "{{ framework }}/net8.0"

    def test_placeholders_includes_region_flags(self, renderer):
        names = renderer.placeholders("application/DependencyInjection.cs.j2")
        assert names == {"solution_name", "enable_cqrs"}


# ---------------------------------------------------------------------------
# Provider-specific values
# ---------------------------------------------------------------------------


class TestProviderValues:
    @pytest.mark.parametrize("provider", list(DatabaseProvider))
    def test_appsettings_connection_string(self, renderer, provider: DatabaseProvider):
        config = Configuration(name="Shop", db_provider=provider)
        data = json.loads(renderer.render("webapi/appsettings.json.j2", build_context(config)))
        assert data["ConnectionStrings"]["DefaultConnection"] == (
            PROVIDER_PROFILES[provider].connection_string_for("Shop")
        )

    def test_sqlserver_connection_string(self):
        profile = PROVIDER_PROFILES[DatabaseProvider.SQLSERVER]
        assert profile.connection_string_for("Shop") == (
            "Server=(localdb)\\mssqllocaldb;Database=Shop;"
            "Trusted_Connection=True;MultipleActiveResultSets=true"
        )

    def test_sqlite_connection_string(self):
        assert PROVIDER_PROFILES[DatabaseProvider.SQLITE].connection_string_for("Shop") == (
            "Data Source=Shop.db"
        )

    @pytest.mark.parametrize(
        ("provider", "method"),
        [
            (DatabaseProvider.SQLSERVER, "UseSqlServer"),
            (DatabaseProvider.POSTGRES, "UseNpgsql"),
            (DatabaseProvider.SQLITE, "UseSqlite"),
        ],
    )
    def test_infrastructure_provider_method(self, renderer, provider, method: str):
        config = Configuration(name="Shop", db_provider=provider)
        rendered = renderer.render("infrastructure/DependencyInjection.cs.j2", build_context(config))
        assert f"options.{method}(" in rendered

    def test_context_keys(self):
        context = build_context(Configuration(name="Shop", db_provider=DatabaseProvider.POSTGRES))
        assert context["db_provider_name"] == "PostgreSQL"
        assert context["enable_cqrs"] is False
        assert context["include_tests"] is False
        assert context["tests_note"] == NO_TESTS_NOTE
        assert context["framework"] == "net8.0"

    def test_tests_note_empty_with_tests(self):
        context = build_context(Configuration(name="Shop", include_tests=True))
        assert context["tests_note"] == ""

    def test_readme_has_no_negated_region(self, renderer):
        source = (renderer.template_dir / "solution/README.md.j2").read_text(encoding="utf-8")
        assert "{% if not" not in source
