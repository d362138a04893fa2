"""Template composition.

A ``TemplateBundle`` holds the root template, its named fragments and the
stylesheet. It is loaded once, checked for unresolved fragment references,
and never changes afterwards, so one bundle can serve concurrent requests.

Conditional styling in templates is limited to two numeric tests::

    {% if item.score is gte(7) %} ... {% endif %}
    {% if entry.gap is lt(1) %} ... {% endif %}

Both reject anything that is not a plain number.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from numbers import Real
from pathlib import Path
from types import MappingProxyType
from typing import Any

import structlog
from jinja2 import (
    DictLoader,
    Environment,
    TemplateNotFound,
    TemplateSyntaxError,
    UndefinedError,
    meta,
    select_autoescape,
)

from reportgen.exceptions import TemplateError
from reportgen.reports.contract import ComposedReportData

logger = structlog.get_logger(__name__)

MarkupDocument = str

ROOT_TEMPLATE = "report.html.j2"
STYLESHEET = "styles/report.css"
PARTIALS_DIR = "partials"
FRAGMENT_SUFFIX = ".html.j2"

# Fragments the report shape requires
REQUIRED_FRAGMENTS = (
    "header",
    "executive-summary",
    "employability",
    "action-plan",
)


def _require_number(value: Any, test: str) -> float:
    # bool is an int subclass but never a score
    if isinstance(value, bool) or not isinstance(value, Real):
        raise TemplateError(
            f"Test '{test}' needs a number, got {type(value).__name__}",
            template=test,
        )
    return value


def numeric_lt(value: Any, other: Any) -> bool:
    """Template test: value < other."""
    return _require_number(value, "lt") < _require_number(other, "lt")


def numeric_gte(value: Any, other: Any) -> bool:
    """Template test: value >= other."""
    return _require_number(value, "gte") >= _require_number(other, "gte")


TEMPLATE_TESTS = {"lt": numeric_lt, "gte": numeric_gte}


def fragment_path(name: str) -> str:
    """Loader path of a named fragment."""
    return f"{PARTIALS_DIR}/{name}{FRAGMENT_SUFFIX}"


@dataclass(frozen=True)
class TemplateBundle:
    """Root template, named fragments and stylesheet."""

    root: str
    fragments: Mapping[str, str]
    stylesheet: str = ""
    required: tuple[str, ...] = field(default=REQUIRED_FRAGMENTS)

    def __post_init__(self) -> None:
        # Freeze the fragment mapping so it cannot change per request
        object.__setattr__(self, "fragments", MappingProxyType(dict(self.fragments)))

    @classmethod
    def from_directory(cls, directory: Path | str) -> "TemplateBundle":
        """
        Load the bundle from a templates directory.

        Expects ``report.html.j2``, ``partials/<name>.html.j2`` for every
        fragment and optionally ``styles/report.css``.

        Raises:
            TemplateError: if the root template or a fragment file is missing
        """
        base = Path(directory)
        root_path = base / ROOT_TEMPLATE
        try:
            root = root_path.read_text(encoding="utf-8")
        except OSError as e:
            raise TemplateError(f"Root template not readable: {root_path}", ROOT_TEMPLATE) from e

        fragments: dict[str, str] = {}
        for path in sorted((base / PARTIALS_DIR).glob(f"*{FRAGMENT_SUFFIX}")):
            name = path.name[: -len(FRAGMENT_SUFFIX)]
            fragments[name] = path.read_text(encoding="utf-8")

        css_path = base / STYLESHEET
        stylesheet = css_path.read_text(encoding="utf-8") if css_path.is_file() else ""

        logger.debug("template_bundle_loaded", directory=str(base), fragments=sorted(fragments))
        return cls(root=root, fragments=fragments, stylesheet=stylesheet)

    def sources(self) -> dict[str, str]:
        """All sources keyed by loader path."""
        sources = {fragment_path(name): source for name, source in self.fragments.items()}
        sources[ROOT_TEMPLATE] = self.root
        return sources


class TemplateCompositor:
    """Binds composed report data to a template bundle."""

    def __init__(self, bundle: TemplateBundle):
        self.bundle = bundle
        self.env = Environment(
            loader=DictLoader(bundle.sources()),
            autoescape=select_autoescape(
                enabled_extensions=("html", "j2"),
                default_for_string=True,
            ),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.env.tests.update(TEMPLATE_TESTS)
        self._check_references()
        try:
            self._template = self.env.get_template(ROOT_TEMPLATE)
        except TemplateSyntaxError as e:
            raise TemplateError(f"Invalid template syntax: {e.message}", e.name) from e

    def _check_references(self) -> None:
        """Fail fast on missing or unresolved fragment references."""
        missing = [name for name in self.bundle.required if name not in self.bundle.fragments]
        if missing:
            raise TemplateError(
                f"Required fragments not registered: {', '.join(missing)}",
                template=missing[0],
            )

        sources = self.bundle.sources()
        for source_name, source in sources.items():
            try:
                ast = self.env.parse(source, name=source_name)
            except TemplateSyntaxError as e:
                raise TemplateError(
                    f"Invalid template syntax in {source_name}: {e.message}",
                    template=source_name,
                ) from e
            for reference in meta.find_referenced_templates(ast):
                if reference is None:
                    raise TemplateError(
                        f"{source_name} includes a fragment by dynamic name",
                        template=source_name,
                    )
                if reference not in sources:
                    raise TemplateError(
                        f"{source_name} references unregistered fragment '{reference}'",
                        template=reference,
                    )

    def compose(self, composed: ComposedReportData) -> MarkupDocument:
        """
        Render the report markup.

        Identical data gives byte-identical markup for a given bundle.

        Raises:
            TemplateError: if rendering fails inside the template layer
        """
        context = composed.to_dict()
        context["styles"] = self.bundle.stylesheet
        try:
            markup = self._template.render(context)
        except TemplateError:
            raise
        except (TemplateNotFound, UndefinedError, TypeError) as e:
            raise TemplateError(f"Template rendering failed: {e}", ROOT_TEMPLATE) from e

        logger.debug("markup_composed", chars=len(markup))
        return markup


def load_compositor(directory: Path | str) -> TemplateCompositor:
    """Convenience function to build a compositor from a templates directory."""
    return TemplateCompositor(TemplateBundle.from_directory(directory))
