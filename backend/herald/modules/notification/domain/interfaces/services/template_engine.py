"""
Template Engine Interface

Port for compiling and rendering template sources. The template renderer
decides which template and which variables to use; the engine only turns a
source string and a variable bag into text.
"""

from abc import ABC, abstractmethod
from typing import Any


class ITemplateEngine(ABC):
    """Port for template source rendering."""

    @abstractmethod
    def render(
        self,
        source: str,
        variables: dict[str, Any],
        cache_key: str | None = None,
        html: bool = False,
    ) -> str:
        """
        Render a template source.

        Args:
            source: Template source
            variables: Values available to the template
            cache_key: Key under which the compiled template is cached
            html: Whether substituted values are HTML-escaped

        Returns:
            Rendered text

        Raises:
            MalformedTemplateError: If the source does not compile
            TemplateError: If rendering fails
        """

    @abstractmethod
    def invalidate(self, prefix: str) -> int:
        """Drop cached compiled templates whose key starts with ``prefix``."""

    @abstractmethod
    def to_plain_text(self, html: str) -> str:
        """Plain-text alternative of rendered HTML."""
