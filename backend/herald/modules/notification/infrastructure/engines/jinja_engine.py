"""Jinja2-based template engine for notification rendering."""

import functools
import re
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any

import jinja2
from jinja2 import BaseLoader, DebugUndefined, Template, Undefined, meta
from jinja2.sandbox import SandboxedEnvironment
from markupsafe import Markup

from herald.core.logging import get_logger
from herald.modules.notification.domain.errors import MalformedTemplateError, TemplateError
from herald.modules.notification.domain.interfaces.services import ITemplateEngine

logger = get_logger(__name__)


class LiteralUndefined(DebugUndefined):
    """Undefined that renders back as its own placeholder, e.g. ``{{ user.name }}``.

    Attribute and item lookups on a missing name keep the whole path, so
    nested placeholders survive rendering unchanged.
    """

    __slots__ = ()

    def __getattr__(self, name: str) -> "LiteralUndefined":
        if name[:2] == "__":
            raise AttributeError(name)
        return self._chain(f"{self._undefined_name}.{name}")

    def __getitem__(self, key: Any) -> "LiteralUndefined":
        if isinstance(key, str):
            return self._chain(f"{self._undefined_name}.{key}")
        return self._chain(f"{self._undefined_name}[{key!r}]")

    def _chain(self, name: str) -> "LiteralUndefined":
        if self._undefined_name is None:
            self._fail_with_undefined_error()
        return type(self)(name=name, exc=self._undefined_exception)


def _keep_undefined(func: Callable[..., Any]) -> Callable[..., Any]:
    """Let a missing variable pass through a filter untouched."""

    @functools.wraps(func)
    def wrapper(value: Any, *args: Any, **kwargs: Any) -> Any:
        if isinstance(value, Undefined):
            return value
        return func(value, *args, **kwargs)

    return wrapper


class TemplateCache:
    """In-memory cache for compiled templates."""

    def __init__(self, max_size: int = 1000):
        """Initialize template cache.

        Args:
            max_size: Maximum number of templates to cache
        """
        self.max_size = max_size
        self._cache: dict[str, Template] = {}
        self._access_times: dict[str, datetime] = {}

    def get(self, key: str) -> Template | None:
        if key in self._cache:
            self._access_times[key] = datetime.now(UTC)
            return self._cache[key]
        return None

    def set(self, key: str, template: Template) -> None:
        # Evict least recently used if at capacity
        if key not in self._cache and len(self._cache) >= self.max_size:
            lru_key = min(self._access_times.keys(), key=self._access_times.get)
            self.remove(lru_key)

        self._cache[key] = template
        self._access_times[key] = datetime.now(UTC)

    def remove(self, key: str) -> None:
        self._cache.pop(key, None)
        self._access_times.pop(key, None)

    def remove_prefix(self, prefix: str) -> int:
        """Remove every key starting with ``prefix``; returns how many were removed."""
        keys = [key for key in self._cache if key.startswith(prefix)]
        for key in keys:
            self.remove(key)
        return len(keys)

    def clear(self) -> None:
        self._cache.clear()
        self._access_times.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        return key in self._cache


class ContentFormatter:
    """Formats notification content for different channels."""

    @staticmethod
    def strip_html(html_content: str) -> str:
        """Strip HTML tags from content.

        Args:
            html_content: HTML content

        Returns:
            Plain text content
        """
        # Remove script and style elements
        html_content = re.sub(
            r"<script[^>]*>.*?</script>",
            "",
            html_content,
            flags=re.DOTALL | re.IGNORECASE,
        )
        html_content = re.sub(
            r"<style[^>]*>.*?</style>",
            "",
            html_content,
            flags=re.DOTALL | re.IGNORECASE,
        )

        html_content = re.sub(r"<br\s*/?>", "\n", html_content, flags=re.IGNORECASE)
        html_content = re.sub(r"</p>", "\n\n", html_content, flags=re.IGNORECASE)
        html_content = re.sub(r"<[^>]+>", "", html_content)

        html_content = html_content.replace("&lt;", "<")
        html_content = html_content.replace("&gt;", ">")
        html_content = html_content.replace("&quot;", '"')
        html_content = html_content.replace("&#39;", "'")
        html_content = html_content.replace("&#34;", '"')
        html_content = html_content.replace("&nbsp;", " ")
        # Last, so that "&amp;lt;" stays "&lt;"
        html_content = html_content.replace("&amp;", "&")

        lines = [line.strip() for line in html_content.splitlines()]
        html_content = "\n".join(line for line in lines if line)

        return html_content.strip()

    @staticmethod
    def truncate(content: str, max_length: int) -> str:
        """Truncate content to ``max_length`` characters, ending with an ellipsis."""
        if len(content) <= max_length:
            return content
        return content[: max_length - 3] + "..."


class JinjaTemplateEngine(ITemplateEngine):
    """Sandboxed Jinja2 engine.

    Two environments are kept: one escaping substituted values for HTML
    bodies and one leaving them untouched for subjects and plain text.
    Compiled templates are cached per caller-supplied key.
    """

    def __init__(self, cache: TemplateCache | None = None):
        self.cache = cache or TemplateCache()
        self.formatter = ContentFormatter()
        self._text_env = self._create_environment(autoescape=False)
        self._html_env = self._create_environment(autoescape=True)

    def _create_environment(self, autoescape: bool) -> SandboxedEnvironment:
        env = SandboxedEnvironment(
            autoescape=autoescape,
            loader=BaseLoader(),
            undefined=LiteralUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        filters = {
            "currency": self._filter_currency,
            "date": self._filter_date,
            "truncate_words": self._filter_truncate_words,
            "nl2br": self._filter_nl2br,
            "strip_html": ContentFormatter.strip_html,
        }
        for name, func in filters.items():
            env.filters[name] = _keep_undefined(func)
        return env

    @staticmethod
    def _filter_currency(value: Any, currency: str = "USD") -> str:
        symbols = {"USD": "$", "EUR": "€", "GBP": "£", "JPY": "¥"}
        symbol = symbols.get(currency, currency)
        try:
            return f"{symbol}{float(value):,.2f}"
        except (TypeError, ValueError):
            return str(value)

    @staticmethod
    def _filter_date(value: Any, format: str = "%Y-%m-%d") -> str:
        if isinstance(value, str):
            try:
                value = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except (ValueError, TypeError):
                return str(value)

        if isinstance(value, date | datetime):
            return value.strftime(format)

        return str(value)

    @staticmethod
    def _filter_truncate_words(value: str, count: int = 10, suffix: str = "...") -> str:
        words = str(value).split()
        if len(words) <= count:
            return str(value)
        return " ".join(words[:count]) + suffix

    @staticmethod
    def _filter_nl2br(value: str) -> Markup:
        escaped = Markup.escape(value)
        return Markup(escaped.replace("\n", Markup("<br>\n")))

    def _compile(self, source: str, cache_key: str | None, html: bool) -> Template:
        env = self._html_env if html else self._text_env
        key = f"{cache_key}:{'html' if html else 'text'}" if cache_key else None

        if key:
            template = self.cache.get(key)
            if template is not None:
                return template

        try:
            template = env.from_string(source)
        except jinja2.TemplateSyntaxError as e:
            raise MalformedTemplateError(
                f"line {e.lineno}: {e.message}", template_name=cache_key
            ) from e

        if key:
            self.cache.set(key, template)
        return template

    def render(
        self,
        source: str,
        variables: dict[str, Any],
        cache_key: str | None = None,
        html: bool = False,
    ) -> str:
        template = self._compile(source, cache_key, html)
        try:
            return template.render(**variables)
        except jinja2.TemplateError as e:
            raise TemplateError(f"Template rendering failed: {e}") from e

    def invalidate(self, prefix: str) -> int:
        removed = self.cache.remove_prefix(prefix)
        if removed:
            logger.debug("Template cache invalidated", prefix=prefix, removed=removed)
        return removed

    def to_plain_text(self, html: str) -> str:
        return self.formatter.strip_html(html)

    def extract_variables(self, source: str) -> set[str]:
        """Names referenced by a template source."""
        try:
            ast = self._text_env.parse(source)
        except jinja2.TemplateSyntaxError as e:
            raise MalformedTemplateError(f"line {e.lineno}: {e.message}") from e
        return meta.find_undeclared_variables(ast)
