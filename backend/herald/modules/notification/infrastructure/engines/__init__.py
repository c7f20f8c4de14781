"""Template engines."""

from herald.modules.notification.infrastructure.engines.jinja_engine import (
    ContentFormatter,
    JinjaTemplateEngine,
    LiteralUndefined,
    TemplateCache,
)

__all__ = ["ContentFormatter", "JinjaTemplateEngine", "LiteralUndefined", "TemplateCache"]
