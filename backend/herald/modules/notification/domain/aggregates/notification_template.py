"""NotificationTemplate aggregate.

A template is versioned per (notification type, channel). Each version is a
separate aggregate; at most one version of a pair is active at a time, which
the template repository enforces when a version is activated.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from herald.core.domain.base import AggregateRoot
from herald.core.errors import ValidationError
from herald.modules.notification.domain.enums import NotificationChannel, NotificationType
from herald.modules.notification.domain.errors import MalformedTemplateError
from herald.modules.notification.domain.events import TemplateActivated

MAX_TEMPLATE_NAME_LENGTH = 100
MAX_TEMPLATE_BODY_LENGTH = 100000

_DELIMITERS = (("{{", "}}"), ("{%", "%}"), ("{#", "#}"))


def check_placeholder_balance(source: str) -> str | None:
    """Return a description of the first unbalanced delimiter, or None.

    Placeholders may not nest and every opening delimiter needs its own
    matching closing delimiter before the next one opens.
    """
    openers = {opening: closing for opening, closing in _DELIMITERS}
    closers = {closing: opening for opening, closing in _DELIMITERS}
    expected: str | None = None
    opened_at = -1
    index = 0

    while index < len(source) - 1:
        pair = source[index : index + 2]
        if pair in openers:
            if expected is not None:
                return f"'{pair}' at {index} opens inside placeholder opened at {opened_at}"
            expected = openers[pair]
            opened_at = index
            index += 2
            continue
        if pair in closers:
            if expected is None:
                # Only an unmatched "}}" is an error; other closers are plain text.
                if pair == "}}":
                    return f"'}}}}' at {index} has no matching '{{{{'"
                index += 1
                continue
            if pair == expected:
                expected = None
                index += 2
                continue
        index += 1

    if expected is not None:
        return f"placeholder opened at {opened_at} is never closed"
    return None


class NotificationTemplate(AggregateRoot):
    """One version of the content template for a (type, channel) pair."""

    def __init__(
        self,
        name: str,
        notification_type: NotificationType,
        channel: NotificationChannel,
        body: str,
        variables: list[str] | None = None,
        subject: str | None = None,
        version: int = 1,
        is_active: bool = False,
        created_by: str = "system",
        description: str | None = None,
        preview_data: dict[str, Any] | None = None,
        entity_id: UUID | None = None,
        created_at: datetime | None = None,
    ):
        super().__init__(entity_id, created_at)

        self.name = self._validate_name(name)
        self.notification_type = NotificationType(notification_type)
        self.channel = NotificationChannel(channel)
        self.body = self._validate_body(body)
        self.subject = subject
        self.variables = list(dict.fromkeys(variables or []))
        self.version_number = version
        self.is_active = is_active
        self.created_by = created_by
        self.description = description
        self.preview_data = dict(preview_data or {})

        if self.channel == NotificationChannel.EMAIL and not self.subject:
            raise ValidationError("Email templates need a subject", field="subject")

    @staticmethod
    def _validate_name(name: str) -> str:
        if not name or not name.strip():
            raise ValidationError("Template name is required", field="name")

        name = name.strip()
        if len(name) > MAX_TEMPLATE_NAME_LENGTH:
            raise ValidationError(
                f"Template name cannot exceed {MAX_TEMPLATE_NAME_LENGTH} characters",
                field="name",
            )
        return name

    @staticmethod
    def _validate_body(body: str) -> str:
        if not body or not body.strip():
            raise ValidationError("Template body is required", field="template")
        if len(body) > MAX_TEMPLATE_BODY_LENGTH:
            raise ValidationError("Template body cannot exceed 100KB", field="template")
        return body

    @property
    def key(self) -> tuple[NotificationType, NotificationChannel]:
        return self.notification_type, self.channel

    @property
    def cache_key(self) -> str:
        return f"{self.id}:{self.version_number}"

    def ensure_well_formed(self) -> None:
        """
        Check that subject and body have balanced placeholders.

        Raises:
            MalformedTemplateError: If a placeholder is unbalanced
        """
        for part_name, source in (("subject", self.subject), ("body", self.body)):
            if not source:
                continue
            problem = check_placeholder_balance(source)
            if problem:
                raise MalformedTemplateError(
                    f"{part_name}: {problem}",
                    template_id=self.id,
                    template_name=self.name,
                )

    def sample_variables(self) -> dict[str, Any]:
        """Variables used for previews: preview data, else a marker per declared name."""
        sample = {name: f"[{name}]" for name in self.variables}
        sample.update(self.preview_data)
        return sample

    def activate(self, at: datetime | None = None) -> None:
        if self.is_active:
            return
        self.is_active = True
        self.mark_modified(at)
        self.increment_version()
        self.add_event(
            TemplateActivated(
                self.id, self.notification_type, self.channel, self.version_number
            )
        )

    def deactivate(self, at: datetime | None = None) -> None:
        if not self.is_active:
            return
        self.is_active = False
        self.mark_modified(at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "type": self.notification_type.value,
            "channel": self.channel.value,
            "subject": self.subject,
            "template": self.body,
            "variables": self.variables,
            "version": self.version_number,
            "is_active": self.is_active,
            "created_by": self.created_by,
            "description": self.description,
            "preview_data": self.preview_data,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    def __str__(self) -> str:
        return f"{self.name} v{self.version_number} ({self.channel.value})"
