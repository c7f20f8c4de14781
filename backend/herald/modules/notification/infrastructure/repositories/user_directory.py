"""In-memory user directory."""

from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from herald.modules.notification.domain.interfaces.services import IUserDirectory
from herald.modules.notification.domain.value_objects import ContactInfo


@dataclass
class DirectoryEntry:
    contact: ContactInfo
    roles: set[str] = field(default_factory=set)
    locations: set[str] = field(default_factory=set)
    segments: set[str] = field(default_factory=set)


class InMemoryUserDirectory(IUserDirectory):
    """User contacts and memberships held in a dictionary."""

    def __init__(self, entries: list[DirectoryEntry] | None = None):
        self._entries: dict[str, DirectoryEntry] = {}
        for entry in entries or []:
            self.add(entry)

    def add(self, entry: DirectoryEntry) -> None:
        self._entries[entry.contact.user_id] = entry

    def add_user(
        self,
        user_id: str,
        email: str | None = None,
        phone: str | None = None,
        push_token: str | None = None,
        name: str | None = None,
        roles: list[str] | None = None,
        locations: list[str] | None = None,
        segments: list[str] | None = None,
    ) -> ContactInfo:
        contact = ContactInfo(user_id, email=email, phone=phone, push_token=push_token, name=name)
        self.add(
            DirectoryEntry(
                contact=contact,
                roles=set(roles or ()),
                locations=set(locations or ()),
                segments=set(segments or ()),
            )
        )
        return contact

    async def get_contact(self, user_id: str) -> ContactInfo | None:
        entry = self._entries.get(user_id)
        return entry.contact if entry else None

    async def iter_user_ids(
        self,
        roles: tuple[str, ...] = (),
        locations: tuple[str, ...] = (),
        segments: tuple[str, ...] = (),
    ) -> AsyncIterator[str]:
        for user_id, entry in list(self._entries.items()):
            if roles and not entry.roles.intersection(roles):
                continue
            if locations and not entry.locations.intersection(locations):
                continue
            if segments and not entry.segments.intersection(segments):
                continue
            yield user_id
