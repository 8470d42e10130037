"""Catalog models — Text entries, provider descriptors and section addressing.

Providers describe their texts with loosely-shaped JSON (``hasText``,
``langName``, ``divisionNames`` ...).  ``TextEntry.from_raw`` normalizes
those records into the typed catalog schema; anything the schema does not
know is preserved in ``extra``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from lectern.providers.base.exceptions import MalformedEntry

# Raw manifest keys that map onto differently-named model fields
_FIELD_ALIASES: dict[str, str] = {
    "hasText": "has_text",
    "hasAudio": "has_audio",
    "nameEnglish": "name_english",
    "langName": "lang_name",
    "langNameEnglish": "lang_name_english",
    "divisionNames": "division_names",
    "providerName": "provider_name",
    "providerRef": "provider_ref",
}

# Keys computed by the core that must never be read back from a provider
_RESERVED_KEYS = frozenset({"providerid"})


def split_text_id(textid: str) -> tuple[str | None, str]:
    """Split a ``provider:textid`` reference into its parts.

    Returns:
        ``(provider_name, textid)``; provider_name is ``None`` when the
        reference carries no prefix.
    """
    provider, sep, bare = textid.partition(":")
    if not sep:
        return None, textid
    return provider or None, bare


class Capability(str, Enum):
    """Operations a provider can serve."""

    MANIFEST = "manifest"
    TEXT_INFO = "text_info"
    SECTIONS = "sections"
    SEARCH = "search"


class TextEntry(BaseModel):
    """One logical text (bible, commentary, audio recording set) in the catalog."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(description="Identifier, unique in the merged catalog")
    abbr: str = Field(default="", description="Abbreviation used by some backends as identifier")
    type: str = Field(default="bible", description="Kind of text: bible, commentary, ...")
    name: str = Field(default="", description="Display name in the text's own language")
    name_english: str = Field(default="", description="English display name")
    title: str = Field(default="", description="Long display title")
    lang: str = Field(default="", description="Language code")
    lang_name: str = Field(default="", description="Language name in that language")
    lang_name_english: str = Field(default="", description="Language name in English")
    has_text: bool = Field(default=False, description="Text rendering is available")
    has_audio: bool = Field(default=False, description="Audio playback is available")
    divisions: list[str] = Field(default_factory=list, description="Division codes (e.g. books)")
    division_names: list[str] = Field(default_factory=list, description="Display names of divisions")
    sections: list[str] = Field(default_factory=list, description="Section ids in canonical order")
    provider_name: str | None = Field(default=None, description="Provider that serves this text's sections")
    provider_ref: str | None = Field(default=None, description="Opaque provider-specific reference")
    extra: dict[str, Any] = Field(default_factory=dict, description="Additional provider-specific metadata")

    @property
    def provider_id(self) -> str:
        """Fully qualified ``provider:textid`` reference."""
        return f"{self.provider_name}:{self.id}" if self.provider_name else self.id

    @classmethod
    def from_raw(
        cls,
        raw: TextEntry | dict[str, Any],
        defaults: dict[str, Any] | None = None,
    ) -> TextEntry:
        """Normalize a provider record into a ``TextEntry``.

        Args:
            raw: A ``TextEntry`` or a raw manifest dict.
            defaults: Field values applied when the record does not set them.

        Returns:
            A new ``TextEntry`` (never the object passed in).

        Raises:
            MalformedEntry: If the record is not a mapping, has neither an
                ``id`` nor an ``abbr``, or has fields of the wrong type.
        """
        if isinstance(raw, TextEntry):
            return raw.model_copy(deep=True)
        if not isinstance(raw, dict):
            raise MalformedEntry(f"Manifest entry must be a mapping, got {type(raw).__name__}")

        known: dict[str, Any] = dict(defaults or {})
        extra: dict[str, Any] = {}
        for key, value in raw.items():
            if key in _RESERVED_KEYS:
                continue
            field = _FIELD_ALIASES.get(key, key)
            if field in cls.model_fields and field != "extra":
                known[field] = value
            else:
                extra[key] = value
        if isinstance(raw.get("extra"), dict):
            extra.update(raw["extra"])

        entry_id = str(known.get("id") or "").strip()
        abbr = str(known.get("abbr") or "").strip()
        if not entry_id and not abbr:
            raise MalformedEntry(f"Manifest entry has neither id nor abbr: {raw!r:.200}")
        known["id"] = split_text_id(entry_id)[1] if entry_id else abbr
        known["abbr"] = abbr

        try:
            return cls(**known, extra=extra)
        except ValidationError as e:
            raise MalformedEntry(f"Invalid manifest entry '{known['id']}': {e}") from e


class ProviderDescriptor(BaseModel):
    """Registration record of a provider."""

    name: str = Field(description="Registered provider name")
    order: int = Field(description="Registration order, used as priority for tie-breaks")
    capabilities: list[Capability] = Field(default_factory=list, description="Operations the provider serves")


class ProviderHealth(BaseModel):
    """Health status of a text provider."""

    status: str = Field(description="Health status: healthy, degraded, unhealthy")
    latency_ms: int = Field(default=0, description="Latency of last health check in ms")
    last_check: str | None = Field(default=None, description="ISO timestamp of last health check")
    message: str | None = Field(default=None, description="Additional health message")


class SectionKey(BaseModel):
    """Address of one retrievable content unit."""

    model_config = ConfigDict(frozen=True)

    textid: str
    sectionid: str

    def __str__(self) -> str:
        return f"{self.textid}/{self.sectionid}"


class CacheEntry(BaseModel):
    """A retrieved section held in the section cache."""

    key: SectionKey
    data: str
    provider_name: str
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
