"""Extraction of derived attributes from a document's property bag."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from dochub.core.models import PropertyKind, PropertyValue, extract_media_format

DEFAULT_TITLE = "Untitled"


def plain_text(runs: Iterable[Mapping[str, Any]] | None) -> str:
    """Concatenate the text of rich text runs."""

    parts: list[str] = []
    for run in runs or ():
        text = run.get("plain_text")
        if text is None and isinstance(run.get("text"), Mapping):
            text = run["text"].get("content")
        if text:
            parts.append(str(text))
    return "".join(parts)


def parse_properties(raw: Mapping[str, Any] | None) -> dict[str, PropertyValue]:
    """Tag each raw property payload with its :class:`PropertyKind`."""

    parsed: dict[str, PropertyValue] = {}
    for name, payload in (raw or {}).items():
        if isinstance(payload, Mapping):
            parsed[str(name)] = PropertyValue.from_api(str(name), payload)
    return parsed


def _lookup(properties: Mapping[str, PropertyValue], *names: str) -> PropertyValue | None:
    for name in names:
        prop = properties.get(name)
        if prop is not None:
            return prop
    return None


def extract_title(properties: Mapping[str, PropertyValue]) -> str:
    for prop in properties.values():
        if prop.kind is PropertyKind.TITLE:
            text = plain_text(prop.value)
            return text if text else DEFAULT_TITLE
    return DEFAULT_TITLE


def extract_tags(properties: Mapping[str, PropertyValue]) -> tuple[str, ...]:
    prop = _lookup(properties, "tags", "Tags")
    if prop is None or prop.kind is not PropertyKind.MULTI_SELECT:
        return ()
    return tuple(
        str(option["name"])
        for option in prop.value or ()
        if isinstance(option, Mapping) and option.get("name")
    )


def extract_author(properties: Mapping[str, PropertyValue]) -> str | None:
    prop = _lookup(properties, "author", "Author")
    if prop is None:
        return None
    match prop.kind:
        case PropertyKind.PEOPLE:
            people = prop.value or []
            if people and isinstance(people[0], Mapping) and people[0].get("name"):
                return str(people[0]["name"])
        case PropertyKind.RICH_TEXT:
            runs = prop.value or []
            if runs:
                return plain_text(runs[:1]) or None
    return None


def extract_status(properties: Mapping[str, PropertyValue]) -> str | None:
    prop = _lookup(properties, "status", "Status")
    if prop is None or prop.kind not in {PropertyKind.SELECT, PropertyKind.STATUS}:
        return None
    option = prop.value
    if isinstance(option, Mapping) and option.get("name"):
        return str(option["name"])
    return None


__all__ = [
    "DEFAULT_TITLE",
    "extract_author",
    "extract_media_format",
    "extract_status",
    "extract_tags",
    "extract_title",
    "parse_properties",
    "plain_text",
]
