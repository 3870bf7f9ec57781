"""Per-block-type markdown transforms and the registry that dispatches them."""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Iterable, Mapping, Union

from dochub.core.models import Block
from dochub.core.properties import plain_text

BlockTransform = Callable[[Block], Union[str, Awaitable[str]]]


def _wrap_annotated(text: str, annotations: Mapping[str, Any]) -> str:
    # Keep surrounding whitespace outside the markers so "** bold**" never happens.
    core = text.strip()
    if not core:
        return text
    leading = text[: len(text) - len(text.lstrip())]
    trailing = text[len(text.rstrip()) :]
    if annotations.get("code"):
        core = f"`{core}`"
    if annotations.get("bold"):
        core = f"**{core}**"
    if annotations.get("italic"):
        core = f"*{core}*"
    if annotations.get("strikethrough"):
        core = f"~~{core}~~"
    return f"{leading}{core}{trailing}"


def rich_text_to_markdown(runs: Iterable[Mapping[str, Any]] | None) -> str:
    """Render rich text runs with inline annotations and links."""

    parts: list[str] = []
    for run in runs or ():
        run_type = run.get("type", "text")
        if run_type == "equation":
            expression = (run.get("equation") or {}).get("expression", "")
            if expression:
                parts.append(f"${expression}$")
            continue
        text = run.get("plain_text")
        if text is None and isinstance(run.get("text"), Mapping):
            text = run["text"].get("content")
        if not text:
            continue
        href = run.get("href")
        if not href and isinstance(run.get("text"), Mapping):
            link = run["text"].get("link")
            if isinstance(link, Mapping):
                href = link.get("url")
        annotations = run.get("annotations") or {}
        if any(annotations.get(key) for key in ("code", "bold", "italic", "strikethrough")):
            text = _wrap_annotated(text, annotations)
        if href:
            text = f"[{text}]({href})"
        parts.append(text)
    return "".join(parts)


def _text(block: Block) -> str:
    return rich_text_to_markdown(block.payload.get("rich_text"))


def _media_url(block: Block) -> str:
    payload = block.payload
    source = payload.get(str(payload.get("type") or ""))
    if isinstance(source, Mapping) and source.get("url"):
        return str(source["url"])
    for key in ("external", "file"):
        nested = payload.get(key)
        if isinstance(nested, Mapping) and nested.get("url"):
            return str(nested["url"])
    return str(payload.get("url") or "")


def _caption(block: Block) -> str:
    return plain_text(block.payload.get("caption"))


def _prefix_lines(text: str, prefix: str) -> str:
    return "\n".join(f"{prefix}{line}" if line else prefix.rstrip() for line in text.split("\n"))


def paragraph(block: Block) -> str:
    return _text(block)


def _heading(level: int) -> Callable[[Block], str]:
    def transform(block: Block) -> str:
        return f"{'#' * level} {_text(block)}"

    transform.__name__ = f"heading_{level}"
    return transform


def bulleted_list_item(block: Block) -> str:
    return f"- {_text(block)}"


def numbered_list_item(block: Block) -> str:
    return f"1. {_text(block)}"


def to_do(block: Block) -> str:
    mark = "x" if block.payload.get("checked") else " "
    return f"- [{mark}] {_text(block)}"


def quote(block: Block) -> str:
    return _prefix_lines(_text(block), "> ")


def callout(block: Block) -> str:
    icon = block.payload.get("icon") or {}
    emoji = icon.get("emoji") if isinstance(icon, Mapping) else None
    body = _text(block)
    return _prefix_lines(f"{emoji} {body}" if emoji else body, "> ")


def code(block: Block) -> str:
    language = block.payload.get("language") or ""
    if language == "plain text":
        language = ""
    return f"```{language}\n{plain_text(block.payload.get('rich_text'))}\n```"


def divider(block: Block) -> str:
    return "---"


def image(block: Block) -> str:
    url = _media_url(block)
    if not url:
        return ""
    return f"![{_caption(block)}]({url})"


def file_link(block: Block) -> str:
    url = _media_url(block)
    if not url:
        return ""
    label = _caption(block) or str(block.payload.get("name") or "") or url
    return f"[{label}]({url})"


def bookmark(block: Block) -> str:
    url = str(block.payload.get("url") or "")
    if not url:
        return ""
    return f"[{_caption(block) or url}]({url})"


def equation(block: Block) -> str:
    expression = block.payload.get("expression") or ""
    return f"$$\n{expression}\n$$" if expression else ""


def child_page(block: Block) -> str:
    return f"**{block.payload.get('title') or 'Untitled'}**"


def table_row(block: Block) -> str:
    cells = block.payload.get("cells") or []
    rendered = [rich_text_to_markdown(cell).replace("|", "\\|") for cell in cells]
    return "| " + " | ".join(rendered) + " |"


def container(block: Block) -> str:
    return ""


def fallback(block: Block) -> str:
    """Render unknown block types as their plain rich text, if any."""

    return plain_text(block.payload.get("rich_text"))


DEFAULT_TRANSFORMS: dict[str, BlockTransform] = {
    "paragraph": paragraph,
    "heading_1": _heading(1),
    "heading_2": _heading(2),
    "heading_3": _heading(3),
    "bulleted_list_item": bulleted_list_item,
    "numbered_list_item": numbered_list_item,
    "to_do": to_do,
    "toggle": paragraph,
    "quote": quote,
    "callout": callout,
    "code": code,
    "divider": divider,
    "image": image,
    "video": file_link,
    "audio": file_link,
    "file": file_link,
    "pdf": file_link,
    "bookmark": bookmark,
    "embed": bookmark,
    "link_preview": bookmark,
    "equation": equation,
    "child_page": child_page,
    "child_database": child_page,
    "table": container,
    "table_row": table_row,
    "column_list": container,
    "column": container,
    "synced_block": container,
    "table_of_contents": container,
    "breadcrumb": container,
    "unsupported": container,
}


class TransformRegistry:
    """Map block types to transforms; caller supplied overrides win."""

    def __init__(
        self,
        overrides: Mapping[str, BlockTransform] | None = None,
        *,
        default: BlockTransform = fallback,
    ) -> None:
        self._transforms: dict[str, BlockTransform] = dict(DEFAULT_TRANSFORMS)
        self._default = default
        for block_type, transform in (overrides or {}).items():
            self.register(block_type, transform)

    def register(self, block_type: str, transform: BlockTransform) -> None:
        if not callable(transform):
            raise TypeError(f"transform for '{block_type}' must be callable")
        self._transforms[block_type] = transform

    def resolve(self, block_type: str) -> BlockTransform:
        return self._transforms.get(block_type, self._default)

    def __contains__(self, block_type: object) -> bool:
        return block_type in self._transforms

    async def apply(self, block: Block) -> str:
        result = self.resolve(block.type)(block)
        if inspect.isawaitable(result):
            result = await result
        return "" if result is None else str(result)


__all__ = [
    "BlockTransform",
    "DEFAULT_TRANSFORMS",
    "TransformRegistry",
    "rich_text_to_markdown",
]
