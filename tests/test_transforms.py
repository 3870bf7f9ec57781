import pytest

from dochub.core.models import Block
from dochub.core.transforms import TransformRegistry, rich_text_to_markdown
from tests.support.notion_fakes import block, rich, text_block


def _block(raw) -> Block:
    return Block.from_api(raw)


def test_rich_text_annotations_and_links():
    runs = [
        rich("plain "),
        rich("bold", bold=True),
        rich(" "),
        rich("it ", italic=True),
        rich("gone", strikethrough=True),
        rich(" "),
        rich("x = 1", code=True),
        rich(" docs", href="https://docs.example"),
    ]

    assert rich_text_to_markdown(runs) == (
        "plain **bold** *it* ~~gone~~ `x = 1`[ docs](https://docs.example)"
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (text_block("a", "paragraph", "Hello"), "Hello"),
        (text_block("a", "heading_1", "Title"), "# Title"),
        (text_block("a", "heading_2", "Sub"), "## Sub"),
        (text_block("a", "heading_3", "Minor"), "### Minor"),
        (text_block("a", "bulleted_list_item", "item"), "- item"),
        (text_block("a", "numbered_list_item", "step"), "1. step"),
        (text_block("a", "quote", "wise"), "> wise"),
        (block("a", "divider"), "---"),
        (
            block("a", "to_do", {"rich_text": [rich("ship it")], "checked": True}),
            "- [x] ship it",
        ),
        (
            block("a", "code", {"rich_text": [rich("print(1)")], "language": "python"}),
            "```python\nprint(1)\n```",
        ),
        (
            block(
                "a",
                "image",
                {
                    "type": "external",
                    "external": {"url": "https://cdn.example/photo.jpg"},
                    "caption": [rich("alt")],
                },
            ),
            "![alt](https://cdn.example/photo.jpg)",
        ),
        (
            block("a", "bookmark", {"url": "https://example.com", "caption": []}),
            "[https://example.com](https://example.com)",
        ),
        (block("a", "equation", {"expression": "e=mc^2"}), "$$\ne=mc^2\n$$"),
        (block("a", "child_page", {"title": "Appendix"}), "**Appendix**"),
        (
            block("a", "table_row", {"cells": [[rich("a")], [rich("b|c")]]}),
            "| a | b\\|c |",
        ),
    ],
)
async def test_default_transforms(raw, expected):
    registry = TransformRegistry()

    assert await registry.apply(_block(raw)) == expected


@pytest.mark.asyncio
async def test_unknown_type_falls_back_to_plain_text():
    registry = TransformRegistry()
    unknown = _block(block("a", "mystery", {"rich_text": [rich("raw", bold=True)]}))
    empty = _block(block("b", "mystery"))

    assert "mystery" not in registry
    assert await registry.apply(unknown) == "raw"
    assert await registry.apply(empty) == ""


@pytest.mark.asyncio
async def test_overrides_win_and_may_be_async():
    async def shout(block: Block) -> str:
        return "PARAGRAPH"

    registry = TransformRegistry({"paragraph": shout})
    registry.register("divider", lambda block: "***")

    assert await registry.apply(_block(text_block("a", "paragraph", "x"))) == "PARAGRAPH"
    assert await registry.apply(_block(block("b", "divider"))) == "***"


def test_register_rejects_non_callables():
    with pytest.raises(TypeError):
        TransformRegistry().register("paragraph", "not callable")
