from __future__ import annotations

from app.models.provider import ContentsResult
from app.tools.content_extractor import (
    ExtractedBlock,
    ExtractedContent,
    build_block,
    html_to_text,
    snippet_block,
)


def test_build_block_prefers_markdown_and_cleans_it():
    page = ContentsResult(
        url="https://www.mayoclinic.org/magnesium",
        title="Magnesium",
        markdown="Skip to main content\nMagnesium supplements may cause diarrhea in some adults.\nSign in",
    )

    block = build_block(
        page, title="fallback", fallback_snippet="snippet", max_markdown_chars=3000, max_block_chars=2000
    )

    assert block.text == "Magnesium supplements may cause diarrhea in some adults."
    assert block.from_snippet is False
    assert block.render().startswith("### Source: Magnesium (https://www.mayoclinic.org/magnesium)\n")


def test_build_block_truncates_before_and_after_cleaning():
    sentence = "Magnesium helps regulate muscle and nerve function in the body.\n"
    page = ContentsResult(url="https://a.org", markdown=sentence * 100)

    block = build_block(
        page, title="A", fallback_snippet="", max_markdown_chars=300, max_block_chars=100
    )

    assert len(block.text) <= 100


def test_build_block_uses_html_when_markdown_missing():
    html = (
        "<html><nav>Menu Home About</nav><body><p>Magnesium is found in leafy greens and nuts.</p>"
        "<script>var x = 1;</script></body></html>"
    )
    page = ContentsResult(url="https://b.org", title="B", html=html)

    block = build_block(page, title="B", fallback_snippet="", max_markdown_chars=3000, max_block_chars=2000)

    assert block.text == "Magnesium is found in leafy greens and nuts."


def test_build_block_falls_back_to_snippet_when_page_is_all_chrome():
    page = ContentsResult(url="https://c.org", title="C", markdown="Sign in\nSubscribe\nMenu")

    block = build_block(
        page,
        title="C",
        fallback_snippet="Magnesium may interact with some blood pressure drugs.",
        max_markdown_chars=3000,
        max_block_chars=2000,
    )

    assert block.from_snippet is True
    assert block.text == "Magnesium may interact with some blood pressure drugs."


def test_html_to_text_drops_scripts_and_navigation():
    text = html_to_text("<nav>Home</nav><p>Body text here.</p><style>p{}</style>")
    assert text == "Body text here."


def test_extracted_content_skips_empty_blocks():
    content = ExtractedContent()
    content.append(ExtractedBlock(title="A", url="https://a.org", text="   "))
    assert content.is_empty

    content.append(snippet_block(title="B", url="https://b.org", snippet="Magnesium is a mineral used by the body."))
    content.append(ExtractedBlock(title="C", url="https://c.org", text="Second block of text."))

    rendered = content.render()
    assert rendered.startswith("### Source: B (https://b.org)\n")
    assert "\n\n### Source: C (https://c.org)\nSecond block of text." in rendered
