"""
Unit tests for the response parser's classification cascade.

Covers:
- JSON product payloads
- Markdown tables (including ragged rows)
- Blank-line product sections
- Plain-text fallback and edge cases
"""

import json

import pytest

from models import TextBlock, TableBlock, ProductBlock
from response_parser import classify, parse, extract_price, extract_url, blocks_to_dicts
from app_config import (
    DEFAULT_PRICE,
    DEFAULT_DESCRIPTION,
    DEFAULT_IMAGE,
    DEFAULT_URL,
    DEFAULT_PRODUCTS_CAPTION,
    DEFAULT_TABLE_TITLE,
    DEFAULT_CARDS_CAPTION,
)


class TestFallback:
    """Text that matches no strategy comes back as a single text block."""

    @pytest.mark.parametrize("text", [
        "",
        "   ",
        "Hello! How can I help you today?",
        "A short paragraph.\n\nAnother short paragraph.",
        "a | b | c without any separator row",
        "{not really json",
        "[1, 2, 3]",
    ])
    def test_always_returns_non_empty_list(self, text):
        blocks = parse(text)
        assert len(blocks) >= 1

    def test_empty_string(self):
        assert parse("") == [TextBlock("")]

    def test_none_treated_as_empty(self):
        assert parse(None) == [TextBlock("")]

    def test_plain_prose_is_returned_unchanged(self):
        text = "The Barbican is lovely in spring.\nGo early to avoid queues."
        result = classify(text)
        assert result.strategy == "text"
        assert result.blocks == [TextBlock(text)]

    def test_pipes_without_separator_are_not_a_table(self):
        text = "Name | Price\nLamp | £45"
        assert parse(text) == [TextBlock(text)]


class TestStructuredJson:
    """JSON replies in one of the accepted product shapes."""

    def test_single_product_object(self):
        text = json.dumps({"type": "product", "title": "Lamp", "price": "£45"})
        result = classify(text)
        assert result.strategy == "json"
        assert result.blocks[0] == TextBlock(DEFAULT_PRODUCTS_CAPTION)
        assert result.blocks[1] == ProductBlock(
            title="Lamp",
            price="£45",
            description=DEFAULT_DESCRIPTION,
            image=DEFAULT_IMAGE,
            url=DEFAULT_URL,
        )

    def test_array_of_products(self):
        text = json.dumps([
            {"type": "product", "name": "Lamp", "price": 45},
            {"type": "product", "name": "Chair", "url": "https://example.com/chair"},
        ])
        blocks = parse(text)
        assert [type(b) for b in blocks] == [TextBlock, ProductBlock, ProductBlock]
        assert blocks[1].price == "45"
        assert blocks[2].url == "https://example.com/chair"

    def test_products_field_uses_title_as_caption(self):
        text = json.dumps({
            "title": "Gift ideas",
            "products": [{"name": "Candle"}, {"name": "Scarf", "type": "product"}],
        })
        blocks = parse(text)
        assert blocks[0] == TextBlock("Gift ideas")
        assert [b.title for b in blocks[1:]] == ["Candle", "Scarf"]

    def test_fenced_json_is_unwrapped(self):
        text = "```json\n" + json.dumps({"type": "product", "title": "Lamp"}) + "\n```"
        assert classify(text).strategy == "json"

    def test_wrong_type_falls_through(self):
        text = json.dumps({"type": "recipe", "title": "Soup"})
        assert parse(text) == [TextBlock(text)]

    def test_mixed_array_falls_through(self):
        text = json.dumps([{"type": "product", "title": "Lamp"}, {"type": "note"}])
        assert classify(text).strategy == "text"

    def test_bad_field_type_falls_through(self):
        text = json.dumps({"type": "product", "title": "Lamp", "price": {"amount": 45}})
        assert classify(text).strategy == "text"

    def test_missing_name_falls_through(self):
        text = json.dumps({"products": [{"price": "£10"}]})
        assert classify(text).strategy == "text"

    def test_malformed_json_falls_through(self):
        text = '{"type": "product", "title": "Lamp",'
        assert parse(text) == [TextBlock(text)]


class TestTables:
    """Markdown-style tables."""

    TABLE = (
        "## Lamps worth a look\n"
        "| Name | Price |\n"
        "|------|-------|\n"
        "| Anglepoise | £195 |\n"
        "| Tolomeo | £240 |"
    )

    def test_two_rows_keyed_by_lowercase_headers(self):
        blocks = parse(self.TABLE)
        tables = [b for b in blocks if isinstance(b, TableBlock)]
        assert len(tables) == 1
        assert tables[0].rows == [
            {"name": "Anglepoise", "price": "£195"},
            {"name": "Tolomeo", "price": "£240"},
        ]

    def test_title_block_precedes_table(self):
        blocks = parse(self.TABLE)
        assert blocks[0] == TextBlock("Lamps worth a look")
        assert blocks[1].title == "Lamps worth a look"

    def test_ragged_row_is_dropped(self):
        text = (
            "| Name | Price |\n"
            "|---|---|\n"
            "| Anglepoise | £195 | extra |\n"
            "| Tolomeo | £240 |"
        )
        blocks = parse(text)
        assert classify(text).strategy == "table"
        assert blocks[1].rows == [{"name": "Tolomeo", "price": "£240"}]

    def test_default_title(self):
        text = "Name|Price\n---|---\nLamp|£45"
        blocks = parse(text)
        assert blocks[0] == TextBlock(DEFAULT_TABLE_TITLE)
        assert blocks[1].rows == [{"name": "Lamp", "price": "£45"}]

    def test_closing_prose_follows_table(self):
        text = self.TABLE + "\nThat's all, enjoy."
        blocks = parse(text)
        assert isinstance(blocks[1], TableBlock)
        assert len(blocks[1].rows) == 2
        assert blocks[2] == TextBlock("That's all, enjoy.")

    def test_header_only_table_falls_through(self):
        text = "| Name | Price |\n|---|---|"
        assert classify(text).strategy != "table"

    def test_all_rows_ragged_falls_through(self):
        text = "| Name | Price |\n|---|---|\n| Lamp |"
        assert classify(text).strategy != "table"

    def test_empty_middle_cell_is_kept(self):
        text = "| Name | Note | Price |\n|---|---|---|\n| Lamp | | £45 |"
        blocks = parse(text)
        assert blocks[1].rows == [{"name": "Lamp", "note": "", "price": "£45"}]


class TestProductCards:
    """Blank-line separated product sections."""

    def test_currency_sections_become_cards(self):
        text = "Lamp\n£45\nA nice lamp\n\nChair\n£120\nA nice chair"
        blocks = parse(text)
        assert blocks[0] == TextBlock(DEFAULT_CARDS_CAPTION)
        assert blocks[1:] == [
            ProductBlock("Lamp", "£45", "A nice lamp", DEFAULT_IMAGE, DEFAULT_URL),
            ProductBlock("Chair", "£120", "A nice chair", DEFAULT_IMAGE, DEFAULT_URL),
        ]

    def test_intro_paragraph_becomes_lead_text(self):
        text = (
            "A few pieces I think you'll love\n\n"
            "**Noguchi Akari 1A**\nPrice: £150\nPaper and bamboo.\n\n"
            "**Flowerpot VP3**\n£229\nhttps://example.com/flowerpot"
        )
        blocks = parse(text)
        assert blocks[0] == TextBlock("A few pieces I think you'll love")
        assert blocks[1].title == "Noguchi Akari 1A"
        assert blocks[1].price == "£150"
        assert blocks[1].description == "Paper and bamboo."
        assert blocks[2].url == "https://example.com/flowerpot"
        assert blocks[2].description == DEFAULT_DESCRIPTION

    def test_heading_section_is_lead_text(self):
        text = "# Autumn edit\n\n- Wool throw\n- Soft and warm\n\n- Candle\n- Fig scented"
        blocks = parse(text)
        assert blocks[0] == TextBlock("Autumn edit")
        assert [b.title for b in blocks[1:]] == ["Wool throw", "Candle"]
        assert blocks[1].price == DEFAULT_PRICE

    def test_lead_in_with_colon_is_not_a_product(self):
        text = "Here are two picks:\n\nLamp\n£45\n\nChair\n£120"
        blocks = parse(text)
        assert blocks[0] == TextBlock("Here are two picks:")
        assert [b.title for b in blocks[1:]] == ["Lamp", "Chair"]

    def test_trailing_prose_kept_in_place(self):
        text = "Lamp\n£45\n\nChair\n£120\n\nLet me know if you want more"
        blocks = parse(text)
        assert blocks[-1] == TextBlock("Let me know if you want more")
        assert len([b for b in blocks if isinstance(b, ProductBlock)]) == 2

    def test_word_containing_price_is_not_a_price_line(self):
        text = "Lamp\nA priceless heirloom look\n£45\n\nChair\n£120"
        blocks = parse(text)
        assert blocks[1].price == "£45"
        assert blocks[1].description == "A priceless heirloom look"

    def test_single_qualifying_section_falls_through(self):
        text = "Lamp\n£45\n\nThat's my favourite."
        assert parse(text) == [TextBlock(text)]

    def test_markdown_link_url_and_description(self):
        text = (
            "1. **Lamp**\n- £45\n- [Shop now](https://shop.example.com/lamp)\n\n"
            "2. **Chair**\n- £120"
        )
        blocks = parse(text)
        assert blocks[1].title == "Lamp"
        assert blocks[1].url == "https://shop.example.com/lamp"
        assert blocks[1].description == "Shop now"

    def test_wire_shape(self):
        blocks = parse("Lamp\n£45\n\nChair\n£120")
        wire = blocks_to_dicts(blocks)
        assert wire[0] == {"type": "text", "text": DEFAULT_CARDS_CAPTION}
        assert wire[1] == {
            "type": "product",
            "title": "Lamp",
            "price": "£45",
            "description": DEFAULT_DESCRIPTION,
            "image": DEFAULT_IMAGE,
            "url": DEFAULT_URL,
        }


class TestExtractors:
    """Price and URL extraction rules."""

    @pytest.mark.parametrize("line,expected", [
        ("£45", "£45"),
        ("Price: £1,299.99 at Heal's", "£1,299.99"),
        ("around $30 online", "$30"),
        ("45 € in Paris", "45 €"),
        ("Price: 60 GBP", "60"),
        ("Price on request", DEFAULT_PRICE),
        ("£45, down from £60", "£45"),
        ("Price: $1,299, free delivery", "$1,299"),
    ])
    def test_extract_price(self, line, expected):
        assert extract_price(line) == expected

    def test_extract_url_trims_punctuation(self):
        assert extract_url("see (https://example.com/a).") == "https://example.com/a"

    def test_extract_url_default(self):
        assert extract_url("no links here") == DEFAULT_URL
