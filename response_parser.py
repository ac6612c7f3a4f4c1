"""
Response Parser

Converts free-form model replies into display blocks for the frontend:
plain text, tables, or product cards. Product cards produced by the
heuristics can be enriched against a product lookup.

Strategies are tried in order and the first one that recognises the text
wins:
  1. JSON product payloads
  2. Markdown-style tables
  3. Blank-line separated product sections
  4. Plain text
"""

import re
import json
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from models import Block, TextBlock, TableBlock, ProductBlock, ProductRecord
from chat_logger import get_logger, sanitize_log_string
from app_config import (
    DEFAULT_PRICE,
    DEFAULT_DESCRIPTION,
    DEFAULT_IMAGE,
    DEFAULT_URL,
    DEFAULT_PRODUCTS_CAPTION,
    DEFAULT_TABLE_TITLE,
    DEFAULT_CARDS_CAPTION,
)

logger = get_logger("concierge")

CURRENCY_SYMBOLS = "£$€"

# "£45", "$1,299.99", "45 €"
_AMOUNT = r"(?:\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)"
_CURRENCY_RE = re.compile(rf"[£$€]\s?{_AMOUNT}|{_AMOUNT}\s?[£$€]")
_NUMBER_RE = re.compile(_AMOUNT)
_PRICE_WORD_RE = re.compile(r"\bprice\b", re.IGNORECASE)
_URL_RE = re.compile(r"https?://[^\s<>\"']+")
_URL_TRAILING = ")],.>'\""
_MARKDOWN_LINK_RE = re.compile(r"\[([^\]]*)\]\((https?://[^)\s]+)\)")
_LIST_MARKER_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")
_BLANK_LINE_RE = re.compile(r"\r?\n[ \t\r]*\n")
_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)
_EMPHASIS_RE = re.compile(r"[#*]")
_TITLE_CHARS_RE = re.compile(r"[#*:]")
_WHITESPACE_RE = re.compile(r"\s+")

_PRODUCT_FIELDS = ("price", "description", "image", "url")


@dataclass(frozen=True)
class ParseResult:
    strategy: str  # "json" | "table" | "cards" | "text"
    blocks: List[Block]


# ══════════════════════════════════════════════════════════════
# STRATEGY 1: STRUCTURED JSON
# ══════════════════════════════════════════════════════════════

def _parse_structured(text: str) -> Optional[List[Block]]:
    """Accept a JSON product, a JSON array of products, or {"products": [...]}."""
    candidate = text.strip()
    fenced = _FENCE_RE.match(candidate)
    if fenced:
        candidate = fenced.group(1).strip()
    if not candidate or candidate[0] not in "{[":
        return None

    try:
        data = json.loads(candidate)
    except ValueError:
        return None

    shape = _match_product_shape(data)
    if shape is None:
        return None
    caption, items = shape

    products = []
    for item in items:
        product = _product_from_json(item)
        if product is None:
            return None
        products.append(product)

    return [TextBlock(caption)] + products


def _match_product_shape(data) -> Optional[Tuple[str, list]]:
    if isinstance(data, dict) and data.get("type") == "product":
        return DEFAULT_PRODUCTS_CAPTION, [data]

    if isinstance(data, list):
        if data and all(isinstance(item, dict) and item.get("type") == "product" for item in data):
            return DEFAULT_PRODUCTS_CAPTION, data
        return None

    if isinstance(data, dict) and isinstance(data.get("products"), list):
        items = data["products"]
        if not items:
            return None
        if not all(isinstance(item, dict) and item.get("type", "product") == "product" for item in items):
            return None
        title = data.get("title")
        caption = title.strip() if isinstance(title, str) and title.strip() else DEFAULT_PRODUCTS_CAPTION
        return caption, items

    return None


def _product_from_json(item: dict) -> Optional[ProductBlock]:
    """Validate one JSON product object. Returns None when any field has the wrong type."""
    name = item.get("title") or item.get("name")
    if not isinstance(name, str) or not name.strip():
        return None

    defaults = {
        "price": DEFAULT_PRICE,
        "description": DEFAULT_DESCRIPTION,
        "image": DEFAULT_IMAGE,
        "url": DEFAULT_URL,
    }
    values = {}
    for key in _PRODUCT_FIELDS:
        value = item.get(key)
        if value is None or value == "":
            values[key] = defaults[key]
        elif isinstance(value, bool):
            return None
        elif isinstance(value, (str, int, float)):
            values[key] = str(value).strip() or defaults[key]
        else:
            return None

    return ProductBlock(title=name.strip(), **values)


# ══════════════════════════════════════════════════════════════
# STRATEGY 2: MARKDOWN TABLES
# ══════════════════════════════════════════════════════════════

def _is_dash_row(line: str) -> bool:
    """A separator row such as "|---|:---:|" or "--- | ---"."""
    residue = re.sub(r"[|:\s]", "", line)
    return len(residue) >= 3 and set(residue) == {"-"}


def _split_row(line: str) -> List[str]:
    row = line.strip()
    if row.startswith("|"):
        row = row[1:]
    if row.endswith("|"):
        row = row[:-1]
    return [cell.strip() for cell in row.split("|")]


def _parse_table(text: str) -> Optional[List[Block]]:
    if "|" not in text:
        return None

    lines = [line for line in text.splitlines() if line.strip()]
    if not any(_is_dash_row(line) for line in lines):
        return None

    header_index = next(
        (i for i, line in enumerate(lines) if "|" in line and not _is_dash_row(line)),
        None,
    )
    if header_index is None:
        return None

    headers = [h.lower() for h in _split_row(lines[header_index])]

    rows = []
    trailing = []
    for line in lines[header_index + 1:]:
        if _is_dash_row(line):
            continue
        if "|" not in line:
            trailing.append(line.strip())
            continue
        cells = _split_row(line)
        if len(cells) != len(headers):
            logger.debug(
                f"Parser: dropping table row | expected={len(headers)} | got={len(cells)}"
            )
            continue
        rows.append(dict(zip(headers, cells)))

    if not rows:
        return None

    lead = " ".join(
        line for line in lines[:header_index] if not _is_dash_row(line)
    )
    title = _strip_emphasis(lead) or DEFAULT_TABLE_TITLE

    blocks: List[Block] = [TextBlock(title), TableBlock(title=title, rows=rows)]
    if trailing:
        blocks.append(TextBlock("\n".join(trailing)))
    return blocks


# ══════════════════════════════════════════════════════════════
# STRATEGY 3: PRODUCT CARDS
# ══════════════════════════════════════════════════════════════

def _section_lines(section: str) -> List[str]:
    return [line.strip() for line in section.splitlines() if line.strip()]


def _is_product_section(section: str) -> bool:
    """
    A section looks like a product when it carries a price, a colon, or a
    list marker. Headings and one-line lead-ins ("Here are a few:") don't count.
    """
    lines = _section_lines(section)
    if not lines or lines[0].startswith("#"):
        return False
    if len(lines) == 1 and lines[0].endswith(":"):
        return False
    if any(symbol in section for symbol in CURRENCY_SYMBOLS) or ":" in section:
        return True
    return any(_LIST_MARKER_RE.match(line) for line in lines)


def _is_price_line(line: str) -> bool:
    return any(symbol in line for symbol in CURRENCY_SYMBOLS) or bool(_PRICE_WORD_RE.search(line))


def extract_price(line: str) -> str:
    """
    Price token from a price line: a currency amount if there is one, else
    the first bare number, else the placeholder.
    """
    match = _CURRENCY_RE.search(line) or _NUMBER_RE.search(line)
    return match.group(0).strip() if match else DEFAULT_PRICE


def extract_url(section: str) -> str:
    match = _URL_RE.search(section)
    if not match:
        return DEFAULT_URL
    return match.group(0).rstrip(_URL_TRAILING) or DEFAULT_URL


def _clean_description_line(line: str) -> str:
    line = _MARKDOWN_LINK_RE.sub(lambda m: m.group(1), line)
    line = _URL_RE.sub("", line)
    line = _LIST_MARKER_RE.sub("", line)
    line = _EMPHASIS_RE.sub("", line)
    return _WHITESPACE_RE.sub(" ", line).strip()


def _card_from_section(section: str) -> ProductBlock:
    lines = _section_lines(section)

    title = _TITLE_CHARS_RE.sub("", _LIST_MARKER_RE.sub("", lines[0])).strip()

    price_index = next((i for i, line in enumerate(lines) if _is_price_line(line)), None)
    price = extract_price(lines[price_index]) if price_index is not None else DEFAULT_PRICE

    description_parts = []
    for i, line in enumerate(lines[1:], start=1):
        if i == price_index:
            continue
        cleaned = _clean_description_line(line)
        if cleaned:
            description_parts.append(cleaned)

    return ProductBlock(
        title=title,
        price=price,
        description=" ".join(description_parts) or DEFAULT_DESCRIPTION,
        image=DEFAULT_IMAGE,
        url=extract_url(section),
    )


def _parse_product_cards(text: str) -> Optional[List[Block]]:
    sections = [s.strip() for s in _BLANK_LINE_RE.split(text.strip()) if s.strip()]
    qualifying = [_is_product_section(s) for s in sections]
    if sum(qualifying) < 2:
        return None

    blocks: List[Block] = []
    if qualifying[0]:
        blocks.append(TextBlock(DEFAULT_CARDS_CAPTION))
        start = 0
    else:
        blocks.append(TextBlock(_strip_emphasis(sections[0]) or DEFAULT_CARDS_CAPTION))
        start = 1

    for section, is_product in zip(sections[start:], qualifying[start:]):
        if is_product:
            blocks.append(_card_from_section(section))
        else:
            blocks.append(TextBlock(section))

    return blocks


# ══════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════

_STRATEGIES = (
    ("json", _parse_structured),
    ("table", _parse_table),
    ("cards", _parse_product_cards),
)


def classify(text: str) -> ParseResult:
    """Run the strategy cascade and report which strategy produced the blocks."""
    if text is None:
        text = ""
    elif not isinstance(text, str):
        text = str(text)

    for name, strategy in _STRATEGIES:
        try:
            blocks = strategy(text)
        except Exception as e:
            logger.debug(f"Parser: strategy failed, falling through | strategy={name} | error={e}")
            continue
        if blocks:
            return ParseResult(strategy=name, blocks=blocks)

    return ParseResult(strategy="text", blocks=[TextBlock(text)])


def parse(text: str) -> List[Block]:
    """Convert a model reply into an ordered, non-empty list of blocks. Never raises."""
    return classify(text).blocks


def enhance(text: str, lookup=None) -> List[Block]:
    """
    Parse a reply and enrich heuristic product cards from a product lookup.

    Args:
        text: Raw model reply
        lookup: Object with a ``lookup(names) -> List[ProductRecord]`` method

    Returns:
        Blocks in the same order as parse(); lookup values replace
        placeholder fields only where the lookup actually has a value.
    """
    result = classify(text)
    if result.strategy != "cards" or lookup is None:
        return result.blocks

    names = [b.title for b in result.blocks if isinstance(b, ProductBlock)]

    try:
        records = [_as_record(r) for r in (lookup.lookup(names) or [])]
    except Exception as e:
        logger.warning(f"Enhance: product lookup failed | candidates={len(names)} | error={e}")
        return result.blocks

    if not records:
        logger.info(f"Enhance: no lookup results | candidates={len(names)}")
        return result.blocks

    enriched: List[Block] = []
    position = 0
    for block in result.blocks:
        if not isinstance(block, ProductBlock):
            enriched.append(block)
            continue
        record = match_record(block.title, position, records)
        enriched.append(merge_record(block, record) if record else block)
        position += 1

    logger.info(
        f"Enhance: enriched product cards | candidates={len(names)} | "
        f"records={len(records)} | names=\"{sanitize_log_string(', '.join(names))}\""
    )
    return enriched


def match_record(name: str, position: int, records: List[ProductRecord]) -> Optional[ProductRecord]:
    """Exact name match, then substring either way, then the record at the same position."""
    wanted = name.strip().lower()

    for record in records:
        if (record.name or "").strip().lower() == wanted:
            return record

    if wanted:
        for record in records:
            candidate = (record.name or "").strip().lower()
            if candidate and (candidate in wanted or wanted in candidate):
                return record

    if position < len(records):
        return records[position]
    return None


def merge_record(block: ProductBlock, record: ProductRecord) -> ProductBlock:
    overrides = {
        key: getattr(record, key)
        for key in _PRODUCT_FIELDS
        if getattr(record, key)
    }
    return replace(block, **overrides) if overrides else block


def blocks_to_dicts(blocks: List[Block]) -> List[dict]:
    """JSON wire shape of a block list."""
    return [block.to_dict() for block in blocks]


def _as_record(raw) -> ProductRecord:
    if isinstance(raw, ProductRecord):
        return raw
    return ProductRecord.from_dict(raw)


def _strip_emphasis(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", _EMPHASIS_RE.sub("", text)).strip()
