"""Schema-driven mapping of arbitrary JSON documents into offers.

A mapping schema is a flat JSON object from logical offer field names to
dot-separated JSON paths, e.g.:

    {"ProductName": "data.title", "Price": "data.price.amount", "Source": "store"}

Path syntax (gjson style, restricted):
- `a.b.c` walks nested objects
- an ASCII-digit segment indexes into an array (`items.0.name`)
- `#` as the last segment yields an array's length (`items.#`)
- `#` before more segments projects over the array (`items.#.name`)
- `\\.` escapes a literal dot inside a key

Paths are compiled to JMESPath expressions and evaluated with jmespath. Each
lookup resolves once into Number | Text | Missing and one coercion per field
type turns that into the offer attribute. Only an empty product name is
fatal; every other field degrades to its zero value.
"""

from __future__ import annotations

import json
import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

import jmespath
from jmespath.exceptions import JMESPathError
from jmespath.parser import ParsedResult

from offerwatch.errors import InvalidDocument, MappingError, MissingRequiredField, SchemaError
from offerwatch.services.records import Offer

FIELD_PRODUCT_NAME = "ProductName"
FIELD_PRICE = "Price"
FIELD_ORIGINAL_PRICE = "OriginalPrice"
FIELD_DETAILS = "Details"
FIELD_CASHBACK = "CashbackPercentage"
FIELD_SOURCE = "Source"

MAPPABLE_FIELDS = (
    FIELD_PRODUCT_NAME,
    FIELD_PRICE,
    FIELD_ORIGINAL_PRICE,
    FIELD_DETAILS,
    FIELD_CASHBACK,
    FIELD_SOURCE,
)

DEFAULT_SOURCE = "s3-import"


# ============================================================
# Resolved values
# ============================================================


@dataclass(frozen=True)
class Number:
    value: int | float


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Missing:
    pass


MISSING = Missing()

Resolved = Number | Text | Missing


# ============================================================
# Paths
# ============================================================


def split_path(path: str) -> list[str]:
    """Split a dot path into keys, honouring `\\.` escapes."""
    parts: list[str] = []
    buf: list[str] = []
    escaped = False
    for ch in path:
        if escaped:
            buf.append(ch)
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == ".":
            parts.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
    parts.append("".join(buf))
    return parts


def to_jmespath(path: str) -> str:
    """Translate a dot path into the equivalent JMESPath expression.

    Keys become quoted identifiers, so `data.items.0.name` compiles to
    `"data"."items"[0]."name"`. A trailing `#` only counts arrays; on any
    other value it yields null, like a missing key.
    """
    keys = split_path(path)
    expr = ""
    for position, key in enumerate(keys):
        if key == "#":
            if position == len(keys) - 1:
                target = expr or "@"
                expr = f"(type({target}) == 'array' && length({target})) || `null`"
            else:
                expr = f"{expr}[*]"
        elif key.isascii() and key.isdigit():
            expr = f"{expr}[{int(key)}]"
        else:
            quoted = json.dumps(key)
            expr = f"{expr}.{quoted}" if expr else quoted
    return expr


@lru_cache(maxsize=1024)
def compile_path(path: str) -> ParsedResult:
    """Compile a dot path.

    Raises:
        JMESPathError: If the translated expression does not parse.
    """
    return jmespath.compile(to_jmespath(path))


def resolve(document: Any, path: str) -> Resolved:
    """Evaluate a JSON path against a parsed document."""
    if not path.strip():
        return MISSING
    try:
        node = compile_path(path).search(document)
    except JMESPathError:
        return MISSING
    return _classify(node)


def _classify(node: Any) -> Resolved:
    if node is None:
        return MISSING
    # bool is an int subclass; JSON true/false are not numbers
    if isinstance(node, bool):
        return Text("true" if node else "false")
    if isinstance(node, (int, float)):
        return Number(node)
    if isinstance(node, str):
        return Text(node)
    return Text(json.dumps(node, ensure_ascii=False, separators=(",", ":")))


# ============================================================
# Coercions
# ============================================================


def _is_plain_number(raw: str) -> bool:
    # Feed numbers follow strconv grammar: no padding, no digit separators.
    return raw == raw.strip() and "_" not in raw


def as_text(value: Resolved) -> str:
    if isinstance(value, Text):
        return value.value
    if isinstance(value, Number):
        return str(value.value)
    return ""


def as_amount(value: Resolved) -> float:
    """Non-negative finite amount, or 0 when absent/unparseable."""
    if isinstance(value, Number):
        amount = float(value.value)
    elif isinstance(value, Text):
        if not _is_plain_number(value.value):
            return 0.0
        try:
            amount = float(value.value)
        except ValueError:
            return 0.0
    else:
        return 0.0

    if not math.isfinite(amount) or amount < 0:
        return 0.0
    return amount


def as_percentage(value: Resolved) -> int:
    """Integer percentage in 0..100, or 0 when absent/unparseable."""
    if isinstance(value, Number):
        if not math.isfinite(value.value):
            return 0
        pct = int(value.value)
    elif isinstance(value, Text):
        if not _is_plain_number(value.value):
            return 0
        try:
            pct = int(value.value)
        except ValueError:
            return 0
    else:
        return 0

    if not 0 <= pct <= 100:
        return 0
    return pct


# ============================================================
# Schema handling
# ============================================================


def parse_mapping_schema(raw: str | bytes) -> dict[str, str]:
    """Parse schema text into a flat field -> path mapping.

    Raises:
        SchemaError: If the text is not JSON or not a flat string-to-string object.
    """
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise SchemaError(f"Mapping schema is not valid JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise SchemaError("Mapping schema must be a JSON object")

    schema: dict[str, str] = {}
    for key, path in parsed.items():
        if not isinstance(path, str):
            raise SchemaError(f"Mapping for {key!r} must be a JSON path string")
        schema[str(key)] = path
    return schema


def validate_mapping_schema(raw: str | bytes) -> dict[str, str]:
    """Strict validation used when templates are created or updated.

    Besides parse_mapping_schema's checks, rejects unknown field names and
    paths that do not compile.
    """
    schema = parse_mapping_schema(raw)
    unknown = sorted(set(schema) - set(MAPPABLE_FIELDS))
    if unknown:
        raise SchemaError(
            f"Unknown mapping fields: {', '.join(unknown)}. "
            f"Allowed: {', '.join(MAPPABLE_FIELDS)}"
        )
    for field, path in schema.items():
        if not path.strip():
            continue
        try:
            compile_path(path)
        except JMESPathError as e:
            raise SchemaError(f"Invalid path for {field}: {path!r} ({e})") from e
    return schema


# ============================================================
# Mapping
# ============================================================


def map_offer(
    document: Any,
    schema: Mapping[str, str],
    *,
    default_source: str = DEFAULT_SOURCE,
    received_at: datetime | None = None,
) -> Offer:
    """Map one JSON object into an Offer.

    Args:
        document: Parsed JSON object.
        schema: Field name -> JSON path.
        default_source: Source used when the schema does not map `Source`.
        received_at: Timestamp to stamp on the offer (defaults to now, UTC).

    Raises:
        MissingRequiredField: If the product name resolves to an empty string.
    """

    def lookup(field: str) -> Resolved:
        path = schema.get(field)
        if path is None:
            return MISSING
        return resolve(document, path)

    product_name = as_text(lookup(FIELD_PRODUCT_NAME))
    if not product_name.strip():
        raise MissingRequiredField(FIELD_PRODUCT_NAME)

    if FIELD_SOURCE in schema:
        source = as_text(lookup(FIELD_SOURCE))
    else:
        source = default_source

    return Offer(
        product_name=product_name,
        price=as_amount(lookup(FIELD_PRICE)),
        original_price=as_amount(lookup(FIELD_ORIGINAL_PRICE)),
        details=as_text(lookup(FIELD_DETAILS)),
        cashback_percentage=as_percentage(lookup(FIELD_CASHBACK)),
        source=source,
        received_at=received_at or datetime.now(timezone.utc),
    )


@dataclass(frozen=True)
class MappingOutcome:
    """Result of mapping one element of a document."""

    index: int
    offer: Offer | None = None
    error: MappingError | None = None

    @property
    def ok(self) -> bool:
        return self.offer is not None


def map_document(
    document: Any,
    schema: Mapping[str, str],
    *,
    default_source: str = DEFAULT_SOURCE,
) -> Iterator[MappingOutcome]:
    """Map a single object or every element of an array.

    A failing element yields an outcome carrying its error; remaining
    elements are still mapped.

    Raises:
        InvalidDocument: If the document is neither an object nor an array.
    """
    if isinstance(document, dict):
        elements = [document]
    elif isinstance(document, list):
        elements = document
    else:
        raise InvalidDocument(
            f"Expected a JSON object or array, got {type(document).__name__}"
        )

    for index, element in enumerate(elements):
        try:
            offer = map_offer(element, schema, default_source=default_source)
        except MappingError as e:
            yield MappingOutcome(index=index, error=e)
        else:
            yield MappingOutcome(index=index, offer=offer)
