"""
Front-matter parsing and serialisation

A page may open with a YAML metadata block delimited by "---" lines:

    ---
    title: Getting Started
    description: Instrument a sample app
    weight: 10
    ---

frontMatter_split() separates that block from the body and validates the
recognised keys. frontMatter_serialize() writes a PageMetadata back out in
the same format; splitting the serialised text yields an equal PageMetadata.
"""

from typing import Any, Dict, List, Optional

import yaml

from ..models.page import PageMetadata
from ..models.parser import SplitDocument
from .errors import MetadataParseError
from .log import LOG


DELIMITER = "---"
KNOWN_KEYS = ("title", "description", "weight")


def text_normalize(text: str) -> str:
    """Strip a UTF-8 BOM and convert CRLF/CR line endings to LF"""
    if text.startswith("\ufeff"):
        text = text[1:]
    return text.replace("\r\n", "\n").replace("\r", "\n")


def frontMatter_split(
    text: str,
    required: Optional[List[str]] = None,
    source_path: Optional[str] = None,
) -> SplitDocument:
    """
    Separate the leading metadata block from the document body

    Args:
        text: Raw document text
        required: Keys that must be present when a block exists
                  (defaults to appsettings.required_metadata)
        source_path: Used only for error reporting

    Returns:
        SplitDocument with the metadata, the body text and the line number
        the body starts on. Documents without a block return empty metadata
        and the whole text as body.

    Raises:
        MetadataParseError: If the block is never closed, is not a YAML
                            mapping, lacks a required key, or has a
                            non-integer weight

    Example:
        >>> doc = frontMatter_split("---\\ntitle: X\\nweight: 5\\n---\\nHello")
        >>> doc.metadata.title, doc.metadata.weight, doc.body
        ('X', 5, 'Hello')
    """
    from ..config import appsettings

    if required is None:
        required = appsettings.required_metadata

    text = text_normalize(text)
    lines = text.split("\n")

    if not lines or lines[0].rstrip() != DELIMITER:
        return SplitDocument(metadata=PageMetadata(), body=text, body_start_line=1)

    closing = None
    for index in range(1, len(lines)):
        if lines[index].rstrip() == DELIMITER:
            closing = index
            break

    if closing is None:
        raise MetadataParseError(
            "front-matter block opened with '---' is never closed",
            line_number=1,
            source_path=source_path,
        )

    raw = "\n".join(lines[1:closing])
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        line_number = None
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            line_number = mark.line + 2
        raise MetadataParseError(
            f"invalid YAML in front-matter: {e}",
            line_number=line_number,
            source_path=source_path,
        ) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MetadataParseError(
            "front-matter must be a mapping of keys to values",
            line_number=2,
            source_path=source_path,
        )

    metadata = metadata_build(data, required, source_path)
    LOG(f"Front-matter: {len(data)} key(s), body starts at line {closing + 2}", level=3)

    return SplitDocument(
        metadata=metadata,
        body="\n".join(lines[closing + 1:]),
        body_start_line=closing + 2,
        has_frontmatter=True,
    )


def metadata_build(
    data: Dict[Any, Any], required: List[str], source_path: Optional[str] = None
) -> PageMetadata:
    """
    Validate a parsed front-matter mapping and build PageMetadata

    Scalar titles and descriptions (e.g. a year YAML reads as an int) are
    converted to strings; weight must be an integer.
    """
    for key in required:
        if key not in data or data[key] is None:
            raise MetadataParseError(
                f"front-matter is missing required field '{key}'",
                line_number=1,
                source_path=source_path,
            )

    title = scalar_toString(data.get("title"), "title", source_path)
    description = scalar_toString(data.get("description"), "description", source_path)

    weight = data.get("weight", 0)
    if weight is None:
        weight = 0
    if isinstance(weight, bool) or not isinstance(weight, int):
        raise MetadataParseError(
            f"front-matter 'weight' must be an integer, got {weight!r}",
            line_number=1,
            source_path=source_path,
        )

    params = {str(k): v for k, v in data.items() if k not in KNOWN_KEYS}
    return PageMetadata(title=title, description=description, weight=weight, params=params)


def scalar_toString(value: Any, key: str, source_path: Optional[str]) -> str:
    """Convert a scalar metadata value to str, rejecting lists and mappings"""
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise MetadataParseError(
            f"front-matter '{key}' must be a single value",
            line_number=1,
            source_path=source_path,
        )
    return str(value)


def frontMatter_serialize(metadata: PageMetadata) -> str:
    """
    Write metadata back out as a delimited YAML block

    Empty description and zero weight are omitted, matching the defaults
    frontMatter_split() applies when they are absent.

    Example:
        >>> frontMatter_serialize(PageMetadata(title="X", weight=5))
        '---\\ntitle: X\\nweight: 5\\n---\\n'
    """
    data: Dict[str, Any] = {"title": metadata.title}
    if metadata.description:
        data["description"] = metadata.description
    if metadata.weight:
        data["weight"] = metadata.weight
    data.update(metadata.params)

    dumped = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"{DELIMITER}\n{dumped}{DELIMITER}\n"
