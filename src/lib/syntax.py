"""
Line-level syntax matchers shared by the directive scanner and the parser

Each matcher looks at a single line (or a short string) and returns a small
model object or None. Nothing here keeps state.
"""

import re
from typing import List, Optional, Tuple

from ..models.parser import FenceOpening, ListMarker, ParsedArguments, ShortcodeMatch


FENCE_PATTERN = re.compile(r'^(?P<indent> *)(?P<fence>`{3,}|~{3,})[ \t]*(?P<info>[^\n]*)$')
HEADING_PATTERN = re.compile(r'^ {0,3}(?P<hashes>#{1,6})(?:[ \t]+(?P<text>.*?))?[ \t]*$')
HEADING_ANCHOR_PATTERN = re.compile(r'\s*\{#(?P<anchor>[\w.:-]+)\}$')
LIST_PATTERN = re.compile(r'^(?P<indent> *)(?P<marker>[-*+]|\d{1,9}[.)])(?P<space>[ \t]+|$)(?P<text>.*)$')
DEFINITION_PATTERN = re.compile(
    r'^ {0,3}\[(?P<label>[^\]]+)\]:[ \t]*<?(?P<url>[^\s>]+)>?'
    r'(?:[ \t]+(?:"(?P<title1>[^"]*)"|\'(?P<title2>[^\']*)\'|\((?P<title3>[^)]*)\)))?[ \t]*$'
)
SHORTCODE_PATTERN = re.compile(
    r'\{\{(?P<open>[%<])\s*(?P<slash>/)?\s*(?P<name>[A-Za-z][\w-]*)(?P<args>.*?)\s*[%>]\}\}'
)
ARGUMENT_PATTERN = re.compile(
    r'\s*(?:(?P<key>[A-Za-z][\w-]*)\s*=\s*)?"(?P<value>(?:[^"\\]|\\.)*)"'
)
CODE_SPAN_PATTERN = re.compile(r'(?<!\\)(?P<ticks>`+)(?P<code>.+?)(?<!`)(?P=ticks)(?!`)')
COMMENT_LINE_PATTERN = re.compile(r'^\s*<!--.*-->\s*$')
ESCAPE_PATTERN = re.compile(r'\\(.)')


def indent_width(text: str) -> int:
    """Count leading spaces"""
    return len(text) - len(text.lstrip(' '))


def blank_is(text: str) -> bool:
    return not text.strip()


def fence_match(text: str) -> Optional[FenceOpening]:
    """
    Recognise an opening code fence

    The language is the first word of the info string, copied verbatim
    (a Hugo attribute block such as "{hl_lines=[1]}" is not a language).

    Example:
        >>> fence_match("   ```java").language
        'java'
    """
    match = FENCE_PATTERN.match(text)
    if not match:
        return None
    fence = match.group('fence')
    info = match.group('info').strip()
    # Backtick fences cannot carry backticks in their info string
    if fence[0] == '`' and '`' in info:
        return None
    language = info.split()[0] if info else ""
    if language.startswith('{'):
        language = ""
    return FenceOpening(
        indent=len(match.group('indent')),
        char=fence[0],
        length=len(fence),
        language=language,
    )


def listMarker_match(text: str) -> Optional[ListMarker]:
    """
    Recognise a list item marker at the start of a line

    Example:
        >>> marker = listMarker_match("  2. Run the app")
        >>> marker.ordered, marker.start, marker.content_indent, marker.text
        (True, 2, 5, 'Run the app')
    """
    match = LIST_PATTERN.match(text)
    if not match:
        return None
    marker = match.group('marker')
    indent = len(match.group('indent'))
    space = match.group('space')
    item_text = match.group('text')

    ordered = marker[0].isdigit()
    start = int(marker[:-1]) if ordered else 1

    # Content indented five or more columns past the marker is code inside
    # the item; the content column then sits one space after the marker
    if not item_text.strip() or len(space) > 4:
        content_indent = indent + len(marker) + 1
        item_text = (space[1:] + item_text) if len(space) > 4 else item_text
    else:
        content_indent = indent + len(marker) + len(space)

    return ListMarker(
        indent=indent,
        ordered=ordered,
        start=start,
        content_indent=content_indent,
        text=item_text,
    )


def fenceOpening_find(text: str) -> Optional[FenceOpening]:
    """
    Recognise a fence opening, including one that follows list markers

    Every pass that skips fence content tracks fences with this matcher, so
    they agree with the block parser on where fences are.

    Example:
        >>> fenceOpening_find("- ```md").language
        'md'
        >>> fenceOpening_find("1. - ~~~").char
        '~'
    """
    while True:
        opening = fence_match(text)
        if opening is not None:
            return opening
        marker = listMarker_match(text)
        if marker is None or not marker.text:
            return None
        text = marker.text


def heading_match(text: str) -> Optional[Tuple[int, str, Optional[str]]]:
    """
    Recognise an ATX heading

    Returns:
        (level, text, anchor) or None. A trailing run of '#' and an explicit
        {#anchor} are removed from the text.

    Example:
        >>> heading_match("## Setup {#setup-agent}")
        (2, 'Setup', 'setup-agent')
    """
    match = HEADING_PATTERN.match(text)
    if not match:
        return None
    level = len(match.group('hashes'))
    content = match.group('text') or ""
    content = re.sub(r'(?:^|\s+)#+$', '', content).strip()

    anchor = None
    anchor_match = HEADING_ANCHOR_PATTERN.search(content)
    if anchor_match:
        anchor = anchor_match.group('anchor')
        content = content[:anchor_match.start()].strip()
    return level, content, anchor


def definition_match(text: str) -> Optional[Tuple[str, str, Optional[str]]]:
    """
    Recognise a link definition line

    Returns:
        (label, url, title) or None

    Example:
        >>> definition_match("[traces]: /docs/concepts/signals/traces/")
        ('traces', '/docs/concepts/signals/traces/', None)
    """
    match = DEFINITION_PATTERN.match(text)
    if not match:
        return None
    label = match.group('label')
    if not label.strip() or label.startswith('^'):
        return None
    title = match.group('title1') or match.group('title2') or match.group('title3')
    return label, match.group('url'), title


def arguments_parse(text: str) -> Optional[ParsedArguments]:
    """
    Parse directive/shortcode arguments

    Accepts a whitespace-separated sequence of "value" and key="value"
    items. Returns None if anything else is present.

    Example:
        >>> arguments_parse(' path-base="examples/java"').keywords
        {'path-base': 'examples/java'}
        >>> arguments_parse(' examples/java') is None
        True
    """
    arguments = ParsedArguments()
    pos = 0
    while pos < len(text):
        if not text[pos:].strip():
            break
        match = ARGUMENT_PATTERN.match(text, pos)
        if not match:
            return None
        value = ESCAPE_PATTERN.sub(r'\1', match.group('value'))
        key = match.group('key')
        if key:
            arguments.keywords[key] = value
        else:
            arguments.positional.append(value)
        pos = match.end()
    return arguments


def shortcodes_find(text: str, names: List[str]) -> List[ShortcodeMatch]:
    """
    Find callout shortcode delimiters on a line

    Only shortcodes whose name is in ``names`` are returned; others are
    ordinary text. Opening delimiters whose arguments do not parse are
    ignored.

    Example:
        >>> [m.closing for m in shortcodes_find('{{% alert title="Note" %}} x {{% /alert %}}', ["alert"])]
        [False, True]
    """
    found = []
    for match in SHORTCODE_PATTERN.finditer(text):
        name = match.group('name')
        if name not in names:
            continue
        closing = bool(match.group('slash'))
        if closing:
            arguments = ParsedArguments()
        else:
            parsed = arguments_parse(match.group('args'))
            if parsed is None:
                continue
            arguments = parsed
        found.append(ShortcodeMatch(
            name=name,
            closing=closing,
            arguments=arguments,
            start=match.start(),
            end=match.end(),
        ))
    return found


def codeSpans_find(text: str) -> List[Tuple[int, int]]:
    """Return (start, end) column ranges covered by inline code spans"""
    return [(m.start(), m.end()) for m in CODE_SPAN_PATTERN.finditer(text)]


def commentLine_is(text: str) -> bool:
    """Whether the whole line is a single HTML comment"""
    return bool(COMMENT_LINE_PATTERN.match(text))
