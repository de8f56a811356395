"""
Processing-instruction directives for pagemark

Directives are <?name "value"?> / <?name key="value"?> instructions embedded
in page markup. They are not rendered; instead they annotate the code
fences that follow them with the source file the fence is an excerpt of.

Two scopes exist:
- path-base persists: it applies to every later excerpt until overridden
- an excerpt path applies only to the single next code fence

The DirectiveProcessor scans the body once, strips recognised directives
from the text and keeps them as an ordered log. The parser then folds that
log into an ExcerptContext as each code fence is built.
"""

import re
from typing import Dict, List, Optional

from ..models.directives import DirectiveSpec, DirectiveRecord, ExcerptContext
from ..models.parser import FenceOpening, SourceLine
from .errors import DirectiveSyntaxError
from .log import LOG
from .syntax import arguments_parse, codeSpans_find, commentLine_is, fenceOpening_find


DIRECTIVE_PATTERN = re.compile(r'<\?(?P<name>[A-Za-z][\w-]*)(?P<args>.*?)\?>')


class DirectiveRegistry:
    """
    Registry of directive specifications and handlers

    Maps directive names to DirectiveSpec objects containing metadata
    and the handler that folds a directive into the excerpt context.
    """

    def __init__(self) -> None:
        """Initialize the directive registry and register all built-in directives"""
        self.specs: Dict[str, DirectiveSpec] = {}
        self.excerptDirectives_register()

    def register(self, spec: DirectiveSpec) -> None:
        """Register a directive specification"""
        self.specs[spec.name] = spec
        # Also register aliases
        for alias in spec.aliases:
            self.specs[alias] = spec

    def get(self, name: str) -> Optional[DirectiveSpec]:
        """
        Get directive specification by name

        Args:
            name: Directive name to look up

        Returns:
            DirectiveSpec or None if not registered
        """
        return self.specs.get(name)

    def excerptDirectives_register(self) -> None:
        """Register the code-excerpt directives"""

        def pathBase_handler(record: DirectiveRecord, context: ExcerptContext) -> None:
            """Handle <?path-base "dir"?> - persistent excerpt prefix"""
            context.path_base = record.positional[0]

        def excerptPath_handler(record: DirectiveRecord, context: ExcerptContext) -> None:
            """Handle <?source-excerpt-path "file"?> - excerpt for the next fence"""
            if context.pending_excerpt is not None:
                LOG(
                    f"Line {record.line_number}: excerpt '{context.pending_excerpt}' "
                    f"replaced before any code fence used it",
                    level=2,
                )
            context.pending_excerpt = record.positional[0]

        def codeExcerpt_handler(record: DirectiveRecord, context: ExcerptContext) -> None:
            """Handle <?code-excerpt path-base="dir"?> and <?code-excerpt "file"?>"""
            if 'path-base' in record.keywords:
                context.path_base = record.keywords['path-base']
            if record.positional:
                excerptPath_handler(record, context)

        self.register(DirectiveSpec(
            name='path-base',
            description='Set the path prefix for all following code excerpts',
            handler=pathBase_handler,
            examples=['<?path-base "examples/java/automatic"?>'],
        ))

        self.register(DirectiveSpec(
            name='source-excerpt-path',
            description='Associate the next code fence with a source file',
            handler=excerptPath_handler,
            examples=['<?source-excerpt-path "build.gradle.kts"?>'],
        ))

        self.register(DirectiveSpec(
            name='code-excerpt',
            description='Set the excerpt path base and/or the next fence\'s source file',
            handler=codeExcerpt_handler,
            keywords={'path-base'},
            examples=[
                '<?code-excerpt path-base="examples/java/automatic"?>',
                '<?code-excerpt "build.gradle.kts"?>',
            ],
        ))


class DirectiveProcessor:
    """
    Scans page lines for directives and tracks the excerpt context

    Usage:
        processor = DirectiveProcessor()
        lines = processor.lines_scan(lines)
        ...
        path = processor.fence_claim(fence_line_number)
    """

    def __init__(
        self,
        registry: Optional[DirectiveRegistry] = None,
        warnings: Optional[bool] = None,
        strict: Optional[bool] = None,
        source_path: Optional[str] = None,
    ) -> None:
        """
        Args:
            registry: DirectiveRegistry (a default one is created if omitted)
            warnings: Log unknown/malformed directives
                      (defaults to appsettings.directive_warnings)
            strict: Raise DirectiveSyntaxError instead of warning
                    (defaults to appsettings.strict_mode)
            source_path: Used only for messages
        """
        from ..config import appsettings

        self.registry = registry if registry is not None else DirectiveRegistry()
        self.warnings = appsettings.directive_warnings if warnings is None else warnings
        self.strict = appsettings.strict_mode if strict is None else strict
        self.source_path = source_path
        self.records: List[DirectiveRecord] = []
        self.context = ExcerptContext()
        self._applied = 0

    def lines_scan(self, lines: List[SourceLine]) -> List[SourceLine]:
        """
        Remove recognised directives from body lines and log them

        Lines inside code fences are left untouched. Directives inside
        inline code spans are text, not instructions. A line that held only
        directives (or only an HTML comment) becomes blank so line numbers
        stay aligned.

        Args:
            lines: Body lines with their source line numbers

        Returns:
            New list of SourceLine with directives removed
        """
        result: List[SourceLine] = []
        fence: Optional[FenceOpening] = None

        for line in lines:
            if fence is not None:
                if fence.closes(line.text):
                    fence = None
                result.append(line)
                continue

            opening = fenceOpening_find(line.text)
            if opening is not None:
                fence = opening
                result.append(line)
                continue

            if commentLine_is(line.text):
                result.append(SourceLine(line.number, ""))
                continue

            result.append(SourceLine(line.number, self.directives_strip(line)))

        LOG(f"Directive scan: {len(self.records)} directive(s) recorded", level=3)
        return result

    def directives_strip(self, line: SourceLine) -> str:
        """
        Strip and record the directives on one line

        Returns:
            The line text with recognised directives removed; unchanged if
            the line has none
        """
        if '<?' not in line.text:
            return line.text

        spans = codeSpans_find(line.text)
        pieces: List[str] = []
        pos = 0
        stripped_any = False

        for match in DIRECTIVE_PATTERN.finditer(line.text):
            if any(start <= match.start() < end for start, end in spans):
                continue
            record = self.record_make(match, line.number)
            if record is None:
                continue
            self.records.append(record)
            pieces.append(line.text[pos:match.start()])
            pos = match.end()
            stripped_any = True

        if not stripped_any:
            return line.text

        pieces.append(line.text[pos:])
        text = ''.join(pieces)
        return "" if not text.strip() else text

    def record_make(self, match: re.Match, line_number: int) -> Optional[DirectiveRecord]:
        """
        Validate one directive match against the registry

        Returns:
            DirectiveRecord, or None when the directive is unknown or its
            arguments are malformed (the text is then left as a literal)
        """
        name = match.group('name')
        spec = self.registry.get(name)
        if spec is None:
            self.problem_report(f"unknown directive '{name}'", match.group(0), line_number)
            return None

        arguments = arguments_parse(match.group('args'))
        if arguments is None:
            self.problem_report(f"malformed arguments for '{name}'", match.group(0), line_number)
            return None

        reason = spec.arguments_accept(arguments.positional, arguments.keywords)
        if reason is not None:
            self.problem_report(f"'{name}': {reason}", match.group(0), line_number)
            return None

        return DirectiveRecord(
            line_number=line_number,
            name=spec.name,
            positional=arguments.positional,
            keywords=arguments.keywords,
        )

    def problem_report(self, message: str, literal: str, line_number: int) -> None:
        """Warn about (or, in strict mode, reject) a directive kept as text"""
        if self.strict:
            raise DirectiveSyntaxError(
                f"{message}: {literal}", line_number=line_number, source_path=self.source_path
            )
        if self.warnings:
            location = self.source_path or "<string>"
            LOG(
                f"{location}:{line_number}: {message}; kept as text: {literal}",
                level=1,
                severity="WARNING",
            )

    def context_advance(self, line_number: int) -> ExcerptContext:
        """
        Fold every logged directive before ``line_number`` into the context

        Returns:
            The current ExcerptContext
        """
        while self._applied < len(self.records) and self.records[self._applied].line_number < line_number:
            record = self.records[self._applied]
            spec = self.registry.get(record.name)
            if spec is not None:
                spec.handler(record, self.context)
            self._applied += 1
        return self.context

    def fence_claim(self, line_number: int) -> Optional[str]:
        """
        Resolve the excerpt path for the code fence opening at ``line_number``

        Consumes the pending excerpt so it does not leak onto later fences.

        Returns:
            Resolved source path, or None if no excerpt directive applies

        Example:
            <?code-excerpt path-base="examples/java"?>
            <?code-excerpt "build.gradle"?>
            ```kotlin          -> "examples/java/build.gradle"
            ```sh              -> None
        """
        context = self.context_advance(line_number)
        if context.pending_excerpt is None:
            return None
        path = context.path_resolve(context.pending_excerpt)
        context.pending_excerpt = None
        LOG(f"Line {line_number}: code fence is an excerpt of {path}", level=3)
        return path
