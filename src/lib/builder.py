"""
Multi-page site builder

Builds every page under an input directory in three passes:

1. Parse: load and parse each page (front-matter, directives, blocks,
   link resolution)
2. Index: build a read-only SiteIndex from the pages that parsed
3. Render: compile each page to its mirrored output path

A fatal error stops only the page it occurred in. The build carries on
and returns one PageResult per source file, so the caller can report
every failure as "file:line: Kind: message".
"""

from pathlib import Path
from typing import List, Optional, Tuple

from ..models.page import Page
from ..models.site import PageResult, SiteIndex
from .compiler import Compiler
from .errors import PageError
from .log import LOG
from .parser import Parser


class SiteBuilder:
    """
    Builds a directory of pages

    Usage:
        results = SiteBuilder(Path("content"), Path("public")).build()
        failed = [r for r in results if not r.ok]
    """

    def __init__(
        self,
        input_dir: Path,
        output_dir: Path,
        pattern: Optional[str] = None,
        output_format: str = "html",
        duplicate_policy: Optional[str] = None,
        strict: Optional[bool] = None,
        pygments_style: Optional[str] = None,
    ) -> None:
        """
        Args:
            input_dir: Directory searched for pages
            output_dir: Root of the mirrored output tree
            pattern: Glob for page discovery (defaults to appsettings.page_glob)
            output_format: "html" or "json"
            duplicate_policy: Link-definition duplicate policy
            strict: Make directive problems fatal
            pygments_style: Highlighting style
        """
        from ..config import appsettings

        self.input_dir = Path(input_dir)
        self.output_dir = Path(output_dir)
        self.pattern = pattern or appsettings.page_glob
        self.output_format = output_format
        self.duplicate_policy = duplicate_policy
        self.strict = strict
        self.pygments_style = pygments_style

    def sources_find(self) -> List[Path]:
        """Return matching page files in a stable order"""
        return sorted(path for path in self.input_dir.glob(self.pattern) if path.is_file())

    def href_make(self, source: Path) -> str:
        """Output path of ``source`` relative to the output root"""
        suffix = ".json" if self.output_format == "json" else ".html"
        return source.relative_to(self.input_dir).with_suffix(suffix).as_posix()

    def page_load(self, source: Path) -> Page:
        """
        Read and parse one page

        Raises:
            PageError: Any content error, with the source path attached
        """
        try:
            text = source.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PageError(f"cannot read page: {e}", source_path=str(source)) from e

        LOG(f"Read {len(text)} characters from {source}", level=3)
        parser = Parser(
            text,
            source_path=str(source),
            duplicate_policy=self.duplicate_policy,
            strict=self.strict,
        )
        return parser.parse()

    def build(self) -> List[PageResult]:
        """
        Build every page

        Returns:
            One PageResult per source file, in source order
        """
        sources = self.sources_find()
        LOG(f"Found {len(sources)} page(s) matching '{self.pattern}' in {self.input_dir}", level=1)

        results = {source: PageResult(source=source) for source in sources}
        loaded: List[Tuple[Path, Page, str]] = []

        for source in sources:
            try:
                page = self.page_load(source)
            except PageError as e:
                self.failure_record(results[source], e)
                continue
            loaded.append((source, page, self.href_make(source)))

        index = SiteIndex.pages_index((page, href) for _, page, href in loaded)
        LOG(f"Site index: {len(index)} page(s)", level=2)

        for source, page, href in loaded:
            compiler = Compiler(
                page,
                pygments_style=self.pygments_style,
                site_index=index,
                page_href=href,
            )
            output_file = self.output_dir / href
            try:
                result = compiler.compile(output_file, self.output_format)
            except PageError as e:
                self.failure_record(results[source], e)
                continue
            results[source].output_file = output_file
            results[source].block_count = result['block_count']
            LOG(f"Built {source} -> {output_file}", level=2)

        return [results[source] for source in sources]

    def failure_record(self, result: PageResult, error: PageError) -> None:
        error.location_set(str(result.source))
        result.error = error
        LOG(str(error), level=1, severity="ERROR")
