#!/usr/bin/env python3
"""
pagemark - Documentation page parser and renderer

Builds a directory of Markdown-style documentation pages into HTML (or a
JSON render tree), one output file per page.

As an aside, this codebase leverages the ChRIS "plugin" concept/pattern as
general purpose python app development framework.

Key Features:
    - YAML front-matter (title, description, weight)
    - <?code-excerpt?> directives linking code fences to source files
    - {{% alert %}} callout boxes, nested to any depth
    - Reference-style links resolved per page
    - Per-page error isolation: one broken page never stops the build

Usage:
    pagemark inputdir/ outputdir/

    Every page matching --pattern below inputdir/ is rendered to the same
    relative path below outputdir/.

Examples:
    # Basic build
    pagemark content/ public/

    # JSON render trees, duplicate link labels are errors
    pagemark content/ public/ --outputFormat json --duplicateDefinitions error

    # Verbose output
    pagemark content/ public/ -vv
"""

import sys
from pathlib import Path
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter

from chris_plugin import chris_plugin
from .lib import SiteBuilder, __version__, LOG, state_connectToLogger
from .models import ProgramState, pipeline


DISPLAY_TITLE = r"""
                                            _
  _ __   __ _  __ _  ___ _ __ ___   __ _ _ __| | __
 | '_ \ / _` |/ _` |/ _ \ '_ ` _ \ / _` | '__| |/ /
 | |_) | (_| | (_| |  __/ | | | | | (_| | |  |   <
 | .__/ \__,_|\__, |\___|_| |_| |_|\__,_|_|  |_|\_\
 |_|          |___/

  Documentation page renderer
"""

# Define CLI arguments
parser = ArgumentParser(
    description="pagemark - Documentation page parser and renderer",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--pattern",
    default=None,
    type=str,
    help="Glob selecting pages below inputdir (defaults to PAGEMARK_PAGE_GLOB or **/*.md)",
)

parser.add_argument(
    "--outputFormat",
    default="html",
    choices=["html", "json"],
    help="Render pages to HTML documents or JSON render trees",
)

parser.add_argument(
    "--duplicateDefinitions",
    default=None,
    choices=["last-wins", "first-wins", "error"],
    help="How to treat a link label defined twice on one page",
)

parser.add_argument(
    "--strict",
    action="store_true",
    help="Treat unknown or malformed directives as errors",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv, -vvv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate environment and create the output directory.

    Args:
        inputstate: Initial program state with CLI options

    Returns:
        ProgramState with envOK set

    Exits:
        1 if inputdir does not exist or is not a directory
    """

    state = inputstate.copy()

    if state.verbosity >= 2:
        LOG(DISPLAY_TITLE, level=2)

    LOG("Checking environment...", level=2)

    if state.inputdir is None or not state.inputdir.is_dir():
        print(f"Error: Input directory not found: {state.inputdir}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    LOG(f"Input directory: {state.inputdir}", level=2)

    state.outputdir.mkdir(parents=True, exist_ok=True)
    LOG(f"Output directory: {state.outputdir}", level=2)

    state.envOK = True
    return state


def pages_build(inputstate: ProgramState) -> ProgramState:
    """
    Parse, index and render every page below inputdir.

    Page errors do not stop the build; they are collected in the results.

    Args:
        inputstate: Program state with envOK set

    Returns:
        ProgramState with added field:
            - buildResults: List[PageResult], one per source page
    """

    state = inputstate.copy()

    LOG("Building pages...", level=1)

    builder = SiteBuilder(
        input_dir=state.inputdir,
        output_dir=state.outputdir,
        pattern=state.pattern,
        output_format=state.outputFormat,
        duplicate_policy=state.duplicateDefinitions,
        strict=state.strict or None,
    )
    state.buildResults = builder.build()
    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Display build results to the user.

    Each failed page is printed to stderr as "file:line: Kind: message".

    Args:
        inputstate: Program state with buildResults populated

    Returns:
        ProgramState unchanged (terminal pipeline stage)

    Exits:
        1 if no pages were found or any page failed
    """
    state: ProgramState = inputstate.copy()
    results = state.buildResults or []

    if not results:
        print(f"Error: No pages found in {state.inputdir}", file=sys.stderr)
        sys.exit(1)

    failed = [result for result in results if not result.ok]
    for result in failed:
        print(str(result.error), file=sys.stderr)

    built = len(results) - len(failed)
    LOG(f"\n{'✓' if not failed else '✗'} Built {built} of {len(results)} page(s)", level=1)
    LOG(f"  Output: {state.outputdir}", level=1)

    if failed:
        sys.exit(1)
    return state


@chris_plugin(
    parser=parser,
    title="pagemark - Documentation page renderer",
    category="Utility",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Main entry point - render a directory of documentation pages.

    Orchestrates the build pipeline:
        1. env_check: Validate paths and environment
        2. pages_build: Parse, index and render every page
        3. results_report: Report per-page failures

    Args:
        options: CLI arguments from argparse
            - pattern: Optional[str] - Page discovery glob
            - outputFormat: str - "html" or "json"
            - duplicateDefinitions: Optional[str] - Duplicate label policy
            - strict: bool - Fatal directive problems
            - verbosity: int - Logging verbosity level (1-3)
        inputdir: Directory containing source pages
        outputdir: Directory where rendered pages will be written

    Note:
        This function is wrapped by @chris_plugin which handles CLI
        argument parsing and invokes this function with parsed values.
    """

    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)

    pipeline(state, env_check, pages_build, results_report)


if __name__ == "__main__":
    main()  # type: ignore  # @chris_plugin decorator transforms signature
