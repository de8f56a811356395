"""
Program state model and pipeline helper

Defines ProgramState dataclass for the functional pipeline pattern and
the pipeline() helper for composing transformation stages.
"""

from pathlib import Path
from argparse import Namespace
from typing import Optional, Type, TypeVar, List, Callable
from dataclasses import dataclass, field

from .site import PageResult


PS = TypeVar("PS", bound="ProgramState")


@dataclass
class ProgramState:
    """
    Central state container for the build pipeline (state bus pattern).

    This dataclass carries all program state through the functional pipeline,
    with each stage adding new fields as the build progresses.

    Pipeline stages and their state additions:
        - Initial: inputdir, outputdir, verbosity, pattern, outputFormat,
          duplicateDefinitions, strict
        - env_check: envOK
        - pages_build: buildResults
        - results_report: (no additions, terminal stage)

    Attributes:
        inputdir: Directory containing source pages
        outputdir: Root directory for rendered pages
        verbosity: Logging verbosity level (1-3)
        pattern: Glob selecting pages below inputdir (None: appsettings.page_glob)
        outputFormat: "html" or "json"
        duplicateDefinitions: Duplicate link-definition policy (None: appsettings)
        strict: Treat directive problems as fatal
        envOK: Environment validation passed
        buildResults: One PageResult per source page
    """

    # CLI arguments
    inputdir: Optional[Path] = field(default=None)
    outputdir: Optional[Path] = field(default=None)
    verbosity: int = field(default=1)
    pattern: Optional[str] = field(default=None)
    outputFormat: str = field(default="html")
    duplicateDefinitions: Optional[str] = field(default=None)
    strict: bool = field(default=False)

    # Pipeline state
    envOK: bool = field(default=False)
    buildResults: Optional[List[PageResult]] = field(default=None)

    @classmethod
    def state_createFromNamespace(
        cls: Type["ProgramState"], options: Namespace, inputdir: Path, outputdir: Path
    ) -> "ProgramState":
        """
        Create ProgramState from argparse Namespace and directory paths.

        Merges CLI options with explicitly provided directories to create
        the initial program state for the build pipeline.

        Args:
            options: Parsed CLI arguments (pattern, outputFormat, etc.)
            inputdir: Directory containing source pages
            outputdir: Directory for rendered output

        Returns:
            ProgramState instance with all CLI options as attributes
        """
        options_dict = vars(options)

        import dataclasses
        valid_fields = {f.name for f in dataclasses.fields(cls)}

        # Only options that are ProgramState fields; the rest belong to chris_plugin
        filtered_options = {k: v for k, v in options_dict.items() if k in valid_fields}

        merged_args = {**filtered_options, "inputdir": inputdir, "outputdir": outputdir}
        return cls(**merged_args)

    def copy(self: PS) -> PS:
        """
        Creates a shallow copy of the ProgramState instance.

        Returns:
            A new ProgramState instance.
        """
        return type(self)(**self.__dict__)


def pipeline(
    initial_state: ProgramState, *stages: Callable[[ProgramState], ProgramState]
) -> ProgramState:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (ProgramState) -> ProgramState that receives
    the output of the previous stage and returns a new state.

    Args:
        initial_state: Starting ProgramState
        *stages: Variable number of stage functions to execute in order

    Returns:
        Final ProgramState after all transformations

    Example:
        final_state = pipeline(initial_state, env_check, pages_build, results_report)

    This is equivalent to:
        results_report(pages_build(env_check(initial_state)))
    """
    from functools import reduce
    return reduce(lambda state, stage: stage(state), stages, initial_state)
