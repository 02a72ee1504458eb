"""Input/output root handling and output path mirroring.

Every input file at <input_root>/<relative> is mirrored to
<output_root>/<relative>. Both roots are canonicalized up front so that
stripping the input root prefix is well defined regardless of symlinks
or relative invocation.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from wav_denoise.utils.errors import ConfigError, PathMappingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Roots:
    """Canonical, existing input and output root directories."""

    input_root: Path
    output_root: Path

    @property
    def output_inside_input(self) -> bool:
        """True when the output tree is nested somewhere under the input tree."""
        return self.output_root.is_relative_to(self.input_root)


@dataclass
class Candidate:
    """A discovered input file and its mirrored output location."""

    input_path: Path
    relative_path: Path
    output_path: Path


def resolve_roots(input_dir: str | os.PathLike, output_dir: str | os.PathLike) -> Roots:
    """Canonicalize the input root and create then canonicalize the output root.

    Args:
        input_dir: Input directory as given on the command line.
        output_dir: Output directory as given on the command line.

    Returns:
        Roots with both paths absolute and resolved.

    Raises:
        ConfigError: If the input root is missing or not a directory, the
            output root cannot be created, or both roots are the same.
    """
    try:
        input_root = Path(input_dir).resolve(strict=True)
    except OSError as exc:
        raise ConfigError(
            "Failed to find canonical path for input directory",
            path=str(input_dir),
            operation="resolve_input",
        ) from exc
    if not input_root.is_dir():
        raise ConfigError(
            "Input path is not a directory",
            path=str(input_root),
            operation="resolve_input",
        )

    try:
        Path(output_dir).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(
            f"Failed to create output directory: {exc.strerror or exc}",
            path=str(output_dir),
            operation="create_output",
        ) from exc

    try:
        output_root = Path(output_dir).resolve(strict=True)
    except OSError as exc:
        raise ConfigError(
            "Failed to find canonical path for output directory",
            path=str(output_dir),
            operation="resolve_output",
        ) from exc

    if output_root == input_root:
        raise ConfigError(
            "Output directory must differ from input directory; refusing to let the "
            "backend overwrite its own input files",
            path=str(output_root),
            operation="resolve_output",
        )

    roots = Roots(input_root=input_root, output_root=output_root)
    logger.debug(
        "Resolved roots: input=%s output=%s", roots.input_root, roots.output_root
    )
    return roots


def map_output_path(roots: Roots, input_path: Path) -> Path:
    """Mirror an input file path under the output root.

    Creates the parent directory of the returned path; never creates the
    output file itself.

    Args:
        roots: Canonical input and output roots.
        input_path: Absolute path of a file under the input root.

    Returns:
        Absolute output path.

    Raises:
        PathMappingError: If the input path is not under the input root or
            the parent directory cannot be created.
    """
    try:
        relative = input_path.relative_to(roots.input_root)
    except ValueError as exc:
        raise PathMappingError(
            f"Path is not under input root {roots.input_root}",
            path=str(input_path),
        ) from exc

    output_path = roots.output_root / relative

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise PathMappingError(
            f"Failed to create output directory for: {output_path}",
            path=str(input_path),
        ) from exc

    return output_path


def build_candidate(roots: Roots, input_path: Path) -> Candidate:
    """Map an input file and bundle the paths into a Candidate."""
    output_path = map_output_path(roots, input_path)
    return Candidate(
        input_path=input_path,
        relative_path=output_path.relative_to(roots.output_root),
        output_path=output_path,
    )
