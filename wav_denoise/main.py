"""Command-line entry point for the WAV denoising tool.

Parses arguments, resolves the input and output roots, builds the
configured backend, and walks the input tree. Prints a one-line summary
to stdout on success; any fatal error is logged as a single line and
turns into a non-zero exit status.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError, version

from wav_denoise.dispatch import DISPATCHERS, Dispatcher, get_dispatcher
from wav_denoise.observability.logger import LOG_FORMATS, configure_logging
from wav_denoise.pipeline import process_tree
from wav_denoise.storage.mirror import resolve_roots
from wav_denoise.utils.errors import ConfigError, DenoiseToolError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _package_version() -> str:
    try:
        return version("wav-denoise")
    except PackageNotFoundError:
        return "unknown"


@dataclass
class BackendConfig:
    """Validated backend selection derived from CLI flags."""

    backend: str
    urls: list[str] = field(default_factory=list)
    model: str | None = None
    executable: str | None = None
    model_path: str | None = None
    timeout: float | None = None

    def dispatcher_kwargs(self) -> dict[str, object]:
        if self.backend == "api":
            return {"url": self.urls[0], "model": self.model, "timeout": self.timeout}
        if self.backend == "pool":
            return {"urls": self.urls, "model": self.model, "timeout": self.timeout}
        return {
            "executable": self.executable,
            "model_path": self.model_path,
            "timeout": self.timeout,
        }


def _split_addresses(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser; flag defaults come from the environment."""
    env = os.environ
    parser = argparse.ArgumentParser(
        prog="wav-denoise",
        description=(
            "Recursively denoise 16kHz mono 16-bit WAV files using an HTTP "
            "API, a pool of API servers, or a local nnnoiseless executable."
        ),
    )
    parser.add_argument(
        "input_dir", help="Input directory containing WAV files (processed recursively)"
    )
    parser.add_argument("output_dir", help="Output directory for denoised files")
    parser.add_argument(
        "--backend",
        choices=sorted(DISPATCHERS),
        default=env.get("WAV_DENOISE_BACKEND") or None,
        help=(
            "Denoising backend. Inferred when omitted: one --addr-api URL "
            "selects 'api', several select 'pool', none selects 'local'."
        ),
    )
    parser.add_argument(
        "--addr-api",
        default=env.get("WAV_DENOISE_ADDR_API"),
        help="Address of the API server, or a comma-separated list for a pool",
    )
    parser.add_argument(
        "--model",
        default=env.get("WAV_DENOISE_MODEL"),
        help="Model identifier forwarded to the API server",
    )
    parser.add_argument(
        "--nnnoiseless-path",
        default=None,
        help="Path to the nnnoiseless executable (default: $NNNOISELESS_PATH or PATH lookup)",
    )
    parser.add_argument(
        "--model-path",
        default=None,
        help="Custom model file passed to nnnoiseless as --model=<PATH>",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=env.get("WAV_DENOISE_TIMEOUT"),
        help="Per-file timeout in seconds for the backend (default: none)",
    )
    parser.add_argument(
        "--log-level",
        default=env.get("WAV_DENOISE_LOG_LEVEL", "INFO"),
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=env.get("WAV_DENOISE_LOG_FORMAT", "text"),
        help="Diagnostic output format on stderr (default: text)",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {_package_version()}"
    )
    return parser


def resolve_backend(args: argparse.Namespace) -> BackendConfig:
    """Pick and validate the backend from parsed arguments.

    Raises:
        ConfigError: On missing addresses or flags that do not apply to
            the selected backend.
    """
    urls = _split_addresses(args.addr_api)
    backend = args.backend
    if backend is None:
        if not urls:
            backend = "local"
        elif len(urls) == 1:
            backend = "api"
        else:
            backend = "pool"

    if backend in ("api", "pool"):
        if not urls:
            raise ConfigError(
                f"--addr-api is required for the '{backend}' backend",
                operation="parse_args",
            )
        if backend == "api" and len(urls) > 1:
            raise ConfigError(
                "The 'api' backend takes a single --addr-api URL; use 'pool' for several",
                operation="parse_args",
            )
        if args.model_path:
            raise ConfigError(
                "--model-path applies only to the 'local' backend; use --model",
                operation="parse_args",
            )
    else:
        if urls:
            raise ConfigError(
                "--addr-api does not apply to the 'local' backend",
                operation="parse_args",
            )
        if args.model:
            raise ConfigError(
                "--model applies only to remote backends; use --model-path",
                operation="parse_args",
            )

    if args.timeout is not None and args.timeout <= 0:
        raise ConfigError("--timeout must be positive", operation="parse_args")

    return BackendConfig(
        backend=backend,
        urls=urls,
        model=args.model or None,
        executable=args.nnnoiseless_path,
        model_path=args.model_path,
        timeout=args.timeout,
    )


def run_denoise(args: argparse.Namespace) -> int:
    """Execute a full run for already-parsed arguments."""
    backend_config = resolve_backend(args)
    roots = resolve_roots(args.input_dir, args.output_dir)

    dispatcher: Dispatcher = get_dispatcher(
        backend_config.backend, **backend_config.dispatcher_kwargs()
    )
    with dispatcher:
        counters = process_tree(roots, dispatcher)

    print(counters.summary_line())
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, run the denoiser, and map failures to exit codes."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        configure_logging(args.log_level, args.log_format)
    except ValueError as exc:
        parser.error(str(exc))

    try:
        return run_denoise(args)
    except DenoiseToolError as exc:
        logger.error("Error: %s", exc, extra={"error": type(exc).__name__})
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return EXIT_INTERRUPTED


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
