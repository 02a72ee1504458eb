"""Local denoising backend that runs the nnnoiseless executable.

One process per file: `<exe> [--model=<path>] <input> <output>`. The
exit status decides success. Captured output is logged at DEBUG and the
last stderr line explains failures.
"""

import logging
import os
import subprocess

from wav_denoise.dispatch.interface import DenoiseOutcome, DenoiseRequest, Dispatcher
from wav_denoise.utils.errors import DispatchError

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE = "nnnoiseless"


def _last_line(text: str | None) -> str:
    if not text:
        return ""
    lines = [line.strip() for line in text.strip().splitlines() if line.strip()]
    return lines[-1] if lines else ""


class SubprocessDispatcher(Dispatcher):
    """Runs the denoiser as a child process for every file.

    Reads configuration from environment variables:
        NNNOISELESS_PATH (used when no executable is passed)
    """

    name = "local"

    def __init__(
        self,
        executable: str | None = None,
        model_path: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.executable = (
            executable or os.environ.get("NNNOISELESS_PATH", "") or DEFAULT_EXECUTABLE
        )
        self.model_path = model_path or None
        self.timeout = timeout

    def build_command(self, request: DenoiseRequest) -> list[str]:
        """Assemble argv for one request."""
        cmd = [self.executable]
        if self.model_path:
            cmd.append(f"--model={self.model_path}")
        cmd.extend([request.input_path, request.output_path])
        return cmd

    def dispatch(self, request: DenoiseRequest) -> DenoiseOutcome:
        """Run the executable and wait for it to exit.

        Raises:
            DispatchError: If the process cannot be spawned or times out.
        """
        cmd = self.build_command(request)
        logger.debug(
            "Running %s", " ".join(cmd), extra={"path": request.input_path}
        )

        try:
            completed = subprocess.run(
                cmd,
                check=False,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except OSError as exc:
            raise DispatchError(
                f"Failed to run {self.executable}: {exc.strerror or exc}",
                path=request.input_path,
                backend=self.name,
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise DispatchError(
                f"{self.executable} timed out after {self.timeout}s",
                path=request.input_path,
                backend=self.name,
            ) from exc

        captured = (("stdout", completed.stdout), ("stderr", completed.stderr))
        for stream_name, output in captured:
            if output and output.strip():
                logger.debug(
                    "%s %s:\n%s",
                    self.executable,
                    stream_name,
                    output.rstrip(),
                    extra={"path": request.input_path, "stage": "dispatch"},
                )

        if completed.returncode != 0:
            reason = f"exit status {completed.returncode}"
            stderr_line = _last_line(completed.stderr)
            if stderr_line:
                reason = f"{reason}: {stderr_line}"
            return DenoiseOutcome.failed(reason)

        return DenoiseOutcome.ok()
