"""Abstract dispatcher interface and data models.

A Dispatcher turns one (input, output) pair into a denoised output file
by whatever means its backend provides. Concrete implementations live in
remote.py (HTTP) and local.py (subprocess).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class DenoiseRequest:
    """One unit of work: absolute input and output file paths."""

    input_path: str
    output_path: str


@dataclass
class DenoiseOutcome:
    """Backend verdict for a single DenoiseRequest."""

    success: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> DenoiseOutcome:
        return cls(success=True)

    @classmethod
    def failed(cls, reason: str) -> DenoiseOutcome:
        return cls(success=False, reason=reason)


class Dispatcher(ABC):
    """Abstract base class for denoising backends.

    Subclasses must implement dispatch(). Backends holding resources
    (HTTP connection pools) release them in close().
    """

    name: str = "abstract"

    @abstractmethod
    def dispatch(self, request: DenoiseRequest) -> DenoiseOutcome:
        """Have the backend denoise one file.

        Args:
            request: Input and output paths for this item.

        Returns:
            DenoiseOutcome; a failure is a per-item skip.

        Raises:
            DispatchError: On transport, protocol, or spawn failures.
        """

    def close(self) -> None:
        """Release backend resources. No-op by default."""

    def __enter__(self) -> Dispatcher:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()
