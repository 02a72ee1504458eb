"""Custom exception hierarchy for the WAV denoising tool.

All exceptions inherit from DenoiseToolError, enabling a single catch at
the CLI boundary while preserving the path and stage each failure
happened on. Per-item skips (format mismatch, backend-reported failure)
are never raised; only fatal conditions use these classes.
"""


class DenoiseToolError(Exception):
    """Base exception for all fatal denoising run errors."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(message)

    def __str__(self) -> str:
        if self.path:
            return f"[path={self.path}] {super().__str__()}"
        return super().__str__()


class ConfigError(DenoiseToolError):
    """Raised when startup configuration or the two roots are unusable."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.operation = operation
        super().__init__(message, path)


class HeaderError(DenoiseToolError):
    """Raised when a WAV header cannot be opened or parsed."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        detail: str | None = None,
    ) -> None:
        self.detail = detail
        super().__init__(message, path)


class PathMappingError(DenoiseToolError):
    """Raised when an input path cannot be mirrored under the output root."""


class DispatchError(DenoiseToolError):
    """Raised on backend transport, protocol, or spawn failures."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        backend: str | None = None,
        endpoint: str | None = None,
    ) -> None:
        self.backend = backend
        self.endpoint = endpoint
        super().__init__(message, path)
