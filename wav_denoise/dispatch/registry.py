"""Dispatcher registry with configuration-driven backend selection.

Maps backend name strings to dispatcher classes. Use get_dispatcher() to
instantiate a backend by name with backend-specific configuration.
"""

from wav_denoise.dispatch.interface import Dispatcher
from wav_denoise.dispatch.local import SubprocessDispatcher
from wav_denoise.dispatch.remote import PoolDispatcher, RemoteDispatcher
from wav_denoise.utils.errors import ConfigError

DISPATCHERS: dict[str, type[Dispatcher]] = {
    "api": RemoteDispatcher,
    "pool": PoolDispatcher,
    "local": SubprocessDispatcher,
}


def get_dispatcher(backend: str, **kwargs: object) -> Dispatcher:
    """Create a dispatcher instance by backend name.

    Args:
        backend: Backend name ("api", "pool", or "local").
        **kwargs: Backend-specific configuration passed to the constructor.

    Returns:
        An initialized Dispatcher instance.

    Raises:
        ConfigError: If the backend name is not registered.
    """
    dispatcher_cls = DISPATCHERS.get(backend)
    if not dispatcher_cls:
        available = ", ".join(sorted(DISPATCHERS.keys()))
        raise ConfigError(
            f"Unknown backend: '{backend}'. Available: {available}",
            operation="get_dispatcher",
        )
    return dispatcher_cls(**kwargs)
