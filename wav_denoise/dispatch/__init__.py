"""Pluggable denoising backends.

Public API:
    Dispatcher          : Abstract base class for backends.
    DenoiseRequest      : Input/output paths for one file.
    DenoiseOutcome      : Success or per-item failure with a reason.
    RemoteDispatcher    : Single HTTP endpoint.
    PoolDispatcher      : Round-robin over several HTTP endpoints.
    EndpointRing        : Cyclic endpoint selector used by the pool.
    SubprocessDispatcher: Local nnnoiseless executable.
    get_dispatcher      : Factory to create backends by name.
"""

from wav_denoise.dispatch.interface import DenoiseOutcome, DenoiseRequest, Dispatcher
from wav_denoise.dispatch.local import SubprocessDispatcher
from wav_denoise.dispatch.registry import DISPATCHERS, get_dispatcher
from wav_denoise.dispatch.remote import EndpointRing, PoolDispatcher, RemoteDispatcher

__all__ = [
    "DISPATCHERS",
    "Dispatcher",
    "DenoiseRequest",
    "DenoiseOutcome",
    "RemoteDispatcher",
    "PoolDispatcher",
    "EndpointRing",
    "SubprocessDispatcher",
    "get_dispatcher",
]
