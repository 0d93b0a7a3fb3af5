"""
Bifrost error taxonomy.

Every failure the client surfaces derives from ``BifrostError``.  Each class
carries the process exit code the CLI uses when the error escapes a command.

- ResolutionError:    module/call name absent from the node metadata
- SigningError:       the signing capability failed
- TransportError:     connection open/send/receive failure, timeouts, cancellation
- ProtocolError:      malformed or unexpected frame from the node
- ConfigurationError: the client was asked for something it is not set up for
"""

from __future__ import annotations

from typing import Any


class BifrostError(RuntimeError):
    exit_code: int = 1


class ResolutionError(BifrostError):
    exit_code = 2


class ModuleNotFound(ResolutionError):
    def __init__(self, module: str) -> None:
        super().__init__(f"Module {module!r} not found in metadata")
        self.module = module


class CallNotFound(ResolutionError):
    def __init__(self, module: str, call: str) -> None:
        super().__init__(f"Call {call!r} not found in module {module!r}")
        self.module = module
        self.call = call


class SigningError(BifrostError):
    exit_code = 3


class TransportError(BifrostError):
    exit_code = 4


class SessionTimeout(TransportError):
    pass


class SessionCancelled(TransportError):
    pass


class ProtocolError(BifrostError):
    exit_code = 5


class NodeRpcError(ProtocolError):
    """The node answered a request with a JSON-RPC ``error`` object."""

    def __init__(self, error: Any) -> None:
        super().__init__(f"RPC error: {error}")
        self.error = error


class ConfigurationError(BifrostError):
    exit_code = 6
