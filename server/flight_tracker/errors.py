from __future__ import annotations

from enum import Enum
from typing import Any, Dict


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    INPUT = "input"
    PROVIDER = "provider"
    PARSE = "parse"
    NETWORK = "network"


class FlightTrackerError(Exception):
    """
    Errors that abort a request before any provider is contacted.

    Provider, parse and network problems are not raised; they travel as
    `ProviderResponse.error` and only steer the fallback cascade.
    """

    kind: ErrorKind = ErrorKind.INPUT
    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class ConfigurationError(FlightTrackerError):
    kind = ErrorKind.CONFIGURATION
    status_code = 401


class InputError(FlightTrackerError):
    kind = ErrorKind.INPUT
    status_code = 400
