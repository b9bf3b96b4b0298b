"""Custom exceptions for the slot reconciler."""


class SlotReconcilerError(Exception):
    """Base exception for all slot reconciler errors."""


class ConfigurationError(SlotReconcilerError):
    """Missing or invalid configuration (endpoint, reference list)."""


class SlotListError(SlotReconcilerError):
    """Error loading or saving a slot list file."""

    def __init__(self, path, message: str):
        super().__init__(message)
        self.path = path


class SlotListNotFoundError(SlotListError):
    """Slot list file does not exist."""


class SlotListReadError(SlotListError):
    """Slot list file exists but could not be read."""


class SlotListWriteError(SlotListError):
    """Slot list file could not be written."""


class SlotListParseError(SlotListError):
    """A non-empty line in a slot list file is not a valid slot number."""

    def __init__(self, path, line_number: int, line: str):
        super().__init__(path, f"{path}:{line_number}: invalid slot number {line!r}")
        self.line_number = line_number
        self.line = line


class SolanaRpcError(SlotReconcilerError):
    """The RPC node answered with a JSON-RPC error object."""

    def __init__(self, code, message: str, data=None):
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.rpc_message = message
        self.data = data
