"""Exception classes for trampoline generation."""


class TrampgenError(Exception):
    """Base class for all trampgen errors."""

    pass


class AbiVariantError(TrampgenError, ValueError):
    """Unrecognised ABI variant token."""

    pass


class WitxParseError(TrampgenError):
    """Malformed or unresolvable WITX input."""

    def __init__(self, message: str, path=None):
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class UnsupportedTypeError(TrampgenError):
    """IDL type that has no core wasm lowering in this position."""

    pass
