"""tx-decoder custom exceptions."""


class DecoderError(Exception):
    """Base exception for tx-decoder errors."""


class AbiDecodeError(DecoderError, ValueError):
    """ABI encoded data could not be decoded against its declared types."""


class NoMatchingFunctionError(DecoderError):
    """Call data selector is not declared by the interface."""


class NoMatchingEventError(DecoderError):
    """Log topics do not match any event declared by the interface."""


class MissingContractError(DecoderError, KeyError):
    """A call frame references an address absent from the contract mapping."""

    def __str__(self) -> str:
        # KeyError quotes its message otherwise
        return str(self.args[0]) if self.args else ""
