"""Exception types raised by the harness, registry and driver."""


class ImgbenchError(Exception):
    """Base class for all imgbench errors."""


class SetupError(ImgbenchError):
    """A configuration problem that aborts the run before any measurement."""


class FixtureNotFoundError(SetupError):
    pass


class LibrarySetupError(SetupError):
    pass


class HarnessNotReadyError(ImgbenchError):
    """An operation was invoked before the harness was set up."""


class UnknownOperationError(ImgbenchError, KeyError):
    pass


class DuplicateOperationError(ImgbenchError):
    pass


class OperationError(ImgbenchError):
    """A single benchmarked operation failed."""


class DecodeCheckError(OperationError):
    """Decoded dimensions did not match the fixture."""


class EncodeError(OperationError):
    pass


class VerificationError(OperationError):
    pass
