"""Fatal conditions that stop a gate run before evaluation."""


class GateError(Exception):
    """Base class for errors that abort a gate invocation."""


class ConfigurationError(GateError):
    """An input file could not be located or read."""


class ParseError(GateError):
    """An input file is not valid JSON or does not have the expected shape."""

    def __init__(self, path, message: str):
        self.path = str(path)
        super().__init__(f"{self.path}: {message}")
