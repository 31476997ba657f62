"""
Error types raised by gsdtools.

Parse problems never raise: the offending field or file is dropped.
Missing files in read-only lookups come back as an "error" field in the
result dict. The classes below cover everything else, and the CLI turns
them into a non-zero exit with a message on stderr.
"""


class GsdError(Exception):
    """Base class for gsdtools failures."""


class InvalidInputError(GsdError):
    """Malformed argument, unknown option value, or bad JSON payload."""


class JsoncSyntaxError(InvalidInputError, ValueError):
    """JSONC text was still not valid JSON after comments were stripped."""


class MissingResourceError(GsdError):
    """A file the command cannot work without does not exist."""


class PreconditionError(GsdError):
    """The planning tree is not in a state that allows the operation."""


class UnreadableFileError(InvalidInputError):
    """A file exists but is not UTF-8 text."""
