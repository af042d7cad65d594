class StymieError(Exception):
    """Base class for every failure a command can report."""


class InvalidPathError(StymieError):
    pass


class AlreadyExistsError(StymieError):
    pass


class NotFoundError(StymieError):
    pass


class DirectoryNotEmptyError(StymieError):
    pass


class InvalidOperationError(StymieError):
    pass


class PersistenceError(StymieError):
    """Cipher, child process or filesystem failure while reading or writing the store."""


class CorruptManifestError(StymieError):
    """The decrypted manifest does not parse, or a lookup hit a node that is neither dir nor leaf."""
