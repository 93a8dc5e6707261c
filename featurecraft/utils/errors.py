"""Errors reported per file during imports and exports"""


class FileReadError(Exception):
    """A source or feature file could not be read"""

    action = 'read'

    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = str(reason)
        super().__init__(f"Could not {self.action} {self.path}: {self.reason}")


class FileWriteError(FileReadError):
    """A feature file could not be written"""

    action = 'write'
