from __future__ import annotations


# -----------------------------
# Exceptions
# -----------------------------
class BackupError(Exception):
    pass


class InvalidRequest(BackupError):
    pass


class ConfigError(BackupError):
    pass


class DiscoveryError(BackupError):
    pass


class NotFound(BackupError):
    def __init__(self, kind: str):
        super().__init__(f"resource with name {kind} not found")
        self.kind = kind


class ListError(BackupError):
    pass


class MalformedObject(BackupError):
    pass


class OutputError(BackupError):
    pass


class EncodeError(BackupError):
    pass
