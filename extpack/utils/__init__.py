"""Utility functions and classes for extpack."""

from extpack.utils.exceptions import (
    ArchiveWriteError,
    ConfigurationError,
    ExtpackError,
    ExternalProcessError,
    HookFailed,
    HookSpawnError,
    InstallError,
    InvalidPublisher,
    ManagerError,
    ManagerInitializationError,
    ManagerShutdownError,
    ManifestFieldError,
    ManifestReadError,
    ManifestValidationError,
    MissingPublisher,
    MissingRequiredDirectory,
    MissingRequiredFile,
    MissingRequiredPath,
    NameTooLong,
    PackagingIOError,
    PathEscape,
    PreconditionError,
    PublishError,
)
