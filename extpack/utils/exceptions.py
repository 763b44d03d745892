from __future__ import annotations

from typing import Any, Optional


class ExtpackError(Exception):
    """Base exception for all extpack errors."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        """
        Initialize exception.

        Args:
            message: Error message
            **kwargs: Additional error information
        """
        details = kwargs.pop("details", {})
        details.update(kwargs)
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return f"{self.message}"


class ManagerError(ExtpackError):
    """Base exception for manager-related errors."""

    def __init__(self, message: str, manager_name: Optional[str] = None, **kwargs: Any) -> None:
        """
        Initialize manager error.

        Args:
            message: Error message
            manager_name: Name of the affected manager
            **kwargs: Additional error information
        """
        if manager_name:
            kwargs["manager_name"] = manager_name
        super().__init__(message, **kwargs)
        self.manager_name = manager_name

    def __str__(self) -> str:
        """String representation."""
        if self.manager_name:
            return f"{self.message} (Manager: {self.manager_name})"
        return super().__str__()


class ManagerInitializationError(ManagerError):
    """Exception raised when a manager fails to initialize."""

    pass


class ManagerShutdownError(ManagerError):
    """Exception raised when a manager fails to shut down cleanly."""

    pass


class ConfigurationError(ExtpackError):
    """Exception raised for configuration-related errors."""

    def __init__(self, message: str, *, config_key: Optional[str] = None, **kwargs: Any) -> None:
        """Initialize a ConfigurationError.

        Args:
            message: A descriptive error message.
            config_key: The configuration key that caused the error.
            **kwargs: Additional error information.
        """
        if config_key:
            kwargs["config_key"] = config_key
        super().__init__(message, **kwargs)


# Validation errors: raised before any filesystem mutation.


class ManifestValidationError(ExtpackError):
    """Base for errors in the package manifest or the identity derived from it."""

    pass


class ManifestReadError(ManifestValidationError):
    """The manifest file is missing or could not be parsed."""

    def __init__(self, message: str, *, path: Optional[str] = None, **kwargs: Any) -> None:
        if path:
            kwargs["path"] = path
        super().__init__(message, **kwargs)


class ManifestFieldError(ManifestValidationError):
    """A single manifest field is missing or has the wrong type."""

    def __init__(self, message: str, *, field: str, **kwargs: Any) -> None:
        super().__init__(message, field=field, **kwargs)
        self.field = field


class MissingPublisher(ManifestValidationError):
    """Neither a publisher nor a scoped package name was given."""

    pass


class InvalidPublisher(ManifestValidationError):
    """The publisher normalizes to an empty string."""

    pass


class NameTooLong(ManifestValidationError):
    """The install directory name exceeds the path component limit."""

    def __init__(self, message: str, *, dirname: str, **kwargs: Any) -> None:
        super().__init__(message, dirname=dirname, **kwargs)
        self.dirname = dirname


class PathEscape(ManifestValidationError):
    """A declared path resolves outside of the package root."""

    def __init__(self, message: str, *, path: str, **kwargs: Any) -> None:
        super().__init__(message, path=path, **kwargs)
        self.path = path


# Precondition errors: required build output is missing.


class PreconditionError(ExtpackError):
    """Base for missing files or directories that must exist before packaging."""

    def __init__(self, message: str, *, path: str, **kwargs: Any) -> None:
        super().__init__(message, path=path, **kwargs)
        self.path = path


class MissingRequiredFile(PreconditionError):
    """A mandatory regular file does not exist."""

    pass


class MissingRequiredPath(PreconditionError):
    """A path declared in the manifest "files" list does not exist."""

    pass


class MissingRequiredDirectory(PreconditionError):
    """The default build output directory does not exist."""

    pass


# External process errors.


class ExternalProcessError(ExtpackError):
    """Base for failures of the prepublish hook process."""

    def __init__(self, message: str, *, command: Optional[str] = None, **kwargs: Any) -> None:
        if command:
            kwargs["command"] = command
        super().__init__(message, **kwargs)


class HookFailed(ExternalProcessError):
    """The prepublish hook exited with a non-zero status."""

    def __init__(self, message: str, *, exit_code: Optional[int], **kwargs: Any) -> None:
        super().__init__(message, exit_code=exit_code, **kwargs)
        self.exit_code = exit_code


class HookSpawnError(ExternalProcessError):
    """The prepublish hook process could not be started."""

    pass


# I/O errors.


class PackagingIOError(ExtpackError):
    """Base for filesystem failures while writing an archive or installing."""

    pass


class ArchiveWriteError(PackagingIOError):
    """Writing the archive failed; any partial output is invalid."""

    def __init__(self, message: str, *, output_path: Optional[str] = None, **kwargs: Any) -> None:
        if output_path:
            kwargs["output_path"] = output_path
        super().__init__(message, **kwargs)


class InstallError(PackagingIOError):
    """Removing a previous install or copying files into the extensions directory failed."""

    def __init__(self, message: str, *, destination: Optional[str] = None, **kwargs: Any) -> None:
        if destination:
            kwargs["destination"] = destination
        super().__init__(message, **kwargs)


class PublishError(ExtpackError):
    """The registry entry could not be produced."""

    pass
