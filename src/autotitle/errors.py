"""Exception types raised by autotitle components."""


class AutotitleError(Exception):
    """Base exception for autotitle errors."""

    pass


class CompileError(AutotitleError):
    """A filename template could not be compiled into a matcher."""

    def __init__(self, template: str, reason: str):
        self.template = template
        self.reason = reason
        super().__init__(f"failed to compile pattern {template!r}: {reason}")


class GenerationError(AutotitleError):
    """An output field list could not be turned into a filename."""

    pass


class NoValidPatternsError(AutotitleError):
    """None of the templates configured for a target compiled."""

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__("no valid patterns found" + (f": {detail}" if detail else ""))


class PatternNotMatchedError(AutotitleError):
    """A filename did not match any compiled template."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"No pattern matched: {filename}")


class EpisodeNotFoundError(AutotitleError):
    """An episode number (after offset mapping) is missing from the media."""

    def __init__(self, number: int, mapped: int | None = None):
        self.number = number
        self.mapped = mapped
        if mapped is not None and mapped != number:
            msg = f"Episode {number} (mapped to {mapped}) not found in database"
        else:
            msg = f"Episode {number} not found in database"
        super().__init__(msg)


class BackupError(AutotitleError):
    """A directory-level backup step failed; no rename may proceed."""

    pass


class BackupNotFoundError(AutotitleError):
    """No backup exists for a directory."""

    def __init__(self, directory):
        self.directory = str(directory)
        super().__init__(f"no backup found for: {self.directory}")


class ConfigNotFoundError(AutotitleError):
    """A configuration file does not exist."""

    def __init__(self, path):
        self.path = str(path)
        super().__init__(f"configuration file not found: {self.path}")


class ConfigInvalidError(AutotitleError):
    """A configuration file failed to parse or validate."""

    def __init__(self, path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"invalid config {self.path}: {reason}")


class ProviderError(AutotitleError):
    """A metadata provider request failed."""

    def __init__(self, service: str, status_code: int, message: str):
        self.service = service
        self.status_code = status_code
        self.message = message
        super().__init__(f"{service} API error ({status_code}): {message}")


class OperationCancelledError(AutotitleError):
    """The caller cancelled a run between files."""

    pass


class ProviderNotFoundError(AutotitleError):
    """No metadata provider handles a target URL."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"no provider found for URL: {url}")
