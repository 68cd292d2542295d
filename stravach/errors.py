class RenameError(Exception):
    """Base error of the rename flow. `code` is stable and used in Result.error_code."""

    code = "rename_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class CredentialRefreshFailed(RenameError):
    """Strava rejected the token refresh; the user has to re-authorize."""

    code = "credential_refresh_failed"


class GenerationFailed(RenameError):
    """Name generation failed or returned nothing usable."""

    code = "generation_failed"


class InvalidCallback(RenameError):
    """Malformed or foreign button payload."""

    code = "invalid_callback"


class UpstreamWriteFailed(RenameError):
    """Strava rejected the rename. Nothing was changed locally."""

    code = "upstream_write_failed"


class PartialSyncFailure(RenameError):
    """Strava has the new name but the local mirror could not be updated."""

    code = "partial_sync"


class OptionsNotFound(RenameError):
    code = "no_longer_available"


class ActivityNotFound(RenameError):
    code = "activity_not_found"


class UserNotFound(RenameError):
    code = "user_not_found"


class StravaError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class StravaUnauthorized(StravaError):
    pass
