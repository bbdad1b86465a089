"""Domain errors for TestFairy Uploader."""


class TestFairyError(RuntimeError):
    """Raised when the upload workflow cannot continue."""

    __test__ = False


class MissingFileError(TestFairyError):
    """A required file (APK, keystore) could not be found."""


class MissingCredentialError(TestFairyError):
    """A required signing secret is empty."""


class ToolNotFoundError(TestFairyError):
    """A configured external program is not runnable."""


class InvalidPackageError(TestFairyError):
    """The APK failed signature verification."""


class SigningFailedError(TestFairyError):
    """zipalign or jarsigner exited with an error."""


class NetworkError(TestFairyError):
    """The TestFairy server could not be reached."""


class UploadError(TestFairyError):
    """The TestFairy server rejected a request."""
