# coding=utf-8


class HookError(Exception):
    """
    Base class for failures that abort the build step.

    `stage` names the pipeline step that failed, for diagnostics.
    """

    stage = "hook"


class FetchError(HookError):
    stage = "download"


class BadStatus(FetchError):
    def __init__(self, status, url=None):
        self.status = status
        self.url = url
        super(BadStatus, self).__init__(
            "Download returned with status {}".format(status)
        )


class NetworkError(FetchError):
    def __init__(self, cause):
        self.cause = cause
        super(NetworkError, self).__init__("Download failed: {}".format(cause))


class LocalFileError(FetchError):
    def __init__(self, path, cause):
        self.path = path
        self.cause = cause
        super(LocalFileError, self).__init__(
            "Could not write installer to {}: {}".format(path, cause)
        )


class RunError(HookError):
    stage = "install"


class SpawnFailed(RunError):
    def __init__(self, path, cause):
        self.path = path
        self.cause = cause
        super(SpawnFailed, self).__init__(
            "Could not start installer {}: {}".format(path, cause)
        )


class NonZeroExit(RunError):
    def __init__(self, code):
        self.code = code
        super(NonZeroExit, self).__init__(
            "Installer exited with status {}".format(code)
        )


class ManifestError(HookError):
    stage = "manifest"


class InvalidManifest(ManifestError):
    pass


class TechnologyNotFound(ManifestError):
    def __init__(self, technology, architecture):
        self.technology = technology
        self.architecture = architecture
        super(TechnologyNotFound, self).__init__(
            "No binaries for technology {!r} on architecture {!r} in manifest".format(
                technology, architecture
            )
        )


class NoPrimaryBinary(ManifestError):
    def __init__(self, technology, architecture):
        self.technology = technology
        self.architecture = architecture
        super(NoPrimaryBinary, self).__init__(
            "No primary binary for {} agent found!".format(technology)
        )


class AgentLibraryMissing(ManifestError):
    def __init__(self, path):
        self.path = path
        super(AgentLibraryMissing, self).__init__(
            "Agent library ({}) not found!".format(path)
        )


class ChecksumMismatch(ManifestError):
    def __init__(self, path, expected, actual):
        self.path = path
        self.expected = expected
        self.actual = actual
        super(ChecksumMismatch, self).__init__(
            "Checksum mismatch for {}: expected {}, got {}".format(
                path, expected, actual
            )
        )


class InjectionError(HookError):
    stage = "injection"

    def __init__(self, path, cause):
        self.path = path
        self.cause = cause
        super(InjectionError, self).__init__(
            "Could not set up agent injection in {}: {}".format(path, cause)
        )
