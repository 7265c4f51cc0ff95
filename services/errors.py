"""
Exceptions raised by the analysis orchestration core.
"""


class AnalysisError(Exception):
    """Base exception for all analysis orchestration errors"""
    pass


class SubmissionError(AnalysisError):
    """Raised when the analyzer rejects a submission or returns no operation handle"""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TransientPollError(AnalysisError):
    """Raised for a single failed poll attempt; the poll loop swallows it and retries"""
    pass


class TerminalFailure(AnalysisError):
    """The remote job itself reported failure"""

    def __init__(self, message: str, code: str | None = None, raw: dict | None = None):
        super().__init__(message)
        self.code = code
        self.raw = raw or {}


class AnalysisTimedOut(AnalysisError):
    """Raised when cumulative polling exceeded the timeout budget"""

    def __init__(self, message: str, elapsed_sec: float = 0.0, attempts: int = 0):
        super().__init__(message)
        self.elapsed_sec = elapsed_sec
        self.attempts = attempts


class SidecarMissing(AnalysisError):
    """The full-result sidecar could not be read; callers treat this as 'no detailed result'"""
    pass


class StorageWriteError(AnalysisError):
    """Persisting the side-record or sidecar failed"""
    pass


class DocumentNotFound(AnalysisError):
    """The requested source document does not exist in storage"""
    pass


class StorageUnavailable(AnalysisError):
    """Looking up or signing the source document failed"""
    pass
