from .error_reporter import ErrorReporter

__all__ = ["ErrorReporter"]
