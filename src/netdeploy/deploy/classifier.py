"""Classification of device command output.

Many CLIs exit with status 0 while printing an error banner, so output has to
be inspected. The default classifier looks for marker substrings anywhere in
the output. Known limitation: benign output that contains a marker (an
interface named "error-handler", for instance) is reported as a failure.
Swap in a stricter ``ResponseClassifier`` rather than loosening the markers.
"""
from abc import ABC, abstractmethod

DEFAULT_FAILURE_MARKERS = ("error", "invalid")


class ResponseClassifier(ABC):
    """Decides whether command output reports a failure."""

    @abstractmethod
    def is_failure(self, output: str) -> bool:
        pass


class SubstringClassifier(ResponseClassifier):
    """Flags output containing any of ``markers`` (case-sensitive)."""

    def __init__(self, markers: tuple[str, ...] = DEFAULT_FAILURE_MARKERS):
        if not markers:
            raise ValueError("At least one failure marker is required")
        self.markers = tuple(markers)

    def is_failure(self, output: str) -> bool:
        return any(marker in output for marker in self.markers)

    def __repr__(self) -> str:
        return f"SubstringClassifier(markers={self.markers!r})"
