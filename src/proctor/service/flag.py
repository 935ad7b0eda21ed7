"""Boolean flags shared between processes.

A flag is persisted as the existence of a touch file, so any process with
access to the run directory can set or clear it. Flags are a best-effort
signal, not a mutex: readers simply observe the file on their next check.
"""

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Flag(Protocol):
    """Interface shared by file-backed and in-memory flags."""

    def set(self) -> None: ...

    def unset(self) -> None: ...

    def is_set(self) -> bool: ...


class FileFlag:
    """Flag backed by the existence of a file."""

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def set(self) -> None:
        """Create the touch file. Setting an already set flag is a no-op."""
        self._path.touch(exist_ok=True)

    def unset(self) -> None:
        """Remove the touch file. Clearing an unset flag is a no-op."""
        self._path.unlink(missing_ok=True)

    def is_set(self) -> bool:
        return self._path.exists()

    def discard(self) -> None:
        """Clear the flag during cleanup, logging instead of raising."""
        try:
            self.unset()
        except OSError as e:
            logger.warning(
                "flag_cleanup_failed",
                extra={"file.path": str(self._path), "error.message": str(e)},
            )

    def __repr__(self) -> str:
        return f"FileFlag({str(self._path)!r})"


class MemoryFlag:
    """Flag held in process memory, for tests and single-process use."""

    def __init__(self, value: bool = False):
        self._value = value

    def set(self) -> None:
        self._value = True

    def unset(self) -> None:
        self._value = False

    def is_set(self) -> bool:
        return self._value

    def __repr__(self) -> str:
        return f"MemoryFlag({self._value!r})"
