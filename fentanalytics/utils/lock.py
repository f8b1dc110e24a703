"""Process lock guarding the analytics database against a second writer."""

import fcntl
import logging
import os
from pathlib import Path
from typing import IO, Optional


logger = logging.getLogger("fentanalytics.lock")


class SingleInstanceLock:
    """
    Exclusive file lock held for the lifetime of the bot process.

    The analytics store assumes a single writer; the lock file sits next to
    the database so two bots pointed at the same file refuse to run together.
    """

    def __init__(self, lock_file_path: str = "data/fentanalytics.lock"):
        self.lock_file_path = Path(lock_file_path).absolute()
        self.fp: Optional[IO[str]] = None

    @classmethod
    def for_database(cls, db_path: str) -> "SingleInstanceLock":
        """Build a lock whose file lives beside ``db_path``."""
        path = Path(db_path)
        return cls(str(path.with_name(f"{path.name}.lock")))

    def acquire(self) -> bool:
        """
        Try to take the lock without blocking.

        Returns:
            True if acquired, False if another process holds it
        """
        self.lock_file_path.parent.mkdir(parents=True, exist_ok=True)
        self.fp = open(self.lock_file_path, "a+")

        try:
            fcntl.flock(self.fp.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            self.fp.close()
            self.fp = None
            return False

        self.fp.seek(0)
        self.fp.truncate()
        self.fp.write(f"{os.getpid()}\n")
        self.fp.flush()
        return True

    def release(self) -> None:
        """Release the lock and remove the lock file."""
        if not self.fp:
            return

        try:
            fcntl.flock(self.fp.fileno(), fcntl.LOCK_UN)
            self.fp.close()
            self.lock_file_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to release lock {self.lock_file_path}: {e}")
        finally:
            self.fp = None

