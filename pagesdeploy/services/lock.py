"""Single-instance guard for deploys sharing one repository."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import TracebackType

from pagesdeploy.services.errors import DeployLockedError


logger = logging.getLogger(__name__)

LOCK_FILENAME = "pages-deploy.lock"


def _utc_now() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


@dataclass(slots=True)
class DeployLock:
    """Lock file created exclusively for the duration of a deploy.

    The file records the owning PID and start time. It is not removed when
    the holder crashes; delete it by hand after checking the PID is gone.
    """

    path: Path
    _held: bool = field(default=False, init=False)

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError as exc:
            owner = self._read_owner()
            raise DeployLockedError(
                f"Another deploy holds '{self.path}'" + (f" ({owner})" if owner else "")
            ) from exc
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(f"pid={os.getpid()}\nstarted_at={_utc_now()}\n")
        self._held = True
        logger.debug("Acquired deploy lock %s", self.path)

    def release(self) -> None:
        if not self._held:
            return
        self.path.unlink(missing_ok=True)
        self._held = False
        logger.debug("Released deploy lock %s", self.path)

    @property
    def held(self) -> bool:
        return self._held

    def _read_owner(self) -> str:
        try:
            lines = self.path.read_text(encoding="utf-8").split()
        except OSError:
            return ""
        return ", ".join(lines)

    def __enter__(self) -> DeployLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.release()
