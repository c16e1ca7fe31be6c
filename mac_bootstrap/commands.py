"""Thin wrapper around the external tools the bootstrap drives."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from typing import Mapping, Optional, Sequence

from .errors import CommandError

logger = logging.getLogger(__name__)


class CommandRunner:
    """Run external commands, raising :class:`CommandError` on failure."""

    def run(
        self,
        argv: Sequence[str],
        check: bool = True,
        interactive: bool = False,
        env: Optional[Mapping[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        """Run ``argv``.

        Output is captured unless ``interactive`` is set, in which case the
        command inherits the terminal so installers can prompt for a password.
        ``env`` entries are added on top of the current environment.
        """
        logger.debug("running: %s", " ".join(argv))
        full_env = None
        if env:
            full_env = dict(os.environ)
            full_env.update(env)
        try:
            result = subprocess.run(
                list(argv),
                capture_output=not interactive,
                text=True,
                env=full_env,
            )
        except FileNotFoundError as exc:
            raise CommandError(argv, 127, str(exc)) from exc
        if check and result.returncode != 0:
            raise CommandError(argv, result.returncode, result.stderr or "")
        return result

    def which(self, tool: str) -> Optional[str]:
        return shutil.which(tool)

    def is_executable(self, path: str) -> bool:
        return os.path.isfile(path) and os.access(path, os.X_OK)

    def fetch(self, url: str) -> str:
        return self.run(["curl", "-fsSL", url]).stdout

    def run_remote_script(self, url: str, env: Optional[Mapping[str, str]] = None) -> subprocess.CompletedProcess:
        """Equivalent of ``/bin/bash -c "$(curl -fsSL <url>)"``."""
        script = self.fetch(url)
        return self.run(["/bin/bash", "-c", script], interactive=True, env=env)
