"""Selection of the most recent dump directory."""

import os
from typing import List

from pgrestorecheck.errors_catalog import precondition_error
from pgrestorecheck.models import DumpArtifact


class DumpSelector:
    """Picks the newest `YYYYMMDD<suffix>` entry from the backup directory."""

    def __init__(self, logger):
        self.logger = logger

    def candidates(self, dump_dir: str, suffix: str) -> List[str]:
        try:
            names = os.listdir(dump_dir)
        except OSError as exc:
            self.logger.debug("Cannot list %s: %s", dump_dir, exc)
            names = []
        return sorted(os.path.join(dump_dir, name) for name in names if suffix in name)

    def select(self, dump_dir: str, suffix: str) -> DumpArtifact:
        paths = self.candidates(dump_dir, suffix)
        if not paths:
            raise precondition_error("no_dump", suffix=suffix, dump_dir=dump_dir)

        self.logger.debug("Dump candidates: %s", ", ".join(paths))
        return DumpArtifact.from_path(paths[-1])
