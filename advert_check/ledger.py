"""Run backups and the append-only undo ledger.

Each non-dry run is keyed by a run id.  The backup directory holds, per
run::

    <run_id>.json       snapshot of adverts.json at run start
    <run_id>_dead.json  snapshot of dead_adverts.json at run start
    <run_id>.undo       one ``moved_to|original`` line per file move
"""

import os
import shutil
from datetime import datetime
from pathlib import Path

LEDGER_SUFFIX = ".undo"
_SEPARATOR = "|"


def backup_paths(backup_dir, run_id):
    """Return the ``(live, dead)`` snapshot paths for *run_id*."""
    backup_dir = Path(backup_dir)
    return (backup_dir / f"{run_id}.json",
            backup_dir / f"{run_id}_dead.json")


def ledger_path(backup_dir, run_id):
    """Return the undo ledger path for *run_id*."""
    return Path(backup_dir) / f"{run_id}{LEDGER_SUFFIX}"


def backup_paths_for(ledger):
    """Return the snapshot paths sharing the run id of *ledger*."""
    ledger = Path(ledger)
    return backup_paths(ledger.parent, ledger.stem)


def new_run_id(backup_dir, now=None):
    """Make a run id that no existing backup artifact uses.

    Microsecond resolution, with a ``_N`` suffix added should a run id
    still collide with files already in *backup_dir*.

    :param backup_dir: directory holding backups and ledgers
    :param now: datetime to derive the id from (default: current time)
    :returns: run id string
    """
    base = (now or datetime.now()).strftime("%Y%m%d_%H%M%S_%f")
    run_id = base
    counter = 1
    while any(p.exists() for p in (ledger_path(backup_dir, run_id),
                                   *backup_paths(backup_dir, run_id))):
        run_id = f"{base}_{counter}"
        counter += 1
    return run_id


def snapshot_registries(live_json, dead_json, backup_dir, run_id):
    """Copy both registry files into the backup directory.

    :returns: tuple of (live_snapshot, dead_snapshot) paths
    """
    live_backup, dead_backup = backup_paths(backup_dir, run_id)
    shutil.copyfile(live_json, live_backup)
    shutil.copyfile(dead_json, dead_backup)
    return live_backup, dead_backup


class UndoLedger:
    """Append-only ledger of file moves for one run.

    The file is created on open, so a run that moves nothing still leaves
    an (empty) ledger naming it as the most recent run.  Every record is
    flushed and synced before :meth:`record` returns.
    """

    def __init__(self, path):
        self.path = Path(path)
        self._file = open(self.path, "a", encoding="utf-8")
        self.count = 0

    def record(self, moved_to, original):
        """Append one move: *moved_to* is where the file now lives."""
        self._file.write(f"{moved_to}{_SEPARATOR}{original}\n")
        self._file.flush()
        os.fsync(self._file.fileno())
        self.count += 1

    def close(self):
        self._file.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


def read_ledger(path):
    """Read undo records in the order they were written.

    :param path: path to a ``.undo`` file
    :returns: list of (moved_to, original) string tuples
    """
    records = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.rstrip("\n")
            moved_to, sep, original = line.partition(_SEPARATOR)
            if not sep or not moved_to or not original:
                continue
            records.append((moved_to, original))
    return records


def find_latest_ledger(backup_dir):
    """Find the most recently written undo ledger.

    Newest modification time wins; equal times fall back to the greater
    file name, which is the later run id.

    :param backup_dir: directory holding ledgers
    :returns: Path of the newest ledger, or None
    """
    backup_dir = Path(backup_dir)
    if not backup_dir.is_dir():
        return None
    ledgers = [p for p in backup_dir.glob(f"*{LEDGER_SUFFIX}") if p.is_file()]
    if not ledgers:
        return None
    return max(ledgers, key=lambda p: (p.stat().st_mtime, p.name))
