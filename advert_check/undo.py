"""Reverse the most recent reconciliation run."""

import shutil

from .data import restore_registry
from .ledger import backup_paths_for, find_latest_ledger, read_ledger


class NoLedgerError(Exception):
    """Undo was requested but no undo ledger exists."""


def undo_last_run(ctx):
    """Move files back and restore registries from the newest run.

    Only the single most recent ledger is replayed.  Files that are no
    longer where the ledger says, or whose original path is occupied
    again, are skipped with a warning.  Registries are restored only when
    both snapshots of that run exist.

    :param ctx: :class:`~advert_check.util.RunContext`
    :returns: summary dict with ``ledger``, ``restored``, ``missing``,
        ``skipped`` and ``registries_restored``
    :raises NoLedgerError: no ``.undo`` file in the backup directory
    """
    ledger = find_latest_ledger(ctx.backup_dir)
    if ledger is None:
        raise NoLedgerError(f"No undo file found in {ctx.backup_dir}")

    ctx.log.info(f"Undoing last run from {ctx.relative(ledger)}")
    summary = {"ledger": ledger.name, "restored": 0, "missing": 0,
               "skipped": 0, "registries_restored": False}

    for moved_to, original in read_ledger(ledger):
        current = ctx.resolve(moved_to)
        target = ctx.resolve(original)
        if not current.is_file():
            ctx.log.warn(f"File missing for undo: {moved_to}")
            summary["missing"] += 1
            continue
        if target.exists():
            ctx.log.warn(f"Not restoring {moved_to}:"
                         f" {original} already exists")
            summary["skipped"] += 1
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(current), str(target))
        ctx.log.info(f"Restored {moved_to} -> {original}")
        summary["restored"] += 1

    live_backup, dead_backup = backup_paths_for(ledger)
    if live_backup.is_file() and dead_backup.is_file():
        restore_registry(live_backup, ctx.input_json)
        restore_registry(dead_backup, ctx.dead_json)
        summary["registries_restored"] = True
        ctx.log.info("JSON files restored from backup.")
    else:
        ctx.log.warn("JSON backups not found. Cannot fully undo.")
    return summary
