"""Probe every advertised BBS and route dead entries and their files."""

import shutil
from pathlib import Path

from .data import (
    entry_adverts,
    load_registry,
    merge_registries,
    save_registry,
)
from .ledger import (
    UndoLedger,
    ledger_path,
    new_run_id,
    snapshot_registries,
)
from .util import PROBE_TIMEOUT, parse_address, probe


def dead_destination(ctx, advert):
    """Return where *advert* goes inside the dead directory.

    The advert's relative path is kept under ``dead/``, so undo moves it
    back to exactly where it was.  Absolute paths, or paths that climb
    out of the audited directory, are placed by basename instead.

    :param ctx: :class:`~advert_check.util.RunContext`
    :param advert: advert path as listed in the registry
    :returns: destination Path
    """
    path = Path(advert)
    if path.is_absolute() or ".." in path.parts:
        return ctx.dead_dir / path.name
    return ctx.dead_dir / path


def free_destination(dest):
    """Return *dest*, or ``<name>.N`` with the lowest N not yet taken.

    Files already in the dead directory are never overwritten, so every
    recorded move can be reversed.
    """
    candidate = dest
    counter = 1
    while candidate.exists():
        candidate = dest.with_name(f"{dest.name}.{counter}")
        counter += 1
    return candidate


def _begin_run(ctx):
    """Create working directories, snapshot registries, open the ledger."""
    ctx.dead_dir.mkdir(parents=True, exist_ok=True)
    ctx.backup_dir.mkdir(parents=True, exist_ok=True)
    if not ctx.dead_json.exists():
        save_registry(ctx.dead_json, [])
    ctx.run_id = new_run_id(ctx.backup_dir)
    live_backup, dead_backup = snapshot_registries(
        ctx.input_json, ctx.dead_json, ctx.backup_dir, ctx.run_id)
    ctx.log.info(f"Backed up registries to {ctx.relative(live_backup)}"
                 f" and {ctx.relative(dead_backup)}")
    return UndoLedger(ledger_path(ctx.backup_dir, ctx.run_id))


def _retire_adverts(ctx, entry, summary, ledger, dry_run):
    """Move the advert files of a dead entry into the dead directory."""
    for advert in entry_adverts(entry):
        src = ctx.resolve(advert)
        if not src.is_file():
            ctx.log.warn(f"File not found or already moved: {advert}")
            summary["missing"] += 1
            continue
        wanted = dead_destination(ctx, advert)
        dest = free_destination(wanted)
        if dest != wanted:
            ctx.log.warn(f"{ctx.relative(wanted)} exists,"
                         f" using {ctx.relative(dest)}")
        if dry_run:
            ctx.log.info(f"[dry-run] would move {ctx.relative(src)}"
                         f" -> {ctx.relative(dest)}")
            continue
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(src), str(dest))
        ledger.record(ctx.relative(dest), ctx.relative(src))
        ctx.log.info(f"Moved {ctx.relative(src)} -> {ctx.relative(dest)}")
        summary["moved"] += 1


def reconcile(ctx, dry_run=False, prober=probe, timeout=PROBE_TIMEOUT):
    """Check every live entry and move unreachable ones to the dead registry.

    Entries are probed one at a time, in registry order.  Reachable
    entries are kept; unreachable ones have their advert files moved to
    the dead directory and are appended to the dead registry.  Registries
    are written once, at the end, and only when not a dry run.

    Both registries are read before anything is touched, so a missing or
    malformed ``adverts.json`` raises without side effects.

    :param ctx: :class:`~advert_check.util.RunContext`
    :param dry_run: log intended moves without changing any file
    :param prober: callable ``(host, port, timeout) -> bool``
    :param timeout: seconds allowed per probe
    :returns: summary dict with ``checked``, ``alive``, ``dead``,
        ``moved``, ``missing`` counts and the ``run_id``
    """
    entries = load_registry(ctx.input_json)
    old_dead = load_registry(ctx.dead_json, missing_ok=True)

    ledger = None if dry_run else _begin_run(ctx)
    mode = "dry-run" if dry_run else f"run {ctx.run_id}"
    ctx.log.info(f"===== Started {mode} in {ctx.directory} =====")

    summary = {"checked": 0, "alive": 0, "dead": 0,
               "moved": 0, "missing": 0, "run_id": ctx.run_id}
    new_live = []
    new_dead = []
    try:
        for entry in entries:
            host, port = parse_address(entry["telnet"])
            summary["checked"] += 1
            ctx.log.info(f"Checking {host}:{port}")
            if prober(host, port, timeout):
                ctx.log.info(f"{host}:{port} is alive")
                summary["alive"] += 1
                new_live.append(entry)
                continue
            ctx.log.info(f"{host}:{port} is dead")
            summary["dead"] += 1
            _retire_adverts(ctx, entry, summary, ledger, dry_run)
            new_dead.append(entry)
    finally:
        if ledger is not None:
            ledger.close()

    if dry_run:
        ctx.log.info("[dry-run] skipped updating JSON files")
    else:
        save_registry(ctx.input_json, new_live)
        save_registry(ctx.dead_json, merge_registries(old_dead, new_dead))
        ctx.log.info(f"Wrote {len(new_live)} live,"
                     f" {len(old_dead) + len(new_dead)} dead entries")
    ctx.log.info("Finished.")
    return summary
