"""Registry I/O: load, atomically save, and merge advert registries."""

import json
import os
import shutil
from pathlib import Path


class RegistryError(ValueError):
    """A registry file is not a JSON array of advert entries."""


def _validate(path, data):
    if not isinstance(data, list):
        raise RegistryError(f"{path}: expected a JSON array")
    for idx, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise RegistryError(f"{path}: entry {idx} is not an object")
        if not isinstance(entry.get("telnet"), str):
            raise RegistryError(
                f"{path}: entry {idx} has no string 'telnet' field")
        adverts = entry.get("adverts") or []
        if (not isinstance(adverts, list)
                or not all(isinstance(a, str) for a in adverts)):
            raise RegistryError(
                f"{path}: entry {idx} 'adverts' is not a list of paths")


def load_registry(path, missing_ok=False):
    """Load a registry, a JSON array of ``{"telnet", "adverts"}`` objects.

    Entries are returned as the decoded dicts, unchanged, so that any
    extra keys survive a move between registries.

    :param path: path to the registry file
    :param missing_ok: return an empty list when the file does not exist
    :returns: list of entry dicts
    :raises FileNotFoundError: file is missing and *missing_ok* is False
    :raises RegistryError: file is not a valid registry
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        if missing_ok:
            return []
        raise
    except json.JSONDecodeError as err:
        raise RegistryError(f"{path}: invalid JSON: {err}") from err
    _validate(path, data)
    return data


def save_registry(path, entries):
    """Save a registry atomically.

    :param path: path to write the registry file
    :param entries: list of entry dicts
    """
    output = Path(str(path) + ".new")
    with open(output, "w", encoding="utf-8") as f:
        json.dump(entries, f, indent=2, ensure_ascii=False)
        f.write("\n")
    os.replace(output, path)


def restore_registry(snapshot, path):
    """Replace the registry at *path* with a byte copy of *snapshot*.

    :param snapshot: path of the backup copy
    :param path: registry file to overwrite atomically
    """
    output = Path(str(path) + ".new")
    shutil.copyfile(snapshot, output)
    os.replace(output, path)


def merge_registries(existing, new):
    """Append newly-dead entries after the existing ones, without dedup."""
    return list(existing) + list(new)


def entry_adverts(entry):
    """Return the advert file list of *entry* (empty when absent)."""
    return entry.get("adverts") or []
