"""Shared helpers: address parsing, TCP probe, and the per-run context."""

import socket
import sys
from datetime import datetime
from pathlib import Path

DEFAULT_PORT = 23
PROBE_TIMEOUT = 3

# File and directory names inside the audited directory.
INPUT_JSON = "adverts.json"
DEAD_JSON = "dead_adverts.json"
DEAD_DIR = "dead"
BACKUP_DIR = "backup"
LOG_FILE = "check_adverts.log"


def parse_address(address):
    """Split a ``host[:port]`` string into ``(host, port)``.

    Splits on the first colon.  A missing or empty port gives
    :data:`DEFAULT_PORT`; a port that is not a number degrades to the
    whole string as host with the default port.

    :param address: address string from the ``telnet`` field
    :returns: tuple of (host, port_int)
    """
    host, sep, port = address.partition(":")
    if not sep or not port:
        return host, DEFAULT_PORT
    try:
        return host, int(port)
    except ValueError:
        return address, DEFAULT_PORT


def probe(host, port, timeout=PROBE_TIMEOUT):
    """Check whether a TCP connection to *host*:*port* can be opened.

    :param host: server hostname or IP
    :param port: server port
    :param timeout: seconds to wait for the connection
    :returns: True if reachable, False on refusal, timeout or DNS failure
    """
    try:
        sock = socket.create_connection((host, port), timeout=timeout)
    except (OSError, ValueError, OverflowError):
        return False
    sock.close()
    return True


class RunLog:
    """Append-only run log, echoed to stderr unless quiet."""

    def __init__(self, path, quiet=False):
        self.path = Path(path)
        self.quiet = quiet

    def _write(self, level, message):
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        line = f"{stamp} - {level} {message}"
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
        if not self.quiet:
            print(line, file=sys.stderr)

    def info(self, message):
        self._write("INFO", message)

    def warn(self, message):
        self._write("WARN", message)

    def error(self, message):
        self._write("ERROR", message)


class RunContext:
    """Paths, run identifier and output sink for one invocation.

    :param directory: the audited directory holding ``adverts.json``
    :param quiet: suppress echoing log lines to stderr
    """

    def __init__(self, directory, quiet=False):
        self.directory = Path(directory).resolve()
        self.input_json = self.directory / INPUT_JSON
        self.dead_json = self.directory / DEAD_JSON
        self.dead_dir = self.directory / DEAD_DIR
        self.backup_dir = self.directory / BACKUP_DIR
        self.log = RunLog(self.directory / LOG_FILE, quiet=quiet)
        # Assigned by the reconciliation engine for non-dry runs.
        self.run_id = None

    def relative(self, path):
        """Render *path* relative to the audited directory when inside it."""
        path = Path(path)
        try:
            return path.relative_to(self.directory).as_posix()
        except ValueError:
            return str(path)

    def resolve(self, path):
        """Resolve a directory-relative path (absolute paths pass through)."""
        return self.directory / path
