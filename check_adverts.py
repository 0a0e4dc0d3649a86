#!/usr/bin/env python
"""Check advertised BBS systems and retire the dead ones.

Usage::

    python check_adverts.py [DIRECTORY] [--dry-run | --undo] [--quiet]

Reads ``adverts.json`` in DIRECTORY, probes each ``telnet`` address, moves
advert files of unreachable systems into ``dead/`` and appends their
entries to ``dead_adverts.json``.  Backups and undo ledgers are kept in
``backup/``; ``--undo`` reverses the most recent run.
"""

from advert_check import main

if __name__ == '__main__':
    main()
