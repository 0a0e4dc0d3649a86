"""Reachability audit for advertised telnet BBS systems.

Probes every entry of ``adverts.json``, moves the advert files of
unreachable systems to ``dead/``, archives their entries, and can undo
the most recent run.
"""

from .cli import main

__all__ = ["main"]
