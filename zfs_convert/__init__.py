"""zfs-convert: turn a running machine's disks into a ZFS-on-root layout.

Core design goals:
- Strictly sequential, fail-fast provisioning
- Bounded waits on asynchronous kernel and daemon state
- Re-entrant debugging via step jump targets
- Centralized logging
"""

__all__ = []
