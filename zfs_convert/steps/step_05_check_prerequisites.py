from __future__ import annotations

import logging
import os

from ..context import ProvisioningContext
from ..errors import PreconditionError
from ..lib.hwdetect import detect_host

logger = logging.getLogger(__name__)


class CheckPrerequisitesStep:
    step_id = "05_check_prerequisites"

    def run(self, ctx: ProvisioningContext) -> ProvisioningContext:
        if os.geteuid() != 0:
            raise PreconditionError("This program must be run with administrative privileges!")

        keys = ctx.paths.ssh_authorized_keys
        if not os.access(keys, os.R_OK):
            raise PreconditionError(
                f"SSH pubkey file {keys} is absent; add a key to the rescue system, "
                "reboot into it, then run again"
            )

        ctx.hardware = detect_host(lsb_release_log=ctx.paths.lsb_release_log)
        return ctx

    def restore_context(self, ctx: ProvisioningContext) -> ProvisioningContext:
        ctx.hardware = detect_host()
        return ctx
