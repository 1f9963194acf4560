from __future__ import annotations

import logging

from ..context import ProvisioningContext
from ..lib.command import run_cmd

logger = logging.getLogger(__name__)


class RebootStep:
    step_id = "90_reboot"

    def run(self, ctx: ProvisioningContext) -> ProvisioningContext:
        logger.info("Final layout: %s", ctx.layout_summary())

        if not ctx.config.reboot:
            logger.info("Setup complete, please reboot manually")
            return ctx

        logger.info("Setup complete, rebooting")
        run_cmd(["sync"], dry_run=ctx.dry_run)
        run_cmd(["reboot"], dry_run=ctx.dry_run)
        return ctx
