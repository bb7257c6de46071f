"""Pre-flight guard for destructive resets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from pulse_common.errors import GuardRefusalError
from pulse_controller.config import ChoiceMode, RunConfig
from pulse_controller.ui_interfaces import UIAdapter

logger = logging.getLogger(__name__)


class Confirmation(str, Enum):
    NOT_REQUIRED = "not_required"
    TOKEN = "token"
    OVERRIDE = "override"


@dataclass(frozen=True)
class GuardDecision:
    destructive: bool
    confirmed_by: Confirmation
    backup: bool = False


class PreflightGuard:
    """No destructive action without a typed token or an explicit override."""

    def __init__(self, ui: UIAdapter) -> None:
        self.ui = ui

    def evaluate(self, config: RunConfig) -> GuardDecision:
        if not config.reset_requested:
            return GuardDecision(destructive=False, confirmed_by=Confirmation.NOT_REQUIRED)

        options = config.destructive
        interactive = self.ui.is_interactive()
        if not interactive and not options.force_yes:
            raise GuardRefusalError(
                "Refusing reset in non-interactive mode without --yes",
                context={"interactive": False, "force_yes": False},
            )

        if options.force_yes and (not interactive or not options.require_confirm):
            logger.warning("Reset confirmed by explicit override")
            confirmed_by = Confirmation.OVERRIDE
        else:
            self._require_token(config.settings.confirm_token)
            confirmed_by = Confirmation.TOKEN

        return GuardDecision(
            destructive=True,
            confirmed_by=confirmed_by,
            backup=self._decide_backup(options.backup_mode, interactive),
        )

    def _require_token(self, token: str) -> None:
        self.ui.show_panel(
            "This deletes the Colima VM, its disks and all containers/images/volumes.",
            title="Reset requested",
            border_style="red",
        )
        typed = self.ui.ask(f"Type {token} to confirm")
        if typed != token:
            raise GuardRefusalError(
                "Confirmation token mismatch; aborting reset", context={"interactive": True}
            )

    def _decide_backup(self, mode: ChoiceMode, interactive: bool) -> bool:
        if mode is ChoiceMode.TRUE:
            return True
        if mode is ChoiceMode.FALSE:
            return False
        if not interactive:
            return True
        return self.ui.confirm("Back up the Colima state before reset?", default=True)
