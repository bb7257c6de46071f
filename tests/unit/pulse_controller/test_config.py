"""Tests for run configuration loading."""

from pathlib import Path

import pytest

from pulse_common.errors import ConfigurationError
from pulse_controller.config import (
    BackendType,
    ChoiceMode,
    DestructiveOptions,
    PruneMode,
    RunConfig,
    StableSettings,
    load_stable_settings,
)

pytestmark = pytest.mark.unit_controller


class TestLoadStableSettings:
    def test_defaults(self) -> None:
        settings = load_stable_settings({"HOMEBREW_USER": "dev"})
        assert settings.user == "dev"
        assert settings.vm_type is BackendType.QEMU
        assert settings.profile == "default"
        assert settings.confirm_token == "DESTROY"
        assert settings.clean_other_daemons is ChoiceMode.PROMPT
        assert settings.prune_mode is PruneMode.NONE
        assert settings.socket_path == Path(".colima/default/docker.sock")

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_user(self, value) -> None:
        environ = {} if value is None else {"HOMEBREW_USER": value}
        with pytest.raises(ConfigurationError, match="HOMEBREW_USER"):
            load_stable_settings(environ)

    @pytest.mark.parametrize(
        "key,value",
        [("COLIMA_VM_TYPE", "vz"), ("COLIMA_VM_TYPE", "VZ"), ("COLIMA_RUNTIME", "containerd")],
    )
    def test_locked_values_cannot_be_overridden(self, key, value) -> None:
        with pytest.raises(ConfigurationError):
            load_stable_settings({"HOMEBREW_USER": "dev", key: value})

    def test_explicit_qemu_is_accepted(self) -> None:
        settings = load_stable_settings({"HOMEBREW_USER": "dev", "COLIMA_VM_TYPE": "QEMU"})
        assert settings.vm_type is BackendType.QEMU

    def test_environment_values(self) -> None:
        settings = load_stable_settings(
            {
                "HOMEBREW_USER": "dev",
                "COLIMA_PROFILE": "work",
                "COLIMA_CPUS": "4",
                "COLIMA_MEMORY": "8",
                "LABEL": "com.example.colima",
                "RESET_CONFIRM_TOKEN": "WIPE",
                "BACKUP_INCLUDE_CONFIG_COLIMA": "no",
                "CLEAN_OTHER_COLIMA_DAEMONS": "TRUE",
                "PRUNE_MODE": "images",
                "PULSE_STABLE_REQUIRED": "3",
                "PULSE_JOB_TRIES": "5",
            }
        )
        assert settings.profile == "work"
        assert settings.resources.cpus == 4
        assert settings.resources.memory_gib == 8
        assert settings.label == "com.example.colima"
        assert settings.confirm_token == "WIPE"
        assert settings.backup_include_config_colima is False
        assert settings.clean_other_daemons is ChoiceMode.TRUE
        assert settings.prune_mode is PruneMode.IMAGES
        assert settings.timing.stable_required == 3
        assert settings.retries.job_tries == 5
        assert settings.socket_path == Path(".colima/work/docker.sock")

    def test_unknown_choice_falls_back(self) -> None:
        settings = load_stable_settings({"HOMEBREW_USER": "dev", "PRUNE_MODE": "everything"})
        assert settings.prune_mode is PruneMode.NONE

    def test_invalid_resource_is_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_stable_settings({"HOMEBREW_USER": "dev", "COLIMA_CPUS": "0"})

    def test_destructive_variables_are_ignored(self) -> None:
        settings = load_stable_settings(
            {"HOMEBREW_USER": "dev", "FULL_RESET": "1", "FORCE_YES": "1", "RESET_REQUIRE_CONFIRM": "0"}
        )
        config = RunConfig.build(settings)
        assert not config.reset_requested
        assert not config.destructive.force_yes
        assert config.destructive.require_confirm


class TestRunConfig:
    def test_reset_promotes_prune_to_images(self) -> None:
        settings = StableSettings(user="dev")
        assert RunConfig.build(settings).effective_prune_mode() is PruneMode.NONE
        reset = RunConfig.build(settings, DestructiveOptions(reset=True))
        assert reset.effective_prune_mode() is PruneMode.IMAGES

    def test_aggressive_is_kept_on_reset(self) -> None:
        settings = StableSettings(user="dev", prune_mode=PruneMode.AGGRESSIVE)
        config = RunConfig.build(settings, DestructiveOptions(reset=True))
        assert config.effective_prune_mode() is PruneMode.AGGRESSIVE

    def test_socket_under_account_home(self) -> None:
        config = RunConfig.build(StableSettings(user="dev"))
        assert config.socket_path(Path("/Users/dev")) == Path("/Users/dev/.colima/default/docker.sock")

    def test_attempt_log_dir_default(self) -> None:
        settings = StableSettings(user="dev", containers_dir=Path("/srv/containers"))
        assert settings.resolved_attempt_log_dir == Path("/srv/logs/containers")

    def test_config_is_frozen(self) -> None:
        config = RunConfig.build(StableSettings(user="dev"))
        with pytest.raises(Exception):
            config.settings = StableSettings(user="other")
