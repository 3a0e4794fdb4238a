from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

from dsemu.config.loader import load_settings
from dsemu.config.models import EmulatorConfig, Settings


def test_load_settings_yaml_and_env_override(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """
    Settings come from YAML, and DSEMU_* environment variables win over YAML values.
    """
    cfg = tmp_path / "dsemu.yaml"
    cfg.write_text(
        dedent(
            """
            emulator:
              consistency: 0.5
            gcloud_command: ["/opt/google-cloud-sdk/bin/gcloud"]
            start_timeout: 20
            """
        ),
        encoding="utf-8",
    )

    monkeypatch.setenv("DSEMU_EMULATOR__CONSISTENCY", "1.0")
    monkeypatch.setenv("DSEMU_EXPORT_ENV", "false")

    s: Settings = load_settings(str(cfg))

    assert str(s.emulator.consistency) == "1.0"  # env overrides YAML
    assert s.gcloud_command == ["/opt/google-cloud-sdk/bin/gcloud"]  # comes from YAML
    assert s.start_timeout == 20
    assert s.export_env is False


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    s = load_settings(str(tmp_path / "absent.yaml"))
    assert s.emulator == EmulatorConfig(consistency=0.9)
    assert s.gcloud_command == ["gcloud"]
    assert s.start_timeout == 15.0
    assert s.export_env is True


def test_emulator_config_is_immutable() -> None:
    cfg = EmulatorConfig(consistency=0.9)
    with pytest.raises(Exception):
        cfg.consistency = 0.1  # type: ignore[misc]
