from __future__ import annotations

import os
import shutil
import subprocess
import sys
from pathlib import Path

UNIT_NAME = "breaktime.service"


def systemd_user_dir() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME")
    root = Path(config_home) if config_home else Path.home() / ".config"
    return root / "systemd" / "user"


def exec_start_command() -> str:
    """Command line for ExecStart: the installed script, else `python -m`."""
    script = shutil.which("breaktime")
    if script:
        return f"{script} run"
    return f"{sys.executable} -m breaktime.cli run"


def render_service(*, exec_start: str) -> str:
    # notify-send needs the graphical session environment.
    lines = [
        "[Unit]",
        "Description=breaktime rest-break reminder",
        "PartOf=graphical-session.target",
        "After=graphical-session.target",
        "",
        "[Service]",
        "Type=simple",
        f"ExecStart={exec_start}",
        "Restart=on-failure",
        "RestartSec=3",
        "",
        "[Install]",
        "WantedBy=graphical-session.target",
    ]
    return "\n".join(lines) + "\n"


def write_unit(unit_path: Path, *, exec_start: str, force: bool = False) -> bool:
    """Write the unit file. Returns False if it exists and `force` is off."""
    if unit_path.exists() and not force:
        return False
    unit_path.parent.mkdir(parents=True, exist_ok=True)
    unit_path.write_text(render_service(exec_start=exec_start), encoding="utf-8")
    return True


def main(*, force: bool = False, dry_run: bool = False) -> int:
    exec_start = exec_start_command()

    if dry_run:
        print(render_service(exec_start=exec_start), end="")
        return 0

    if sys.platform != "linux":
        print("init needs a Linux systemd user session")
        return 1

    systemctl = shutil.which("systemctl")
    if systemctl is None:
        print("systemctl not found; use --dry-run to print the unit instead")
        return 1

    unit_path = systemd_user_dir() / UNIT_NAME
    if not write_unit(unit_path, exec_start=exec_start, force=force):
        print(f"{unit_path} already exists (use --force to replace it)")
        return 1

    for step in (["daemon-reload"], ["enable", "--now", UNIT_NAME]):
        try:
            subprocess.run([systemctl, "--user", *step], check=True)
        except subprocess.CalledProcessError as e:
            print(f"systemctl {' '.join(step)} failed: {e}")
            print(f"The unit was written to {unit_path}; enable it with:")
            print(f"  systemctl --user daemon-reload && systemctl --user enable --now {UNIT_NAME}")
            return 1

    print(f"Enabled {UNIT_NAME} ({unit_path})")
    print(f"Follow it with: journalctl --user -fu {UNIT_NAME}")
    return 0
