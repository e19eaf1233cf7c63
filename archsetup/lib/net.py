from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def render_wifi_profile(ssid: str, password: str) -> str:
    """NetworkManager keyfile for a WPA-PSK network."""

    return "\n".join(
        [
            "[connection]",
            f"id={ssid}",
            "type=wifi",
            "",
            "[wifi]",
            "mode=infrastructure",
            f"ssid={ssid}",
            "",
            "[wifi-security]",
            "auth-alg=open",
            "key-mgmt=wpa-psk",
            f"psk={password}",
            "",
            "[ipv4]",
            "dns-search=",
            "method=auto",
            "",
            "[ipv6]",
            "addr-gen-mode=stable-privacy",
            "dns-search=",
            "method=auto",
            "",
        ]
    )


def write_wifi_profile(target_root: str, ssid: str, password: str, *, dry_run: bool = False) -> Path:
    p = Path(target_root) / "etc/NetworkManager/system-connections" / f"{ssid}.nmconnection"
    if dry_run:
        logger.info("Would write %s", str(p))
        return p
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(render_wifi_profile(ssid, password), encoding="utf-8")
    # NetworkManager ignores keyfiles readable by others.
    os.chmod(p, 0o600)
    logger.info("Wrote wifi profile for %s", ssid)
    return p
