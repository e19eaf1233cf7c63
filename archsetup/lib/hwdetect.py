from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HardwareQuirk:
    product_name: str
    packages: List[str] = field(default_factory=list)
    console_font: Optional[str] = None
    boot_options: str = ""


def _read_text(path: Path) -> Optional[str]:
    try:
        txt = path.read_text(encoding="utf-8", errors="ignore").strip()
        return txt or None
    except OSError:
        return None


def product_name(dmi_product_name: str = "/sys/class/dmi/id/product_name") -> str:
    """DMI product name with all whitespace removed ("XPS 15 9560" -> "XPS159560")."""

    raw = _read_text(Path(dmi_product_name)) or ""
    return "".join(raw.split())


def lookup_quirk(name: str, table: Mapping[str, Mapping[str, Any]]) -> Optional[HardwareQuirk]:
    q = table.get(name)
    if q is None:
        return None
    return HardwareQuirk(
        product_name=name,
        packages=[str(p) for p in (q.get("packages") or [])],
        console_font=q.get("console_font") or None,
        boot_options=str(q.get("boot_options") or ""),
    )


def detect_quirk(
    table: Mapping[str, Mapping[str, Any]],
    *,
    dmi_product_name: str = "/sys/class/dmi/id/product_name",
) -> Optional[HardwareQuirk]:
    name = product_name(dmi_product_name)
    quirk = lookup_quirk(name, table)
    logger.info("Product name=%r quirk=%s", name, "yes" if quirk else "none")
    return quirk
