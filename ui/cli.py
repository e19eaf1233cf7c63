from __future__ import annotations

from archsetup.main import main as core_main


def main(argv: list[str] | None = None) -> int:
    # Same entrypoint as `archsetup`; kept for `python -m ui.cli` on the live ISO.
    return core_main(argv)


if __name__ == "__main__":
    raise SystemExit(main())
