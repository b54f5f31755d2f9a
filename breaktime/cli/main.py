from __future__ import annotations

import argparse
import logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="breaktime")
    sub = parser.add_subparsers(dest="command", required=True)

    run_p = sub.add_parser("run", help="Run the break scheduler (foreground)")
    run_p.add_argument("-v", "--verbose", action="store_true", help="Log every tick decision")
    run_p.set_defaults(_handler="run")

    debug_p = sub.add_parser("debug", help="Print live idle/lock state and gates")
    debug_p.set_defaults(_handler="debug")

    status_p = sub.add_parser("status", help="Show service status and the next break")
    status_p.set_defaults(_handler="status")

    init_p = sub.add_parser("init", help="Install + enable systemd user service")
    init_p.add_argument("--force", action="store_true", help="Overwrite existing unit")
    init_p.add_argument(
        "--dry-run", action="store_true", help="Print the unit file instead of installing it"
    )
    init_p.set_defaults(_handler="init")

    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(bool(getattr(args, "verbose", False)))

    if args._handler == "run":
        from breaktime.cli.run import main as run_main

        return int(run_main())

    if args._handler == "debug":
        from breaktime.cli.debug import main as debug_main

        debug_main()
        return 0

    if args._handler == "status":
        from breaktime.cli.status import main as status_main

        return int(status_main())

    if args._handler == "init":
        from breaktime.cli.init import main as init_main

        return int(
            init_main(
                force=bool(getattr(args, "force", False)),
                dry_run=bool(getattr(args, "dry_run", False)),
            )
        )

    raise RuntimeError(f"Unknown command: {args._handler}")


if __name__ == "__main__":
    raise SystemExit(main())
