from __future__ import annotations

import sys

from . import stats_cli, validate_reports


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    if argv and argv[0] in ("-h", "--help"):
        p = stats_cli._build_parser()
        p.prog = "repo-loc-stats"
        p.print_help()
        print("")
        print("commands:")
        print("  validate       Sanity-check a directory of published reports.")
        print("")
        print("Run `repo-loc-stats <command> --help` for command-specific options.")
        return 0
    if argv and argv[0] == "validate":
        return validate_reports.main(argv[1:])
    return stats_cli.main(argv)


if __name__ == "__main__":
    raise SystemExit(main())
