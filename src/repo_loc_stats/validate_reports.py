#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .models import Language, language_from_name
from .publish import PER_REPO_STATS_KEY, TOTAL_STATS_KEY


def load_json(path: Path) -> object:
    return json.loads(path.read_text(encoding="utf-8"))


def check_language_list(languages: object, where: str) -> list[str]:
    problems: list[str] = []
    if not isinstance(languages, list):
        return [f"{where}: expected a list of languages"]
    seen: set[str] = set()
    prev_code: int | None = None
    names: set[Language] = set()
    for i, st in enumerate(languages):
        if not isinstance(st, dict):
            problems.append(f"{where}[{i}]: expected an object")
            continue
        name = str(st.get("name", ""))
        lang = language_from_name(name)
        if lang is None:
            problems.append(f"{where}[{i}]: unknown language {name!r}")
        else:
            names.add(lang)
        if name in seen:
            problems.append(f"{where}: duplicate language {name!r}")
        seen.add(name)
        for field in ("code", "comments", "blanks"):
            v = st.get(field)
            if not isinstance(v, int) or v < 0:
                problems.append(f"{where}[{i}]: {field} must be a non-negative integer, got {v!r}")
        code = st.get("code") if isinstance(st.get("code"), int) else 0
        if prev_code is not None and code > prev_code:
            problems.append(f"{where}: not sorted by code at index {i} ({code} > {prev_code})")
        prev_code = code
    if Language.TSX in names:
        problems.append(f"{where}: Tsx should have been folded into TypeScript")
    return problems


def check_per_repo(per_repo: object) -> list[str]:
    if not isinstance(per_repo, list):
        return ["per-repo: expected a list of repositories"]
    problems: list[str] = []
    seen: set[str] = set()
    prev_total: int | None = None
    for i, repo in enumerate(per_repo):
        if not isinstance(repo, dict):
            problems.append(f"per-repo[{i}]: expected an object")
            continue
        name = str(repo.get("name", ""))
        if not name:
            problems.append(f"per-repo[{i}]: missing name")
        if name in seen:
            problems.append(f"per-repo: duplicate repository {name!r}")
        seen.add(name)
        languages = repo.get("languages")
        problems.extend(check_language_list(languages, f"per-repo[{name or i}]"))
        total = sum(int(st.get("code", 0)) for st in (languages or []) if isinstance(st, dict) and isinstance(st.get("code"), int))
        if prev_total is not None and total > prev_total:
            problems.append(f"per-repo: not sorted by total code at {name!r} ({total} > {prev_total})")
        prev_total = total
    return problems


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    ap = argparse.ArgumentParser(description="Sanity-check published repo-loc-stats reports.")
    ap.add_argument("--dir", type=Path, default=Path("."), help="Directory holding the two report files.")
    args = ap.parse_args(argv)

    total_path = args.dir / TOTAL_STATS_KEY
    per_repo_path = args.dir / PER_REPO_STATS_KEY
    for p in (total_path, per_repo_path):
        if not p.exists():
            raise SystemExit(f"Report not found: {p}")

    total = load_json(total_path)
    per_repo = load_json(per_repo_path)

    problems = check_language_list(total, "total")
    problems.extend(check_per_repo(per_repo))

    code_total = 0
    if isinstance(total, list):
        code_total = sum(st["code"] for st in total if isinstance(st, dict) and isinstance(st.get("code"), int))
    print(f"- languages: {len(total) if isinstance(total, list) else 0}  code lines: {code_total}")
    print(f"- published repos: {len(per_repo) if isinstance(per_repo, list) else 0}")
    for p in problems:
        print(f"  [WARN] {p}")

    return 0 if not problems else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
