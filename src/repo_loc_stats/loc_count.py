from __future__ import annotations

import json
import subprocess
from collections.abc import Iterable
from pathlib import Path

from .models import Language, LanguageStat, LanguageStats, language_from_name

LANGUAGES: tuple[Language, ...] = (
    Language.RUST,
    Language.C,
    Language.CPP,
    Language.JAVASCRIPT,
    Language.TYPESCRIPT,
    Language.CSS,
    Language.HTML,
    Language.PYTHON,
    Language.JAVA,
    Language.SH,
    Language.TSX,
    Language.JSX,
    Language.TOML,
    Language.MARKDOWN,
    Language.SVELTE,
    Language.VUE,
    Language.SASS,
    Language.CMAKE,
    Language.CPP_HEADER,
    Language.ZIG,
    Language.GO,
    Language.DOCKERFILE,
    Language.YAML,
    Language.JSON,
)

EXCLUDE_GLOBS: tuple[str, ...] = ("build", "package-lock.json", "pnpm-lock.yaml")


def tokei_command(path: Path, languages: Iterable[Language], excludes: Iterable[str]) -> list[str]:
    cmd = ["tokei", "--output", "json", "--types=" + ",".join(lang.display_name for lang in languages)]
    cmd.extend(f"--exclude={pat}" for pat in excludes)
    cmd.extend(["--", str(path)])
    return cmd


def _count(value: object) -> int:
    try:
        n = int(value or 0)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
    return max(0, n)


def parse_tokei_json(text: str, allowed: Iterable[Language] = LANGUAGES) -> LanguageStats:
    try:
        data = json.loads(text or "{}")
    except json.JSONDecodeError as e:
        raise RuntimeError(f"tokei produced invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise RuntimeError("tokei JSON output must be an object keyed by language")

    allowed_set = set(allowed)
    out: LanguageStats = {}
    for name, st in data.items():
        lang = language_from_name(str(name))
        if lang is None or lang not in allowed_set or not isinstance(st, dict):
            continue
        stat = LanguageStat(
            name=lang,
            code=_count(st.get("code")),
            comments=_count(st.get("comments")),
            blanks=_count(st.get("blanks")),
        )
        if stat.lines == 0:
            continue
        cur = out.get(lang)
        if cur is None:
            out[lang] = stat
        else:
            cur.add(stat)
    return out


def count_languages(
    path: Path,
    *,
    languages: Iterable[Language] = LANGUAGES,
    excludes: Iterable[str] = EXCLUDE_GLOBS,
    timeout_s: int = 600,
) -> LanguageStats:
    languages = tuple(languages)
    cmd = tokei_command(path, languages, excludes)
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout_s)
    except FileNotFoundError as e:
        raise RuntimeError("tokei is not installed or not on PATH") from e
    except subprocess.TimeoutExpired as e:
        raise RuntimeError(f"tokei timed out after {timeout_s}s on {path}") from e
    if proc.returncode != 0:
        raise RuntimeError(f"tokei failed ({proc.returncode}) on {path}: {proc.stderr.strip()[:500]}")
    return parse_tokei_json(proc.stdout, languages)
