from __future__ import annotations

from collections.abc import Mapping

from .models import Language, LanguageStat, LanguageStats, RepoReport
from .stats_normalize import normalize_repo, normalize_total


def sort_languages(stats: LanguageStats) -> list[LanguageStat]:
    return sorted(stats.values(), key=lambda st: (-st.code, st.name.value))


def total_code(stats: LanguageStats) -> int:
    return sum(st.code for st in stats.values())


def sort_repo_reports(reports: list[RepoReport]) -> list[RepoReport]:
    return sorted(reports, key=lambda r: (-total_code(r.languages), r.name))


def repo_report_json(report: RepoReport) -> dict[str, object]:
    return {
        "name": report.name,
        "href": report.href,
        "description": report.description,
        "languages": [st.to_json() for st in sort_languages(report.languages)],
    }


def build_reports(
    total: LanguageStats,
    repo_reports: list[RepoReport],
    adjustments: Mapping[Language, int],
) -> tuple[list[dict[str, object]], list[dict[str, object]]]:
    """
    Turn the merged accumulators into the two published documents.

    Mutates `total` and each report's languages: markup variants are folded into
    their base language everywhere, manual adjustments are added to `total` only,
    and sorting happens last.
    """
    normalize_total(total, adjustments)
    for r in repo_reports:
        normalize_repo(r.languages)

    total_doc = [st.to_json() for st in sort_languages(total)]
    per_repo_doc = [repo_report_json(r) for r in sort_repo_reports(repo_reports)]
    return total_doc, per_repo_doc
