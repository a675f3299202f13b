from __future__ import annotations

import threading
from collections.abc import Iterable

from .models import LanguageStats, RepoDescriptor, RepoReport
from .stats_selection import collect_repo_report


def merge_language_stats(dst: LanguageStats, src: LanguageStats) -> None:
    for lang, st in src.items():
        cur = dst.get(lang)
        if cur is None:
            dst[lang] = st.copy()
            continue
        cur.add(st)


class StatsAccumulator:
    """
    Shared merge point for worker results.

    The global totals and the per-repo report list each have their own lock, held
    only while one repository's stats are folded in.
    """

    def __init__(self, exclude_repos: Iterable[str] = ()) -> None:
        self.exclude_repos = tuple(exclude_repos)
        self._total: LanguageStats = {}
        self._total_lock = threading.Lock()
        self._reports: list[RepoReport] = []
        self._reports_lock = threading.Lock()
        self.repos_merged = 0

    def add_repo(self, repo: RepoDescriptor, languages: LanguageStats) -> bool:
        """Merge `languages` into the totals; returns True when a per-repo report was added."""
        with self._total_lock:
            merge_language_stats(self._total, languages)
            self.repos_merged += 1

        report = collect_repo_report(repo, languages, self.exclude_repos)
        if report is None:
            return False
        with self._reports_lock:
            self._reports.append(report)
        return True

    def snapshot(self) -> tuple[LanguageStats, list[RepoReport]]:
        with self._total_lock:
            total = {lang: st.copy() for lang, st in self._total.items()}
        with self._reports_lock:
            reports = [
                RepoReport(
                    name=r.name,
                    href=r.href,
                    description=r.description,
                    languages={lang: st.copy() for lang, st in r.languages.items()},
                )
                for r in self._reports
            ]
        return total, reports
