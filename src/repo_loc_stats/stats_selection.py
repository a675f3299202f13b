from __future__ import annotations

import fnmatch
from collections.abc import Iterable
from typing import Optional

from .models import LanguageStats, RepoDescriptor, RepoReport


def repo_excluded(name: str, exclude_repos: Iterable[str]) -> bool:
    for pat in exclude_repos:
        p = (pat or "").strip()
        if not p:
            continue
        if name == p or fnmatch.fnmatchcase(name, p):
            return True
    return False


def is_publishable(repo: RepoDescriptor, exclude_repos: Iterable[str]) -> bool:
    if not repo.is_public or repo.fork:
        return False
    return not repo_excluded(repo.name, exclude_repos)


def collect_repo_report(repo: RepoDescriptor, languages: LanguageStats, exclude_repos: Iterable[str]) -> Optional[RepoReport]:
    """
    Build the public report entry for one repository, or None when it must stay out
    of the per-repo list. Its counts still go into the global totals either way.
    """
    if not is_publishable(repo, exclude_repos):
        return None
    return RepoReport(
        name=repo.name,
        href=repo.html_url,
        description=repo.description,
        languages={lang: st.copy() for lang, st in languages.items()},
    )
