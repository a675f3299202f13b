from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from urllib.parse import urlencode

from . import __version__
from .models import RepoDescriptor

PER_PAGE = 100


def parse_next_link(header: str) -> str:
    # Link: <https://api.github.com/user/repos?page=2>; rel="next", <...>; rel="last"
    for part in (header or "").split(","):
        segs = [s.strip() for s in part.split(";")]
        if len(segs) < 2:
            continue
        url = segs[0]
        if not (url.startswith("<") and url.endswith(">")):
            continue
        for s in segs[1:]:
            if s.replace(" ", "") in ('rel="next"', "rel=next"):
                return url[1:-1]
    return ""


def _get_json(url: str, *, token: str, timeout_s: int) -> tuple[object, str]:
    req = urllib.request.Request(
        url,
        method="GET",
        headers={
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
            "User-Agent": f"repo-loc-stats/{__version__}",
            "X-GitHub-Api-Version": "2022-11-28",
        },
    )
    ctx = ssl.create_default_context()
    try:
        with urllib.request.urlopen(req, timeout=timeout_s, context=ctx) as resp:
            code = int(getattr(resp, "status", 0) or 0)
            body = resp.read().decode("utf-8", errors="replace")
            if not 200 <= code < 300:
                raise RuntimeError(f"repository listing failed: HTTP {code}: {body[:500]}")
            link = resp.headers.get("Link", "") or ""
    except urllib.error.HTTPError as e:
        payload = ""
        try:
            payload = e.read().decode("utf-8", errors="replace")
        except OSError:
            payload = ""
        raise RuntimeError(f"repository listing failed: HTTP {e.code}: {payload[:500]}") from e
    except urllib.error.URLError as e:
        raise RuntimeError(f"repository listing failed: {e}") from e
    try:
        return json.loads(body), link
    except json.JSONDecodeError as e:
        raise RuntimeError(f"repository listing returned invalid JSON: {e}") from e


def repo_from_api(item: dict) -> RepoDescriptor:
    name = str(item.get("name", "") or "").strip()
    clone_url = str(item.get("clone_url", "") or "").strip()
    if not name or not clone_url:
        raise RuntimeError(f"repository entry missing name or clone_url: {item.get('full_name') or item.get('id')!r}")
    visibility = str(item.get("visibility", "") or "").strip().lower()
    private = bool(item.get("private", False)) or visibility in ("private", "internal")
    description = item.get("description")
    return RepoDescriptor(
        name=name,
        clone_url=clone_url,
        size_kb=int(item.get("size") or 0),
        private=private,
        fork=bool(item.get("fork", False)),
        description=str(description) if description else None,
        html_url=str(item.get("html_url", "") or ""),
    )


def list_owned_repos(api_url: str, token: str, *, timeout_s: int = 30) -> list[RepoDescriptor]:
    """
    Every non-fork repository owned by the token's user, largest first.

    Raises RuntimeError on any page failure: the global totals are only meaningful
    over the complete set.
    """
    query = urlencode({"affiliation": "owner", "sort": "updated", "direction": "desc", "per_page": PER_PAGE})
    url = f"{api_url.rstrip('/')}/user/repos?{query}"

    repos: list[RepoDescriptor] = []
    seen: set[str] = set()
    while url:
        data, link = _get_json(url, token=token, timeout_s=timeout_s)
        if not isinstance(data, list):
            raise RuntimeError("repository listing returned a non-list page")
        for item in data:
            if not isinstance(item, dict) or item.get("fork"):
                continue
            repo = repo_from_api(item)
            # sort=updated can shift entries across pages while we paginate.
            if repo.name in seen:
                continue
            seen.add(repo.name)
            repos.append(repo)
        url = parse_next_link(link)

    repos.sort(key=lambda r: (-r.size_kb, r.name))
    return repos
