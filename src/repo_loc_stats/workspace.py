from __future__ import annotations

import contextlib
import shutil
from collections.abc import Iterator
from pathlib import Path

from .git import authenticated_clone_url, shallow_clone
from .models import RepoDescriptor


def prepare_scratch_root(root: Path) -> None:
    """Remove anything left over from a previous run and recreate `root` empty."""
    if root.exists() or root.is_symlink():
        if root.is_dir() and not root.is_symlink():
            shutil.rmtree(root)
        else:
            root.unlink()
    root.mkdir(parents=True)


def workspace_path(root: Path, repo_name: str) -> Path:
    name = (repo_name or "").strip()
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        raise ValueError(f"unsafe repository name for a workspace: {repo_name!r}")
    return root / name


@contextlib.contextmanager
def repo_workspace(
    root: Path,
    repo: RepoDescriptor,
    *,
    username: str,
    token: str,
    timeout_s: int = 600,
) -> Iterator[Path]:
    path = workspace_path(root, repo.name)
    try:
        url = authenticated_clone_url(repo.clone_url, username, token)
        shallow_clone(url, path, timeout_s=timeout_s, secret=token)
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
