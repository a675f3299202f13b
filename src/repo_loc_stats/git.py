from __future__ import annotations

import os
import subprocess
from pathlib import Path
from urllib.parse import quote, urlparse, urlunparse


def run_git(args: list[str], cwd: Path, timeout_s: int = 300) -> tuple[int, str, str]:
    env = os.environ.copy()
    env["GIT_TERMINAL_PROMPT"] = "0"
    proc = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        timeout=timeout_s,
        env=env,
    )
    return proc.returncode, proc.stdout, proc.stderr


def authenticated_clone_url(url: str, username: str, token: str) -> str:
    parsed = urlparse((url or "").strip())
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ValueError(f"clone url must be http(s): {redact_url(url)!r}")
    if not token:
        return urlunparse(parsed)
    host = parsed.hostname
    if parsed.port:
        host = f"{host}:{parsed.port}"
    netloc = f"{quote(username or 'x-access-token', safe='')}:{quote(token, safe='')}@{host}"
    return urlunparse(parsed._replace(netloc=netloc))


def redact_url(url: str) -> str:
    parsed = urlparse(url or "")
    if not parsed.netloc or "@" not in parsed.netloc:
        return url or ""
    host = parsed.netloc.rsplit("@", 1)[1]
    return urlunparse(parsed._replace(netloc=f"***@{host}"))


def _redact_secret(text: str, secret: str) -> str:
    if not secret:
        return text
    return text.replace(secret, "***").replace(quote(secret, safe=""), "***")


def shallow_clone(url: str, dest: Path, *, timeout_s: int = 600, secret: str = "") -> None:
    """
    Check out only the latest revision of the default branch into `dest`.

    `secret` is scrubbed from any error message; git echoes the remote URL on failure.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    try:
        code, _out, err = run_git(
            ["clone", "--depth", "1", "--single-branch", "--quiet", url, str(dest)],
            cwd=dest.parent,
            timeout_s=timeout_s,
        )
    except subprocess.TimeoutExpired as e:
        raise RuntimeError(f"git clone timed out after {timeout_s}s: {redact_url(url)}") from e
    if code != 0:
        msg = _redact_secret(err.strip(), secret)
        raise RuntimeError(f"git clone failed ({code}) for {redact_url(url)}: {msg[:500]}")
