from __future__ import annotations

import dataclasses
import json
import os
import threading
from collections.abc import Iterator
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from urllib.parse import parse_qs, urlparse

import pytest

FAKE_GIT = """#!/usr/bin/env python3
import json
import os
import shutil
import sys


def main() -> int:
    args = sys.argv[1:]
    if not args or args[0] != "clone":
        sys.stderr.write("unexpected args: " + " ".join(args) + "\\n")
        return 2
    url, dest = args[-2], args[-1]
    with open(os.environ["FAKE_GIT_LOG"], "a", encoding="utf-8") as f:
        f.write(json.dumps({"args": args}) + "\\n")
    name = url.rstrip("/").rsplit("/", 1)[-1]
    if name.endswith(".git"):
        name = name[:-4]
    if name in os.environ.get("FAKE_GIT_FAIL", "").split(","):
        sys.stderr.write("fatal: repository '" + url + "' not found\\n")
        return 128
    os.makedirs(dest)
    stats = os.path.join(os.environ["FAKE_STATS_DIR"], name + ".json")
    if os.path.exists(stats):
        shutil.copy(stats, os.path.join(dest, ".tokei.json"))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
"""

FAKE_TOKEI = """#!/usr/bin/env python3
import json
import os
import sys


def main() -> int:
    args = sys.argv[1:]
    with open(os.environ["FAKE_TOKEI_LOG"], "a", encoding="utf-8") as f:
        f.write(json.dumps({"args": args}) + "\\n")
    path = args[-1]
    name = os.path.basename(os.path.normpath(path))
    if name in os.environ.get("FAKE_TOKEI_FAIL", "").split(","):
        sys.stderr.write("error: cannot read " + path + "\\n")
        return 1
    stats = os.path.join(path, ".tokei.json")
    if not os.path.exists(stats):
        sys.stdout.write("{}")
        return 0
    with open(stats, encoding="utf-8") as f:
        sys.stdout.write(f.read())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
"""


@dataclasses.dataclass
class FakeTools:
    bin_dir: Path
    stats_dir: Path
    git_log: Path
    tokei_log: Path

    def set_stats(self, repo_name: str, stats: dict[str, dict[str, int]]) -> None:
        (self.stats_dir / f"{repo_name}.json").write_text(json.dumps(stats), encoding="utf-8")

    def git_calls(self) -> list[list[str]]:
        if not self.git_log.exists():
            return []
        return [json.loads(line)["args"] for line in self.git_log.read_text(encoding="utf-8").splitlines() if line.strip()]

    def tokei_calls(self) -> list[list[str]]:
        if not self.tokei_log.exists():
            return []
        return [json.loads(line)["args"] for line in self.tokei_log.read_text(encoding="utf-8").splitlines() if line.strip()]


@pytest.fixture
def fake_tools(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> FakeTools:
    """Put fake `git` and `tokei` executables first on PATH."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    for name, body in (("git", FAKE_GIT), ("tokei", FAKE_TOKEI)):
        p = bin_dir / name
        p.write_text(body, encoding="utf-8")
        p.chmod(0o755)
    stats_dir = tmp_path / "fake-stats"
    stats_dir.mkdir()
    tools = FakeTools(
        bin_dir=bin_dir,
        stats_dir=stats_dir,
        git_log=tmp_path / "git.log",
        tokei_log=tmp_path / "tokei.log",
    )
    monkeypatch.setenv("PATH", str(bin_dir) + os.pathsep + os.environ.get("PATH", ""))
    monkeypatch.setenv("FAKE_STATS_DIR", str(stats_dir))
    monkeypatch.setenv("FAKE_GIT_LOG", str(tools.git_log))
    monkeypatch.setenv("FAKE_TOKEI_LOG", str(tools.tokei_log))
    monkeypatch.delenv("FAKE_GIT_FAIL", raising=False)
    monkeypatch.delenv("FAKE_TOKEI_FAIL", raising=False)
    return tools


def repo_item(name: str, *, size: int = 10, private: bool = False, fork: bool = False, description: str | None = None) -> dict:
    return {
        "name": name,
        "full_name": f"someone/{name}",
        "clone_url": f"https://github.example/someone/{name}.git",
        "html_url": f"https://github.example/someone/{name}",
        "size": size,
        "private": private,
        "visibility": "private" if private else "public",
        "fork": fork,
        "description": description,
    }


@dataclasses.dataclass
class FakeGitHub:
    url: str
    pages: list[list[dict]]
    requests: list[dict[str, str]]
    fail_page: int = 0


@pytest.fixture
def github_api() -> Iterator[FakeGitHub]:
    """Serve `/user/repos` from `pages`, linking each page to the next one."""
    state = FakeGitHub(url="", pages=[], requests=[])

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:  # noqa: N802
            parsed = urlparse(self.path)
            if parsed.path != "/user/repos":
                self.send_response(404)
                self.end_headers()
                return
            q = parse_qs(parsed.query)
            page = int((q.get("page") or ["1"])[0])
            state.requests.append({"path": self.path, "authorization": self.headers.get("Authorization", "")})
            if state.fail_page and page == state.fail_page:
                body = b'{"message":"Server Error"}'
                self.send_response(502)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)
                return
            items = state.pages[page - 1] if 0 < page <= len(state.pages) else []
            body = json.dumps(items).encode("utf-8")
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            if page < len(state.pages):
                nxt = f"{state.url}/user/repos?affiliation=owner&per_page=100&page={page + 1}"
                last = f"{state.url}/user/repos?affiliation=owner&per_page=100&page={len(state.pages)}"
                self.send_header("Link", f'<{nxt}>; rel="next", <{last}>; rel="last"')
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, fmt: str, *args: object) -> None:
            return

    server = HTTPServer(("127.0.0.1", 0), Handler)
    state.url = f"http://127.0.0.1:{server.server_port}"
    t = threading.Thread(target=server.serve_forever, daemon=True)
    t.start()
    try:
        yield state
    finally:
        server.shutdown()
        server.server_close()
