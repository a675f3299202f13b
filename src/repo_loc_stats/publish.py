from __future__ import annotations

import json
import os
import ssl
import tempfile
import urllib.error
import urllib.request
from pathlib import Path
from typing import Protocol

from .config import Settings

TOTAL_STATS_KEY = "total-stats.json"
PER_REPO_STATS_KEY = "per-repo-stats.json"


def report_json_bytes(data: object) -> bytes:
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"), allow_nan=False).encode("utf-8")


class PublishError(RuntimeError):
    """A sink failed. `written` names the keys already replaced before the failure."""

    def __init__(self, message: str, *, written: list[str] | None = None) -> None:
        super().__init__(message)
        self.written = list(written or [])


class ReportSink(Protocol):
    def put_all(self, items: list[tuple[str, bytes]]) -> None: ...


class DirectorySink:
    """Writes artifacts into a local directory, staging every file before replacing any."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def put_all(self, items: list[tuple[str, bytes]]) -> None:
        staged: list[tuple[Path, Path]] = []
        written: list[str] = []
        try:
            self.path.mkdir(parents=True, exist_ok=True)
            for key, payload in items:
                fd, tmp = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=str(self.path))
                with os.fdopen(fd, "wb") as f:
                    f.write(payload)
                staged.append((Path(tmp), self.path / key))
            for tmp, dest in staged:
                os.replace(tmp, dest)
                written.append(dest.name)
        except OSError as e:
            raise PublishError(f"writing reports to {self.path} failed: {e}", written=written) from e
        finally:
            for tmp, _dest in staged:
                if tmp.exists():
                    tmp.unlink()


class HttpSink:
    """PUTs each artifact to `<base_url>/<key>` (object stores and presigned-style endpoints)."""

    def __init__(self, base_url: str, *, token: str = "", timeout_s: int = 30, ca_bundle_path: str = "") -> None:
        if not (base_url or "").strip():
            raise ValueError("base_url is required")
        self.base_url = base_url.strip().rstrip("/")
        self.token = token
        self.timeout_s = timeout_s
        self.ca_bundle_path = ca_bundle_path

    def _ssl_context(self) -> ssl.SSLContext:
        p = (self.ca_bundle_path or "").strip()
        if p and Path(p).expanduser().is_dir():
            return ssl.create_default_context(capath=str(Path(p).expanduser()))
        if p:
            return ssl.create_default_context(cafile=str(Path(p).expanduser()))
        return ssl.create_default_context()

    def put(self, key: str, payload: bytes) -> None:
        url = f"{self.base_url}/{key}"
        headers = {"Content-Type": "application/json", "Content-Length": str(len(payload))}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        req = urllib.request.Request(url, method="PUT", data=payload, headers=headers)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_s, context=self._ssl_context()) as resp:
                code = int(getattr(resp, "status", 0) or 0)
                if 200 <= code < 300:
                    return
                body = resp.read().decode("utf-8", errors="replace")
                raise RuntimeError(f"upload of {key} failed: HTTP {code}: {body[:500]}")
        except urllib.error.HTTPError as e:
            body = ""
            try:
                body = e.read().decode("utf-8", errors="replace")
            except OSError:
                body = ""
            raise RuntimeError(f"upload of {key} failed: HTTP {e.code}: {body[:500]}") from e
        except urllib.error.URLError as e:
            raise RuntimeError(f"upload of {key} failed: {e}") from e

    def put_all(self, items: list[tuple[str, bytes]]) -> None:
        written: list[str] = []
        for key, payload in items:
            try:
                self.put(key, payload)
            except RuntimeError as e:
                raise PublishError(str(e), written=written) from e
            written.append(key)


def sink_from_settings(settings: Settings) -> ReportSink:
    storage = settings.storage
    if storage.kind == "dir" and storage.path is not None:
        return DirectorySink(storage.path)
    if storage.kind == "http":
        return HttpSink(storage.url, token=storage.token, timeout_s=30, ca_bundle_path=storage.ca_bundle_path)
    raise ValueError(f"unsupported storage kind: {storage.kind!r}")


def publish_reports(sink: ReportSink, total_doc: object, per_repo_doc: object) -> list[tuple[str, int]]:
    # Serialize both before writing either, so an encoding error publishes nothing.
    items = [
        (TOTAL_STATS_KEY, report_json_bytes(total_doc)),
        (PER_REPO_STATS_KEY, report_json_bytes(per_repo_doc)),
    ]
    sink.put_all(items)
    return [(key, len(payload)) for key, payload in items]
