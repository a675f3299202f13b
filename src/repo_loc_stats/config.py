from __future__ import annotations

import dataclasses
import json
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path

from .models import Language, language_from_name
from .stats_normalize import MANUAL_ADJUSTMENTS

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TOKEN_ENV = "PERSONAL_ACCESS_TOKEN"
DEFAULT_CLONE_USERNAME = "x-access-token"


class ConfigError(RuntimeError):
    pass


@dataclasses.dataclass(frozen=True)
class StorageConfig:
    kind: str  # "dir" or "http"
    path: Path | None = None
    url: str = ""
    token: str = ""
    ca_bundle_path: str = ""


@dataclasses.dataclass(frozen=True)
class Settings:
    api_url: str
    token: str
    clone_username: str
    exclude_repos: tuple[str, ...]
    scratch_root: Path
    jobs: int
    timeout_s: int
    storage: StorageConfig
    manual_adjustments: dict[Language, int]
    fail_fast: bool = False


def load_config(config_path: Path) -> dict:
    if not config_path.exists():
        return {}
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid JSON in {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a JSON object")
    return data


def default_scratch_root() -> Path:
    return Path(tempfile.gettempdir()) / "repo-loc-stats"


def _split_csv(value: str) -> list[str]:
    return [p.strip() for p in (value or "").split(",") if p.strip()]


def _parse_exclude_repos(raw: object) -> list[str]:
    # A bare string is a comma-separated list, like EXCLUDE_REPOS.
    if raw is None:
        return []
    if isinstance(raw, str):
        return _split_csv(raw)
    if not isinstance(raw, list):
        raise ConfigError("exclude_repos must be a list of repository names or globs")
    out: list[str] = []
    for r in raw:
        if not isinstance(r, str):
            raise ConfigError(f"exclude_repos: expected a string, got {r!r}")
        if r.strip():
            out.append(r.strip())
    return out


def _parse_bool(config: dict, key: str) -> bool:
    raw = config.get(key, False)
    if raw is None:
        return False
    if not isinstance(raw, bool):
        raise ConfigError(f"{key} must be true or false, got {raw!r}")
    return raw


def _parse_adjustments(raw: object) -> dict[Language, int]:
    if raw is None:
        return dict(MANUAL_ADJUSTMENTS)
    if not isinstance(raw, dict):
        raise ConfigError("manual_adjustments must be an object of {language: code_lines}")
    out: dict[Language, int] = {}
    for name, value in raw.items():
        lang = language_from_name(str(name))
        if lang is None:
            raise ConfigError(f"manual_adjustments: unknown language {name!r}")
        try:
            n = int(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"manual_adjustments: {name!r} must be an integer") from e
        if n < 0:
            raise ConfigError(f"manual_adjustments: {name!r} must not be negative")
        out[lang] = n
    return out


def _storage_config(config: dict, args: object, environ: Mapping[str, str]) -> StorageConfig:
    output_dir = getattr(args, "output_dir", None)
    upload_url = str(getattr(args, "upload_url", "") or "").strip()
    storage = config.get("storage") if isinstance(config.get("storage"), dict) else {}

    if output_dir is not None:
        return StorageConfig(kind="dir", path=Path(output_dir))
    if not upload_url and not storage:
        if environ.get("STATS_OUTPUT_DIR", "").strip():
            return StorageConfig(kind="dir", path=Path(environ["STATS_OUTPUT_DIR"].strip()))
        upload_url = environ.get("STATS_UPLOAD_URL", "").strip()

    kind = "http" if upload_url else str(storage.get("kind", "") or "").strip().lower()
    if kind == "dir":
        path = str(storage.get("path", "") or "").strip()
        if not path:
            raise ConfigError("storage.path is required for storage kind 'dir'")
        return StorageConfig(kind="dir", path=Path(path).expanduser())
    if kind == "http":
        url = upload_url or str(storage.get("url", "") or "").strip()
        if not url:
            raise ConfigError("storage.url is required for storage kind 'http'")
        token_env = str(storage.get("token_env", "") or "").strip()
        token = environ.get(token_env, "").strip() if token_env else ""
        ca_bundle = str(getattr(args, "ca_bundle", "") or "").strip() or str(storage.get("ca_bundle_path", "") or "").strip()
        return StorageConfig(kind="http", url=url, token=token, ca_bundle_path=ca_bundle)
    if not kind:
        raise ConfigError("no storage location configured (set storage in config.json, --output-dir or --upload-url)")
    raise ConfigError(f"unknown storage kind: {kind!r}")


def build_settings(config: dict, args: object, environ: Mapping[str, str] | None = None) -> Settings:
    """
    Merge config.json, environment and CLI flags into validated `Settings`.

    Raises `ConfigError` when the hosting credential or the storage location is
    missing, so a run never starts without somewhere to publish.
    """
    if environ is None:
        environ = os.environ

    token_env = str(config.get("token_env", "") or DEFAULT_TOKEN_ENV).strip()
    token = environ.get(token_env, "").strip()
    if not token:
        raise ConfigError(f"missing GitHub token: set the {token_env} environment variable")

    api_url = str(getattr(args, "api_url", "") or "").strip() or str(config.get("github_api_url", "") or DEFAULT_API_URL)

    exclude_repos = _parse_exclude_repos(config.get("exclude_repos"))
    exclude_repos.extend(_split_csv(environ.get("EXCLUDE_REPOS", "")))
    exclude_repos.extend(str(r).strip() for r in (getattr(args, "exclude_repo", None) or []) if str(r).strip())

    scratch = getattr(args, "scratch_root", None) or config.get("scratch_root") or default_scratch_root()

    jobs_raw = getattr(args, "jobs", None)
    if jobs_raw is None:
        jobs_raw = config.get("jobs")
    if jobs_raw is None:
        jobs_raw = max(1, min(8, (os.cpu_count() or 4)))
    try:
        jobs = int(jobs_raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"jobs must be an integer, got {jobs_raw!r}") from e
    if jobs < 1:
        raise ConfigError(f"jobs must be at least 1, got {jobs}")

    timeout_raw = getattr(args, "timeout", None)
    if timeout_raw is None:
        timeout_raw = config.get("timeout_s", 600)
    try:
        timeout_s = int(timeout_raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"timeout_s must be an integer, got {timeout_raw!r}") from e
    if timeout_s < 1:
        raise ConfigError(f"timeout_s must be at least 1, got {timeout_s}")

    return Settings(
        api_url=api_url.rstrip("/"),
        token=token,
        clone_username=str(config.get("clone_username", "") or DEFAULT_CLONE_USERNAME),
        exclude_repos=tuple(dict.fromkeys(exclude_repos)),
        scratch_root=Path(scratch).expanduser(),
        jobs=jobs,
        timeout_s=timeout_s,
        storage=_storage_config(config, args, environ),
        manual_adjustments=_parse_adjustments(config.get("manual_adjustments")),
        fail_fast=bool(getattr(args, "fail_fast", False)) or _parse_bool(config, "fail_fast"),
    )
