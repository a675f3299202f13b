from __future__ import annotations

import argparse
import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from .config import ConfigError, Settings, build_settings, load_config
from .github import list_owned_repos
from .loc_count import count_languages
from .models import RepoDescriptor, RepoResult
from .publish import ReportSink, publish_reports, sink_from_settings
from .stats_aggregate import StatsAccumulator
from .stats_reports import build_reports
from .workspace import prepare_scratch_root, repo_workspace

SEPARATOR = "================================="


def format_size_kb(size_kb: int) -> str:
    n = float(max(0, size_kb)) * 1000
    for unit in ("B", "KB", "MB", "GB"):
        if n < 1000 or unit == "GB":
            return f"{n:.0f} {unit}" if unit == "B" else f"{n:.1f} {unit}"
        n /= 1000
    return f"{n:.1f} GB"


def _print_header(*, settings: Settings) -> None:
    where = str(settings.storage.path) if settings.storage.kind == "dir" else settings.storage.url
    lines = [
        "┌──────────────────────────────────────────────────────────────┐",
        "│                        repo-loc-stats                         │",
        "└──────────────────────────────────────────────────────────────┘",
        "",
        "What to expect:",
        f"- API: {settings.api_url}",
        f"- Scratch root: {settings.scratch_root} (wiped before the run)",
        f"- Jobs: {settings.jobs}  Timeout: {settings.timeout_s}s  Fail fast: {'on' if settings.fail_fast else 'off'}",
        f"- Excluded from per-repo stats: {', '.join(settings.exclude_repos) if settings.exclude_repos else '(none)'}",
        f"- Output: {where} ({settings.storage.kind})",
        "",
    ]
    print("\n".join(lines))


def analyze_repo(repo: RepoDescriptor, settings: Settings) -> RepoResult:
    """Clone one repository, count its lines and clean up. Failures are returned, not raised."""
    start = time.monotonic()
    print(f'Cloning: "{repo.name}"; Size: {format_size_kb(repo.size_kb)}')
    try:
        with repo_workspace(
            settings.scratch_root,
            repo,
            username=settings.clone_username,
            token=settings.token,
            timeout_s=settings.timeout_s,
        ) as path:
            print(f'Done cloning "{repo.name}" in {time.monotonic() - start:.2f} seconds!')
            count_start = time.monotonic()
            languages = count_languages(path, timeout_s=settings.timeout_s)
            print(f'Done analyzing "{repo.name}" in {time.monotonic() - count_start:.2f} seconds!')
    except (RuntimeError, OSError, ValueError) as e:
        return RepoResult(repo=repo, languages=None, errors=[str(e)], elapsed_s=time.monotonic() - start)
    elapsed = time.monotonic() - start
    print(f'Done with "{repo.name}" in {elapsed:.2f} seconds!')
    return RepoResult(repo=repo, languages=languages, errors=[], elapsed_s=elapsed)


def collect_stats(repos: list[RepoDescriptor], settings: Settings) -> tuple[StatsAccumulator, list[RepoResult]]:
    """
    Fan out over `repos` and fold each finished result into a `StatsAccumulator`.

    Returns once every worker has finished. Failed repositories contribute nothing to
    either report; with `fail_fast` the first failure raises RuntimeError instead.
    """
    acc = StatsAccumulator(settings.exclude_repos)
    failed: list[RepoResult] = []
    with ThreadPoolExecutor(max_workers=settings.jobs) as ex:
        # `repos` is largest-first, so the slowest work is dispatched first.
        futs = [ex.submit(analyze_repo, repo, settings) for repo in repos]
        for i, fut in enumerate(as_completed(futs), start=1):
            r = fut.result()
            if r.ok and r.languages is not None:
                if not acc.add_repo(r.repo, r.languages):
                    print(f'Excluding "{r.repo.name}" from per-repo stats.')
            else:
                failed.append(r)
                print(f'Warning: skipping "{r.repo.name}": {"; ".join(r.errors)}', file=sys.stderr)
                if settings.fail_fast:
                    for f in futs:
                        f.cancel()
                    raise RuntimeError(f'processing "{r.repo.name}" failed: {"; ".join(r.errors)}')
            if i % 10 == 0 or i == len(futs):
                print(f"Processed {i}/{len(futs)} repos...")
    return acc, failed


def run_stats(*, args: argparse.Namespace, environ: dict[str, str] | None = None, sink: ReportSink | None = None) -> int:
    start = time.monotonic()
    try:
        config = load_config(Path(args.config))
        settings = build_settings(config, args, environ)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    _print_header(settings=settings)

    print("Listing repositories...")
    try:
        repos = list_owned_repos(settings.api_url, settings.token, timeout_s=settings.timeout_s)
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Found {len(repos)} repositories (forks excluded).")

    try:
        prepare_scratch_root(settings.scratch_root)
    except OSError as e:
        print(f"Error: cannot prepare scratch root {settings.scratch_root}: {e}", file=sys.stderr)
        return 1

    try:
        acc, failed = collect_stats(repos, settings)
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Nothing was published.", file=sys.stderr)
        return 1

    print(f"{SEPARATOR}\n\nFinished all in {time.monotonic() - start:.2f} seconds!!!")
    if failed:
        print(f"Warning: {len(failed)} repositories were skipped: {', '.join(r.repo.name for r in failed)}", file=sys.stderr)

    print("Starting post-processing!")
    post_start = time.monotonic()
    total, repo_reports = acc.snapshot()
    total_doc, per_repo_doc = build_reports(total, repo_reports, settings.manual_adjustments)
    print(f"Post-processing complete in {time.monotonic() - post_start:.2f} seconds")

    if sink is None:
        sink = sink_from_settings(settings)
    try:
        written = publish_reports(sink, total_doc, per_repo_doc)
    except RuntimeError as e:
        partial = getattr(e, "written", [])
        print("")
        if partial:
            print(f"Publish failed after writing {', '.join(partial)}; the other reports were not updated.", file=sys.stderr)
        else:
            print("Publish failed; the previously published reports remain in place.", file=sys.stderr)
        print(str(e), file=sys.stderr)
        return 2

    for key, size in written:
        print(f"- wrote {key} ({size} bytes)")
    print(f"All processing complete in {time.monotonic() - start:.2f} seconds")
    return 0
