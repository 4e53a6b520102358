#!/usr/bin/env python3
"""Script to show today's trending repositories across code hosts."""

import argparse
import logging
import subprocess
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from trotd.application.pipeline import TrendingPipeline
from trotd.application.render import render_json, render_motd
from trotd.domain.errors import AllProvidersFailed, TrotdError
from trotd.infrastructure.providers.github import GitHub
from trotd.infrastructure.seen_tracker import SeenTracker
from trotd.infrastructure.settings import Settings, normalize_provider_ids
from trotd.infrastructure.starred_cache import StarredCache

logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def comma_list(value: str):
    return [item.strip() for item in value.split(",") if item.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Trending repositories of the day")
    parser.add_argument("-n", "--max", dest="max_per_provider", type=int, metavar="N",
                        help="Maximum repositories per provider")
    parser.add_argument("-p", "--provider", type=comma_list, metavar="LIST",
                        help="Enable specific providers (comma-separated: gh,gl,ge)")
    parser.add_argument("-l", "--lang", type=comma_list, metavar="LIST",
                        help="Filter by language (comma-separated: rust,go)")
    parser.add_argument("--no-cache", action="store_true", help="Disable cache")
    parser.add_argument("--json", action="store_true", help="Output as JSON instead of MOTD")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output for debugging")
    parser.add_argument("--min-stars", type=int, metavar="N", help="Minimum star count threshold")
    parser.add_argument("--exclude-topics", type=comma_list, metavar="LIST",
                        help="Exclude GitHub repositories with these topics (comma-separated)")
    parser.add_argument("--show-all", action="store_true",
                        help="Show all repositories including those already seen today")

    subparsers = parser.add_subparsers(dest="command")
    star = subparsers.add_parser("star", help="Star a GitHub repository")
    star.add_argument("repo", help="Repository to star (format: owner/repo)")
    clone = subparsers.add_parser("clone", help="Clone a trending repository")
    clone.add_argument("repo", help="Repository to clone (format: owner/repo or URL)")
    subparsers.add_parser("clear-seen", help="Forget repositories shown today")
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Apply command-line flags on top of environment settings."""
    if args.max_per_provider is not None:
        settings.max_per_provider = args.max_per_provider
        settings.provider_max = {}
    if args.provider:
        settings.providers = normalize_provider_ids(args.provider)
    if args.lang:
        settings.languages = args.lang
    if args.min_stars is not None:
        settings.min_stars = args.min_stars
    if args.exclude_topics:
        settings.exclude_topics = args.exclude_topics
    return settings


def star_command(settings: Settings, repo: str) -> int:
    if not settings.github_token:
        logger.error("GitHub token not configured. Set TROTD_GITHUB_TOKEN.")
        return 1

    parts = repo.split("/")
    if len(parts) != 2 or not all(parts):
        logger.error("Invalid repository format. Expected: owner/repo")
        return 1
    owner, name = parts

    GitHub(timeout_secs=settings.provider_timeout("github")).star_repo(owner, name, settings.github_token)
    print(f"Starred {owner}/{name}")

    # Starred set changed
    StarredCache(settings.cache_dir).clear()
    return 0


def clone_command(repo: str) -> int:
    if repo.startswith(("http://", "https://")):
        clone_url = repo
    else:
        clone_url = f"https://github.com/{repo}.git"

    print(f"Cloning {clone_url}...", file=sys.stderr)
    try:
        result = subprocess.run(["git", "clone", clone_url], capture_output=True, text=True)
    except FileNotFoundError:
        logger.error("Failed to execute git clone. Is git installed?")
        return 1

    if result.returncode != 0:
        logger.error(f"Git clone failed: {result.stderr.strip()}")
        return 1
    print(f"Cloned {repo}")
    return 0


def main(argv=None) -> int:
    """Fetch, filter and print trending repositories."""
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        settings = apply_overrides(Settings.from_env(), args)
        logger.debug("Config loaded successfully")

        if args.command == "star":
            return star_command(settings, args.repo)
        if args.command == "clone":
            return clone_command(args.repo)
        if args.command == "clear-seen":
            SeenTracker(settings.cache_dir).clear()
            return 0

        pipeline = TrendingPipeline(settings, use_cache=not args.no_cache, show_all=args.show_all)
        pipeline.run(render_json if args.json else render_motd)
        return 0

    except AllProvidersFailed as e:
        logger.error(str(e))
        return 1
    except TrotdError as e:
        logger.error(f"trotd failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
