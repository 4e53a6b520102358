"""Output formatting for the final repository list."""

import json
import sys
from typing import List, TextIO

from trotd.domain.repository import Repo
from trotd.infrastructure.providers.registry import PROVIDER_ICONS

DESCRIPTION_WIDTH = 72


def format_count(value: int) -> str:
    if value >= 1000:
        return f"{value / 1000:.1f}k"
    return str(value)


def format_motd_line(repo: Repo) -> str:
    icon = PROVIDER_ICONS.get(repo.provider, "[??]")
    parts = [f"{icon} {repo.name}"]

    if repo.stars_total is not None:
        stars = f"★ {format_count(repo.stars_total)}"
        if repo.stars_today:
            stars += f" (+{format_count(repo.stars_today)} today)"
        parts.append(stars)
    if repo.language:
        parts.append(repo.language)
    if repo.is_starred:
        parts.append("[starred]")
    if repo.description:
        description = " ".join(repo.description.split())
        if len(description) > DESCRIPTION_WIDTH:
            description = description[:DESCRIPTION_WIDTH - 3].rstrip() + "..."
        parts.append(description)

    return "  ".join(parts)


def render_motd(repos: List[Repo], out: TextIO = sys.stdout):
    if not repos:
        out.write("No trending repositories to show.\n")
        return
    for repo in repos:
        out.write(format_motd_line(repo) + "\n")
        out.write(f"    {repo.url}\n")


def render_json(repos: List[Repo], out: TextIO = sys.stdout):
    json.dump([repo.to_dict() for repo in repos], out, indent=2, ensure_ascii=False)
    out.write("\n")
