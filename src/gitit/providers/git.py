"""Providers for git hosting services that serve tarball snapshots."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

from ..errors import ResolutionError
from ..models import ProviderOptions, TemplateInfo
from ..utils.http import auth_headers

GIT_URI_RE = re.compile(
    r"^(?P<repo>[\w.-]+/[\w.-]+)(?P<subdir>[^#]+)?(?P<ref>#[\w./@-]+)?"
)

DEFAULT_REF = "main"


@dataclass(frozen=True)
class GitInfo:
    repo: str
    subdir: str
    ref: str


def parse_git_uri(value: str) -> GitInfo:
    """Split ``org/repo[/subpath][#ref]`` into its parts.

    >>> parse_git_uri("org/repo/foo/bar#v1")
    GitInfo(repo='org/repo', subdir='/foo/bar', ref='v1')
    """
    match = GIT_URI_RE.match(value)
    if match is None:
        raise ResolutionError(
            f"Invalid repository identifier {value!r}, expected org/repo[/subdir][#ref]",
            source=value,
        )
    ref = match.group("ref")
    return GitInfo(
        repo=match.group("repo"),
        subdir=match.group("subdir") or "/",
        ref=ref[1:] if ref else DEFAULT_REF,
    )


def _template_name(info: GitInfo) -> str:
    return info.repo.replace("/", "-")


def github(source: str, options: ProviderOptions) -> TemplateInfo:
    info = parse_git_uri(source)
    api = os.getenv("GITIT_GITHUB_URL", "https://api.github.com").rstrip("/")
    web = api.replace("api.github.com", "github.com")
    return TemplateInfo(
        name=_template_name(info),
        version=info.ref,
        subdir=info.subdir,
        headers={
            **auth_headers(options.auth),
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        },
        url=f"{web}/{info.repo}/tree/{info.ref}{info.subdir}",
        tar=f"{api}/repos/{info.repo}/tarball/{info.ref}",
    )


def gitlab(source: str, options: ProviderOptions) -> TemplateInfo:
    info = parse_git_uri(source)
    base = os.getenv("GITIT_GITLAB_URL", "https://gitlab.com").rstrip("/")
    return TemplateInfo(
        name=_template_name(info),
        version=info.ref,
        subdir=info.subdir,
        headers={
            **auth_headers(options.auth),
            "sec-fetch-mode": "same-origin",
        },
        url=f"{base}/{info.repo}/tree/{info.ref}{info.subdir}",
        tar=f"{base}/{info.repo}/-/archive/{info.ref}.tar.gz",
    )


def bitbucket(source: str, options: ProviderOptions) -> TemplateInfo:
    info = parse_git_uri(source)
    return TemplateInfo(
        name=_template_name(info),
        version=info.ref,
        subdir=info.subdir,
        headers=auth_headers(options.auth),
        url=f"https://bitbucket.org/{info.repo}/src/{info.ref}{info.subdir}",
        tar=f"https://bitbucket.org/{info.repo}/get/{info.ref}.tar.gz",
    )


def sourcehut(source: str, options: ProviderOptions) -> TemplateInfo:
    info = parse_git_uri(source)
    return TemplateInfo(
        name=_template_name(info),
        version=info.ref,
        subdir=info.subdir,
        headers=auth_headers(options.auth),
        url=f"https://git.sr.ht/~{info.repo}/tree/{info.ref}/item{info.subdir}",
        tar=f"https://git.sr.ht/~{info.repo}/archive/{info.ref}.tar.gz",
    )
