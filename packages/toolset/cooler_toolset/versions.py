"""Dot-separated version ordering."""

from __future__ import annotations


ZERO_VERSION = "0.0.0"


def _parts(version: str) -> list[int]:
    out = []
    for p in (version or ZERO_VERSION).strip().split("."):
        try:
            out.append(int(p))
        except ValueError:
            out.append(0)
    return out


def normalize_version(version: str | None) -> str:
    if not version or not version.strip():
        return ZERO_VERSION
    return version.strip()


def is_outdated(installed: str | None, latest: str) -> bool:
    current = _parts(normalize_version(installed))
    target = _parts(normalize_version(latest))
    width = max(len(current), len(target))
    current += [0] * (width - len(current))
    target += [0] * (width - len(target))
    return current < target
