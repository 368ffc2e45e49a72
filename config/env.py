from __future__ import annotations

import os
import re


def parse_id_set(raw: str | None) -> set[int]:
    if not raw:
        return set()
    out: set[int] = set()
    for tok in re.split(r"[\s,;]+", raw.strip()):
        if not tok:
            continue
        if re.fullmatch(r"\d{8,22}", tok):
            out.add(int(tok))
    return out


def parse_str_set(raw: str | None) -> set[str]:
    if not raw:
        return set()
    return {tok.strip().lower() for tok in re.split(r"[\s,;]+", raw) if tok.strip()}


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip() == "1"


def env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        print(f"[CFG] invalid {name}={raw!r}; falling back to {default}")
        return default
    if value < minimum:
        print(f"[CFG] {name}={value} is below {minimum}; falling back to {default}")
        return default
    return value


def parse_workflow_kinds(raw: str | None, known: tuple[str, ...]) -> list[str]:
    """Ordered, de-duplicated workflow names from a comma/space separated list."""
    out: list[str] = []
    for tok in re.split(r"[\s,;]+", (raw or "").strip().lower()):
        if not tok:
            continue
        if tok not in known:
            print(f"[CFG] ignoring unknown workflow kind {tok!r}")
            continue
        if tok not in out:
            out.append(tok)
    return out
