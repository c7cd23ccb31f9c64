"""Path-derived identity helpers.

Ids in a vault are relative paths: a folder's id is its path, a note's id is
its parent path joined with its name. All helpers here are pure.
"""

import re

_ILLEGAL_NAME_CHARS = re.compile(r'[<>:"/\\|?*]')


def normalize(path: str | None) -> str:
    """Convert backslashes to forward slashes and strip trailing slashes."""
    if not path:
        return ""
    return path.replace("\\", "/").rstrip("/")


def is_descendant_or_self(candidate: str, ancestor: str) -> bool:
    """True if ``candidate`` is ``ancestor`` or lives somewhere below it."""
    candidate = normalize(candidate)
    ancestor = normalize(ancestor)
    if not ancestor:
        return False
    return candidate == ancestor or candidate.startswith(ancestor + "/")


def rewrite_prefix(value: str, old_prefix: str, new_prefix: str) -> str:
    """Replace a leading path segment run, matching only at segment boundaries.

    ``rewrite_prefix("docs/a", "docs", "notes")`` gives ``"notes/a"`` while
    ``"docs-old/a"`` is returned untouched.
    """
    old_prefix = normalize(old_prefix)
    new_prefix = normalize(new_prefix)
    if not old_prefix or not is_descendant_or_self(value, old_prefix):
        return value
    suffix = normalize(value)[len(old_prefix) :].lstrip("/")
    return join(new_prefix, suffix)


def parent_of(item_id: str) -> str:
    """Parent folder path of an id, ``''`` for root entries."""
    item_id = normalize(item_id)
    head, sep, _ = item_id.rpartition("/")
    return head if sep else ""


def basename(item_id: str) -> str:
    """Last segment of an id."""
    return normalize(item_id).rpartition("/")[2]


def join(parent: str | None, name: str) -> str:
    """Join a parent path and a name, treating ``''`` as the vault root."""
    parent = normalize(parent)
    name = normalize(name)
    if not parent:
        return name
    if not name:
        return parent
    return f"{parent}/{name}"


def ancestors(path: str) -> list[str]:
    """Every folder path from the root down to ``path`` inclusive."""
    result: list[str] = []
    current = ""
    for part in normalize(path).split("/"):
        if not part:
            continue
        current = join(current, part)
        result.append(current)
    return result


def sanitize_name(title: str) -> str:
    """Strip characters that are illegal inside a path segment."""
    return _ILLEGAL_NAME_CHARS.sub("-", title.strip()).strip()
