"""
Dependency Manifest Helpers
===========================
Read and rewrite version pins in requirements-style manifests
(requirements*.txt, pyproject.toml dependency strings, setup.cfg).

Only "name==X", "name>=X" and "name~=X" pins are understood; anything
fancier is left alone.
"""
import re
from typing import Optional, Tuple

MANIFEST_CANDIDATES = ("requirements.txt", "pyproject.toml", "setup.cfg")

_DESCRIPTION_RE = re.compile(r"^Update (\S+) from (\S+) to (\S+)$")


def _pin_re(name: str) -> re.Pattern:
    # Match the distribution name regardless of -, _ or . separators
    parts = [re.escape(p) for p in re.split(r"[-_.]+", name) if p]
    name_pattern = r"[-_.]+".join(parts)
    return re.compile(
        rf"(?<![\w.-])({name_pattern})(\[[^\]]*\])?(\s*)(==|>=|~=)(\s*)([\w.+!-]+)",
        re.I,
    )


def dependency_description(name: str, current: str, latest: str) -> str:
    return f"Update {name} from {current} to {latest}"


def parse_dependency_description(description: str) -> Optional[Tuple[str, str, str]]:
    """Inverse of dependency_description: (name, current, latest) or None."""
    match = _DESCRIPTION_RE.match(description.strip())
    if not match:
        return None
    return match.group(1), match.group(2), match.group(3)


def find_pin(content: str, name: str) -> Optional[str]:
    """Version the manifest pins for `name`, or None."""
    match = _pin_re(name).search(content)
    return match.group(6) if match else None


def mentions(content: str, name: str) -> bool:
    """True if the manifest declares `name` at all (pinned or not)."""
    parts = [re.escape(p) for p in re.split(r"[-_.]+", name) if p]
    pattern = re.compile(rf"(?<![\w.-])({r'[-_.]+'.join(parts)})(?![\w.-])", re.I)
    return bool(pattern.search(content))


def pins_version(content: str, name: str, version: str) -> bool:
    return find_pin(content, name) == version


def bump_pin(content: str, name: str, current: str, latest: str) -> str:
    """Replace a pin of `current` with `latest`; content is returned unchanged otherwise."""
    pattern = _pin_re(name)

    def _replace(match: re.Match) -> str:
        if match.group(6) != current:
            return match.group(0)
        return match.group(0)[: match.start(6) - match.start(0)] + latest

    return pattern.sub(_replace, content)
