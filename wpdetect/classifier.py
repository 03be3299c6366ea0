"""
WordPress fingerprinting from a single HTML body.

The logic is:
- markers decide whether the page is WordPress at all (case-insensitive)
- version rules are tried in order, first valid version wins
- theme and plugins are pulled from asset paths independently of the version
"""

import re
from dataclasses import dataclass, field

from .settings import DEFAULT_CHECK_CONFIG

# (evidence name, lowercase substring)
MARKERS: list[tuple[str, str]] = [
    ("wp-content", "wp-content"),
    ("wp-includes", "wp-includes"),
    ("wp-login.php", "wp-login.php"),
    ("wp-admin", "wp-admin"),
    ("wp-json", "wp-json"),
    ("wp-emoji", "wp-emoji"),
    ("elementor", "elementor"),
]

# X.Y or X.Y.Z, X in 4..9, Y and Z in 0..99
VERSION_RE = re.compile(r"[4-9]\.\d{1,2}(\.\d{1,2})?")


@dataclass(frozen=True)
class VersionRule:
    label: str
    pattern: re.Pattern

    def extract(self, body: str) -> str | None:
        m = self.pattern.search(body)
        if m and is_valid_version(m.group(1)):
            return m.group(1)
        return None


VERSION_RULES: list[VersionRule] = [
    VersionRule(
        "meta generator",
        re.compile(r"""<meta\s+name=["']generator["']\s+content=["']WordPress\s+([0-9.]+)["']"""),
    ),
    VersionRule("wp-embed.min.js", re.compile(r"/wp-includes/js/wp-embed\.min\.js\?ver=([0-9.]+)")),
    VersionRule("wp-emoji-release.min.js", re.compile(r"wp-emoji-release\.min\.js\?ver=([0-9.]+)")),
    VersionRule("asset version", re.compile(r"\?ver=([0-9.]+)")),
    VersionRule(
        "elementor meta generator",
        re.compile(r"""<meta\s+name=["']generator["']\s+content=["']Elementor\s+([0-9.]+)["']"""),
    ),
]

THEME_RE = re.compile(r"/wp-content/themes/([^/\"'\s?#<>]+)")
PLUGIN_RE = re.compile(r"/wp-content/plugins/([^/\"'\s?#<>]+)")


@dataclass
class Evidence:
    """What the classifier found in a body."""
    markers: list[str] = field(default_factory=list)
    version: str | None = None
    version_source: str | None = None
    theme: str | None = None
    plugins: list[str] = field(default_factory=list)

    @property
    def is_wordpress(self) -> bool:
        return bool(self.markers)

    @property
    def provenance(self) -> str:
        joined = ", ".join(self.markers)
        if self.version_source:
            return f"{self.version_source}: {joined}"
        return joined


def is_valid_version(version: str) -> bool:
    return VERSION_RE.fullmatch(version) is not None


def find_markers(body: str) -> list[str]:
    lower = body.lower()
    return [name for name, needle in MARKERS if needle in lower]


def extract_version(body: str, rules: list[VersionRule] | None = None) -> tuple[str, str] | None:
    """
    Walk the rules in order and return (version, rule label) for the first
    rule that yields a version passing the format check.
    """
    for rule in rules or VERSION_RULES:
        version = rule.extract(body)
        if version is not None:
            return version, rule.label
    return None


def classify(body: str, unknown_version: str | None = None) -> Evidence:
    markers = find_markers(body)
    if not markers:
        return Evidence()

    evidence = Evidence(markers=markers)

    found = extract_version(body)
    if found is not None:
        evidence.version, evidence.version_source = found
    else:
        evidence.version = unknown_version or DEFAULT_CHECK_CONFIG.unknown_version

    m = THEME_RE.search(body)
    if m:
        evidence.theme = m.group(1)

    # dict keeps first-seen order while dropping repeats
    evidence.plugins = list(dict.fromkeys(PLUGIN_RE.findall(body)))
    return evidence
