"""Discovery of common payload prefixes in transaction payloads."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

MAX_SAMPLE_TXIDS = 5
MAX_SAMPLE_PAYLOADS = 3
REPORT_SAMPLES = 2
HEX_DISPLAY_LIMIT = 128
TEXT_DISPLAY_LIMIT = 200
BASE_PRIORITY = 300

_ESCAPES = {
    "\t": "\\t",
    "\r": "\\r",
    "\n": "\\n",
    "'": "\\'",
    '"': '\\"',
    "\\": "\\\\",
}


@dataclass
class PayloadPattern:
    """A payload prefix shared by a number of transactions."""

    prefix: str
    is_text: bool
    count: int
    sample_txids: list[str] = field(default_factory=list)
    sample_payloads: list[bytes] = field(default_factory=list)


def escape_default(text: str) -> str:
    """Escape quotes, backslashes and control characters; non-ASCII becomes \\u{hex}."""
    parts = []
    for ch in text:
        escaped = _ESCAPES.get(ch)
        if escaped is not None:
            parts.append(escaped)
        elif 0x20 <= ord(ch) <= 0x7E:
            parts.append(ch)
        else:
            parts.append(f"\\u{{{ord(ch):x}}}")
    return "".join(parts)


def _is_control(ch: str) -> bool:
    code = ord(ch)
    return code < 0x20 or 0x7F <= code <= 0x9F


def _as_text(payload: bytes) -> str | None:
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError:
        return None
    if all(not _is_control(c) or c in "\n\t" for c in text):
        return text
    return None


@dataclass
class _Group:
    txids: list[str] = field(default_factory=list)
    payloads: list[bytes] = field(default_factory=list)

    def add(self, txid: str, payload: bytes) -> None:
        self.txids.append(txid)
        if len(self.payloads) < MAX_SAMPLE_PAYLOADS:
            self.payloads.append(payload)


def analyze_payloads(
    rows: Iterable[tuple[bytes, bytes]],
    text_prefix_length: int = 20,
    hex_prefix_length: int = 8,
    min_count: int = 10,
) -> list[PayloadPattern]:
    """Group (txid, payload) rows by prefix and return patterns seen at least min_count times, most frequent first."""
    text_groups: dict[str, _Group] = {}
    hex_groups: dict[str, _Group] = {}

    for txid, payload in rows:
        payload = bytes(payload)
        txid_hex = bytes(txid).hex()
        text = _as_text(payload)
        if text is not None:
            group = text_groups.setdefault(text[:text_prefix_length], _Group())
        else:
            group = hex_groups.setdefault(payload.hex()[:hex_prefix_length], _Group())
        group.add(txid_hex, payload)

    patterns = [
        PayloadPattern(
            prefix=prefix,
            is_text=is_text,
            count=len(group.txids),
            sample_txids=group.txids[:MAX_SAMPLE_TXIDS],
            sample_payloads=group.payloads,
        )
        for groups, is_text in ((text_groups, True), (hex_groups, False))
        for prefix, group in groups.items()
        if len(group.txids) >= min_count
    ]
    patterns.sort(key=lambda p: p.count, reverse=True)
    return patterns


def _decode_hex(text: str) -> bytes | None:
    try:
        return bytes.fromhex(text) if len(text) % 2 == 0 else None
    except ValueError:
        return None


def _pattern_section(number: int, pattern: PayloadPattern) -> list[str]:
    lines = [
        f"### Pattern #{number} - {pattern.count} occurrences\n",
        f"**Type**: {'Text (UTF-8)' if pattern.is_text else 'Binary (Hex)'}\n",
    ]
    if pattern.is_text:
        lines.append(f"**Prefix (text)**: `{pattern.prefix}`\n")
        lines.append(f"**Prefix (hex)**: `{pattern.prefix.encode('utf-8').hex()}`\n")
    else:
        lines.append(f"**Prefix (hex)**: `{pattern.prefix}`\n")
        decoded = _decode_hex(pattern.prefix)
        if decoded is not None:
            text = decoded.decode("utf-8", errors="replace")
            lines.append(f"**Prefix (text)**: `{escape_default(text)}`\n")

    if pattern.sample_payloads:
        lines.append("\n**Sample Payload(s)**:\n")
        for i, payload in enumerate(pattern.sample_payloads[:REPORT_SAMPLES], start=1):
            lines.append(f"\nSample {i}:\n")
            hex_str = payload.hex()
            if len(hex_str) > HEX_DISPLAY_LIMIT:
                hex_display = f"{hex_str[:HEX_DISPLAY_LIMIT]}... ({len(payload)} bytes total)"
            else:
                hex_display = hex_str
            lines.append(f"- Hex: `{hex_display}`\n")

            text = payload.decode("utf-8", errors="replace")
            text_bytes = len(text.encode("utf-8"))
            if text_bytes > TEXT_DISPLAY_LIMIT:
                text_display = f"{escape_default(text[:TEXT_DISPLAY_LIMIT])}... ({text_bytes} chars)"
            else:
                text_display = escape_default(text)
            lines.append(f"- Text: `{text_display}`\n")

    lines.append("\n**Sample Transaction IDs**:\n")
    lines.extend(f"- {txid}\n" for txid in pattern.sample_txids)
    lines.append("\n---\n\n")
    return lines


def generate_report(patterns: Sequence[PayloadPattern]) -> str:
    """Render the patterns as a Markdown report."""
    lines = [
        "# Payload Pattern Analysis Report\n\n",
        f"Total patterns found: {len(patterns)}\n\n",
        "## Patterns by Frequency\n\n",
    ]
    for number, pattern in enumerate(patterns, start=1):
        lines.extend(_pattern_section(number, pattern))
    return "".join(lines)


def generate_yaml_rules(patterns: Sequence[PayloadPattern]) -> str:
    """Render the patterns as disabled filter rules in the filter configuration format."""
    if len(patterns) > BASE_PRIORITY + 1:
        raise ValueError(f"Too many patterns for rule priorities: {len(patterns)}")
    lines = [
        "# Auto-generated filter rules from payload analysis\n",
        "# Review and customize before using in production\n\n",
        'version: "1.0"\n\n',
        "settings:\n",
        "  default_store_payload: false\n\n",
        "rules:\n",
    ]
    for idx, pattern in enumerate(patterns):
        tag_name = f"pattern_{idx + 1}"
        lines.extend([
            f"  # Pattern: {pattern.prefix} ({pattern.count} occurrences)\n",
            f"  - name: {tag_name}\n",
            f"    tag: {tag_name}\n",
            "    module: discovered\n",
            "    category: unknown\n",
            f"    priority: {BASE_PRIORITY - idx}\n",
            "    enabled: false  # Set to true after review\n",
            "    store_payload: true\n",
            "    conditions:\n",
            "      payload:\n",
        ])
        if pattern.is_text:
            lines.append(f'        - prefix: "{escape_default(pattern.prefix)}"\n')
        else:
            lines.append(f'        - prefix: "hex:{pattern.prefix}"\n')
        lines.append("\n")
    return "".join(lines)