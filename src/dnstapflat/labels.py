"""Hierarchical domain labels (tld, 2ld, 3ld, 4ld) from a query name."""
from __future__ import annotations

# depth counted from the tail, including the empty root label
LABEL_DEPTHS = {
    2: "tld",
    3: "2ld",
    4: "3ld",
    5: "4ld",
}


def split_labels(name: str) -> list[str]:
    """Split a presentation-format name on unescaped dots.

    Escapes stay inside their label: "a\\.b.com." -> ["a\\.b", "com", ""].
    """
    labels = []
    cur = []
    i = 0
    while i < len(name):
        c = name[i]
        if c == "\\" and i + 1 < len(name):
            cur.append(name[i:i + 2])
            i += 2
            continue
        if c == ".":
            labels.append("".join(cur))
            cur = []
        else:
            cur.append(c)
        i += 1
    labels.append("".join(cur))
    return labels


def derive_labels(qname: str) -> dict[str, str]:
    """Return {"tld": ..., "2ld": ..., "3ld": ..., "4ld": ...} for `qname`.

    "www.example.com." gives tld "com", 2ld "example.com", 3ld
    "www.example.com". When the name is too short for a depth the whole
    original name is used for that key (so "com." has 3ld "com.").
    """
    labels = split_labels(qname)
    n = len(labels)
    out = {}
    for depth, key in LABEL_DEPTHS.items():
        if n - depth >= 0:
            out[key] = ".".join(labels[n - depth:n - 1])
        else:
            out[key] = qname
    return out
