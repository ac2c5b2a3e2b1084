"""Streaming NDJSON ingestion of dnstap envelopes.

Each non-blank line is one dnstap frame in its proto3 JSON mapping.
Lines are read lazily so large captures never sit in memory.
"""
from __future__ import annotations

import json
import os
import sys
import typing as t

from .envelope import DnstapEnvelope, EnvelopeError, envelope_from_dict


def parse_line(line: str) -> DnstapEnvelope:
    try:
        obj = json.loads(line)
    except json.JSONDecodeError as e:
        raise EnvelopeError(f"invalid JSON: {e}") from e
    return envelope_from_dict(obj)


def iter_lines(stream: t.TextIO) -> t.Iterator[t.Tuple[int, t.Union[DnstapEnvelope, EnvelopeError]]]:
    """Yield (line_no, envelope) or (line_no, EnvelopeError) per non-blank line."""
    for line_no, line in enumerate(stream, start=1):
        if not line.strip():
            continue
        try:
            yield line_no, parse_line(line)
        except EnvelopeError as e:
            yield line_no, e


def iter_envelopes(path: t.Optional[str]):
    """Like iter_lines over a file path; None or "-" reads stdin."""
    if path in (None, "-"):
        yield from iter_lines(sys.stdin)
        return
    if not os.path.exists(path):
        raise RuntimeError(f"input file not found: {path}")
    with open(path, "r", encoding="utf-8") as fh:
        yield from iter_lines(fh)
