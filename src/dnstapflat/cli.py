"""CLI for dnstap-flat."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from .config import DEFAULT_IPV4_MASK, DEFAULT_IPV6_MASK, FlattenConfig
from .decoder import DecodeFailure
from .envelope import EnvelopeError
from .flatten import flatten_to_dict
from .ingest import iter_envelopes
from .logging_config import setup_logging
from . import __version__

EXIT_OK = 0
EXIT_INPUT = 1
EXIT_STRICT = 2


def build_parser():
    p = argparse.ArgumentParser(prog="dnstap-flat", description="Flatten dnstap envelopes into anonymized JSON records")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--log", default="INFO", help="Log level")
    sub = p.add_subparsers(dest="cmd")
    f = sub.add_parser("flatten", help="Flatten NDJSON dnstap envelopes to NDJSON records")
    f.add_argument("input", nargs="?", default=None, help="NDJSON file of envelopes (default: stdin, or '-')")
    f.add_argument("--out", help="Write records to FILE instead of stdout", metavar="FILE")
    f.add_argument("--ipv4-mask", type=int, default=None, help=f"IPv4 prefix length kept when anonymizing (default: {DEFAULT_IPV4_MASK})")
    f.add_argument("--ipv6-mask", type=int, default=None, help=f"IPv6 prefix length kept when anonymizing (default: {DEFAULT_IPV6_MASK})")
    f.add_argument("--identity", default=None, help="Identity used when an envelope carries none (default: hostname)")
    f.add_argument("--strict", action="store_true", help="Stop at the first envelope that cannot be flattened")
    return p


def _dump(record: dict) -> str:
    return json.dumps(record, separators=(",", ":"), ensure_ascii=False)


def run_flatten(args, out) -> int:
    log = logging.getLogger("dnstapflat.cli")
    try:
        config = FlattenConfig.from_args(args)
    except ValueError as e:
        log.error("invalid configuration: %s", e)
        return EXIT_INPUT

    seen = written = skipped = 0
    try:
        for line_no, item in iter_envelopes(args.input):
            seen += 1
            try:
                if isinstance(item, EnvelopeError):
                    raise item
                record = flatten_to_dict(item, config)
            except (EnvelopeError, DecodeFailure) as e:
                if args.strict:
                    log.error("line %d: %s", line_no, e)
                    return EXIT_STRICT
                log.warning("line %d: skipped: %s", line_no, e)
                skipped += 1
                continue
            out.write(_dump(record) + "\n")
            written += 1
    except RuntimeError as e:
        log.error("%s", e)
        return EXIT_INPUT
    finally:
        log.info("envelopes=%d records=%d skipped=%d", seen, written, skipped)
    return EXIT_OK


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log)
    if args.cmd != "flatten":
        parser.print_help()
        return EXIT_INPUT
    if args.input not in (None, "-") and not os.path.exists(args.input):
        logging.getLogger("dnstapflat.cli").error("input file not found: %s", args.input)
        return EXIT_INPUT
    if args.out:
        with open(args.out, "w", encoding="utf-8") as fh:
            return run_flatten(args, fh)
    code = run_flatten(args, sys.stdout)
    sys.stdout.flush()
    return code


if __name__ == "__main__":
    sys.exit(main())
