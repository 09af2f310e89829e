#!/usr/bin/env python3
"""
iso8583_parse.py - Decode an ISO 8583 message from the command line

Usage:
    python tools/iso8583_parse.py -m 0200303800...
    python tools/iso8583_parse.py -m "<hex>" --including-header-length
    python tools/iso8583_parse.py -m "<hex>" --ltv-private --json
    python tools/iso8583_parse.py --catalog vendor_fields.yaml

Without -m the message is read from stdin after a prompt.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add tools to path
sys.path.insert(0, str(Path(__file__).parent))
from iso_decoder import DecodeMode, MessageDecoder
from iso_errors import DecodeError
from iso_fields import load_catalog


def read_message_from_stdin() -> str:
    """Prompt for a message and return it without the line ending."""
    print("Please enter a message to parse: ", end='', flush=True)
    return sys.stdin.readline().rstrip('\r\n')


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Decode an ISO 8583 message given as hex digits'
    )
    parser.add_argument('-m', '--message',
                       help='Message hex (prompted for when omitted)')
    parser.add_argument('-i', '--including-header-length', action='store_true',
                       help='Message starts with a 2-byte length and 5-byte header')
    parser.add_argument('-t', '--tlv-private', action='store_true',
                       help='Decode fields 48/121 as private TLV')
    parser.add_argument('-l', '--ltv-private', action='store_true',
                       help='Decode fields 48/121 as private LTV')
    parser.add_argument('--catalog', help='YAML field catalog to use instead of the built-in one')
    parser.add_argument('--json', action='store_true',
                       help='Output result as JSON')
    parser.add_argument('-v', '--verbose', action='store_true',
                       help='Log decode steps to stderr')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )

    catalog = None
    if args.catalog:
        try:
            catalog = load_catalog(args.catalog)
        except (OSError, ValueError) as e:
            print(f"Error loading catalog: {e}", file=sys.stderr)
            sys.exit(1)

    message = args.message if args.message is not None else read_message_from_stdin()

    mode = DecodeMode(
        include_header=args.including_header_length,
        private_tlv=args.tlv_private,
        private_ltv=args.ltv_private,
    )
    try:
        result = MessageDecoder(catalog).decode(message, mode)
    except DecodeError as e:
        print(f"Error parsing message: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        for line in result.render():
            print(line)

    sys.exit(0)


if __name__ == '__main__':
    main()
