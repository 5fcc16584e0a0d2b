"""
Command-line entry point.

Usage:
  wacz-preparator --username USER --password PASS --collection-id 12345 --output-path ./out

Credentials can also be provided through the ARCHIVE_IT_USERNAME and
ARCHIVE_IT_PASSWORD environment variables.

Exit codes: 0 on success, 1 if the preparation failed, 2 on invalid options.
"""

import argparse
import os
import sys
from typing import List, Optional

from . import __version__, __description__
from .core.config import PreparatorConfig, DEFAULT_CONCURRENCY
from .core.controller import PreparatorController
from .core.errors import ConfigError
from .core.logger import initialize_logging, parse_level


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='wacz-preparator', description=__description__)
    parser.add_argument('-v', '--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--username', default=os.getenv('ARCHIVE_IT_USERNAME'),
                        help='Archive-It API username (default: $ARCHIVE_IT_USERNAME)')
    parser.add_argument('--password', default=os.getenv('ARCHIVE_IT_PASSWORD'),
                        help='Archive-It API password (default: $ARCHIVE_IT_PASSWORD)')
    parser.add_argument('--collection-id', required=True, help='Id of the Archive-It collection to prepare')
    parser.add_argument('--output-path', default=None,
                        help='Folder for collection files and the final WACZ (default: current folder)')
    parser.add_argument('--concurrency', default=DEFAULT_CONCURRENCY,
                        help=f'Maximum number of requests run in parallel (default: {DEFAULT_CONCURRENCY})')
    parser.add_argument('--signing-url', default=None,
                        help='authsign-compatible endpoint used to sign the WACZ')
    parser.add_argument('--signing-token', default=None, help='Access token for --signing-url')
    parser.add_argument('--capture-format', default='warc.gz', choices=['warc.gz', 'warc'],
                        help='Extension of the capture files (default: warc.gz)')
    parser.add_argument('--timeout', default=None, help='Per-request timeout in seconds (default: none)')
    parser.add_argument('--log-level', default=os.getenv('LOG_LEVEL', 'info'),
                        help='trace, debug, info, warn or error (default: info)')
    parser.add_argument('--log-dir', default=None, help='Also write rotating log files to this folder')
    parser.add_argument('--clear', action='store_true',
                        help='Delete the collection folder once the WACZ is ready')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        level = parse_level(args.log_level)
    except ValueError as e:
        parser.error(str(e))

    logger = initialize_logging(args.log_dir, level)

    try:
        config = PreparatorConfig.from_options(
            username=args.username,
            password=args.password,
            collection_id=args.collection_id,
            output_path=args.output_path,
            concurrency=args.concurrency,
            signing_url=args.signing_url,
            signing_token=args.signing_token,
            capture_format=args.capture_format,
            request_timeout=args.timeout,
            clear_working_dir=args.clear,
        )
    except ConfigError as e:
        for error in e.errors:
            logger.error(error)
        return 2

    result = PreparatorController(config, logger=logger).process()
    return 0 if result.success else 1


if __name__ == '__main__':
    sys.exit(main())
