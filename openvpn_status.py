#!/usr/bin/env python3

# Copyright 2011 VPAC <http://www.vpac.org>
# Copyright 2012-2019 Marcus Furlong <furlongm@gmail.com>
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, version 3 only.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>

import argparse
import logging
import sys
from contextlib import closing
from logging import error, info, warning

from maxminddb import InvalidDatabaseError

from ovpn_formatters import format_json, format_openmetrics
from ovpn_geoip import ClientLocator
from ovpn_server_config import ConfigError, load_config
from ovpn_status_parser import parse_status_file

__version__ = "0.1.0"

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARSE_ERRORS = 2

EPILOG = """\
examples:
  %(prog)s -f /etc/openvpn/server.conf
  %(prog)s -f /etc/openvpn/server.conf --format openmetrics
"""


class ArgumentParser(argparse.ArgumentParser):
    # exit code 2 is reserved for "output written, but some records failed"
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_FATAL, f"{self.prog}: error: {message}\n")


def build_arg_parser():
    parser = ArgumentParser(
        prog="openvpn-status-parser",
        description="Converts OpenVPN status files to JSON or OpenMetrics format",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-f",
        "--file",
        required=True,
        help="Path to the OpenVPN server config file",
    )
    parser.add_argument(
        "--format",
        default="json",
        choices=["json", "openmetrics"],
        help="Output format (default: json)",
    )
    parser.add_argument(
        "--indent",
        action="store_true",
        help="Pretty-print JSON output (json format only)",
    )
    parser.add_argument(
        "--geoip-data",
        help="GeoIP2/GeoLite2 City database used to locate client real addresses",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging verbosity on stderr (default: WARNING)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s version {__version__}",
    )
    return parser


def locate_clients(status, geoip_data):
    with closing(ClientLocator(geoip_data)) as locator:
        return locator.locate_clients(status)


def main(argv=None):
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s: %(message)s",
    )

    try:
        config = load_config(args.file)
    except ConfigError as e:
        error(f"failed to parse config file: {e}")
        return EXIT_FATAL

    info(
        f"Config file parsed: server_id={config.id}, "
        f"status={config.status_file}, version={int(config.status_version)}"
    )

    status, parse_errors = parse_status_file(config.status_file, config.status_version)
    if status is None:
        for e in parse_errors:
            error(str(e))
        error("failed to parse status file")
        return EXIT_FATAL

    if parse_errors:
        warning(f"encountered {len(parse_errors)} error(s) during parsing:")
        for e in parse_errors:
            warning(f"  {e}")

    if args.geoip_data:
        try:
            status = locate_clients(status, args.geoip_data)
        except (OSError, InvalidDatabaseError) as e:
            error(f"failed to open GeoIP data: {e}")
            return EXIT_FATAL

    status = status.with_server(config.server_info())

    try:
        if args.format == "openmetrics":
            output = format_openmetrics(status)
        else:
            output = format_json(status, indent=args.indent)
    except (TypeError, ValueError) as e:
        error(f"failed to format output: {e}")
        return EXIT_FATAL

    sys.stdout.write(output)

    if parse_errors:
        return EXIT_PARSE_ERRORS
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
