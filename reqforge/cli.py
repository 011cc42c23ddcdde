"""Command-line interface and option handling for reqforge."""

import argparse
import os
import sys

from reqforge import __version__
from reqforge.headers import HeaderSet
from reqforge.template import RequestTemplate


class HeaderDirectiveAction(argparse.Action):
    """Collects repeated ``-H`` options into a single HeaderSet."""

    def __call__(self, parser, namespace, values, option_string=None):
        header_set = getattr(namespace, self.dest, None)
        if header_set is None:
            header_set = HeaderSet()
            setattr(namespace, self.dest, header_set)
        header_set.set_directive(values)


class DeprecatedMethodAction(argparse.Action):
    """Stores the method for the old ``--request`` spelling."""

    def __call__(self, parser, namespace, values, option_string=None):
        print(
            f"Flag {option_string} has been deprecated, use --method",
            file=sys.stderr,
        )
        setattr(namespace, self.dest, values)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser for the reqforge CLI."""
    parser = argparse.ArgumentParser(
        prog="reqforge",
        description=(
            "reqforge v{ver}: build an HTTP request from a template.\n\n"
            "Replaces the placeholder with the given value in the URL, method, "
            "body, headers and (optionally) a raw request template file, then "
            "prints the resulting request or sends it."
        ).format(ver=__version__),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  reqforge --value admin https://example.com/FUZZ\n"
            "  reqforge --value 42 --template-file request.txt "
            "https://example.com --send\n"
            "  reqforge --value x -H 'X-Id: FUZZ' -H User-Agent "
            "https://example.com/\n"
        ),
    )

    parser.add_argument(
        "url",
        help="Target URL. With --template-file only scheme and host are used.",
    )

    # request
    request = parser.add_argument_group("request options")
    request.add_argument(
        "-X",
        "--method",
        default="",
        metavar="METHOD",
        help="Use HTTP request METHOD.",
    )
    request.add_argument(
        "--request",
        dest="method",
        action=DeprecatedMethodAction,
        default="",
        metavar="METHOD",
        help=argparse.SUPPRESS,
    )
    request.add_argument(
        "-H",
        "--header",
        dest="headers",
        action=HeaderDirectiveAction,
        default=None,
        metavar='"NAME: VALUE"',
        help='Add "NAME: VALUE" as an HTTP request header, or remove NAME (repeatable).',
    )
    request.add_argument(
        "-d",
        "--data",
        default="",
        help="Transmit DATA in the HTTP request body.",
    )
    request.add_argument(
        "--template-file",
        default=None,
        metavar="FILE",
        help="Read the HTTP request from FILE.",
    )
    request.add_argument(
        "--force-chunked-encoding",
        action="store_true",
        help="Do not set the Content-Length HTTP header and use chunked encoding.",
    )

    # template
    template = parser.add_argument_group("template options")
    template.add_argument(
        "--placeholder",
        default="FUZZ",
        help="Placeholder string replaced by the value (default: FUZZ).",
    )
    template.add_argument(
        "--value",
        required=True,
        help="Value inserted for the placeholder.",
    )

    # transport
    transport = parser.add_argument_group("transport options")
    transport.add_argument(
        "--send",
        action="store_true",
        help="Send the request instead of printing it.",
    )
    transport.add_argument(
        "--proxy",
        default=None,
        help="Route traffic through a proxy (e.g. http://127.0.0.1:8080).",
    )
    transport.add_argument(
        "--timeout",
        type=float,
        default=30,
        help="Request timeout in seconds (default: 30).",
    )
    transport.add_argument(
        "-k",
        "--insecure",
        action="store_true",
        help="Do not verify TLS certificates.",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def validate_args(args: argparse.Namespace) -> None:
    """Validate parsed CLI arguments.

    Raises:
        SystemExit: If the template file is missing or unreadable, or the
            placeholder is empty.
    """
    if args.template_file is not None:
        if not os.path.isfile(args.template_file):
            print(
                f"Error: Template file not found: '{args.template_file}'",
                file=sys.stderr,
            )
            sys.exit(1)

        if not os.access(args.template_file, os.R_OK):
            print(
                f"Error: Template file is not readable: '{args.template_file}'",
                file=sys.stderr,
            )
            sys.exit(1)

    if not args.placeholder:
        print("Error: Placeholder cannot be empty.", file=sys.stderr)
        sys.exit(1)


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse and validate command-line arguments.

    Args:
        argv: Optional list of arguments (defaults to sys.argv).

    Returns:
        Parsed and validated argument namespace.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.headers is None:
        args.headers = HeaderSet()
    validate_args(args)
    return args


def build_template(args: argparse.Namespace) -> RequestTemplate:
    """Create the request template described by the parsed arguments."""
    return RequestTemplate(
        url=args.url,
        method=args.method,
        body=args.data,
        headers=args.headers,
        template_file=args.template_file,
        force_chunked=args.force_chunked_encoding,
    )
