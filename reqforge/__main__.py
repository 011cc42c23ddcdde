"""reqforge main entry point.

Ties together the CLI, template, and engine modules: build one request from
the template and either print it or send it.
"""

import logging
import sys

import requests
import urllib3

from reqforge.cli import build_template, parse_cli
from reqforge.engine import format_request, print_report, send_request
from reqforge.errors import RequestTemplateError
from reqforge.template import materialize


def main(argv: list[str] | None = None) -> int:
    """Run the reqforge tool.

    Args:
        argv: Optional argument list (defaults to sys.argv).

    Returns:
        Exit code (0 = success, 2 = error).
    """
    args = parse_cli(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    template = build_template(args)

    # --- Build the request ---
    if args.template_file:
        print(f"[*] Loading request template from: {args.template_file}", file=sys.stderr)
    try:
        request = materialize(template, args.placeholder, args.value)
    except RequestTemplateError as exc:
        print(f"Error building request: {exc}", file=sys.stderr)
        return 2

    if not args.send:
        sys.stdout.write(format_request(request))
        return 0

    # --- Send ---
    if args.insecure:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    print(f"[*] Sending {request.method} {request.url.url}", file=sys.stderr)
    if args.proxy:
        print(f"    Proxy  : {args.proxy}", file=sys.stderr)

    try:
        response = send_request(
            request,
            proxy=args.proxy,
            timeout=args.timeout,
            verify=not args.insecure,
        )
    except requests.RequestException as exc:
        print(f"Error sending request: {exc}", file=sys.stderr)
        return 2

    # --- Report ---
    print_report(response)

    return 0


if __name__ == "__main__":
    sys.exit(main())
