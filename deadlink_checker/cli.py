"""
Command-line interface for the Dead Link Checker.

Checks the URLs given as arguments and/or read from a file, and prints a
table (or JSON) with the verdict for each of them.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List

from rich.console import Console
from rich.table import Table

from deadlink_checker.config.pydantic_config import (
    ConfigurationManager,
    create_sample_config,
)
from deadlink_checker.core.checker import DeadLinkChecker
from deadlink_checker.core.data_models import LinkStatus, Verdict
from deadlink_checker.utils.error_handler import (
    ConfigurationError,
    TransportUnavailableError,
)
from deadlink_checker.utils.logging_setup import setup_logging

EXIT_OK = 0
EXIT_DEAD_LINKS = 1
EXIT_USAGE_ERROR = 2

STATUS_STYLES = {
    LinkStatus.ALIVE: "green",
    LinkStatus.DEAD: "bold red",
    LinkStatus.UNCERTAIN: "yellow",
}


class CLIInterface:
    """Command line interface for checking links."""

    def __init__(self, console: Console = None):
        self.parser = self._create_parser()
        self.console = console or Console()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        parser = argparse.ArgumentParser(
            prog="deadlink-checker",
            description="Dead Link Checker - find dead HTTP(S), FTP, RTSP and MMS links",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  deadlink-checker https://example.com/page http://example.org/missing
  deadlink-checker --file urls.txt --json
  deadlink-checker --file urls.txt --no-queue --header-timeout 10
  deadlink-checker --create-config deadlink_config.toml

Exit codes:
  0  no dead links
  1  at least one dead link
  2  usage or configuration error
""",
        )

        parser.add_argument("urls", nargs="*", metavar="URL", help="URLs to check")
        parser.add_argument(
            "--file",
            "-f",
            help="Read URLs from a file, one per line (# starts a comment)",
        )
        parser.add_argument(
            "--config", "-c", help="Configuration file (TOML or JSON)"
        )
        parser.add_argument(
            "--json", action="store_true", help="Print results as JSON"
        )
        parser.add_argument(
            "--header-timeout",
            type=int,
            help="Timeout in seconds for header-only requests",
        )
        parser.add_argument(
            "--body-timeout",
            type=int,
            help="Timeout in seconds for full-body requests",
        )
        parser.add_argument(
            "--no-queue",
            action="store_true",
            help="Send every request at once instead of in per-host waves",
        )
        parser.add_argument("--user-agent", help="User-Agent header to send")
        parser.add_argument("--socks5-host", help="SOCKS5 proxy host for onion URLs")
        parser.add_argument(
            "--socks5-port", type=int, help="SOCKS5 proxy port for onion URLs"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Log every request"
        )
        parser.add_argument(
            "--log-file", help="Also write the log to this file"
        )
        parser.add_argument(
            "--create-config",
            metavar="PATH",
            help="Write a sample configuration file (.toml or .json) and exit",
        )

        return parser

    def parse_args(self, args=None) -> argparse.Namespace:
        """Parse command line arguments."""
        return self.parser.parse_args(args)

    def collect_urls(self, args: argparse.Namespace) -> List[str]:
        """
        Gather URLs from the command line and the optional input file.

        Raises:
            ConfigurationError: If the input file cannot be read
        """
        urls = list(args.urls)
        if args.file:
            try:
                text = Path(args.file).read_text(encoding="utf-8")
            except OSError as e:
                raise ConfigurationError(f"Cannot read URL file {args.file}: {e}") from e
            for line in text.splitlines():
                line = line.strip()
                if line and not line.startswith("#"):
                    urls.append(line)
        return urls

    def load_configuration(self, args: argparse.Namespace) -> ConfigurationManager:
        """Load the configuration file and apply command-line overrides."""
        manager = ConfigurationManager(Path(args.config) if args.config else None)
        manager.update_from_cli_args(
            {
                "header_timeout": args.header_timeout,
                "body_timeout": args.body_timeout,
                "user_agent": args.user_agent,
                "socks5_host": args.socks5_host,
                "socks5_port": args.socks5_port,
                "queued_testing": False if args.no_queue else None,
                "verbose": True if args.verbose else None,
            }
        )
        return manager

    def _handle_create_config(self, path: str) -> int:
        output_path = Path(path)
        file_format = "json" if output_path.suffix.lower() == ".json" else "toml"
        try:
            create_sample_config(output_path, file_format)
        except (OSError, ConfigurationError) as e:
            print(f"Error creating configuration file: {e}", file=sys.stderr)
            return EXIT_USAGE_ERROR
        print(f"Created configuration file: {output_path}")
        return EXIT_OK

    def print_json(self, verdicts: dict, errors: dict) -> None:
        output = {
            url: {
                "dead": verdict.is_dead,
                "status": verdict.status.value,
                "reason": verdict.reason or errors.get(url),
            }
            for url, verdict in verdicts.items()
        }
        self.console.print_json(json.dumps(output))

    def print_table(self, verdicts: dict) -> None:
        table = Table(title="Link Check Results")
        table.add_column("URL", overflow="fold")
        table.add_column("Status")
        table.add_column("Reason", overflow="fold")

        for url, verdict in verdicts.items():
            style = STATUS_STYLES[verdict.status]
            table.add_row(
                url,
                f"[{style}]{verdict.status.value}[/{style}]",
                verdict.reason or "",
            )

        self.console.print(table)

    def run(self, args=None) -> int:
        """Execute CLI interface."""
        parsed_args = self.parse_args(args)

        if parsed_args.create_config:
            return self._handle_create_config(parsed_args.create_config)

        setup_logging(parsed_args.verbose, parsed_args.log_file)
        logger = logging.getLogger(__name__)

        try:
            urls = self.collect_urls(parsed_args)
            if not urls:
                self.parser.print_usage(sys.stderr)
                print("Error: no URLs given", file=sys.stderr)
                return EXIT_USAGE_ERROR

            config = self.load_configuration(parsed_args).config
            checker = DeadLinkChecker(config)
            verdicts = checker.check_links(urls)

        except ConfigurationError as e:
            print(f"Configuration Error: {e}", file=sys.stderr)
            return EXIT_USAGE_ERROR
        except TransportUnavailableError as e:
            logger.error(f"Transport unavailable: {e}")
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_USAGE_ERROR

        if parsed_args.json:
            self.print_json(verdicts, checker.get_errors())
        else:
            self.print_table(verdicts)

        if any(verdict.status is LinkStatus.DEAD for verdict in verdicts.values()):
            return EXIT_DEAD_LINKS
        return EXIT_OK


def main(args=None):
    """Main entry point for the CLI."""
    cli = CLIInterface()
    return cli.run(args)


if __name__ == "__main__":
    sys.exit(main())
