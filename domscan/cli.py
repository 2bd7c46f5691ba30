#!/usr/bin/env python3
"""
domscan CLI - dynamic DOM XSS scanner.

Usage:
    domscan <url> [options]

Examples:
    domscan "https://example.com/page?q=test"
    domscan "https://example.com/#/search?ref=home" -g -G --no-headless -i
"""

import asyncio
import logging
import sys
import time

import click
from rich.console import Console
from rich.panel import Panel

from domscan import __version__
from domscan.config import DomscanConfig, parse_key_value_pairs
from domscan.exceptions import ConfigurationError, PayloadCorpusError
from domscan.findings import FindingStore
from domscan.reporter import ConsoleReporter, JSONReporter
from domscan.scanner import run_scan, wait_for_enter
from domscan.utils.logger import configure_logging

console = Console()
logger = logging.getLogger("domscan.cli")

EXIT_CLEAN = 0
EXIT_FINDINGS = 1
EXIT_CONFIG_ERROR = 2


def print_banner():
    """Print the domscan banner."""
    banner = r"""
     _
  __| | ___  _ __ ___  ___  ___ __ _ _ __
 / _` |/ _ \| '_ ` _ \/ __|/ __/ _` | '_ \
| (_| | (_) | | | | | \__ \ (_| (_| | | | |
 \__,_|\___/|_| |_| |_|___/\___\__,_|_| |_|
    """
    console.print(Panel(banner, title=f"[bold cyan]domscan v{__version__}[/]", subtitle="DOM XSS Scanner"))


def build_config(
    config_file,
    verbose,
    headless,
    guess_parameters,
    guess_parameters_extended,
    throttle,
    user_agent,
    exclude_from_console,
    proxy,
    cookies,
    interactive,
    excluded_parameters,
    local_storage,
    manual_login,
    no_sandbox,
    payloads_file,
    wordlist_file,
) -> DomscanConfig:
    """Merge CLI options over the (optional) config file."""
    config = DomscanConfig.from_file(config_file) if config_file else DomscanConfig()
    scan, browser = config.scan, config.browser

    scan.verbose = scan.verbose or verbose
    scan.guess_parameters = scan.guess_parameters or guess_parameters
    scan.guess_parameters_extended = scan.guess_parameters_extended or guess_parameters_extended
    scan.interactive = scan.interactive or interactive
    scan.excluded_parameters |= set(excluded_parameters)
    scan.excluded_console_substrings |= set(exclude_from_console)
    if payloads_file:
        scan.payloads_file = payloads_file
    if wordlist_file:
        scan.wordlist_file = wordlist_file

    if headless is not None:
        browser.headless = headless
    browser.throttle = browser.throttle or throttle
    browser.no_sandbox = browser.no_sandbox or no_sandbox
    browser.manual_login = browser.manual_login or manual_login
    if user_agent:
        browser.user_agent = user_agent
    if proxy:
        browser.proxy = proxy
    browser.cookies.update(parse_key_value_pairs(cookies, "cookie"))
    browser.local_storage.update(parse_key_value_pairs(local_storage, "localStorage entry"))

    config.validate()
    return config


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("url")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--headless/--no-headless", default=None, help="Open browser in headless mode (default: headless)")
@click.option("-g", "--guess-parameters", is_flag=True,
              help="Guess parameters from URLSearchParams calls and input field names")
@click.option("-G", "--guess-parameters-extended", is_flag=True,
              help="Guess parameters from variable declarations in JS code and a wordlist")
@click.option("-t", "--throttle", is_flag=True, help="Throttle connection to 1 MBit/s")
@click.option("-u", "--user-agent", help="Specify user agent")
@click.option("--exclude-from-console", multiple=True, help="Ignore console messages containing this string")
@click.option("-p", "--proxy", help="HTTP proxy (also disables certificate validation)")
@click.option("-c", "--cookie", "cookies", multiple=True, help="Cookie as name=value (repeatable)")
@click.option("-i", "--interactive", is_flag=True, help="Pause on each payload and wait for user input")
@click.option("--excluded-parameter", "excluded_parameters", multiple=True,
              help="Exclude parameter from scan (repeatable)")
@click.option("-l", "--local-storage", multiple=True, help="localStorage entry as key=value (repeatable)")
@click.option("-m", "--manual-login", is_flag=True,
              help="Interactive browser session before the scan, e.g. to log in. Requires --no-headless")
@click.option("--no-sandbox", is_flag=True, help="Launch Chromium without sandbox")
@click.option("--payloads", "payloads_file", type=click.Path(exists=True, dir_okay=False),
              help="Payload corpus (JSON list of MARKER templates)")
@click.option("--wordlist", "wordlist_file", type=click.Path(exists=True, dir_okay=False),
              help="Parameter name wordlist for extended guessing")
@click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False),
              help="JSON config file")
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Write JSON report to file")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Write structured JSON-lines log to file")
@click.version_option(version=__version__)
def main(url, output, log_file, **options):
    """Scan URL for DOM-based XSS."""
    print_banner()

    try:
        config = build_config(**options)
    except ConfigurationError as e:
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(EXIT_CONFIG_ERROR)

    configure_logging(verbose=config.scan.verbose, log_file=log_file, console=console)
    logger.debug("Options: %s", config.to_dict())

    store = FindingStore()
    start = time.time()
    try:
        asyncio.run(run_scan(url, config, store=store, wait_for_continue=lambda: wait_for_enter(console)))
    except (ConfigurationError, PayloadCorpusError) as e:
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(EXIT_CONFIG_ERROR)
    except KeyboardInterrupt:
        logger.warning("Scan aborted, reporting findings collected so far")
    except Exception as e:
        logger.critical("Scan stopped: %s", e)

    ConsoleReporter(console).render(store)

    if output:
        reporter = JSONReporter(store)
        reporter.set_metadata(target=url, scan_time=time.time() - start, scanner_version=__version__)
        reporter.save(output)
        console.print(f"[green][+] Report written to {output}[/]")

    sys.exit(EXIT_FINDINGS if store else EXIT_CLEAN)


if __name__ == "__main__":
    main()
