#!/usr/bin/env python3
"""Main CLI entry point for web-toolbox using Typer."""

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from typing_extensions import Annotated

from .. import __version__
from ..capture.errors import ConfigurationError
from .config import load_configuration, print_configuration, validate_configuration
from .runner import CLIRunner, ExitCode, setup_logging


app = typer.Typer(
    name="web-toolbox",
    help="A CLI tool for web automation: screenshots, PDFs, console logs and text extraction",
    add_completion=False,
    rich_markup_mode="rich"
)


def version_callback(value: bool):
    """Show version information."""
    if value:
        typer.echo(f"web-toolbox v{__version__}")
        raise typer.Exit()


@app.command()
def capture(
    target: Annotated[
        str,
        typer.Argument(help="URL or local HTML file to capture")
    ],

    # Actions
    consolelog: Annotated[
        bool,
        typer.Option("--consolelog", "-c", help="Capture console logs from the page")
    ] = False,

    screenshot: Annotated[
        bool,
        typer.Option("--screenshot", "-s", help="Take a screenshot of the page")
    ] = False,

    printtopdf: Annotated[
        bool,
        typer.Option("--printtopdf", "-p", help="Print the page to a PDF file")
    ] = False,

    body: Annotated[
        bool,
        typer.Option("--body", "-b", help="Get the body text of the page")
    ] = False,

    selector: Annotated[
        Optional[str],
        typer.Option("--gettextbycssselector", "-g", help="Get text by CSS selector")
    ] = None,

    # Timing
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", "-t", help="Timeout in seconds [default: 10]")
    ] = None,

    delay: Annotated[
        Optional[float],
        typer.Option("--delay", "-d", help="Delay in seconds to ensure rendering (timeout auto-adjusts if needed) [default: 2]")
    ] = None,

    # Browser
    remote_debugging_port: Annotated[
        Optional[str],
        typer.Option("--remote-debugging-port", "-r", help="Connect to existing Chrome with remote debugging (e.g., localhost:9222)")
    ] = None,

    headful: Annotated[
        bool,
        typer.Option("--headful", help="Launch a visible local browser")
    ] = False,

    # Script injection
    js: Annotated[
        Optional[str],
        typer.Option("--js", "-j", help="JavaScript to execute once after navigation and delay")
    ] = None,

    js_file: Annotated[
        Optional[Path],
        typer.Option("--js-file", "-f", help="File containing JavaScript to execute after navigation and delay")
    ] = None,

    # Output
    output_dir: Annotated[
        Optional[Path],
        typer.Option("--output-dir", "-o", help="Directory for screenshots and PDFs")
    ] = None,

    loglevel: Annotated[
        Optional[str],
        typer.Option("--loglevel", "-l", help="Set the logging level (debug, info, warn, error) [default: info]")
    ] = None,

    continue_on_error: Annotated[
        bool,
        typer.Option("--continue-on-error", help="Run remaining actions after one fails")
    ] = False,

    # Configuration
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", help="Path to a YAML or JSON configuration file")
    ] = None,

    print_config: Annotated[
        bool,
        typer.Option("--print-config", help="Print effective configuration and exit")
    ] = False,

    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit")
    ] = None,
):
    """
    An easy to use Swiss army knife for the web in the CLI.

    Examples:

        # Take a screenshot of a website
        web-toolbox --screenshot https://example.com

        # Extract all text from a page with debug logging
        web-toolbox --body --loglevel debug https://example.com

        # Get text by CSS selector from a local HTML file
        web-toolbox --gettextbycssselector "h1" ./index.html

        # Generate PDF and capture console logs
        web-toolbox --printtopdf --consolelog https://example.com

        # Use a large delay (timeout is auto-adjusted to 25 seconds)
        web-toolbox --screenshot --delay 15 https://slow-site.com

        # Scroll through an infinite feed before taking the screenshot
        web-toolbox --screenshot --js-file examples/scroll-infinite.js https://example.com

        # Connect to an existing Chrome with remote debugging
        web-toolbox --remote-debugging-port localhost:9222 --screenshot https://example.com
    """

    # Build CLI overrides, only including values that were explicitly provided
    cli_overrides: Dict[str, Any] = {"target": target}

    browser_config: Dict[str, Any] = {}
    if timeout is not None:
        browser_config["timeout"] = timeout
    if delay is not None:
        browser_config["delay"] = delay
    if remote_debugging_port is not None:
        browser_config["remote_debugging_port"] = remote_debugging_port
    if headful:
        browser_config["headful"] = True
    if browser_config:
        cli_overrides["browser"] = browser_config

    action_config: Dict[str, Any] = {}
    if consolelog:
        action_config["console_log"] = True
    if screenshot:
        action_config["screenshot"] = True
    if printtopdf:
        action_config["pdf"] = True
    if body:
        action_config["body"] = True
    if selector:
        action_config["selector"] = selector
    if continue_on_error:
        action_config["continue_on_error"] = True
    if action_config:
        cli_overrides["actions"] = action_config

    script_config: Dict[str, Any] = {}
    if js is not None:
        script_config["js"] = js
    if js_file is not None:
        script_config["js_file"] = js_file
    if script_config:
        cli_overrides["script"] = script_config

    output_config: Dict[str, Any] = {}
    if output_dir is not None:
        output_config["output_dir"] = output_dir
    if loglevel is not None:
        output_config["log_level"] = loglevel
    if output_config:
        cli_overrides["output"] = output_config

    try:
        full_config = load_configuration(
            config_file=config_file,
            cli_overrides=cli_overrides,
            search_paths=[Path.cwd()]
        )
    except ConfigurationError as e:
        typer.echo(f"❌ Configuration error: {e.message}", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)

    if print_config:
        typer.echo("# Effective Configuration")
        typer.echo("# Loaded from: " + " -> ".join(full_config.loaded_from))
        typer.echo(print_configuration(full_config, "yaml"))
        raise typer.Exit()

    setup_logging(full_config.output.log_level)

    validation_errors = validate_configuration(full_config)
    if validation_errors:
        for error in validation_errors:
            typer.echo(f"❌ Configuration error: {error}", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)

    runner = CLIRunner(full_config)
    exit_code = asyncio.run(runner.run())
    if exit_code is not ExitCode.SUCCESS:
        raise typer.Exit(code=exit_code.value)


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
