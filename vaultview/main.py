"""
Main entry point for the vaultview command line.

Usage: `vaultview <command> [args] [key=value ...]`
"""

import sys
from pathlib import Path
from typing import List, Optional

from rich.text import Text

# Keeping initial imports/deps minimal.
from vaultview.config.logger import get_console, get_logger
from vaultview.config.settings import APP_NAME, LogLevel, update_global_settings
from vaultview.config.setup import setup
from vaultview.errors import is_fatal
from vaultview.version import get_version

log = get_logger(__name__)

APP_VERSION = f"{APP_NAME} {get_version()}"


def print_help():
    from vaultview.commands.command_registry import all_commands, command_usage
    from vaultview.config.text_styles import COLOR_HINT, COLOR_KEY

    console = get_console()
    console.print(f"{APP_VERSION}\n")
    console.print("Usage: vaultview <command> [args] [key=value ...]\n")
    for cmd in all_commands().values():
        console.print(Text(command_usage(cmd), style=COLOR_KEY))
        doc = (cmd.__doc__ or "").strip()
        if doc:
            console.print(Text("    " + " ".join(doc.split()), style=COLOR_HINT))
    console.print()


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv

    # Do our own arg parsing, since commands take free-form args and key=value options.
    if argv == ["--version"]:
        print(APP_VERSION)
        return 0

    import vaultview.commands  # noqa: F401
    from vaultview.commands.command_registry import run_command
    from vaultview.util.parse_key_vals import parse_args

    if not argv or argv == ["--help"] or argv[0] in ("-h", "help"):
        print_help()
        return 0
    if argv[0].startswith("-"):
        print(f"Unrecognized option: {argv[0]}", file=sys.stderr)
        return 2

    command, args = argv[0], argv[1:]
    positional, options = parse_args(args)

    log_level = options.pop("log_level", None)
    if log_level:
        try:
            level = LogLevel.parse(str(log_level))
        except ValueError as e:
            print(e, file=sys.stderr)
            return 2
        with update_global_settings() as settings:
            settings.console_log_level = level

    # Logs go under the vault's own dot directory.
    vault_dir = Path(str(options.get("vault") or ".")).expanduser().resolve()
    setup(vault_dir if vault_dir.is_dir() else None)

    try:
        run_command(command, positional, options)
    except Exception as e:
        if is_fatal(e):
            log.exception("Command failed: %s", e)
        else:
            log.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
