import subprocess
import sys
from typing import List

from rich import print as rprint

LINT_PATHS = ["vaultview", "tests", "devtools"]


def _run(cmd: List[str]) -> int:
    rprint(f"[bold green]❯ {' '.join(cmd)}[/bold green]")
    try:
        subprocess.run(cmd, text=True, check=True)
    except subprocess.CalledProcessError as e:
        rprint(f"[bold red]Error: {e}[/bold red]")
        return 1
    finally:
        rprint()
    return 0


def lint_commands(check_only: bool) -> List[List[str]]:
    """
    Formatting and lint commands to run. With `check_only`, report problems without
    changing any files, as in CI.
    """
    if check_only:
        return [
            ["usort", "check", *LINT_PATHS],
            ["ruff", "check", *LINT_PATHS],
            ["black", "--check", *LINT_PATHS],
        ]
    return [
        ["usort", "format", *LINT_PATHS],
        ["ruff", "check", "--fix", *LINT_PATHS],
        ["black", *LINT_PATHS],
    ]


def main() -> int:
    check_only = "--check" in sys.argv[1:]
    rprint()

    errcount = sum(_run(cmd) for cmd in lint_commands(check_only))

    if errcount != 0:
        rprint(f"[bold red]✗ Lint failed with {errcount} errors.[/bold red]")
    else:
        rprint("[bold green]✔️ Lint passed![/bold green]")
    rprint()

    return errcount


if __name__ == "__main__":
    sys.exit(main())
