import inspect
from typing import Any, Callable, Dict, List

from vaultview.config.logger import get_logger
from vaultview.errors import InvalidCommand, InvalidInput

log = get_logger(__name__)


CommandFunction = Callable[..., Any]

_commands: Dict[str, CommandFunction] = {}


def vault_command(func: CommandFunction) -> CommandFunction:
    _commands[func.__name__] = func
    return func


def all_commands() -> Dict[str, CommandFunction]:
    """
    All commands, sorted by name.
    """
    return dict(sorted(_commands.items()))


def look_up_command(name: str) -> CommandFunction:
    cmd = _commands.get(name.replace("-", "_"))
    if not cmd:
        raise InvalidCommand(f"Command `{name}` not found")
    return cmd


def command_usage(func: CommandFunction) -> str:
    params = []
    for param in inspect.signature(func).parameters.values():
        if param.default is inspect.Parameter.empty:
            params.append(f"<{param.name}>")
        else:
            params.append(f"[{param.name}=...]")
    return " ".join([func.__name__] + params)


def run_command(name: str, args: List[str], options: Dict[str, Any]) -> Any:
    """
    Look up a command and call it, checking args and options against its signature.
    """
    cmd = look_up_command(name)
    try:
        inspect.signature(cmd).bind(*args, **options)
    except TypeError as e:
        raise InvalidInput(f"Invalid arguments for `{cmd.__name__}`: {e}\nUsage: {command_usage(cmd)}")
    log.info("Running command: %s %s %s", cmd.__name__, args, options)
    return cmd(*args, **options)
