"""Command declaration types for the local context plugin."""

import shlex
from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Optional


@dataclass
class HelpLines:
    """Styled help text for display in a pager.

    Attributes:
        lines: List of (text, style) tuples where style is one of
               "bold", "dim" or "" (normal).
    """
    lines: List[tuple]


class CommandCompletion(NamedTuple):
    """A completion option for command arguments.

    Attributes:
        value: The completion value to insert.
        description: Brief description shown in completion menu.
    """
    value: str
    description: str = ""


class CommandParameter(NamedTuple):
    """Definition of a command parameter for argument parsing.

    Attributes:
        name: Parameter name (used as key in parsed args dict).
        description: Brief description for help text.
        required: Whether the parameter is required (default: False).
        capture_rest: If True, this parameter captures all remaining args as a
            list. Only valid for the last parameter.
    """
    name: str
    description: str = ""
    required: bool = False
    capture_rest: bool = False


class UserCommand(NamedTuple):
    """Declaration of a user-facing command.

    Attributes:
        name: Command name for invocation and autocompletion.
        description: Brief description shown in autocompletion/help.
        share_with_model: If True, command output is added to conversation
            history so the model can see it.
        parameters: Optional CommandParameter definitions for argument parsing.
    """
    name: str
    description: str
    share_with_model: bool = False
    parameters: Optional[List[CommandParameter]] = None


def parse_command_args(command: UserCommand, raw_args: str) -> Dict[str, Any]:
    """Parse a raw argument string into named arguments.

    Arguments are split shell-style, so references containing spaces can be
    quoted. A ``capture_rest`` parameter receives the remaining arguments as
    a list.

    Returns:
        Dictionary of named arguments. If the command declares no parameters,
        returns {"args": [list of split args]}.
    """
    arg_parts = shlex.split(raw_args.strip()) if raw_args.strip() else []

    if not command.parameters:
        return {"args": arg_parts}

    result: Dict[str, Any] = {}
    for index, param in enumerate(command.parameters):
        if index >= len(arg_parts):
            break
        if param.capture_rest:
            result[param.name] = arg_parts[index:]
            break
        result[param.name] = arg_parts[index]

    return result
