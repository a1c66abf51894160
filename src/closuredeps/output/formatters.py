"""Human and JSON rendering of ServiceResult.

Ordered paths print one per line so the output can be piped straight into
a compiler invocation; ``--json`` dumps the full result model.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.text import Text

from closuredeps.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from closuredeps.services.result import ServiceResult


def format_result(result: ServiceResult, *, json_output: bool = False) -> str:
    """Format a ServiceResult for display.

    Args:
        result: The service result to format.
        json_output: If True, return JSON; otherwise return human-readable text.
    """
    if json_output:
        return result.model_dump_json(indent=2)

    console = create_console()
    if result.ok and result.op == "order":
        for path in result.data.get("paths", []):
            console.print(Text(path), soft_wrap=True)
    elif result.ok:
        console.print(Text("OK", style="deps.ok"), Text(result.op, style="deps.op"))
        _render_fields(console, result.data)
    else:
        _render_error(console, result)
    return get_output(console).rstrip("\n")


def _render_fields(console: Console, data: dict[str, Any]) -> None:
    for key, value in data.items():
        if key == "problems":
            continue
        if isinstance(value, (dict, list)):
            value = json.dumps(value, separators=(",", ":"))
        console.print(Text(f"  {key}:", style="deps.key"), Text(str(value)), soft_wrap=True)


def _render_error(console: Console, result: ServiceResult) -> None:
    message = result.error.message if result.error else "Unknown error"
    console.print(
        Text("ERROR", style="deps.error"),
        Text(result.op, style="deps.op"),
        Text(message),
        soft_wrap=True,
    )
    for problem in result.data.get("problems", []):
        console.print(
            Text(f"  {problem['code']}", style="deps.code"),
            Text(problem["message"]),
            soft_wrap=True,
        )
    if result.error and result.error.detail and not result.data.get("problems"):
        for key, value in result.error.detail.items():
            console.print(Text(f"  {key}:", style="deps.key"), Text(str(value)), soft_wrap=True)
