"""Readable validation messages for service files and publish settings.

Pydantic reports locations as tuples such as ``("roles", 0, "name")`` or
``("roles", "WebRole1", "instances")``. Service files address roles by list
index in ``service.yaml`` and by role name in the configurations, so
locations are rendered the way they appear in those files:
``roles[0].name`` and ``roles.WebRole1.instances``.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

VALUE_ERROR_PREFIX = "Value error, "


def format_location(loc: tuple[int | str, ...]) -> str:
    """Render a pydantic error location as a path into a service file."""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        elif path:
            path += f".{part}"
        else:
            path = str(part)
    return path or "(document)"


def validation_errors(exc: PydanticValidationError) -> list[str]:
    """Return one ``location: message`` line per validation error."""
    lines: list[str] = []
    for error in exc.errors():
        location = format_location(tuple(error.get("loc", ())))
        if error.get("type") == "extra_forbidden":
            message = "unknown setting"
        else:
            message = str(error.get("msg", "invalid value"))
            message = message.removeprefix(VALUE_ERROR_PREFIX)
        lines.append(f"{location}: {message}")
    return lines


def validation_message(
    exc: PydanticValidationError, subject: str, source: str | Path | None = None
) -> str:
    """Build the ConfigError message for an invalid document.

    Args:
        exc: Pydantic validation error
        subject: What was being validated (e.g. "service definition")
        source: File or URL the data came from, if any

    Returns:
        A header naming the subject and source, then one indented line per error
    """
    where = f" in {source}" if source is not None else ""
    details = "\n".join(f"  - {line}" for line in validation_errors(exc))
    return f"Invalid {subject}{where}:\n{details}"
