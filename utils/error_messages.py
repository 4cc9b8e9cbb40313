"""
Clear, actionable error message formatting.

All configuration error messages follow the pattern:
  ERROR: [What failed]
    Reason: [Why it failed]
    Action: [What the operator should do]
    Location: [Which file or directive]
"""

import logging
from pathlib import Path
from typing import List, Optional, Union


def format_error(
    what_failed: str,
    reason: str,
    action: str,
    location: Optional[Union[Path, str]] = None,
    details: Optional[str] = None
) -> str:
    """
    Format a clear, actionable error message.

    Args:
        what_failed: What failed (e.g., "Invalid FaultInject directive")
        reason: Why it failed (e.g., "unknown/unsupported error: ENOPE")
        action: What to do (e.g., "Use one of: EACCES, EIO, ...")
        location: Where the problem is (config file, directive line)
        details: Optional additional details

    Returns:
        Formatted error message
    """
    lines = [f"ERROR: {what_failed}"]
    lines.append(f"  Reason: {reason}")
    lines.append(f"  Action: {action}")

    if location:
        lines.append(f"  Location: {location}")

    if details:
        lines.append(f"  Details: {details}")

    return "\n".join(lines)


def log_error(
    what_failed: str,
    reason: str,
    action: str,
    location: Optional[Union[Path, str]] = None,
    details: Optional[str] = None
):
    """Same parameters as format_error, but logs the message."""
    logging.error(format_error(what_failed, reason, action, location, details))


def format_config_file_error(config_path: Path, problems: List[str]) -> str:
    """Format structural validation errors of a JSON config file."""
    return format_error(
        what_failed="Configuration validation failed",
        reason=f"{len(problems)} invalid value(s)",
        action="Fix the listed fields; fault injection will not start with an invalid config",
        location=Path(config_path).absolute() if config_path else None,
        details="\n" + "\n".join(problems) if problems else None
    )


def format_directive_error(line: str, reason: str, choices: Optional[List[str]] = None) -> str:
    """Format a rejected FaultEngine/FaultInject directive."""
    action = "Correct the directive"
    if choices:
        action = f"Use one of: {', '.join(choices)}"

    return format_error(
        what_failed="Invalid fault directive",
        reason=reason,
        action=action,
        location=line
    )
