"""Small helpers shared by the CLI commands."""

from __future__ import annotations

import json
from typing import Any

import click


def read_json(stream: Any) -> Any:
    try:
        return json.load(stream)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"{stream.name}: invalid JSON ({exc})")
