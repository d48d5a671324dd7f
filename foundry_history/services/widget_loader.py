"""Widget definition loader.

Reads the widgets YAML file (same shape as the dashboard's card config) and
validates it into ``WidgetConfig`` objects.

Example::

    widgets:
      - id: router
        entity: binary_sensor.router
        duration: {quantity: 7, unit: day}
        ok: [on, connected]
      - id: climate
        mode: numeric
        entity: sensor.living_room_temperature
        entities: [sensor.bedroom_temperature]
        hours_to_show: 12
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from foundry_history.errors import WidgetConfigError
from foundry_history.schemas.widget import WidgetConfig, WidgetsFile

_BOOL_TAG = "tag:yaml.org,2002:bool"


class _WidgetYamlLoader(yaml.SafeLoader):
    """SafeLoader that keeps on/off/yes/no as strings, since they are entity states."""


_WidgetYamlLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _BOOL_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_WidgetYamlLoader.add_implicit_resolver(
    _BOOL_TAG,
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


def parse_widgets(content: str) -> list[WidgetConfig]:
    """Parse widget definitions from YAML text.

    Accepts either a mapping with a ``widgets`` list or a bare list.

    Raises:
        WidgetConfigError: If the YAML is malformed or a widget is invalid.
    """
    try:
        data: Any = yaml.load(content, Loader=_WidgetYamlLoader)  # noqa: S506
    except yaml.YAMLError as e:
        raise WidgetConfigError(f"Invalid widgets YAML: {e}") from e

    if data is None:
        return []
    if isinstance(data, list):
        data = {"widgets": data}
    if not isinstance(data, dict):
        raise WidgetConfigError("Widgets file must contain a mapping or a list")

    try:
        return WidgetsFile.model_validate(data).widgets
    except ValidationError as e:
        raise WidgetConfigError(f"Invalid widget definition: {e}") from e


def load_widgets(path: str | Path) -> list[WidgetConfig]:
    """Load widget definitions from a YAML file.

    Raises:
        WidgetConfigError: If the file does not exist or is invalid.
    """
    full_path = Path(path)
    if not full_path.is_file():
        raise WidgetConfigError(f"Widgets file not found: {full_path}")
    return parse_widgets(full_path.read_text(encoding="utf-8"))
