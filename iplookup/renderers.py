import io
import json
from collections.abc import Callable
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from iplookup.errors import UnknownFieldError
from iplookup.models.common import IPInfoData
from iplookup.models.request_models import OutputFormat

FIELD_LABELS: tuple[tuple[str, str], ...] = (
    ("ip", "IP"),
    ("hostname", "Hostname"),
    ("city", "City"),
    ("region", "Region"),
    ("country", "Country"),
    ("loc", "Location"),
    ("org", "Organization"),
    ("postal", "Postal"),
    ("timezone", "Timezone"),
)

PRIVACY_LABELS: tuple[tuple[str, str], ...] = (
    ("vpn", "VPN"),
    ("proxy", "Proxy"),
    ("tor", "Tor"),
    ("relay", "Relay"),
    ("hosting", "Hosting"),
    ("service", "Service"),
)

ABUSE_LABELS: tuple[tuple[str, str], ...] = (
    ("name", "Name"),
    ("email", "Email"),
    ("phone", "Phone"),
    ("address", "Address"),
    ("country", "Country"),
    ("network", "Network"),
)

TABLE_WIDTH = 100


def _yes_no(value: Any) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def _present(model: Any, labels: tuple[tuple[str, str], ...]) -> list[tuple[str, str, Any]]:
    """(name, label, value) for every field of `model` that carries a value."""
    if model is None:
        return []
    rows = []
    for name, label in labels:
        value = getattr(model, name, None)
        if value is None or value == "":
            continue
        rows.append((name, label, value))
    return rows


def render_human(data: IPInfoData) -> str:
    lines = [f"{label + ':':<14}{value}" for _, label, value in _present(data, FIELD_LABELS)]

    privacy = _present(data.privacy, PRIVACY_LABELS)
    if privacy:
        lines.append("")
        lines.append("Privacy")
        lines.extend(f"  {label + ':':<10}{_yes_no(value)}" for _, label, value in privacy)

    abuse = _present(data.abuse, ABUSE_LABELS)
    if abuse:
        lines.append("")
        lines.append("Abuse contact")
        lines.extend(f"  {label + ':':<10}{value}" for _, label, value in abuse)

    return "\n".join(lines)


def render_json(data: IPInfoData) -> str:
    return json.dumps(data.to_payload(), indent=2, ensure_ascii=False)


def render_compact(data: IPInfoData) -> str:
    """One line: `ip (hostname) | city, region, country | org`."""
    head = f"{data.ip} ({data.hostname})" if data.hostname else data.ip
    place = ", ".join(part for part in (data.city, data.region, data.country) if part)
    return " | ".join(part for part in (head, place, data.org) if part)


def render_table(data: IPInfoData) -> str:
    table = Table(title=f"IP info: {data.ip}")
    table.add_column("Field")
    table.add_column("Value")

    for _, label, value in _present(data, FIELD_LABELS):
        table.add_row(label, escape(str(value)))
    for name, _, value in _present(data.privacy, PRIVACY_LABELS):
        table.add_row(f"privacy.{name}", escape(_yes_no(value)))
    for name, _, value in _present(data.abuse, ABUSE_LABELS):
        table.add_row(f"abuse.{name}", escape(str(value)))

    console = Console(file=io.StringIO(), width=TABLE_WIDTH, color_system=None, highlight=False)
    console.print(table)
    return console.file.getvalue().rstrip("\n")


RENDERERS: dict[OutputFormat, Callable[[IPInfoData], str]] = {
    OutputFormat.human: render_human,
    OutputFormat.json: render_json,
    OutputFormat.compact: render_compact,
    OutputFormat.table: render_table,
}


def render(data: IPInfoData, output_format: OutputFormat) -> str:
    return RENDERERS[output_format](data)


def extract_field(data: IPInfoData, field: str) -> str:
    """Render a single, possibly dotted, field such as `city` or `privacy.vpn`."""
    value: Any = data.to_payload()
    for part in field.split("."):
        if not isinstance(value, dict) or part not in value:
            raise UnknownFieldError(f"Field '{field}' is not present in the response for {data.ip}.")
        value = value[part]

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, indent=2, ensure_ascii=False)
    return str(value)
