"""Message template loading and rendering."""

from pathlib import Path

import yaml

from .push import PushMessage


_templates: dict | None = None


def load_templates() -> dict:
    """
    Load message templates from YAML file.

    Caches templates after first load.
    """
    global _templates
    if _templates is not None:
        return _templates

    yaml_path = Path(__file__).parent / "messages.yaml"
    with open(yaml_path, encoding="utf-8") as f:
        _templates = yaml.safe_load(f)

    return _templates


def render_message(template: str, context: dict) -> str:
    """
    Render a message template with context variables.

    Raises:
        KeyError: If a required variable is missing from context
    """
    return template.format(**context)


def get_message(message_type: str, field: str, context: dict) -> str:
    """Get and render one field (title, body, ...) of a message type."""
    templates = load_templates()
    template = templates[message_type][field]
    return render_message(template, context)


def build_push_message(
    message_type: str,
    context: dict,
    body_field: str = "body",
) -> PushMessage:
    """Render a full push message for a message type."""
    templates = load_templates()
    return PushMessage(
        title=get_message(message_type, "title", context),
        body=get_message(message_type, body_field, context),
        click_action=templates[message_type].get("click_action"),
    )
