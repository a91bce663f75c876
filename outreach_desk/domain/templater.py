"""Outgoing message template."""

MESSAGE_TEMPLATE = "Hi {name}, we are here to help you with {category}."


def render_message(name: str, category: str) -> str:
    """Build the outreach text for a prospect. Pure and deterministic."""
    return MESSAGE_TEMPLATE.format(name=name, category=category)
