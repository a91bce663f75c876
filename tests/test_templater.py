from outreach_desk.domain import MESSAGE_TEMPLATE, render_message


def test_render_message_fills_name_and_category():
    assert render_message("Ann", "Acne") == "Hi Ann, we are here to help you with Acne."


def test_render_message_is_deterministic():
    assert render_message("Bob", "Eczema") == render_message("Bob", "Eczema")


def test_render_message_keeps_values_verbatim():
    assert render_message("Zoë {x}", "") == "Hi Zoë {x}, we are here to help you with ."


def test_template_placeholders():
    assert "{name}" in MESSAGE_TEMPLATE
    assert "{category}" in MESSAGE_TEMPLATE
