from .selection_workflow import (
    handle_selection_message,
    handle_selection_buttons,
    handle_text,
    handle_type_choice,
    handle_item_choice,
    send_welcome,
)

__all__ = [
    "handle_selection_message",
    "handle_selection_buttons",
    "handle_text",
    "handle_type_choice",
    "handle_item_choice",
    "send_welcome",
]
