"""
Default command actions.

Registers every built-in command on a :class:`CommandRegistry`.  Handlers
get the parameter dict from the grammar (or a remote interpreter) and raise
:class:`~voxaid.errors.CommandError` when they cannot act; the dispatcher
turns that into feedback.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from ..dom.target_resolver import (
    TargetRole,
    find_form_to_submit,
    find_image,
    find_main_content,
    find_search_input,
    find_submit_button,
    resolve,
    resolve_field,
)
from ..errors import CommandError, TargetNotFoundError
from ..features.state import FeatureId, FeatureStateMachine, FeatureTransition, TransitionOp
from ..messaging.channel import Message, MessageType
from ..utils.logging_system import setup_log_system
from .grammar import DEFAULT_SCROLL_AMOUNT
from .registry import CommandRegistry

if TYPE_CHECKING:
    from ..assistant_session import AssistantSession

logger = setup_log_system("command_actions")

SUMMARY_FAILED = "Failed to generate summary. Try again later."

Params = Dict[str, Any]


def _amount(params: Params) -> int:
    try:
        return abs(int(params.get("amount", DEFAULT_SCROLL_AMOUNT)))
    except (TypeError, ValueError):
        return DEFAULT_SCROLL_AMOUNT


def register_feature_commands(registry: CommandRegistry, state: FeatureStateMachine) -> None:
    """``start_x`` / ``stop_x`` / ``toggle_x`` for every feature."""
    for feature in FeatureId:
        for op in TransitionOp:
            transition = FeatureTransition(op, feature)

            def handler(_: Params, transition: FeatureTransition = transition) -> Optional[str]:
                state.apply(transition)
                return None

            registry.register(transition.command_name, handler, f"{op.value} {feature.value}")


def register_default_commands(registry: CommandRegistry, session: "AssistantSession") -> None:
    page = session.page
    reader = session.screen_reader

    # ------------------------------------------------------------------
    # Scrolling and history
    # ------------------------------------------------------------------
    def scroll_down(params: Params) -> None:
        page.scroll_by(_amount(params))

    def scroll_up(params: Params) -> None:
        page.scroll_by(-_amount(params))

    def scroll_bottom(_: Params) -> None:
        page.scroll_to(page.document.scroll_height)

    def scroll_top(_: Params) -> None:
        page.scroll_to(0)

    registry.register("scroll_down", scroll_down, "Scroll down (amount in pixels, default 300)")
    registry.register("scroll_up", scroll_up, "Scroll up (amount in pixels, default 300)")
    registry.register("scroll_bottom", scroll_bottom, "Scroll to the bottom of the page")
    registry.register("scroll_top", scroll_top, "Scroll to the top of the page")
    registry.register("go_back", lambda _: page.back(), "Go back in history")
    registry.register("go_forward", lambda _: page.forward(), "Go forward in history")
    registry.register("refresh_page", lambda _: page.reload(), "Reload the page")

    # ------------------------------------------------------------------
    # Clicking and forms
    # ------------------------------------------------------------------
    def make_click(role: TargetRole, kind: str):
        def click(params: Params) -> None:
            text = str(params.get("text", "")).strip()
            node = resolve(page.document, text, role)
            if node is None:
                raise TargetNotFoundError(kind, text)
            page.click(node)

        return click

    registry.register("click", make_click(TargetRole.INTERACTIVE, "element"), "Click an element by its text")
    registry.register("click_button", make_click(TargetRole.BUTTON, "button"), "Click a button by its text")
    registry.register("click_link", make_click(TargetRole.LINK, "link"), "Follow a link by its text")

    def fill_input(params: Params) -> None:
        field_name = str(params.get("field", "")).strip()
        node = resolve_field(page.document, field_name)
        if node is None:
            raise TargetNotFoundError("field", field_name)
        page.fill(node, str(params.get("value", "")))

    def submit_form(_: Params) -> None:
        form = find_form_to_submit(page.document, page.is_visible)
        if form is None:
            raise CommandError("No form found to submit")
        button = find_submit_button(form)
        if button is not None:
            page.click(button)
        else:
            page.submit(form)

    def focus_search(_: Params) -> None:
        node = find_search_input(page.document)
        if node is None:
            raise CommandError("No search field found")
        page.focus(node)

    def search_for(params: Params) -> None:
        query = str(params.get("text", "")).strip()
        if not query:
            raise CommandError("Nothing to search for")
        node = find_search_input(page.document)
        if node is None:
            raise CommandError("No search field found")
        page.fill(node, query)
        page.press_key(node, "Enter")

    registry.register("fill_input", fill_input, "Type a value into a form field")
    registry.register("submit_form", submit_form, "Submit the current form")
    registry.register("focus_search", focus_search, "Focus the search field")
    registry.register("search_for", search_for, "Search the page's search field")

    # ------------------------------------------------------------------
    # Screen reader
    # ------------------------------------------------------------------
    def ensure_scanned() -> None:
        if not reader.elements:
            reader.activate()

    def next_element(_: Params) -> None:
        ensure_scanned()
        reader.next()

    def previous_element(_: Params) -> None:
        ensure_scanned()
        reader.previous()

    def read_aloud(params: Params) -> None:
        text = str(params.get("text", "")).strip()
        if text:
            reader.read_text(text)
        else:
            reader.read_selection()

    def toggle_reading(_: Params) -> None:
        if reader.is_speaking:
            reader.stop_reading()
        else:
            reader.read_page()

    def read_page(_: Params) -> None:
        reader.read_page()

    registry.register("read_page", read_page, "Read the page from the top")
    registry.register("next_element", next_element, "Read the next element")
    registry.register("previous_element", previous_element, "Read the previous element")
    registry.register("stop_reading", lambda _: reader.stop_reading(), "Stop reading")
    registry.register("read_faster", lambda _: f"Reading speed {reader.increase_speed():.1f}", "Read faster")
    registry.register("read_slower", lambda _: f"Reading speed {reader.decrease_speed():.1f}", "Read slower")
    registry.register("read_aloud", read_aloud, "Read the given text or the selection aloud")
    registry.register("toggle_reading", toggle_reading, "Read the page, or stop if already reading")

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------
    presentation = session.presentation
    registry.register(
        "increase_font_size",
        lambda _: f"Font size {round(presentation.increase_font_size() * 100)}%",
        "Make text bigger",
    )
    registry.register(
        "decrease_font_size",
        lambda _: f"Font size {round(presentation.decrease_font_size() * 100)}%",
        "Make text smaller",
    )

    # ------------------------------------------------------------------
    # Host messages: summary, tabs, assistant panel
    # ------------------------------------------------------------------
    def summarize_page(_: Params) -> str:
        document = page.document
        main = find_main_content(document)
        text = " ".join(((main or document.body).text_content).split())
        if not text:
            raise CommandError("No readable content found on this page")
        session.feedback.show("Generating summary...")
        response = session.channel.send(
            Message(MessageType.PROCESS_SUMMARY, {"text": text, "title": document.title, "url": document.url})
        )
        summary = (response or {}).get("summary")
        if not summary:
            raise CommandError(SUMMARY_FAILED)
        reader.read_text(summary)
        return summary

    def describe_image(params: Params) -> str:
        text = str(params.get("text", "")).strip()
        current = reader.current
        if not text and current is not None and current.node.tag == "img":
            node = current.node
        else:
            node = find_image(page.document, text, page.is_visible)
        if node is None:
            if text:
                raise TargetNotFoundError("image", text)
            raise CommandError("No image found on this page")
        context = node.parent.text_content if node.parent is not None else ""
        response = session.channel.send(
            Message(
                MessageType.DESCRIBE_IMAGE,
                {"src": node.get("src", ""), "alt": node.get("alt", ""), "context": " ".join(context.split())[:200]},
            )
        )
        description = (response or {}).get("description")
        if not description:
            raise CommandError("Could not describe the image")
        reader.read_text(description)
        return description

    def make_host_request(message_type: MessageType, description: str, *param_names: str):
        def request(params: Params) -> None:
            payload = {name: params[name] for name in param_names if name in params}
            response = session.channel.send(Message(message_type, payload))
            if not response or not response.get("success", False):
                error = (response or {}).get("error") or f"Could not {description}"
                raise CommandError(error)

        return request

    registry.register("summarize_page", summarize_page, "Summarize the page")
    registry.register("describe_image", describe_image, "Describe an image on the page")
    registry.register("new_tab", make_host_request(MessageType.OPEN_NEW_TAB, "open a new tab"), "Open a new tab")
    registry.register("close_tab", make_host_request(MessageType.CLOSE_CURRENT_TAB, "close the tab"), "Close this tab")
    registry.register(
        "switch_tab", make_host_request(MessageType.SWITCH_TAB, "switch tabs", "index"), "Switch to a tab"
    )
    registry.register(
        "open_assistant", make_host_request(MessageType.OPEN_ASSISTANT, "open the assistant"), "Open the assistant"
    )
    registry.register(
        "close_assistant", make_host_request(MessageType.CLOSE_ASSISTANT, "close the assistant"), "Close the assistant"
    )

    # ------------------------------------------------------------------
    # Help
    # ------------------------------------------------------------------
    def show_commands(_: Params) -> str:
        seen = {}
        for example, command in session.grammar.examples():
            seen.setdefault(command, example)
        return "You can say: " + ", ".join(f'"{example}"' for example in seen.values())

    registry.register("show_commands", show_commands, "List example commands")

    register_feature_commands(registry, session.state)
    logger.debug(f"Registered {len(registry.names())} commands.")
