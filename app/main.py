"""
Streamlit Frontend for the GenUI Expense Tracker

The screen is split into the slots the model writes to (background,
total, chart, categories, dialog) and a chat column.

DESIGN PRINCIPLES:
1. The front end only renders; every change goes through the chat
2. Each slot shows exactly what the registry holds, nothing more
3. Unknown or empty slots render as nothing, never as an error
4. Confirmation dialogs are answered with explicit buttons
5. Voice clips go through the same chat as typed messages
"""

import asyncio
import hashlib
import html

import streamlit as st

from genui_expenses.config import validate_all_settings
from genui_expenses.genui import (
    BackgroundImageData,
    CategoriesContainerData,
    CategoryColumnData,
    ChartWidgetData,
    ConfirmationDialogData,
    ExpenseCardData,
    RenderedSurface,
    TotalWidgetData,
)
from genui_expenses.orchestrator import AppComponents, create_app_components


# Page configuration
st.set_page_config(
    page_title="Expense Tracker",
    page_icon="💸",
    layout="wide",
    initial_sidebar_state="collapsed",
)

st.markdown("""
<style>
    .expense-card {
        padding: 8px 12px;
        background-color: rgba(255, 255, 255, 0.85);
        border-radius: 8px;
        margin: 6px 0;
    }
    .category-column {
        padding: 12px;
        border-radius: 12px;
        margin-bottom: 12px;
    }
    .category-header {
        font-weight: bold;
        font-size: 1.1em;
    }
    .dialog-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


GRADIENT_CSS = "linear-gradient(135deg, #E8EAF6 0%, #E0F2F1 100%)"


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    return create_app_components()


def main():
    """Main application entry point."""
    status = validate_all_settings()
    if not status.get("gemini", False):
        st.error(f"❌ Gemini is not configured: {status.get('gemini_error', 'missing API key')}")
        st.markdown("Create a `.env` file with `GEMINI_API_KEY`. See `.env.example`.")
        return

    components = get_components()
    registry = components.registry

    render_background(registry.background, components)

    ui_col, chat_col = st.columns([3, 2])

    with ui_col:
        if registry.dialog is not None:
            render_dialog(registry.dialog, components)

        total_col, chart_col = st.columns([1, 2])
        with total_col:
            render_total(registry.total)
        with chart_col:
            render_chart(registry.chart)

        render_categories(registry.category_slots)

    with chat_col:
        render_chat(components)

    render_sidebar(components)


# =============================================================================
# SLOTS
# =============================================================================

def render_background(surface, components: AppComponents):
    """Generated image when the model asks for it, gradient otherwise."""
    css_background = GRADIENT_CSS
    if isinstance(surface, RenderedSurface) and isinstance(surface.data, BackgroundImageData):
        data_url = components.background.data_url
        if surface.data.uses_generated_image and data_url:
            css_background = f"url('{data_url}') center / cover no-repeat"

    st.markdown(
        f"<style>.stApp {{ background: {css_background}; }}</style>",
        unsafe_allow_html=True,
    )


def render_total(surface):
    if not isinstance(surface, RenderedSurface) or not isinstance(surface.data, TotalWidgetData):
        return
    st.metric(label=surface.data.label.title(), value=f"${surface.data.amount:,.2f}")


def render_chart(surface):
    if not isinstance(surface, RenderedSurface) or not isinstance(surface.data, ChartWidgetData):
        return

    points = surface.data.points()
    if not points:
        st.info("No data to chart yet.")
        return

    values = [point.to_dict() for point in points]
    color = {
        "field": "label",
        "type": "nominal",
        "scale": {
            "domain": [p["label"] for p in values],
            "range": [p["color"] for p in values],
        },
        "legend": {"title": None},
    }

    chart_type = surface.data.chart_type
    if chart_type == "pie":
        spec = {
            "mark": {"type": "arc", "innerRadius": 40},
            "encoding": {
                "theta": {"field": "value", "type": "quantitative"},
                "color": color,
            },
        }
    elif chart_type == "bar":
        spec = {
            "mark": "bar",
            "encoding": {
                "x": {"field": "label", "type": "nominal", "title": None},
                "y": {"field": "value", "type": "quantitative", "title": "Spent"},
                "color": color,
            },
        }
    else:
        spec = {
            "mark": {"type": "line", "point": True},
            "encoding": {
                "x": {"field": "label", "type": "nominal", "title": None, "sort": None},
                "y": {"field": "value", "type": "quantitative", "title": "Spent"},
            },
        }

    spec["data"] = {"values": values}
    st.vega_lite_chart(spec, use_container_width=True)


def render_categories(slots: dict):
    columns: list[CategoryColumnData] = []
    loose_expenses: list[ExpenseCardData] = []

    for sub_id in sorted(slots):
        surface = slots[sub_id]
        if not isinstance(surface, RenderedSurface):
            continue
        data = surface.data
        if isinstance(data, CategoriesContainerData):
            columns.extend(data.categories)
        elif isinstance(data, CategoryColumnData):
            columns.append(data)
        elif isinstance(data, ExpenseCardData):
            loose_expenses.append(data)

    if not columns and not loose_expenses:
        st.markdown("*Tell the assistant about an expense to get started.*")
        return

    for column, category in zip(st.columns(max(len(columns), 1)), columns):
        with column:
            render_category_column(category)

    for expense in loose_expenses:
        st.markdown(expense_card_html(expense), unsafe_allow_html=True)


def render_category_column(category: CategoryColumnData):
    color = category.resolved_color
    tint = f"rgba({color.red}, {color.green}, {color.blue}, 0.1)"
    cards = "".join(expense_card_html(e) for e in category.expenses)
    st.markdown(f"""
    <div class="category-column" style="background-color: {tint}; border-top: 4px solid {color.to_hex()};">
        <div class="category-header">{html.escape(category.name)}</div>
        <div>${category.total:,.2f}</div>
        {cards}
    </div>
    """, unsafe_allow_html=True)


def expense_card_html(expense: ExpenseCardData) -> str:
    date = html.escape(expense.date[:10]) if expense.date else ""
    return (
        f'<div class="expense-card"><strong>{html.escape(expense.title)}</strong>'
        f'<span style="float: right;">${expense.amount:,.2f}</span>'
        f'<br/><small>{date}</small></div>'
    )


def render_dialog(surface, components: AppComponents):
    if not isinstance(surface, RenderedSurface) or not isinstance(surface.data, ConfirmationDialogData):
        return

    dialog = surface.data
    st.markdown(
        f'<div class="dialog-box">{html.escape(dialog.message)}</div>',
        unsafe_allow_html=True,
    )
    confirm_col, cancel_col = st.columns(2)
    with confirm_col:
        if st.button(dialog.confirm_label, type="primary", key="dialog_confirm"):
            run_async(components.chat.answer_dialog(True))
            st.rerun()
    with cancel_col:
        if st.button(dialog.cancel_label, key="dialog_cancel"):
            run_async(components.chat.answer_dialog(False))
            st.rerun()


# =============================================================================
# CHAT
# =============================================================================

def render_chat(components: AppComponents):
    chat = components.chat

    for message in chat.messages:
        with st.chat_message("user" if message.is_user else "assistant"):
            if message.is_loading:
                st.markdown("_Thinking..._")
            else:
                st.markdown(message.text)

    prompt = st.chat_input('Try "Coffee $5" or "show me a pie chart"')
    if prompt:
        with st.spinner("Working on it..."):
            run_async(chat.send_message(prompt))
        st.rerun()

    render_voice(components)


def render_voice(components: AppComponents):
    """Record a clip, speak it to the live model and play the answer."""
    clip = st.audio_input(f"Talk to the assistant ({components.voice.voice_name})")
    if clip is not None:
        wav = clip.getvalue()
        # The widget keeps its value across reruns; send each recording once
        digest = hashlib.sha256(wav).hexdigest()
        if st.session_state.get("voice_clip") != digest:
            st.session_state["voice_clip"] = digest
            with st.spinner("Listening..."):
                turn = run_async(components.chat.send_voice(wav))
            if turn is not None and turn.audio:
                st.session_state["voice_reply"] = turn.audio
            st.rerun()

    # Play each spoken reply once
    reply = st.session_state.pop("voice_reply", None)
    if reply:
        st.audio(reply, format="audio/wav", autoplay=True)


def render_sidebar(components: AppComponents):
    st.sidebar.title("💸 Expense Tracker")

    ledger = components.ledger
    st.sidebar.metric("All time", f"${ledger.total_expenses:,.2f}")
    st.sidebar.caption(f"{len(ledger.categories)} categories, {len(ledger.expenses)} expenses")
    for category in ledger.category_totals():
        st.sidebar.markdown(
            f'<span style="color: {category.color.to_hex()};">&#9679;</span> '
            f"{html.escape(category.name)}: &#36;{category.total:,.2f} ({category.expense_count})",
            unsafe_allow_html=True,
        )

    if st.sidebar.button("Clear chat"):
        components.chat.clear_messages()
        components.agent.reset()
        st.rerun()

    with st.sidebar.expander("Recent activity"):
        events = run_async(components.audit_logger.recent_events(limit=20))
        if not events:
            st.markdown("No activity yet.")
        for event in events:
            st.markdown(f"- `{event.event_type.value}` {event.description}")


if __name__ == "__main__":
    main()
