"""
Application wiring.

Builds every component and connects them by explicit dependency
injection: nothing is reachable through module-level globals.

FLOW:
1. Agent issues a tool call -> tool adapter
2. Ledger tools mutate the ledger, which notifies its listeners
3. Surface tools drive the surface host
4. The host emits surface events -> surface event handler -> registry
5. Registry listeners (the front end) re-render

Voice turns take the same path: the voice session relays the live
model's tool calls to the same tool adapter.
"""

from datetime import timedelta
from typing import Any, NamedTuple, Optional

import structlog

from genui_expenses.agents import ExpenseAgent, build_system_instruction
from genui_expenses.audit import AuditLogger, configure_logging
from genui_expenses.chat import ChatService
from genui_expenses.config import Settings, get_settings
from genui_expenses.genui import SurfaceHost, create_catalog
from genui_expenses.ledger import ExpenseLedger
from genui_expenses.services.audio import AudioFormat, PlaybackQueue
from genui_expenses.services.background import BackgroundService
from genui_expenses.services.storage import InMemoryAuditStorage
from genui_expenses.services.voice import VoiceSession
from genui_expenses.surfaces import SurfaceEventHandler, SurfaceRegistry
from genui_expenses.tools import ToolAdapter


class AppComponents(NamedTuple):
    ledger: ExpenseLedger
    registry: SurfaceRegistry
    host: SurfaceHost
    background: BackgroundService
    adapter: ToolAdapter
    agent: ExpenseAgent
    chat: ChatService
    audit_logger: AuditLogger
    playback: PlaybackQueue
    voice: VoiceSession


def create_app_components(
    settings: Optional[Settings] = None,
    model: Optional[Any] = None,
    prompt_model: Optional[Any] = None,
    image_model: Optional[Any] = None,
    live_client: Optional[Any] = None,
    use_audit_storage: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use; defaults to get_settings()
        model: Chat model for the agent (tests pass a fake)
        prompt_model: Model expanding background prompts
        image_model: Model generating background images
        live_client: Gemini Live client for voice turns
        use_audit_storage: Keep audit events in memory for the UI.
                    Set to False to only log them.
    """
    settings = settings or get_settings()
    app_settings = settings.app
    configure_logging(debug=app_settings.debug_mode)
    logger = structlog.get_logger(__name__)

    audit_storage = (
        InMemoryAuditStorage(max_events=app_settings.audit_history_limit)
        if use_audit_storage else None
    )
    audit_logger = AuditLogger(audit_storage)

    ledger = ExpenseLedger(
        dedupe_window=timedelta(seconds=settings.ledger.dedupe_window_seconds),
    )
    registry = SurfaceRegistry(
        dialog_debounce_seconds=settings.surfaces.dialog_debounce_ms / 1000,
    )

    catalog = create_catalog()
    host = SurfaceHost(catalog)
    host.add_listener(SurfaceEventHandler(registry))

    gemini_settings = settings.gemini
    background = BackgroundService(
        prompt_model=prompt_model,
        image_model=image_model,
        settings=gemini_settings,
    )

    adapter = ToolAdapter(
        ledger=ledger,
        background=background,
        host=host,
        audit_logger=audit_logger,
    )
    agent = ExpenseAgent(
        adapter,
        model=model,
        settings=gemini_settings,
        audit_logger=audit_logger,
        catalog_description=catalog.describe(),
    )
    audio = settings.audio
    playback = PlaybackQueue()
    voice = VoiceSession(
        adapter,
        playback,
        client=live_client,
        settings=gemini_settings,
        audit_logger=audit_logger,
        voice_name=audio.voice_name,
        capture_format=AudioFormat(sample_rate=audio.capture_sample_rate),
        system_instruction=build_system_instruction(catalog.describe()),
        chunk_ms=audio.chunk_ms,
        turn_timeout_seconds=audio.turn_timeout_seconds,
    )
    chat = ChatService(agent, registry=registry, audit_logger=audit_logger, voice=voice)

    logger.info(
        "app_components_created",
        environment=app_settings.app_environment,
        tools=adapter.tool_names,
        audit_storage=use_audit_storage,
    )
    return AppComponents(
        ledger=ledger,
        registry=registry,
        host=host,
        background=background,
        adapter=adapter,
        agent=agent,
        chat=chat,
        audit_logger=audit_logger,
        playback=playback,
        voice=voice,
    )
