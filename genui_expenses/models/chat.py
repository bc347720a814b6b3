"""Chat and chart models shared by the agent, the chat service and the front end."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from genui_expenses.models.ledger import Color, utc_now


class ChatMessage(BaseModel):
    """A single line in the conversation."""

    id: str
    text: str
    is_user: bool
    timestamp: datetime = Field(default_factory=utc_now)
    is_loading: bool = False


class ToolInvocation(BaseModel):
    """One function call the model made while answering a message."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    result: dict[str, Any] = Field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return "error" in self.result


class AgentReply(BaseModel):
    """Final text of a model turn plus the tool calls it took to get there."""

    text: str = ""
    tool_calls: list[ToolInvocation] = Field(default_factory=list)
    truncated: bool = Field(
        default=False,
        description="The tool-call round limit was reached before a final answer"
    )


class VoiceTurn(BaseModel):
    """What one spoken exchange with the voice service produced."""

    input_transcript: str = ""
    output_transcript: str = ""
    tool_calls: list[ToolInvocation] = Field(default_factory=list)
    audio: Optional[bytes] = Field(
        default=None,
        description="WAV of the spoken reply, at the playback format"
    )
    interrupted: bool = False


class ChartDataPoint(BaseModel):
    """One bar/slice/point of a chart."""

    label: str
    value: float
    color: Color

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "value": self.value,
            "color": self.color.to_hex(),
        }


class BackgroundState(BaseModel):
    """Current background produced by the background service."""

    description: Optional[str] = None
    enhanced_prompt: Optional[str] = None
    image_bytes: Optional[bytes] = None
    mime_type: Optional[str] = None
    image_size: Optional[tuple[int, int]] = None

    @property
    def has_image(self) -> bool:
        return self.image_bytes is not None
