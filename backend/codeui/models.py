import time
import uuid
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Literal, Union

StyleValue = Union[str, int, float]


def _new_id() -> str:
    return uuid.uuid4().hex


class GenerationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: Optional[str] = None
    current_html: Optional[str] = Field(default=None, alias="currentHtml")
    model: Optional[str] = None
    is_follow_up: bool = Field(default=False, alias="isFollowUp")


class GenerationEvent(BaseModel):
    kind: Literal["content", "thinking", "done", "error"]
    text: str = ""
    message: Optional[str] = None


class StyleChange(BaseModel):
    id: str = Field(default_factory=_new_id)
    selector: str
    property: str
    old_value: Optional[StyleValue] = None
    new_value: Optional[StyleValue] = None
    timestamp: float = Field(default_factory=time.monotonic)
    kind: Literal["style", "attribute"] = "style"


class StyleSnapshot(BaseModel):
    selector: str
    element_type: str = "div"
    computed_styles: Dict[str, StyleValue] = Field(default_factory=dict)
    attributes: Dict[str, str] = Field(default_factory=dict)
    click_position: Optional[Dict[str, float]] = None


class Version(BaseModel):
    id: str = Field(default_factory=_new_id)
    html_content: str
    timestamp: str
    description: Optional[str] = None


class Message(BaseModel):
    id: str = Field(default_factory=_new_id)
    role: Literal["user", "assistant"]
    content: str
    timestamp: str
    is_thinking: bool = False
    thinking_content: Optional[str] = None


class ValidateStylesRequest(BaseModel):
    styles: Dict[str, StyleValue]
