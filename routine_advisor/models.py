from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Product(BaseModel):
    """Catalog record; immutable once loaded."""
    model_config = ConfigDict(frozen=True)

    id: Union[int, str]
    name: str = ""
    brand: str = ""
    description: str = ""
    category: str = ""
    image: str = ""


class Citation(BaseModel):
    """Source reference attached to an assistant reply."""
    title: str = ""
    url: str = ""


class Message(BaseModel):
    """Conversation entry; citations are kept in memory only."""
    role: Literal["user", "assistant"]
    content: str
    time: str
    citations: List[Citation] = Field(default_factory=list)

    def to_stored(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content, "time": self.time}


class ChatTurn(BaseModel):
    """Role/content pair forwarded verbatim by the relay; any JSON value is accepted."""
    role: Any = None
    content: Any = None

    def outbound(self) -> Dict[str, Any]:
        # Fields the caller omitted stay omitted.
        return self.model_dump(include={"role", "content"}, exclude_unset=True)


class ProductSummary(BaseModel):
    """Product fields the relay needs to build its product data message."""
    name: Any = None
    brand: Any = None
    description: Any = None


class RelayRequest(BaseModel):
    """Request payload accepted by the relay proxy."""
    messages: List[ChatTurn] = Field(default_factory=list)
    products: List[ProductSummary] = Field(default_factory=list)
    now: Any = None


class RelayReply(BaseModel):
    """Response payload returned by the relay proxy; reply is None when absent."""
    reply: Optional[str] = None
    citations: List[Citation] = Field(default_factory=list)


class CompletionMessage(BaseModel):
    role: Any = None
    content: Any = None


class CompletionChoice(BaseModel):
    index: Any = None
    message: Optional[CompletionMessage] = None


class CompletionResponse(BaseModel):
    """Subset of the upstream chat-completion response the relay reads."""
    choices: Optional[List[Optional[CompletionChoice]]] = None

    def first_content(self) -> Optional[str]:
        """Return the first choice's message text, or None when any level is missing."""
        if not self.choices:
            return None
        choice = self.choices[0]
        if choice is None or choice.message is None:
            return None
        content = choice.message.content
        return content if isinstance(content, str) else None


class CompletionRequest(BaseModel):
    """Body sent to the upstream chat-completion endpoint."""
    model: str
    messages: List[Dict[str, Any]]
    max_tokens: int
    temperature: float
