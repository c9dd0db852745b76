"""
Content Part Schema

The normalized unit consumed by the agent runtime. A message handed to the
agent is an ordered list of parts; the order carries meaning:

1. Metadata / instruction text
2. Raw message body text
3. Mention legend text
4. Embedded file parts
5. Per-file notices (attachments that could not be embedded)
"""

import base64
import uuid
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TextPart(BaseModel):
    """Plain text content"""
    type: Literal["text"] = "text"
    text: str


class FilePart(BaseModel):
    """File content, embedded as a data URI"""
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["file"] = "file"
    url: str = Field(..., description="data:<mime>;base64,<content> for embedded files")
    media_type: str = Field(..., alias="mediaType")

    @classmethod
    def from_bytes(cls, content: bytes, media_type: str) -> "FilePart":
        """Embed raw bytes as a base64 data URI"""
        encoded = base64.b64encode(content).decode("ascii")
        return cls(url=f"data:{media_type};base64,{encoded}", media_type=media_type)


ContentPart = Union[TextPart, FilePart]


class AgentMessage(BaseModel):
    """A user-role message delivered into an agent conversation"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: Literal["user"] = "user"
    parts: List[ContentPart] = Field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None


def dump_parts(parts: List[ContentPart]) -> List[Dict[str, Any]]:
    """Serialize parts to the wire schema ({type, text} | {type, url, mediaType})"""
    return [part.model_dump(by_alias=True) for part in parts]
