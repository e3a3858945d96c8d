"""Category request/response schemas."""

from pydantic import BaseModel, Field


class ChatChannelPayload(BaseModel):
    name: str = Field("", max_length=255)
    webhook_url: str = Field(..., min_length=1, max_length=2048)
    active: bool = True


class TranslationPayload(BaseModel):
    language: str = Field(..., min_length=2, max_length=5)
    description: str = Field("", max_length=255)


class CategoryPayload(BaseModel):
    """Full category configuration. On update every child list is replaced.

    ``chat_channel`` left out keeps the existing channel; an explicit ``null`` removes it.
    """

    plant: str = Field(..., min_length=1, max_length=4, pattern=r"^[A-Z0-9]+$")
    send_mail: bool = False
    mails: list[str] = Field(default_factory=list)
    work_centers: list[str] = Field(default_factory=list)
    translations: list[TranslationPayload] = Field(default_factory=list)
    chat_channel: ChatChannelPayload | None = None

